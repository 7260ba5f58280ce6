"""Root test configuration."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

import pytest
import structlog
from tfkoyeb.clients.base import NotFoundHTTPError
from tfkoyeb.clients.koyeb import Page
from tfkoyeb.config.settings import Settings
from tfkoyeb.providers.koyeb import KoyebProvider


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeKoyebAPI:
    """In-memory listing/fetch capability that records every list call."""

    def __init__(self) -> None:
        self.apps: list[dict[str, Any]] = []
        self.services: list[dict[str, Any]] = []
        self.domains: list[dict[str, Any]] = []
        self.secrets: list[dict[str, Any]] = []
        self.deployments: list[dict[str, Any]] = []
        self.volumes: list[dict[str, Any]] = []
        self.list_calls: list[tuple[str, int, int, str | None]] = []
        self.mutations: list[tuple[str, str, str]] = []
        # The real API filters services by app_id; off by default so the
        # mapper's own parent filter is exercised.
        self.filter_services_by_app = False

    def _page(self, kind: str, items: list[dict[str, Any]], offset: int, limit: int, app_id: str | None = None) -> Page:
        self.list_calls.append((kind, offset, limit, app_id))
        chunk = items[offset : offset + limit]
        return Page(items=chunk, has_more=offset + limit < len(items))

    async def list_apps(self, offset: int, limit: int) -> Page:
        return self._page("apps", self.apps, offset, limit)

    async def list_services(self, offset: int, limit: int, app_id: str | None = None) -> Page:
        items = self.services
        if self.filter_services_by_app and app_id:
            items = [s for s in items if s.get("app_id") == app_id]
        return self._page("services", items, offset, limit, app_id)

    async def list_domains(self, offset: int, limit: int) -> Page:
        return self._page("domains", self.domains, offset, limit)

    async def list_secrets(self, offset: int, limit: int) -> Page:
        return self._page("secrets", self.secrets, offset, limit)

    @staticmethod
    def _find(items: list[dict[str, Any]], resource_id: str) -> dict[str, Any]:
        for item in items:
            if item["id"] == resource_id:
                return item
        raise NotFoundHTTPError(f"404 Not Found: {resource_id}", 404)

    async def get_app(self, app_id: str) -> dict[str, Any]:
        return self._find(self.apps, app_id)

    async def get_service(self, service_id: str) -> dict[str, Any]:
        return self._find(self.services, service_id)

    async def get_domain(self, domain_id: str) -> dict[str, Any]:
        return self._find(self.domains, domain_id)

    async def get_secret(self, secret_id: str) -> dict[str, Any]:
        return self._find(self.secrets, secret_id)

    async def get_deployment(self, deployment_id: str) -> dict[str, Any]:
        return self._find(self.deployments, deployment_id)

    async def get_volume(self, volume_id: str) -> dict[str, Any]:
        return self._find(self.volumes, volume_id)

    # Mutations used by the provider resources

    def _add(self, items: list[dict[str, Any]], kind: str, resource: dict[str, Any]) -> dict[str, Any]:
        created = {"id": str(uuid4()), **resource}
        items.append(created)
        self.mutations.append(("create", kind, created["id"]))
        return created

    def _remove(self, items: list[dict[str, Any]], kind: str, resource_id: str) -> None:
        items.remove(self._find(items, resource_id))
        self.mutations.append(("delete", kind, resource_id))

    def _patch(self, items: list[dict[str, Any]], kind: str, resource_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        resource = self._find(items, resource_id)
        resource.update(fields)
        self.mutations.append(("update", kind, resource_id))
        return resource

    async def create_app(self, name: str) -> dict[str, Any]:
        return self._add(self.apps, "app", {"name": name, "organization_id": "org-1"})

    async def delete_app(self, app_id: str) -> None:
        self._remove(self.apps, "app", app_id)

    async def create_service(self, app_id: str, definition: dict[str, Any]) -> dict[str, Any]:
        deployment = self._add(self.deployments, "deployment", {"definition": definition, "status": "HEALTHY"})
        return self._add(
            self.services,
            "service",
            {
                "name": definition.get("name"),
                "app_id": app_id,
                "status": "STARTING",
                "latest_deployment_id": deployment["id"],
            },
        )

    async def update_service(self, service_id: str, definition: dict[str, Any]) -> dict[str, Any]:
        deployment = self._add(self.deployments, "deployment", {"definition": definition, "status": "HEALTHY"})
        return self._patch(self.services, "service", service_id, {"latest_deployment_id": deployment["id"]})

    async def delete_service(self, service_id: str) -> None:
        self._remove(self.services, "service", service_id)

    async def create_domain(self, name: str, app_id: str | None = None) -> dict[str, Any]:
        return self._add(self.domains, "domain", {"name": name, "app_id": app_id or "", "status": "PENDING"})

    async def update_domain(self, domain_id: str, app_id: str | None) -> dict[str, Any]:
        return self._patch(self.domains, "domain", domain_id, {"app_id": app_id or ""})

    async def delete_domain(self, domain_id: str) -> None:
        self._remove(self.domains, "domain", domain_id)

    async def create_secret(self, secret: dict[str, Any]) -> dict[str, Any]:
        return self._add(self.secrets, "secret", dict(secret))

    async def update_secret(self, secret_id: str, secret: dict[str, Any]) -> dict[str, Any]:
        return self._patch(self.secrets, "secret", secret_id, dict(secret))

    async def reveal_secret(self, secret_id: str) -> Any:
        secret = self._find(self.secrets, secret_id)
        if "value" in secret:
            return secret["value"]
        for key, value in secret.items():
            if key.endswith("_registry"):
                return value
        return None

    async def delete_secret(self, secret_id: str) -> None:
        self._remove(self.secrets, "secret", secret_id)

    async def create_volume(self, volume: dict[str, Any]) -> dict[str, Any]:
        fields = {k: v for k, v in volume.items() if k != "volume_type"}
        fields["backing_store"] = volume["volume_type"]
        return self._add(self.volumes, "volume", fields)

    async def update_volume(self, volume_id: str, volume: dict[str, Any]) -> dict[str, Any]:
        return self._patch(self.volumes, "volume", volume_id, {"name": volume["name"]})

    async def delete_volume(self, volume_id: str) -> None:
        self._remove(self.volumes, "volume", volume_id)


@pytest.fixture
def fake_api() -> FakeKoyebAPI:
    return FakeKoyebAPI()


@pytest.fixture
def settings() -> Settings:
    return Settings(token="test-token", wait_poll_interval=0.0, wait_timeout=1.0, page_size=2)


@pytest.fixture
def provider(fake_api: FakeKoyebAPI, settings: Settings) -> KoyebProvider:
    return KoyebProvider(fake_api, settings=settings)  # type: ignore[arg-type]
