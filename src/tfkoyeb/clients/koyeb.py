from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from tfkoyeb.clients.base import BaseHTTPClient
from tfkoyeb.core.errors import ConfigurationError

if TYPE_CHECKING:
    from tfkoyeb.config.settings import Settings

DEFAULT_BASE_URL = "https://app.koyeb.com"
DEFAULT_USER_AGENT = "terraform-provider-koyeb/0.1.0"


@dataclass(frozen=True)
class Page:
    """One page of a listing endpoint."""

    items: list[dict[str, Any]] = field(default_factory=list)
    has_more: bool = False


class KoyebAPI(Protocol):
    """Listing and fetch capability consumed by the mapper and the waiter."""

    async def list_apps(self, offset: int, limit: int) -> Page:
        ...

    async def list_services(self, offset: int, limit: int, app_id: str | None = None) -> Page:
        ...

    async def list_domains(self, offset: int, limit: int) -> Page:
        ...

    async def list_secrets(self, offset: int, limit: int) -> Page:
        ...

    async def get_app(self, app_id: str) -> dict[str, Any]:
        ...

    async def get_service(self, service_id: str) -> dict[str, Any]:
        ...

    async def get_domain(self, domain_id: str) -> dict[str, Any]:
        ...

    async def get_deployment(self, deployment_id: str) -> dict[str, Any]:
        ...


class KoyebClient(BaseHTTPClient):
    """Client for the Koyeb REST API v1."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        **http_options: Any,
    ) -> None:
        super().__init__(base_url, timeout=timeout, **http_options)
        self._token = token
        self._user_agent = user_agent

    @classmethod
    def from_settings(cls, settings: Settings) -> KoyebClient:
        if not settings.token:
            raise ConfigurationError("Empty KOYEB_TOKEN environment variable")
        return cls(settings.token, base_url=settings.api_url, timeout=settings.http_timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
        }

    async def _list(
        self,
        path: str,
        key: str,
        offset: int,
        limit: int,
        **filters: Any,
    ) -> Page:
        params: dict[str, Any] = {"offset": str(offset), "limit": str(limit)}
        params.update({k: v for k, v in filters.items() if v is not None})
        data = await self.get(path, params=params)
        items = data.get(key) or []
        has_next = data.get("has_next")
        has_more = bool(has_next) if has_next is not None else len(items) >= limit
        return Page(items=items, has_more=has_more)

    # Apps

    async def list_apps(self, offset: int, limit: int) -> Page:
        return await self._list("/v1/apps", "apps", offset, limit)

    async def get_app(self, app_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/apps/{app_id}")
        return data.get("app", data)

    async def create_app(self, name: str) -> dict[str, Any]:
        data = await self.post("/v1/apps", json={"name": name})
        return data.get("app", data)

    async def delete_app(self, app_id: str) -> None:
        await self.delete(f"/v1/apps/{app_id}")

    # Services

    async def list_services(self, offset: int, limit: int, app_id: str | None = None) -> Page:
        return await self._list("/v1/services", "services", offset, limit, app_id=app_id)

    async def get_service(self, service_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/services/{service_id}")
        return data.get("service", data)

    async def create_service(self, app_id: str, definition: dict[str, Any]) -> dict[str, Any]:
        data = await self.post("/v1/services", json={"app_id": app_id, "definition": definition})
        return data.get("service", data)

    async def update_service(self, service_id: str, definition: dict[str, Any]) -> dict[str, Any]:
        data = await self.put(f"/v1/services/{service_id}", json={"definition": definition})
        return data.get("service", data)

    async def delete_service(self, service_id: str) -> None:
        await self.delete(f"/v1/services/{service_id}")

    async def get_deployment(self, deployment_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/deployments/{deployment_id}")
        return data.get("deployment", data)

    # Domains

    async def list_domains(self, offset: int, limit: int) -> Page:
        return await self._list("/v1/domains", "domains", offset, limit)

    async def get_domain(self, domain_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/domains/{domain_id}")
        return data.get("domain", data)

    async def create_domain(self, name: str, app_id: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name, "type": "CUSTOM"}
        if app_id:
            payload["app_id"] = app_id
        data = await self.post("/v1/domains", json=payload)
        return data.get("domain", data)

    async def update_domain(self, domain_id: str, app_id: str | None) -> dict[str, Any]:
        data = await self.patch(f"/v1/domains/{domain_id}", json={"app_id": app_id or ""})
        return data.get("domain", data)

    async def delete_domain(self, domain_id: str) -> None:
        await self.delete(f"/v1/domains/{domain_id}")

    # Secrets

    async def list_secrets(self, offset: int, limit: int) -> Page:
        return await self._list("/v1/secrets", "secrets", offset, limit)

    async def get_secret(self, secret_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/secrets/{secret_id}")
        return data.get("secret", data)

    async def create_secret(self, secret: dict[str, Any]) -> dict[str, Any]:
        data = await self.post("/v1/secrets", json=secret)
        return data.get("secret", data)

    async def update_secret(self, secret_id: str, secret: dict[str, Any]) -> dict[str, Any]:
        data = await self.put(f"/v1/secrets/{secret_id}", json=secret)
        return data.get("secret", data)

    async def reveal_secret(self, secret_id: str) -> Any:
        data = await self.post(f"/v1/secrets/{secret_id}/reveal", json={})
        return data.get("value")

    async def delete_secret(self, secret_id: str) -> None:
        await self.delete(f"/v1/secrets/{secret_id}")

    # Volumes

    async def get_volume(self, volume_id: str) -> dict[str, Any]:
        data = await self.get(f"/v1/volumes/{volume_id}")
        return data.get("volume", data)

    async def create_volume(self, volume: dict[str, Any]) -> dict[str, Any]:
        data = await self.post("/v1/volumes", json=volume)
        return data.get("volume", data)

    async def update_volume(self, volume_id: str, volume: dict[str, Any]) -> dict[str, Any]:
        data = await self.post(f"/v1/volumes/{volume_id}", json=volume)
        return data.get("volume", data)

    async def delete_volume(self, volume_id: str) -> None:
        await self.delete(f"/v1/volumes/{volume_id}")
