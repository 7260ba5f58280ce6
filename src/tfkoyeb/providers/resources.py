"""
Managed Koyeb resources: koyeb_app, koyeb_service, koyeb_domain,
koyeb_secret and koyeb_volume.

Each resource turns a desired-state dict (the Terraform resource block) into
client calls and returns flattened state dicts keyed like the block's
attributes.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from tfkoyeb.clients.base import NotFoundHTTPError
from tfkoyeb.core.errors import (
    InvalidReferenceError,
    ReferenceNotFoundError,
    ResourceNotFoundError,
    ValidationError,
)
from tfkoyeb.idmapper import ResourceKind, is_resolved_id
from tfkoyeb.providers.base import PlanChange, PlanResult, ProviderResource, ProviderResourceSchema
from tfkoyeb.waiter import deployment_status, wait_for_status

if TYPE_CHECKING:
    from tfkoyeb.providers.koyeb import KoyebProvider

logger = structlog.get_logger()

DELETED_STATUSES = ("DELETED",)
HEALTHY_STATUSES = ("HEALTHY",)


def _differs(desired: Any, current: Any) -> bool:
    """Compare a desired value against current state, treating dicts as subsets."""
    if isinstance(desired, dict) and isinstance(current, dict):
        return any(_differs(value, current.get(key)) for key, value in desired.items())
    return desired != current


class KoyebResource(ProviderResource):
    """Shared plan/apply/destroy flow for Koyeb resources."""

    RESOURCE: ClassVar[str]
    DESCRIPTION: ClassVar[str]
    ATTRIBUTES: ClassVar[dict[str, str]]
    FORCE_NEW: ClassVar[frozenset[str]] = frozenset()
    UPDATABLE: ClassVar[frozenset[str]] = frozenset()
    KIND: ClassVar[ResourceKind | None] = None
    LABEL: ClassVar[str]

    def __init__(self, provider: KoyebProvider) -> None:
        self._p = provider

    @classmethod
    def schema(cls) -> ProviderResourceSchema:
        return ProviderResourceSchema(
            name=cls.RESOURCE,
            description=cls.DESCRIPTION,
            attributes=dict(cls.ATTRIBUTES),
            force_new=cls.FORCE_NEW,
        )

    @abstractmethod
    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        """Fetch the raw API object; raises NotFoundHTTPError when gone."""

    @abstractmethod
    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        ...

    async def _update(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        """In-place update; only reached when an UPDATABLE field changed."""
        return None

    @abstractmethod
    async def _delete(self, resource_id: str) -> None:
        ...

    async def _comparable(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        """Desired state expressed with the same keys as flattened state."""
        return desired_state

    async def _after_apply(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        return None

    async def read(self, resource_id: str) -> dict[str, Any] | None:
        """Return flattened state, or None when the resource no longer exists."""
        try:
            raw = await self._fetch(resource_id)
        except NotFoundHTTPError:
            logger.info("resource_gone", resource=self.RESOURCE, id=resource_id)
            return None
        return await self._flatten(raw)

    async def plan(self, desired_state: dict[str, Any]) -> PlanResult:
        resource_id = desired_state.get("id")
        current = await self.read(resource_id) if resource_id else None
        if current is None:
            return PlanResult([PlanChange("create", {"resource": self.RESOURCE})])

        desired = await self._comparable(desired_state)
        replace = [f for f in sorted(self.FORCE_NEW) if f in desired and _differs(desired[f], current.get(f))]
        if replace:
            return PlanResult(
                [
                    PlanChange("delete", {"id": current["id"], "fields": replace}),
                    PlanChange("create", {"resource": self.RESOURCE, "fields": replace}),
                ],
                metadata={"id": current["id"]},
            )

        changes = [
            PlanChange("update", {"field": field})
            for field in sorted(self.UPDATABLE)
            if field in desired and _differs(desired[field], current.get(field))
        ]
        return PlanResult(changes, metadata={"id": current["id"]})

    async def drift(self, desired_state: dict[str, Any]) -> PlanResult:
        return await self.plan(desired_state)

    async def apply(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        plan = await self.plan(desired_state)
        resource_id = desired_state.get("id")

        if plan.requires_replace and resource_id:
            await self.destroy(resource_id)

        if any(change.action == "create" for change in plan.changes):
            raw = await self._create(desired_state)
            resource_id = raw["id"]
            logger.info("resource_created", resource=self.RESOURCE, id=resource_id, name=raw.get("name"))
        elif plan.has_changes:
            await self._update(resource_id, desired_state)
            logger.info("resource_updated", resource=self.RESOURCE, id=resource_id)

        await self._after_apply(resource_id, desired_state)

        state = await self.read(resource_id)
        if state is None:
            raise ResourceNotFoundError(f"{self.LABEL} {resource_id}")
        return state

    async def destroy(self, resource_id: str) -> None:
        """Delete the resource and wait until the API no longer returns it."""
        try:
            await self._delete(resource_id)
        except NotFoundHTTPError:
            logger.info("resource_already_gone", resource=self.RESOURCE, id=resource_id)
            return

        await wait_for_status(
            lambda: self._fetch(resource_id),
            f"{self.LABEL} {resource_id}",
            DELETED_STATUSES,
            timeout=self._p.wait_timeout,
            not_found_is_error=False,
            poll_interval=self._p.poll_interval,
        )
        logger.info("resource_deleted", resource=self.RESOURCE, id=resource_id)

    async def import_state(self, reference: str) -> dict[str, Any]:
        """Resolve a name or ID to the resource and return its state."""
        if self.KIND is not None:
            resource_id = await self._p.mapper.resolve(self.KIND, reference)
        elif is_resolved_id(reference):
            resource_id = reference
        else:
            raise InvalidReferenceError(self.LABEL, reference, "import requires an ID")

        state = await self.read(resource_id)
        if state is None:
            raise ReferenceNotFoundError(self.LABEL, reference)
        return state

    async def _app_id(self, app_reference: str | None) -> str | None:
        if not app_reference:
            return None
        return await self._p.mapper.resolve(ResourceKind.APP, app_reference)

    async def _app_name(self, app_id: str | None) -> str | None:
        if not app_id:
            return None
        app = await self._p.client.get_app(app_id)
        return app.get("name")


class KoyebAppResource(KoyebResource):
    RESOURCE = "koyeb_app"
    DESCRIPTION = "App resource in the Koyeb Terraform provider."
    LABEL = "App"
    KIND = ResourceKind.APP
    FORCE_NEW = frozenset({"name"})
    ATTRIBUTES = {
        "id": "The app ID",
        "name": "The app name",
        "organization_id": "The organization ID owning the app",
        "domains": "The app domains",
        "updated_at": "The date and time of when the app was last updated",
        "created_at": "The date and time of when the app was created",
    }

    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        return await self._p.client.get_app(resource_id)

    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "organization_id": raw.get("organization_id"),
            "domains": [flatten_domain(domain, raw.get("name")) for domain in raw.get("domains") or []],
            "created_at": raw.get("created_at"),
            "updated_at": raw.get("updated_at"),
        }

    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        name = desired_state.get("name") or ""
        if not 3 <= len(name) <= 23:
            raise ValidationError("App name must be between 3 and 23 characters", {"name": name})
        return await self._p.client.create_app(name)

    async def _delete(self, resource_id: str) -> None:
        await self._p.client.delete_app(resource_id)


def flatten_domain(raw: dict[str, Any], app_name: str | None) -> dict[str, Any]:
    state = {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "type": raw.get("type"),
        "status": raw.get("status"),
        "version": raw.get("version"),
        "app_id": raw.get("app_id") or None,
        "app_name": app_name,
        "deployment_group": raw.get("deployment_group"),
        "intended_cname": raw.get("intended_cname"),
        "organization_id": raw.get("organization_id"),
        "verified_at": raw.get("verified_at"),
        "created_at": raw.get("created_at"),
        "updated_at": raw.get("updated_at"),
    }
    messages = raw.get("messages")
    if messages:
        state["messages"] = " ".join(messages)
    return state


class KoyebDomainResource(KoyebResource):
    RESOURCE = "koyeb_domain"
    DESCRIPTION = "Domain resource in the Koyeb Terraform provider."
    LABEL = "Domain"
    KIND = ResourceKind.DOMAIN
    FORCE_NEW = frozenset({"name"})
    UPDATABLE = frozenset({"app_id"})
    ATTRIBUTES = {
        "id": "The domain ID",
        "name": "The domain name",
        "app_name": "The app name the domain is assigned to",
        "app_id": "The app ID the domain is assigned to",
        "type": "The domain type",
        "status": "The domain status",
        "intended_cname": "The CNAME record to point the domain to",
        "deployment_group": "The deployment group assigned to the domain",
        "organization_id": "The organization ID owning the domain",
        "messages": "The status messages of the domain",
        "verified_at": "The date and time of when the domain was last verified",
        "updated_at": "The date and time of when the domain was last updated",
        "created_at": "The date and time of when the domain was created",
    }

    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        return await self._p.client.get_domain(resource_id)

    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        return flatten_domain(raw, await self._app_name(raw.get("app_id")))

    async def _comparable(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        comparable = {k: v for k, v in desired_state.items() if k != "app_name"}
        if "app_name" in desired_state:
            comparable["app_id"] = await self._app_id(desired_state["app_name"])
        return comparable

    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        app_id = await self._app_id(desired_state.get("app_name"))
        return await self._p.client.create_domain(desired_state["name"], app_id=app_id)

    async def _update(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        app_id = await self._app_id(desired_state.get("app_name"))
        await self._p.client.update_domain(resource_id, app_id)

    async def _delete(self, resource_id: str) -> None:
        await self._p.client.delete_domain(resource_id)


class KoyebServiceResource(KoyebResource):
    RESOURCE = "koyeb_service"
    DESCRIPTION = "Service resource in the Koyeb Terraform provider."
    LABEL = "Service"
    KIND = ResourceKind.SERVICE
    FORCE_NEW = frozenset({"app_id"})
    UPDATABLE = frozenset({"definition"})
    ATTRIBUTES = {
        "id": "The id of the service",
        "name": "The name of the service",
        "app_name": "The app name the service is assigned to",
        "app_id": "The app id the service is assigned",
        "definition": "The service deployment definition",
        "organization_id": "The organization id owning the service",
        "active_deployment": "The service active deployment id",
        "latest_deployment": "The service latest deployment id",
        "version": "The version of the service",
        "status": "The status of the service",
        "messages": "The status messages of the service",
        "paused_at": "The date and time of when the service was last paused",
        "resumed_at": "The date and time of when the service was last resumed",
        "terminated_at": "The date and time of when the service was terminated",
        "updated_at": "The date and time of when the service was last updated",
        "created_at": "The date and time of when the service was created",
    }

    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        return await self._p.client.get_service(resource_id)

    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        definition = None
        latest = raw.get("latest_deployment_id")
        if latest:
            deployment = await self._p.client.get_deployment(latest)
            definition = deployment.get("definition")
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "app_id": raw.get("app_id"),
            "app_name": await self._app_name(raw.get("app_id")),
            "definition": definition,
            "organization_id": raw.get("organization_id"),
            "active_deployment": raw.get("active_deployment_id"),
            "latest_deployment": latest,
            "version": raw.get("version"),
            "status": raw.get("status"),
            "messages": " ".join(raw.get("messages") or []),
            "paused_at": raw.get("paused_at"),
            "resumed_at": raw.get("resumed_at"),
            "terminated_at": raw.get("terminated_at"),
            "created_at": raw.get("created_at"),
            "updated_at": raw.get("updated_at"),
        }

    async def _comparable(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        comparable = {k: v for k, v in desired_state.items() if k != "app_name"}
        if "app_name" in desired_state:
            comparable["app_id"] = await self._app_id(desired_state["app_name"])
        return comparable

    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        app_id = await self._app_id(desired_state.get("app_name"))
        if app_id is None:
            raise ValidationError("Service requires app_name", {"resource": self.RESOURCE})
        return await self._p.client.create_service(app_id, desired_state.get("definition") or {})

    async def _update(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        await self._p.client.update_service(resource_id, desired_state.get("definition") or {})

    async def _delete(self, resource_id: str) -> None:
        await self._p.client.delete_service(resource_id)

    async def _after_apply(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        if not desired_state.get("wait_for_deployment"):
            return
        service = await self._p.client.get_service(resource_id)
        deployment_id = service.get("latest_deployment_id")
        if not deployment_id:
            return
        await wait_for_status(
            lambda: self._p.client.get_deployment(deployment_id),
            f"Deployment {deployment_id}",
            HEALTHY_STATUSES,
            timeout=self._p.wait_timeout,
            not_found_is_error=True,
            status_of=deployment_status,
            poll_interval=self._p.poll_interval,
        )


SECRET_TYPE_SIMPLE = "SIMPLE"
SECRET_TYPE_REGISTRY = "REGISTRY"

# Terraform block name -> (API field, extra credential keys)
REGISTRY_TYPES: dict[str, tuple[str, tuple[str, ...]]] = {
    "docker_hub_registry": ("docker_hub_registry", ()),
    "github_registry": ("github_registry", ()),
    "gitlab_registry": ("gitlab_registry", ()),
    "digital_ocean_container_registry": ("digital_ocean_registry", ()),
    "private_registry": ("private_registry", ("url",)),
    "azure_container_registry": ("azure_container_registry", ("registry_name",)),
}


def expand_secret(desired_state: dict[str, Any]) -> dict[str, Any]:
    """Build the API payload for a secret block."""
    registries = [block for block in REGISTRY_TYPES if desired_state.get(block)]
    if len(registries) > 1:
        raise ValidationError("Only one registry block can be set", {"blocks": ",".join(registries)})
    if registries and desired_state.get("value") is not None:
        raise ValidationError("value conflicts with registry blocks", {"block": registries[0]})

    secret_type = desired_state.get("type") or (SECRET_TYPE_REGISTRY if registries else SECRET_TYPE_SIMPLE)
    payload: dict[str, Any] = {"name": desired_state["name"], "type": secret_type}
    if desired_state.get("value") is not None:
        payload["value"] = desired_state["value"]
    for block in registries:
        api_field, extra_keys = REGISTRY_TYPES[block]
        raw = desired_state[block]
        payload[api_field] = {key: raw[key] for key in ("username", "password", *extra_keys)}
    return payload


class KoyebSecretResource(KoyebResource):
    RESOURCE = "koyeb_secret"
    DESCRIPTION = "Secret resource in the Koyeb Terraform provider."
    LABEL = "Secret"
    KIND = ResourceKind.SECRET
    FORCE_NEW = frozenset({"name", "type"})
    UPDATABLE = frozenset({"value", *REGISTRY_TYPES})
    ATTRIBUTES = {
        "id": "The secret ID",
        "name": "The secret name",
        "organization_id": "The organization ID owning the secret",
        "type": "The secret type",
        "value": "The secret value",
        **{block: f"The {block.replace('_', ' ')} credentials" for block in REGISTRY_TYPES},
        "updated_at": "The date and time of when the secret was last updated",
        "created_at": "The date and time of when the secret was created",
    }

    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        return await self._p.client.get_secret(resource_id)

    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        revealed = await self._p.client.reveal_secret(raw["id"])
        state: dict[str, Any] = {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "organization_id": raw.get("organization_id"),
            "type": raw.get("type"),
            "created_at": raw.get("created_at"),
            "updated_at": raw.get("updated_at"),
        }
        if "value" in raw:
            state["value"] = revealed
        for block, (api_field, extra_keys) in REGISTRY_TYPES.items():
            if api_field in raw and isinstance(revealed, dict):
                state[block] = {
                    key: revealed[key] for key in ("username", "password", *extra_keys) if key in revealed
                }
        return state

    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        return await self._p.client.create_secret(expand_secret(desired_state))

    async def _update(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        await self._p.client.update_secret(resource_id, expand_secret(desired_state))

    async def _delete(self, resource_id: str) -> None:
        await self._p.client.delete_secret(resource_id)


VOLUME_TYPES = (
    "PERSISTENT_VOLUME_BACKING_STORE_INVALID",
    "PERSISTENT_VOLUME_BACKING_STORE_LOCAL_BLK",
)
DEFAULT_VOLUME_TYPE = "PERSISTENT_VOLUME_BACKING_STORE_LOCAL_BLK"


class KoyebVolumeResource(KoyebResource):
    """Volumes are only ever addressed by ID."""

    RESOURCE = "koyeb_volume"
    DESCRIPTION = "Volume resource in the Koyeb Terraform provider."
    LABEL = "Volume"
    FORCE_NEW = frozenset({"volume_type", "region", "max_size"})
    UPDATABLE = frozenset({"name"})
    ATTRIBUTES = {
        "id": "The volume ID",
        "volume_type": "The volume type",
        "name": "The volume name",
        "organization_id": "The organization ID owning the volume",
        "snapshot_id": "The snapshot ID the volume was created from",
        "service_id": "The service ID the volume is attached to",
        "region": "The region where the volume is located",
        "read_only": "If set to true, the volume will be mounted in read-only",
        "max_size": "The maximum size of the volume in GB",
        "cur_size": "The current size of the volume in GB",
        "status": "The status of the volume",
        "backing_store": "The backing store of the volume",
        "updated_at": "The date and time of when the volume was last updated",
        "created_at": "The date and time of when the volume was created",
    }

    async def _fetch(self, resource_id: str) -> dict[str, Any]:
        return await self._p.client.get_volume(resource_id)

    async def _flatten(self, raw: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": raw.get("id"),
            "name": raw.get("name"),
            "volume_type": raw.get("backing_store"),
            "max_size": raw.get("max_size"),
            "region": raw.get("region"),
            "snapshot_id": raw.get("snapshot_id"),
            "service_id": raw.get("service_id"),
            "read_only": raw.get("read_only"),
            "cur_size": raw.get("cur_size"),
            "status": raw.get("status"),
            "backing_store": raw.get("backing_store"),
            "organization_id": raw.get("organization_id"),
            "created_at": raw.get("created_at"),
            "updated_at": raw.get("updated_at"),
        }

    async def _create(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        volume_type = desired_state.get("volume_type") or DEFAULT_VOLUME_TYPE
        if volume_type not in VOLUME_TYPES:
            raise ValidationError(f"Unsupported volume type '{volume_type}'", {"volume_type": volume_type})
        return await self._p.client.create_volume(
            {
                "name": desired_state["name"],
                "volume_type": volume_type,
                "max_size": desired_state["max_size"],
                "region": desired_state["region"],
            }
        )

    async def _update(self, resource_id: str, desired_state: dict[str, Any]) -> None:
        await self._p.client.update_volume(
            resource_id,
            {"name": desired_state["name"], "max_size": desired_state.get("max_size")},
        )

    async def _delete(self, resource_id: str) -> None:
        await self._p.client.delete_volume(resource_id)


RESOURCE_TYPES: dict[str, type[KoyebResource]] = {
    cls.RESOURCE: cls
    for cls in (
        KoyebAppResource,
        KoyebServiceResource,
        KoyebDomainResource,
        KoyebSecretResource,
        KoyebVolumeResource,
    )
}

__all__ = [
    "KoyebResource",
    "KoyebAppResource",
    "KoyebServiceResource",
    "KoyebDomainResource",
    "KoyebSecretResource",
    "KoyebVolumeResource",
    "RESOURCE_TYPES",
    "expand_secret",
    "flatten_domain",
]
