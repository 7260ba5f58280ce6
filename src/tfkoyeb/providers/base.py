from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol


@dataclass(frozen=True)
class ProviderResourceSchema:
    """Schema metadata describing a provider-managed resource or data source."""

    name: str
    description: str
    attributes: dict[str, str]
    force_new: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class PlanChange:
    """Represents a single change detected during planning."""

    action: Literal["create", "update", "delete"]
    details: dict[str, Any]


@dataclass(frozen=True)
class PlanResult:
    """Plan result summarising pending changes."""

    changes: list[PlanChange]
    metadata: dict[str, Any] | None = None

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @property
    def requires_replace(self) -> bool:
        actions = {change.action for change in self.changes}
        return {"create", "delete"} <= actions


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


class ProviderResource(Protocol):
    """Contract for provider-managed resources (Terraform resource blocks)."""

    def schema(self) -> ProviderResourceSchema:
        ...

    async def read(self, resource_id: str) -> dict[str, Any] | None:
        ...

    async def plan(self, desired_state: dict[str, Any]) -> PlanResult:
        ...

    async def apply(self, desired_state: dict[str, Any]) -> dict[str, Any]:
        ...

    async def drift(self, desired_state: dict[str, Any]) -> PlanResult:
        ...

    async def destroy(self, resource_id: str) -> None:
        ...

    async def import_state(self, reference: str) -> dict[str, Any]:
        ...


class DataSource(Protocol):
    """Contract for read-only lookups (Terraform data blocks)."""

    def schema(self) -> ProviderResourceSchema:
        ...

    async def read(self, reference: str) -> dict[str, Any]:
        ...


class Provider(Protocol):
    """Minimal provider interface."""

    name: str

    async def health_check(self) -> ProviderHealth:
        ...

    async def resources(self) -> list[ProviderResourceSchema]:
        ...
