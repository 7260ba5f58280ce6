"""Per-kind listing and naming rules used during name resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from tfkoyeb.clients.koyeb import KoyebAPI, Page


class ResourceKind(str, Enum):
    """Kinds of resources that can be referenced by name."""

    APP = "app"
    SERVICE = "service"
    DOMAIN = "domain"
    SECRET = "secret"

    @property
    def label(self) -> str:
        return self.value.capitalize()


ListPage = Callable[[KoyebAPI, int, int, Optional[str]], Awaitable[Page]]


def _item_name(item: dict[str, Any]) -> str | None:
    return item.get("name")


def _item_app_id(item: dict[str, Any]) -> str | None:
    return item.get("app_id")


@dataclass(frozen=True)
class KindSpec:
    """
    How to enumerate and match one resource kind.

    Attributes:
        kind: Resource kind
        list_page: Fetch one page of the kind's listing
        name_of: Read the display name off a listed item
        parent_of: Read the owning app ID off a listed item; only set for
            kinds whose names are unique within an app
    """

    kind: ResourceKind
    list_page: ListPage
    name_of: Callable[[dict[str, Any]], str | None] = _item_name
    parent_of: Callable[[dict[str, Any]], str | None] | None = None

    @property
    def scoped(self) -> bool:
        return self.parent_of is not None


async def _list_apps(api: KoyebAPI, offset: int, limit: int, parent_id: str | None) -> Page:
    return await api.list_apps(offset, limit)


async def _list_services(api: KoyebAPI, offset: int, limit: int, parent_id: str | None) -> Page:
    return await api.list_services(offset, limit, app_id=parent_id)


async def _list_domains(api: KoyebAPI, offset: int, limit: int, parent_id: str | None) -> Page:
    return await api.list_domains(offset, limit)


async def _list_secrets(api: KoyebAPI, offset: int, limit: int, parent_id: str | None) -> Page:
    return await api.list_secrets(offset, limit)


KIND_SPECS: dict[ResourceKind, KindSpec] = {
    ResourceKind.APP: KindSpec(ResourceKind.APP, _list_apps),
    ResourceKind.SERVICE: KindSpec(ResourceKind.SERVICE, _list_services, parent_of=_item_app_id),
    ResourceKind.DOMAIN: KindSpec(ResourceKind.DOMAIN, _list_domains),
    ResourceKind.SECRET: KindSpec(ResourceKind.SECRET, _list_secrets),
}


def get_kind_spec(kind: ResourceKind | str) -> KindSpec:
    """Look up the spec for a kind, accepting its string value."""
    return KIND_SPECS[ResourceKind(kind)]
