from __future__ import annotations

from typing import Any, ClassVar

from tfkoyeb.clients.koyeb import KoyebClient
from tfkoyeb.config.settings import Settings, get_settings
from tfkoyeb.core.errors import ReferenceNotFoundError, UpstreamError
from tfkoyeb.idmapper import IdMapper, ResourceKind
from tfkoyeb.providers.base import DataSource, Provider, ProviderHealth, ProviderResourceSchema
from tfkoyeb.providers.resources import (
    RESOURCE_TYPES,
    KoyebAppResource,
    KoyebDomainResource,
    KoyebResource,
    KoyebSecretResource,
    KoyebServiceResource,
    KoyebVolumeResource,
)


class KoyebProvider(Provider):
    """Koyeb provider: resources, data sources and the shared identifier mapper."""

    name = "koyeb"

    def __init__(
        self,
        client: KoyebClient,
        *,
        settings: Settings | None = None,
        mapper: IdMapper | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self.client = client
        self.mapper = mapper or IdMapper(client, page_size=self._settings.page_size)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> KoyebProvider:
        settings = settings or get_settings()
        return cls(KoyebClient.from_settings(settings), settings=settings)

    @property
    def wait_timeout(self) -> float:
        return self._settings.wait_timeout

    @property
    def poll_interval(self) -> float:
        return self._settings.wait_poll_interval

    async def health_check(self) -> ProviderHealth:
        try:
            await self.client.list_apps(0, 1)
        except UpstreamError as exc:
            return ProviderHealth(status="unreachable", details=str(exc))
        return ProviderHealth(status="healthy")

    async def resources(self) -> list[ProviderResourceSchema]:
        return [cls.schema() for cls in RESOURCE_TYPES.values()]

    async def data_sources(self) -> list[ProviderResourceSchema]:
        return [cls.schema() for cls in DATA_SOURCE_TYPES.values()]

    def resource(self, name: str) -> KoyebResource:
        try:
            return RESOURCE_TYPES[name](self)
        except KeyError:
            raise KeyError(f"Resource '{name}' is not supported") from None

    def data_source(self, name: str) -> KoyebDataSource:
        try:
            return DATA_SOURCE_TYPES[name](self)
        except KeyError:
            raise KeyError(f"Data source '{name}' is not supported") from None

    def app(self) -> KoyebAppResource:
        return KoyebAppResource(self)

    def service(self) -> KoyebServiceResource:
        return KoyebServiceResource(self)

    def domain(self) -> KoyebDomainResource:
        return KoyebDomainResource(self)

    def secret(self) -> KoyebSecretResource:
        return KoyebSecretResource(self)

    def volume(self) -> KoyebVolumeResource:
        return KoyebVolumeResource(self)


class KoyebDataSource(DataSource):
    """Looks a resource up by name (or ID) and exposes its current state."""

    RESOURCE: ClassVar[str]
    KIND: ClassVar[ResourceKind]
    LOOKUP_KEY: ClassVar[str] = "name"
    RESOURCE_CLASS: ClassVar[type[KoyebResource]]

    def __init__(self, provider: KoyebProvider) -> None:
        self._p = provider

    @classmethod
    def schema(cls) -> ProviderResourceSchema:
        resource_schema = cls.RESOURCE_CLASS.schema()
        return ProviderResourceSchema(
            name=cls.RESOURCE,
            description=f"Look up a {cls.KIND.value} by {cls.LOOKUP_KEY}",
            attributes={cls.LOOKUP_KEY: f"The {cls.KIND.value} {cls.LOOKUP_KEY}"} | resource_schema.attributes,
        )

    async def read(self, reference: str) -> dict[str, Any]:
        resource_id = await self._p.mapper.resolve(self.KIND, reference)
        state = await self.RESOURCE_CLASS(self._p).read(resource_id)
        if state is None:
            raise ReferenceNotFoundError(self.KIND.label, reference)
        return {self.LOOKUP_KEY: reference} | state

    async def read_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Read using the data block's lookup attribute."""
        return await self.read(config[self.LOOKUP_KEY])


class KoyebAppDataSource(KoyebDataSource):
    RESOURCE = "koyeb_app"
    KIND = ResourceKind.APP
    RESOURCE_CLASS = KoyebAppResource


class KoyebServiceDataSource(KoyebDataSource):
    RESOURCE = "koyeb_service"
    KIND = ResourceKind.SERVICE
    LOOKUP_KEY = "slug"
    RESOURCE_CLASS = KoyebServiceResource


class KoyebDomainDataSource(KoyebDataSource):
    RESOURCE = "koyeb_domain"
    KIND = ResourceKind.DOMAIN
    RESOURCE_CLASS = KoyebDomainResource


class KoyebSecretDataSource(KoyebDataSource):
    RESOURCE = "koyeb_secret"
    KIND = ResourceKind.SECRET
    RESOURCE_CLASS = KoyebSecretResource


DATA_SOURCE_TYPES: dict[str, type[KoyebDataSource]] = {
    cls.RESOURCE: cls
    for cls in (
        KoyebAppDataSource,
        KoyebServiceDataSource,
        KoyebDomainDataSource,
        KoyebSecretDataSource,
    )
}

__all__ = [
    "KoyebProvider",
    "KoyebDataSource",
    "KoyebAppDataSource",
    "KoyebServiceDataSource",
    "KoyebDomainDataSource",
    "KoyebSecretDataSource",
    "DATA_SOURCE_TYPES",
]
