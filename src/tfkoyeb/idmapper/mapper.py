"""
Identifier mapper for Koyeb resources.

Lets configuration reference apps, services, domains and secrets by name
while the API is keyed by opaque IDs.
"""

from __future__ import annotations

from typing import Any

import structlog

from tfkoyeb.clients.koyeb import KoyebAPI
from tfkoyeb.core.errors import (
    AmbiguousReferenceError,
    InvalidReferenceError,
    ReferenceNotFoundError,
)
from tfkoyeb.idmapper.kinds import KindSpec, ResourceKind, get_kind_spec
from tfkoyeb.idmapper.references import is_resolved_id, split_slug

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class IdMapper:
    """
    Resolves references (names or IDs) to resource IDs.

    IDs pass through without touching the API, so the same call works on
    both the create path (user-supplied name) and the read/update/delete
    path (ID from prior state). Names are resolved by listing every
    resource of the kind; nothing is cached between calls.
    """

    def __init__(self, api: KoyebAPI, *, page_size: int = MAX_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._api = api
        self._page_size = min(page_size, MAX_PAGE_SIZE)

    async def resolve(self, kind: ResourceKind | str, reference: str) -> str:
        """
        Resolve a reference to the ID of exactly one resource.

        Args:
            kind: Resource kind to resolve
            reference: Name, ID, or for services an ``app/service`` slug

        Returns:
            The resource ID

        Raises:
            InvalidReferenceError: Empty or malformed reference
            ReferenceNotFoundError: No resource carries the name
            AmbiguousReferenceError: Several resources carry the name
        """
        spec = get_kind_spec(kind)
        label = spec.kind.label

        if not reference:
            raise InvalidReferenceError(label, reference, "reference is empty")

        if is_resolved_id(reference):
            return reference

        parent_id: str | None = None
        name = reference
        if spec.scoped:
            app_reference, name = split_slug(label, reference)
            parent_id = await self.resolve(ResourceKind.APP, app_reference)

        candidates = await self._collect_candidates(spec, name, parent_id)

        if not candidates:
            raise ReferenceNotFoundError(label, reference)
        if len(candidates) > 1:
            logger.warning(
                "reference_ambiguous",
                kind=spec.kind.value,
                reference=reference,
                count=len(candidates),
            )
            raise AmbiguousReferenceError(label, reference, len(candidates))

        resolved = candidates[0]["id"]
        logger.debug(
            "reference_resolved",
            kind=spec.kind.value,
            reference=reference,
            id=resolved,
        )
        return resolved

    async def _collect_candidates(
        self,
        spec: KindSpec,
        name: str,
        parent_id: str | None,
    ) -> list[dict[str, Any]]:
        candidates: list[dict[str, Any]] = []
        offset = 0

        while True:
            page = await spec.list_page(self._api, offset, self._page_size, parent_id)
            for item in page.items:
                if spec.name_of(item) != name:
                    continue
                if spec.parent_of is not None and spec.parent_of(item) != parent_id:
                    continue
                candidates.append(item)

            if not page.has_more or not page.items:
                break
            offset += len(page.items)

        return candidates

    async def resolve_app(self, reference: str) -> str:
        return await self.resolve(ResourceKind.APP, reference)

    async def resolve_service(self, reference: str) -> str:
        return await self.resolve(ResourceKind.SERVICE, reference)

    async def resolve_domain(self, reference: str) -> str:
        return await self.resolve(ResourceKind.DOMAIN, reference)

    async def resolve_secret(self, reference: str) -> str:
        return await self.resolve(ResourceKind.SECRET, reference)
