"""
Name-to-ID resolution for Koyeb resources.

Exports:
    IdMapper: Resolves names and slugs to resource IDs
    ResourceKind: Kinds that can be referenced by name
    is_resolved_id: ID shape test
"""

from tfkoyeb.idmapper.kinds import KIND_SPECS, KindSpec, ResourceKind, get_kind_spec
from tfkoyeb.idmapper.mapper import MAX_PAGE_SIZE, IdMapper
from tfkoyeb.idmapper.references import is_resolved_id, split_slug

__all__ = [
    "IdMapper",
    "KIND_SPECS",
    "KindSpec",
    "MAX_PAGE_SIZE",
    "ResourceKind",
    "get_kind_spec",
    "is_resolved_id",
    "split_slug",
]
