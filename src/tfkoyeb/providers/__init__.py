"""Koyeb provider: managed resources and data sources."""

from tfkoyeb.providers.base import PlanChange, PlanResult, ProviderHealth, ProviderResourceSchema
from tfkoyeb.providers.koyeb import DATA_SOURCE_TYPES, KoyebDataSource, KoyebProvider
from tfkoyeb.providers.resources import RESOURCE_TYPES, KoyebResource

__all__ = [
    "DATA_SOURCE_TYPES",
    "KoyebDataSource",
    "KoyebProvider",
    "KoyebResource",
    "PlanChange",
    "PlanResult",
    "ProviderHealth",
    "ProviderResourceSchema",
    "RESOURCE_TYPES",
]
