"""
Reference classification.

Koyeb identifies every resource by a canonical UUID. Anything else a user
types in configuration is a name that has to be looked up.
"""

from __future__ import annotations

import re

from tfkoyeb.core.errors import InvalidReferenceError

ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

SLUG_SEPARATOR = "/"


def is_resolved_id(reference: str) -> bool:
    """Return True when reference already has the shape of a Koyeb ID."""
    return bool(ID_PATTERN.match(reference))


def split_slug(kind: str, reference: str) -> tuple[str, str]:
    """
    Split a composite ``parent/name`` reference.

    Raises:
        InvalidReferenceError: unless there are exactly two non-empty parts
    """
    parts = reference.split(SLUG_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise InvalidReferenceError(
            kind,
            reference,
            f"expected '<app>{SLUG_SEPARATOR}<name>'",
        )
    return parts[0], parts[1]
