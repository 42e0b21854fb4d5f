# webpush_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class UniqueIndex:
    """
    Uniqueness constraint over one or more fields.

    ``where`` restricts the constraint to records whose field equals the
    given value (a partial index), e.g. ``("meta.status", "active")``.
    """
    fields: Tuple[str, ...]
    where: Optional[Tuple[str, Any]] = None


@dataclass(frozen=True)
class CollectionSpec:
    """
    Storage-agnostic description of a document collection.

    ``fields`` are the dotted paths a provider must be able to filter on.
    """
    name: str
    fields: Tuple[str, ...]
    unique: Tuple[UniqueIndex, ...] = field(default_factory=tuple)
