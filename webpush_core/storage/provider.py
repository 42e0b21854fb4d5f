# webpush_core/storage/provider.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional

from webpush_core.storage.models import CollectionSpec


class StorageProvider:
    """
    Document collection interface consumed by the keyring and the
    subscription store.

    Filters are equality matches on dotted field paths declared in the
    collection's ``CollectionSpec``. ``insert`` must enforce the declared
    unique indexes atomically and raise ``DuplicateRecord`` on violation.
    """

    def create_collection(self, spec: CollectionSpec) -> None: ...
    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]: ...
    def find_one(self, collection: str, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]: ...
    def find(self, collection: str, query: Mapping[str, Any], projection: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]: ...
    def update(self, collection: str, query: Mapping[str, Any], changes: Mapping[str, Any]) -> int: ...
    def remove(self, collection: str, query: Mapping[str, Any]) -> int: ...
    def close(self) -> None: ...
