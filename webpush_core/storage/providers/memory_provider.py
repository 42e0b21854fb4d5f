from typing import Any, Dict, Iterable, List, Mapping, Optional
import copy, threading
from webpush_core.errors import DuplicateRecord
from webpush_core.storage.codec import get_path, set_path, matches, project
from webpush_core.storage.models import CollectionSpec, UniqueIndex
from webpush_core.storage.provider import StorageProvider


class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.specs: Dict[str, CollectionSpec] = {}
        self._lock = threading.RLock()

    def create_collection(self, spec: CollectionSpec) -> None:
        with self._lock:
            self.specs[spec.name] = spec
            self.collections.setdefault(spec.name, [])

    def _docs(self, collection: str) -> List[Dict[str, Any]]:
        if collection not in self.collections:
            raise ValueError(f"Unknown collection: {collection}")
        return self.collections[collection]

    @staticmethod
    def _indexed(index: UniqueIndex, doc: Mapping[str, Any]) -> bool:
        if index.where is None:
            return True
        field, value = index.where
        return get_path(doc, field) == value

    def _check_unique(self, collection: str, doc: Mapping[str, Any], skip: Optional[Dict[str, Any]] = None) -> None:
        for index in self.specs[collection].unique:
            if not self._indexed(index, doc):
                continue
            key = tuple(get_path(doc, f) for f in index.fields)
            if None in key:
                continue
            for other in self.collections[collection]:
                if other is skip or not self._indexed(index, other):
                    continue
                if tuple(get_path(other, f) for f in index.fields) == key:
                    raise DuplicateRecord(
                        "Duplicate record.",
                        {"collection": collection, "index": list(index.fields)},
                    )

    # check-and-insert happens under one lock
    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            docs = self._docs(collection)
            doc = copy.deepcopy(record)
            self._check_unique(collection, doc)
            docs.append(doc)
            return copy.deepcopy(doc)

    def find_one(self, collection: str, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = next((d for d in self._docs(collection) if matches(d, query)), None)
            return copy.deepcopy(doc) if doc is not None else None

    def find(self, collection: str, query: Mapping[str, Any], projection: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [project(copy.deepcopy(d), projection) for d in self._docs(collection) if matches(d, query)]

    def update(self, collection: str, query: Mapping[str, Any], changes: Mapping[str, Any]) -> int:
        with self._lock:
            targets = [d for d in self._docs(collection) if matches(d, query)]
            for doc in targets:
                updated = copy.deepcopy(doc)
                for path, value in changes.items():
                    set_path(updated, path, value)
                self._check_unique(collection, updated, skip=doc)
                doc.clear()
                doc.update(updated)
            return len(targets)

    def remove(self, collection: str, query: Mapping[str, Any]) -> int:
        with self._lock:
            docs = self._docs(collection)
            keep = [d for d in docs if not matches(d, query)]
            removed = len(docs) - len(keep)
            docs[:] = keep
            return removed

    def close(self):
        pass
