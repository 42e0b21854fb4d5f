from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional
import json, sqlite3, os, threading
from webpush_core.errors import DuplicateRecord
from webpush_core.utils import canonical_json
from webpush_core.storage.codec import get_path, set_path, project
from webpush_core.storage.models import CollectionSpec
from webpush_core.storage.provider import StorageProvider


def _column(path: str) -> str:
    return path.replace(".", "__")


def _literal(value: Any) -> str:
    # partial index predicates cannot be bound parameters
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


class SQLiteStorage(StorageProvider):
    """
    SQLite-backed document collections.

    Each collection is a table holding the JSON document plus one column
    per declared field; unique indexes are real SQLite (partial) indexes,
    so concurrent inserts have exactly one winner.
    """

    def __init__(self, path="db/web_push.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        self._specs: Dict[str, CollectionSpec] = {}

    def create_collection(self, spec: CollectionSpec) -> None:
        cols = ", ".join(f"{_column(f)} TEXT" for f in spec.fields)
        with self._lock:
            self.db.execute(
                f"CREATE TABLE IF NOT EXISTS {spec.name}("
                f"_rowid INTEGER PRIMARY KEY AUTOINCREMENT, {cols}, doc TEXT NOT NULL)"
            )
            for index in spec.unique:
                name = f"ux_{spec.name}_" + "_".join(_column(f) for f in index.fields)
                sql = (
                    f"CREATE UNIQUE INDEX IF NOT EXISTS {name} "
                    f"ON {spec.name}({', '.join(_column(f) for f in index.fields)})"
                )
                if index.where:
                    field, value = index.where
                    sql += f" WHERE {_column(field)} = {_literal(value)}"
                self.db.execute(sql)
            self.db.commit()
            self._specs[spec.name] = spec

    def _spec(self, collection: str) -> CollectionSpec:
        try:
            return self._specs[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    def _columns_for(self, spec: CollectionSpec, record: Mapping[str, Any]) -> Dict[str, Any]:
        return {_column(f): get_path(record, f) for f in spec.fields}

    def _where(self, spec: CollectionSpec, query: Mapping[str, Any]):
        clauses, params = [], []
        for path, value in query.items():
            if path not in spec.fields:
                raise ValueError(f"Field '{path}' is not queryable in {spec.name}")
            clauses.append(f"{_column(path)} = ?")
            params.append(value)
        where = " WHERE " + " AND ".join(clauses) if clauses else ""
        return where, tuple(params)

    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        spec = self._spec(collection)
        values = self._columns_for(spec, record)
        values["doc"] = canonical_json(record).decode("utf-8")
        keys = ", ".join(values.keys())
        placeholders = ", ".join(["?"] * len(values))
        with self._lock:
            try:
                self.db.execute(
                    f"INSERT INTO {collection} ({keys}) VALUES ({placeholders})",
                    tuple(values.values()),
                )
                self.db.commit()
            except sqlite3.IntegrityError as e:
                self.db.rollback()
                raise DuplicateRecord("Duplicate record.", {"collection": collection}) from e
        return json.loads(values["doc"])

    def _select(self, collection: str, query: Mapping[str, Any], limit: Optional[int] = None):
        spec = self._spec(collection)
        where, params = self._where(spec, query)
        sql = f"SELECT _rowid, doc FROM {collection}{where} ORDER BY _rowid"
        if limit:
            sql += f" LIMIT {int(limit)}"
        with self._lock:
            return self.db.execute(sql, params).fetchall()

    def find_one(self, collection: str, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._select(collection, query, limit=1)
        if not rows:
            return None
        return json.loads(rows[0][1])

    def find(self, collection: str, query: Mapping[str, Any], projection: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        return [project(json.loads(doc), projection) for _, doc in self._select(collection, query)]

    def update(self, collection: str, query: Mapping[str, Any], changes: Mapping[str, Any]) -> int:
        spec = self._spec(collection)
        with self._lock:
            rows = self._select(collection, query)
            try:
                for rowid, raw in rows:
                    doc = json.loads(raw)
                    for path, value in changes.items():
                        set_path(doc, path, value)
                    values = self._columns_for(spec, doc)
                    values["doc"] = canonical_json(doc).decode("utf-8")
                    assignments = ", ".join(f"{k} = ?" for k in values)
                    self.db.execute(
                        f"UPDATE {collection} SET {assignments} WHERE _rowid = ?",
                        tuple(values.values()) + (rowid,),
                    )
                self.db.commit()
            except sqlite3.IntegrityError as e:
                self.db.rollback()
                raise DuplicateRecord("Duplicate record.", {"collection": collection}) from e
        return len(rows)

    def remove(self, collection: str, query: Mapping[str, Any]) -> int:
        spec = self._spec(collection)
        where, params = self._where(spec, query)
        with self._lock:
            cur = self.db.execute(f"DELETE FROM {collection}{where}", params)
            self.db.commit()
            return cur.rowcount

    def close(self):
        with self._lock:
            self.db.close()
