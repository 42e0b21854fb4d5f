"""
webpush_core.subscriptions
--------------------------
Durable Web Push subscriptions.

Records are stored as::

    {id: hash(id), owner: hash(owner), endpoint: hash(endpoint),
     signing_key_id, meta, subscription: encoded Subscription}

The hashed fields back the unique indexes (``id``, ``(owner, id)`` and
``endpoint``, each among active records), so two concurrent ``add`` calls
for one endpoint have exactly one winner. Removal is a soft delete.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from . import permissions
from .config import WebPushConfig
from .errors import DuplicateRecord, NotFound, PermissionDenied
from .logger import get_logger
from .models import (
    RecordMeta, StoredSubscription, Subscription,
    STATUS_ACTIVE, STATUS_REMOVED,
)
from .permissions import Identity, PermissionChecker
from .storage import CollectionSpec, StorageProvider, UniqueIndex
from .storage.codec import decode_document, encode_document, hash_value
from .utils import new_id, now_ts

log = get_logger("WebPush.Subscriptions")

ACTIVE_ONLY = ("meta.status", STATUS_ACTIVE)


@dataclass
class SubscriptionFilter:
    owner: Optional[str] = None
    endpoint: Optional[str] = None
    signing_key_id: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {"meta.status": STATUS_ACTIVE}
        if self.owner is not None:
            query["owner"] = hash_value(self.owner)
        if self.endpoint is not None:
            query["endpoint"] = hash_value(self.endpoint)
        if self.signing_key_id is not None:
            query["signing_key_id"] = self.signing_key_id
        return query


class SubscriptionStore:
    def __init__(self, store: StorageProvider, checker: PermissionChecker, config: WebPushConfig):
        self.store = store
        self.checker = checker
        self.config = config
        self.collection = config.subscription_collection
        self.store.create_collection(CollectionSpec(
            name=self.collection,
            fields=("id", "owner", "endpoint", "signing_key_id", "meta.status"),
            unique=(
                UniqueIndex(("id",), where=ACTIVE_ONLY),
                UniqueIndex(("owner", "id"), where=ACTIVE_ONLY),
                UniqueIndex(("endpoint",), where=ACTIVE_ONLY),
            ),
        ))

    def create_id(self, name: Optional[str] = None) -> str:
        return self.config.resource_id(self.config.subscriptions_route, name or new_id())

    def add(self, actor: Optional[Identity], subscription: Subscription) -> StoredSubscription:
        if not subscription.id:
            subscription = replace(subscription, id=self.create_id())

        self.checker.check(
            actor, permissions.SUBSCRIPTION_INSERT, [subscription.id, subscription.owner])

        log.debug(f"[SUBSCRIPTIONS] adding subscription {subscription.id} owner={subscription.owner}")
        now = now_ts()
        meta = RecordMeta(created=now, updated=now, status=STATUS_ACTIVE)
        record = {
            "id": hash_value(subscription.id),
            "owner": hash_value(subscription.owner),
            "endpoint": hash_value(subscription.endpoint),
            "signing_key_id": subscription.signing_key_id,
            "meta": meta.to_dict(),
            "subscription": encode_document(subscription.to_dict()),
        }
        try:
            self.store.insert(self.collection, record)
        except DuplicateRecord as e:
            raise DuplicateRecord(
                "Duplicate subscription.", {"endpoint": subscription.endpoint}) from e

        log.info(f"[SUBSCRIPTIONS] added subscription {subscription.id}")
        return StoredSubscription(subscription=subscription, meta=meta)

    def get(self, actor: Optional[Identity], id: str,
            include_meta: bool = False) -> Union[Subscription, StoredSubscription]:
        record = self.store.find_one(
            self.collection, {"id": hash_value(id), "meta.status": STATUS_ACTIVE})
        if not record:
            raise NotFound("Web Push subscription not found.", {"subscription": id})

        subscription = Subscription.from_dict(decode_document(record["subscription"]))
        self.checker.check(
            actor, permissions.SUBSCRIPTION_ACCESS, [subscription.id, subscription.owner])

        if include_meta:
            return StoredSubscription(
                subscription=subscription, meta=RecordMeta.from_dict(record["meta"]))
        return subscription

    def list(self, actor: Optional[Identity], filter: Optional[SubscriptionFilter] = None,
             projection: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        """
        Lists active subscriptions matching ``filter`` that ``actor`` may
        access, as decoded subscription documents.

        ``projection`` names subscription fields to return (all when
        omitted). ``id`` and ``owner`` are always fetched for the permission
        check and stripped again if they were not asked for. Records the
        actor may not access are left out rather than failing the call.
        """
        query = (filter or SubscriptionFilter()).to_query()
        fields = None
        strip_id = strip_owner = False
        if projection:
            strip_id = "id" not in projection
            strip_owner = "owner" not in projection
            wanted = set(projection) | {"id", "owner"}
            fields = [f"subscription.{name}" for name in sorted(wanted)]

        results = []
        for record in self.store.find(self.collection, query, fields):
            doc = decode_document(record.get("subscription", {}))
            try:
                self.checker.check(
                    actor, permissions.SUBSCRIPTION_ACCESS, [doc.get("id"), doc.get("owner")])
            except PermissionDenied:
                continue
            if strip_id:
                doc.pop("id", None)
            if strip_owner:
                doc.pop("owner", None)
            results.append(doc)
        return results

    def remove(self, actor: Optional[Identity], id: str) -> None:
        """
        Removes the application server's record of a subscription so no
        more messages are sent through it. The client must unsubscribe
        from the push service on its own.
        """
        subscription = self.get(actor, id)
        self.checker.check(
            actor, permissions.SUBSCRIPTION_REMOVE, [subscription.id, subscription.owner])
        self.store.update(
            self.collection,
            {"id": hash_value(id), "meta.status": STATUS_ACTIVE},
            {"meta.status": STATUS_REMOVED, "meta.updated": now_ts()},
        )
        log.info(f"[SUBSCRIPTIONS] removed subscription {id}")
