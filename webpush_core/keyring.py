"""
webpush_core.keyring
--------------------
Persistence of VAPID signing keys.

Keys are stored as ``{id: hash(id), meta, key: encoded VapidKey}``. They
are never deleted: revocation flips ``meta.status`` and every lookup is
restricted to active keys.
"""

from __future__ import annotations
from typing import Optional, Union

from py_vapid import VapidException

from . import permissions
from .config import WebPushConfig
from .crypto import generate_vapid_keypair, compute_pubkey_fingerprint, public_key_matches
from .errors import DuplicateRecord, NotFound, ValidationError
from .logger import get_logger
from .models import RecordMeta, StoredKey, VapidKey, STATUS_ACTIVE, STATUS_REVOKED
from .permissions import Identity, PermissionChecker
from .push_request import vapid_authorization
from .storage import CollectionSpec, StorageProvider, UniqueIndex
from .storage.codec import decode_document, encode_document, hash_value
from .utils import now_ts

log = get_logger("WebPush.Keyring")


class Keyring:
    def __init__(self, store: StorageProvider, checker: PermissionChecker, config: WebPushConfig):
        self.store = store
        self.checker = checker
        self.config = config
        self.collection = config.vapid_key_collection
        self.store.create_collection(CollectionSpec(
            name=self.collection,
            fields=("id", "meta.status"),
            unique=(UniqueIndex(("id",)),),
        ))

    def create_id(self, name: str) -> str:
        return self.config.resource_id(self.config.vapid_keys_route, name)

    def generate(self, name: str) -> VapidKey:
        private_key, public_key = generate_vapid_keypair()
        return VapidKey(id=self.create_id(name), public_key=public_key, private_key=private_key)

    def add(self, actor: Optional[Identity], key: VapidKey, owner_contact_email: str) -> StoredKey:
        """
        Adds a new VAPID key.

        ``owner_contact_email`` is the address push services may contact
        about messages sent with this key.
        """
        if not isinstance(owner_contact_email, str) or "@" not in owner_contact_email:
            raise ValidationError("A contact email is required for a VAPID key.", {"email": owner_contact_email})
        if not key.private_key:
            raise ValidationError("A VAPID key must include its private key.", {"vapidKey": key.id})
        if not public_key_matches(key.private_key, key.public_key):
            raise ValidationError("VAPID public key does not match its private key.", {"vapidKey": key.id})
        try:
            vapid_authorization(key.private_key, owner_contact_email, "https://localhost")
        except VapidException as e:
            raise ValidationError("Contact email is not a usable VAPID subject.", {"email": owner_contact_email}) from e

        self.checker.check(actor, permissions.KEY_INSERT, [key.id])

        now = now_ts()
        meta = RecordMeta(created=now, updated=now, status=STATUS_ACTIVE, email=owner_contact_email)
        record = {
            "id": hash_value(key.id),
            "meta": meta.to_dict(),
            "key": encode_document(key.to_dict()),
        }
        log.debug(f"[KEYRING] adding VAPID key id={key.id} fpr={compute_pubkey_fingerprint(key.public_key)}")
        try:
            self.store.insert(self.collection, record)
        except DuplicateRecord as e:
            raise DuplicateRecord("Duplicate VAPID key.", {"vapidKey": key.id}) from e

        log.info(f"[KEYRING] added VAPID key {key.id}")
        return StoredKey(key=key, meta=meta)

    def _find_active(self, id: str) -> dict:
        record = self.store.find_one(
            self.collection, {"id": hash_value(id), "meta.status": STATUS_ACTIVE})
        if not record:
            raise NotFound("Web Push VAPID key not found.", {"vapidKey": id})
        return record

    def get(self, actor: Optional[Identity], id: str, include_private: bool = False,
            include_meta: bool = False) -> Union[VapidKey, StoredKey]:
        """
        Gets an active VAPID key.

        Public key access is unrestricted. The private key is only returned
        when ``include_private`` is set and ``actor`` may access the key.
        """
        record = self._find_active(id)
        key = VapidKey.from_dict(decode_document(record["key"]))
        if include_private:
            self.checker.check(actor, permissions.KEY_ACCESS, [key.id])
        else:
            # permission check not necessary for public key access
            key = key.public()

        if include_meta:
            return StoredKey(key=key, meta=RecordMeta.from_dict(record["meta"]))
        return key

    def revoke(self, actor: Optional[Identity], id: str) -> None:
        self._find_active(id)
        self.checker.check(actor, permissions.KEY_REVOKE, [id])
        self.store.update(
            self.collection,
            {"id": hash_value(id), "meta.status": STATUS_ACTIVE},
            {"meta.status": STATUS_REVOKED, "meta.updated": now_ts()},
        )
        log.info(f"[KEYRING] revoked VAPID key {id}")
