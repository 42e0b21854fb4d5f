"""
webpush_core.models
-------------------
Domain records handled by the keyring and the subscription store.

``from_dict`` constructors double as input validation: anything that
reaches the stores has already been shaped into these dataclasses.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from .errors import ValidationError

STATUS_ACTIVE = "active"
STATUS_REVOKED = "revoked"
STATUS_REMOVED = "removed"

SUBSCRIPTION_FIELDS = ("id", "owner", "signing_key_id", "push_token", "label", "device")


def _require_str(data: Mapping[str, Any], name: str, required: bool = True) -> Optional[str]:
    value = data.get(name)
    if value is None and not required:
        return None
    if not isinstance(value, str) or not value:
        raise ValidationError(f"'{name}' must be a non-empty string.", {"field": name})
    return value


@dataclass
class VapidKey:
    """
    A VAPID signing key pair.

    Both keys are unpadded base64url: the public key is the uncompressed
    P-256 point, the private key the raw 32-byte scalar.
    """
    id: str
    public_key: str
    private_key: Optional[str] = None

    def public(self) -> "VapidKey":
        return replace(self, private_key=None)

    def to_dict(self) -> Dict[str, Any]:
        d = {"id": self.id, "public_key": self.public_key}
        if self.private_key is not None:
            d["private_key"] = self.private_key
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VapidKey":
        return cls(
            id=data["id"],
            public_key=data["public_key"],
            private_key=data.get("private_key"),
        )


@dataclass
class RecordMeta:
    created: str
    updated: str
    status: str = STATUS_ACTIVE
    email: Optional[str] = None  # push service contact, keys only

    def to_dict(self) -> Dict[str, Any]:
        d = {"created": self.created, "updated": self.updated, "status": self.status}
        if self.email is not None:
            d["email"] = self.email
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecordMeta":
        return cls(
            created=data["created"],
            updated=data["updated"],
            status=data.get("status", STATUS_ACTIVE),
            email=data.get("email"),
        )


@dataclass
class StoredKey:
    key: VapidKey
    meta: RecordMeta


@dataclass
class PushToken:
    """
    Endpoint-plus-keys structure issued by a push service.

    Properties other than ``endpoint`` and ``keys`` (``expirationTime``,
    for instance) are carried through untouched in ``extra``.
    """
    endpoint: str
    keys: Optional[Dict[str, str]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_encryption_keys(self) -> bool:
        return bool(self.keys)

    def to_dict(self) -> Dict[str, Any]:
        d = dict(self.extra)
        d["endpoint"] = self.endpoint
        if self.keys:
            d["keys"] = dict(self.keys)
        return d

    @classmethod
    def from_dict(cls, data: Any) -> "PushToken":
        if not isinstance(data, Mapping):
            raise ValidationError("'push_token' must be an object.", {"field": "push_token"})
        endpoint = _require_str(data, "endpoint")
        url = urlparse(endpoint)
        if url.scheme not in ("http", "https") or not url.netloc:
            raise ValidationError("'push_token.endpoint' must be an absolute URL.", {"endpoint": endpoint})

        keys = data.get("keys")
        if keys is not None:
            if not isinstance(keys, Mapping):
                raise ValidationError("'push_token.keys' must be an object.", {"field": "keys"})
            for name in ("p256dh", "auth"):
                _require_str(keys, name)
            keys = dict(keys)

        extra = {k: v for k, v in data.items() if k not in ("endpoint", "keys")}
        return cls(endpoint=endpoint, keys=keys or None, extra=extra)


@dataclass
class Subscription:
    owner: str
    signing_key_id: str
    push_token: PushToken
    id: Optional[str] = None
    label: Optional[str] = None
    device: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return self.push_token.endpoint

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "owner": self.owner,
            "signing_key_id": self.signing_key_id,
            "push_token": self.push_token.to_dict(),
        }
        if self.label is not None:
            d["label"] = self.label
        if self.device is not None:
            d["device"] = self.device
        return d

    @classmethod
    def from_dict(cls, data: Any) -> "Subscription":
        if not isinstance(data, Mapping):
            raise ValidationError("Please provide a Web Push subscription.")
        unknown = sorted(set(data) - set(SUBSCRIPTION_FIELDS))
        if unknown:
            raise ValidationError("The Web Push subscription is invalid.", {"unknown_fields": unknown})
        return cls(
            id=_require_str(data, "id", required=False),
            owner=_require_str(data, "owner"),
            signing_key_id=_require_str(data, "signing_key_id"),
            push_token=PushToken.from_dict(data.get("push_token")),
            label=_require_str(data, "label", required=False),
            device=_require_str(data, "device", required=False),
        )


@dataclass
class StoredSubscription:
    subscription: Subscription
    meta: RecordMeta
