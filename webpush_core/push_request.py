"""
webpush_core.push_request
-------------------------
Translates a subscription, a VAPID key and message options into the
concrete HTTP request a push service expects (RFC 8030 / 8291 / 8292).

The builder is pure apart from randomness in payload encryption: it does
no I/O and no permission checks.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import json

from py_vapid import Vapid
from pywebpush import WebPusher

from .config import DEFAULT_PUSH_MESSAGE_TTL
from .logger import get_logger
from .models import Subscription, VapidKey
from .utils import now_epoch

log = get_logger("WebPush.PushRequest")

# JWT expiration must be 24 hours or less
VAPID_EXPIRATION = 12 * 60 * 60
CONTENT_ENCODING = "aes128gcm"


@dataclass
class MessageOptions:
    ttl: Optional[int] = None
    payload: Any = None


@dataclass
class PushRequest:
    endpoint: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


def serialize_payload(payload: Any) -> Optional[bytes]:
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def audience(endpoint: str) -> str:
    url = urlparse(endpoint)
    return f"{url.scheme}://{url.netloc}"


def vapid_authorization(private_key: str, sender_email: str, aud: str) -> Dict[str, str]:
    """
    Signs the VAPID claims for ``aud``.

    Raises ``VapidException`` when ``mailto:<sender_email>`` is not an
    acceptable subject.
    """
    vapid = Vapid.from_raw(private_key.encode("ascii"))
    claims = {
        "sub": f"mailto:{sender_email}",
        "aud": aud,
        "exp": now_epoch() + VAPID_EXPIRATION,
    }
    return dict(vapid.sign(claims))


class PushRequestBuilder:
    def __init__(self, default_ttl: int = DEFAULT_PUSH_MESSAGE_TTL):
        self.default_ttl = default_ttl

    def vapid_headers(self, endpoint: str, signing_key: VapidKey, sender_email: str) -> Dict[str, str]:
        return vapid_authorization(signing_key.private_key, sender_email, audience(endpoint))

    def build(self, subscription: Subscription, signing_key: VapidKey, sender_email: str,
              options: Optional[MessageOptions] = None) -> PushRequest:
        options = options or MessageOptions()
        token = subscription.push_token
        ttl = self.default_ttl if options.ttl is None else options.ttl

        data = serialize_payload(options.payload)
        if data and not token.has_encryption_keys:
            # the push target cannot decrypt without p256dh/auth
            log.warning(f"[PUSH REQ] dropping payload for {subscription.id}: push token has no encryption keys")
            data = None

        headers = {"TTL": str(ttl)}
        headers.update(self.vapid_headers(token.endpoint, signing_key, sender_email))

        body = None
        if data:
            encoded = WebPusher(token.to_dict()).encode(data, content_encoding=CONTENT_ENCODING)
            body = encoded["body"]
            headers["Content-Encoding"] = CONTENT_ENCODING
            headers["Content-Type"] = "application/octet-stream"

        return PushRequest(endpoint=token.endpoint, headers=headers, body=body)
