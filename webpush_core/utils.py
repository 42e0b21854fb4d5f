"""
webpush_core.utils
------------------
Lightweight helpers for id generation, timestamping, base64url utilities,
canonical JSON serialization and deterministic lookup hashes.
"""

from __future__ import annotations
import base64, json, time, uuid, hashlib
from typing import Any, Dict


def b64u_encode(b: bytes) -> str:
    # Web Push encodes keys as unpadded base64url
    return base64.urlsafe_b64encode(b).decode("ascii").rstrip("=")

def b64u_decode(s: str) -> bytes:
    return base64.urlsafe_b64decode(s + "=" * (-len(s) % 4))

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def now_epoch() -> int:
    return int(time.time())

def new_id() -> str:
    return str(uuid.uuid4())

def canonical_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
