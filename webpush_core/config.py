# webpush_core/config.py
"""
webpush_core.config
-------------------
Runtime configuration for the web push core.

Values come from explicit keyword arguments or, through ``from_env()``,
from ``WEBPUSH_*`` environment variables. A single ``WebPushConfig`` is
built at startup and handed to every component that needs it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote
import os

# default TTL is 1 week (in seconds)
DEFAULT_PUSH_MESSAGE_TTL = 604800


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class WebPushConfig:
    base_uri: str = "https://localhost:18443"
    base_path: str = "/web-push"
    storage_provider: str = "sqlite"
    sqlite_path: str = "db/web_push.db"
    strict_ssl: bool = True
    ca_bundle: Optional[str] = None
    request_timeout: float = 10.0
    max_concurrency: int = 16
    default_ttl: int = DEFAULT_PUSH_MESSAGE_TTL
    vapid_key_collection: str = "web_push_vapid_key"
    subscription_collection: str = "web_push_subscription"

    @property
    def subscriptions_route(self) -> str:
        return self.base_path + "/subscriptions"

    @property
    def vapid_keys_route(self) -> str:
        return self.base_path + "/vapid-keys"

    def resource_id(self, route: str, name: str) -> str:
        """Absolute identifier for ``name`` under ``route``."""
        return f"{self.base_uri}{route}/{quote(name, safe='')}"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "WebPushConfig":
        env = os.environ if env is None else env
        return cls(
            base_uri=env.get("WEBPUSH_BASE_URI", cls.base_uri).rstrip("/"),
            base_path=env.get("WEBPUSH_BASE_PATH", cls.base_path),
            storage_provider=env.get("WEBPUSH_STORAGE_PROVIDER", cls.storage_provider).lower(),
            sqlite_path=env.get("WEBPUSH_DB_PATH", cls.sqlite_path),
            strict_ssl=_flag(env.get("WEBPUSH_STRICT_SSL", "1")),
            ca_bundle=env.get("WEBPUSH_CA_BUNDLE") or None,
            request_timeout=float(env.get("WEBPUSH_REQUEST_TIMEOUT", cls.request_timeout)),
            max_concurrency=int(env.get("WEBPUSH_MAX_CONCURRENCY", cls.max_concurrency)),
            default_ttl=int(env.get("WEBPUSH_DEFAULT_TTL", cls.default_ttl)),
        )
