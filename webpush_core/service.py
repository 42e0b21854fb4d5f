# webpush_core/service.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .config import WebPushConfig
from .dispatcher import Dispatcher
from .keyring import Keyring
from .logger import get_logger
from .permissions import PermissionChecker
from .push_request import PushRequestBuilder
from .storage import StorageProvider, load_storage_provider
from .subscriptions import SubscriptionStore
from .transport import transport_factory
from .transport.transport_base import BaseTransport

log = get_logger("WebPush.Service")


@dataclass
class WebPushService:
    """
    The assembled core: one store handle, opened at startup and shared by
    the keyring and the subscription store.
    """
    config: WebPushConfig
    store: StorageProvider
    keyring: Keyring
    subscriptions: SubscriptionStore
    dispatcher: Dispatcher

    @classmethod
    def create(cls, config: Optional[WebPushConfig] = None, store: Optional[StorageProvider] = None,
               transport: Optional[BaseTransport] = None,
               checker: Optional[PermissionChecker] = None) -> "WebPushService":
        config = config or WebPushConfig.from_env()
        store = store or load_storage_provider(
            {"provider": config.storage_provider, "sqlite_path": config.sqlite_path})
        checker = checker or PermissionChecker()
        keyring = Keyring(store, checker, config)
        subscriptions = SubscriptionStore(store, checker, config)
        dispatcher = Dispatcher(
            subscriptions,
            keyring,
            transport or transport_factory(config),
            builder=PushRequestBuilder(default_ttl=config.default_ttl),
            max_concurrency=config.max_concurrency,
        )
        log.info(f"[SERVICE] web push core ready storage={type(store).__name__}")
        return cls(config, store, keyring, subscriptions, dispatcher)

    def close(self) -> None:
        self.dispatcher.transport.close()
        self.store.close()
