"""
Web Push Core Package
=====================
Application-server side of Web Push.

Provides:
- VAPID signing key generation and storage (Keyring)
- Durable, owner-scoped push subscriptions (SubscriptionStore)
- Push request construction with VAPID auth and aes128gcm payloads
- Single and fan-out delivery with delivery manifests (Dispatcher)
"""

from .config import WebPushConfig
from .dispatcher import Dispatcher, DeliveryResult, SendAllOptions, SendOptions
from .keyring import Keyring
from .models import PushToken, Subscription, VapidKey
from .permissions import Identity, PermissionChecker
from .push_request import MessageOptions, PushRequest, PushRequestBuilder
from .service import WebPushService
from .subscriptions import SubscriptionFilter, SubscriptionStore

__all__ = [
    "WebPushConfig",
    "Dispatcher",
    "DeliveryResult",
    "SendAllOptions",
    "SendOptions",
    "Keyring",
    "PushToken",
    "Subscription",
    "VapidKey",
    "Identity",
    "PermissionChecker",
    "MessageOptions",
    "PushRequest",
    "PushRequestBuilder",
    "WebPushService",
    "SubscriptionFilter",
    "SubscriptionStore",
]
