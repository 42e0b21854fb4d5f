"""
webpush_core.dispatcher
-----------------------
Delivers push messages.

``send_one`` and ``send_all`` perform no capability checks of their own:
they are meant to be called from code paths that were already authorized,
never directly from an untrusted boundary.

``send_all`` fans out one delivery per subscription on a bounded thread
pool and returns a manifest with exactly one entry per listed
subscription. Individual failures are recorded, never raised.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ProtocolError
from .keyring import Keyring
from .logger import get_logger
from .permissions import Identity
from .push_request import MessageOptions, PushRequestBuilder
from .subscriptions import SubscriptionFilter, SubscriptionStore
from .transport.transport_base import BaseTransport

log = get_logger("WebPush.Dispatcher")

# push service says the endpoint is gone or we are no longer authorized
PRUNABLE_STATUS_CODES = frozenset({400, 401, 404, 410})

RESULT_SUCCESS = "success"
RESULT_ERROR = "error"

SendOptions = MessageOptions


@dataclass
class SendAllOptions(MessageOptions):
    remove_bad_subscriptions: bool = False


@dataclass
class DeliveryResult:
    result: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.result == RESULT_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"result": self.result}
        if self.error is not None:
            to_dict = getattr(self.error, "to_dict", None)
            d["error"] = to_dict() if to_dict else {"type": type(self.error).__name__, "message": str(self.error)}
        return d


DeliveryManifest = Dict[str, DeliveryResult]


def is_prunable(error: BaseException) -> bool:
    return isinstance(error, ProtocolError) and error.http_status_code in PRUNABLE_STATUS_CODES


def best_effort_remove(subscriptions: SubscriptionStore, actor: Optional[Identity], subscription_id: str) -> bool:
    """
    Best-effort cleanup of a dead subscription.

    A failed removal is logged and reported as ``False``; it must never
    replace the delivery error already recorded for the subscription.
    """
    try:
        subscriptions.remove(actor, subscription_id)
    except Exception as e:
        log.warning(f"[DISPATCH] could not remove bad subscription {subscription_id}: {e!r}")
        return False
    log.info(f"[DISPATCH] removed bad subscription {subscription_id}")
    return True


class Dispatcher:
    def __init__(self, subscriptions: SubscriptionStore, keyring: Keyring, transport: BaseTransport,
                 builder: Optional[PushRequestBuilder] = None, max_concurrency: int = 16):
        self.subscriptions = subscriptions
        self.keyring = keyring
        self.transport = transport
        self.builder = builder or PushRequestBuilder()
        self.max_concurrency = max(1, max_concurrency)

    def send_one(self, actor: Optional[Identity], subscription_id: str,
                 options: Optional[SendOptions] = None) -> None:
        """
        Sends a push message through one subscription.

        Raises ``ProtocolError`` when the push service does not answer 201
        and ``TransportError`` when it could not be reached at all.
        """
        options = options or SendOptions()
        subscription = self.subscriptions.get(None, subscription_id)
        stored_key = self.keyring.get(
            None, subscription.signing_key_id, include_private=True, include_meta=True)

        request = self.builder.build(subscription, stored_key.key, stored_key.meta.email, options)
        res = self.transport.post(request)
        if res.status_code != 201:
            raise ProtocolError(
                "Unexpected response code from Web Push service.",
                http_status_code=res.status_code,
                details={"subscription": subscription_id},
            )
        log.debug(f"[DISPATCH] delivered to {subscription_id}")

    def _deliver(self, actor: Optional[Identity], subscription_id: str, options: SendAllOptions) -> DeliveryResult:
        try:
            self.send_one(actor, subscription_id, options)
        except Exception as e:
            log.warning(f"[DISPATCH] delivery to {subscription_id} failed: {e!r}")
            if options.remove_bad_subscriptions and is_prunable(e):
                best_effort_remove(self.subscriptions, actor, subscription_id)
            return DeliveryResult(RESULT_ERROR, e)
        return DeliveryResult(RESULT_SUCCESS)

    def send_all(self, actor: Optional[Identity], owner: str, signing_key_id: str,
                 options: Optional[SendAllOptions] = None) -> DeliveryManifest:
        """
        Sends a push message through every subscription owned by ``owner``
        for the VAPID key ``signing_key_id``.

        Only the listing step can fail the call; each delivery outcome
        lands in the returned manifest keyed by subscription id.
        """
        if not isinstance(owner, str) or not isinstance(signing_key_id, str):
            raise TypeError("owner and signing_key_id must be strings.")
        options = options or SendAllOptions()

        records = self.subscriptions.list(
            None, SubscriptionFilter(owner=owner, signing_key_id=signing_key_id), projection=["id"])
        ids = [r["id"] for r in records]
        manifest: DeliveryManifest = {}
        if not ids:
            return manifest

        workers = min(self.max_concurrency, len(ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="webpush") as pool:
            futures = {pool.submit(self._deliver, actor, sid, options): sid for sid in ids}
            for future in as_completed(futures):
                manifest[futures[future]] = future.result()

        failed = sum(1 for r in manifest.values() if not r.ok)
        log.info(f"[DISPATCH] sent to {len(manifest)} subscription(s) of {owner}, {failed} failed")
        return manifest
