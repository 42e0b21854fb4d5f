import os
import threading

import pytest

from webpush_core import WebPushConfig, WebPushService
from webpush_core.crypto import generate_vapid_keypair
from webpush_core.models import PushToken, Subscription
from webpush_core.permissions import ALL_PERMISSIONS, Identity, SUBSCRIPTION_ACCESS, SUBSCRIPTION_INSERT, SUBSCRIPTION_REMOVE
from webpush_core.storage import InMemoryStorage, SQLiteStorage
from webpush_core.transport.transport_base import BaseTransport
from webpush_core.utils import b64u_encode

OWNER_ID = "https://example.com/i/alice"


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class FakeTransport(BaseTransport):
    """Stands in for push services: answers per endpoint, records requests."""
    name = "fake"

    def __init__(self, default_status=201):
        self.default_status = default_status
        self.statuses = {}
        self.failures = {}
        self.requests = []
        self._lock = threading.Lock()

    def post(self, request):
        with self._lock:
            self.requests.append(request)
        if request.endpoint in self.failures:
            raise self.failures[request.endpoint]
        return FakeResponse(self.statuses.get(request.endpoint, self.default_status))


@pytest.fixture
def config():
    return WebPushConfig(base_uri="https://push.example.com", max_concurrency=4)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStorage()
    else:
        s = SQLiteStorage(str(tmp_path / "web_push.db"))
    yield s
    s.close()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def service(config, store, transport):
    return WebPushService.create(config=config, store=store, transport=transport)


@pytest.fixture
def admin():
    return Identity(id="https://example.com/i/admin", global_permissions=list(ALL_PERMISSIONS))


@pytest.fixture
def alice():
    return Identity(
        id=OWNER_ID,
        permissions=[SUBSCRIPTION_INSERT, SUBSCRIPTION_ACCESS, SUBSCRIPTION_REMOVE],
    )


@pytest.fixture
def mallory():
    return Identity(
        id="https://example.com/i/mallory",
        permissions=[SUBSCRIPTION_INSERT, SUBSCRIPTION_ACCESS, SUBSCRIPTION_REMOVE],
    )


def browser_keys():
    """p256dh/auth pair as a browser would hand them out."""
    _, public = generate_vapid_keypair()
    return {"p256dh": public, "auth": b64u_encode(os.urandom(16))}


def make_subscription(endpoint, signing_key_id, owner=OWNER_ID, keys=None, **kwargs):
    return Subscription(
        owner=owner,
        signing_key_id=signing_key_id,
        push_token=PushToken(endpoint=endpoint, keys=keys),
        **kwargs,
    )
