from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import OWNER_ID, browser_keys, make_subscription
from webpush_core.errors import DuplicateRecord, NotFound, PermissionDenied, ValidationError
from webpush_core.models import StoredSubscription, Subscription
from webpush_core.subscriptions import SubscriptionFilter

KEY_ID = "https://push.example.com/web-push/vapid-keys/k1"
BOB = "https://example.com/i/bob"


def test_create_id_is_absolute_and_random(service):
    a, b = service.subscriptions.create_id(), service.subscriptions.create_id()
    assert a.startswith("https://push.example.com/web-push/subscriptions/")
    assert a != b
    assert service.subscriptions.create_id("my phone") == \
        "https://push.example.com/web-push/subscriptions/my%20phone"


def test_add_assigns_id_and_get(service, alice):
    stored = service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID, label="phone"))
    sub_id = stored.subscription.id
    assert sub_id.startswith("https://push.example.com/web-push/subscriptions/")
    assert stored.meta.status == "active"

    got = service.subscriptions.get(alice, sub_id)
    assert isinstance(got, Subscription)
    assert got.endpoint == "https://fcm.example/1"
    assert got.label == "phone"

    with_meta = service.subscriptions.get(alice, sub_id, include_meta=True)
    assert isinstance(with_meta, StoredSubscription)
    assert with_meta.meta.status == "active"


def test_add_for_someone_else_is_denied(service, alice):
    with pytest.raises(PermissionDenied):
        service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID, owner=BOB))


def test_failed_add_leaves_caller_subscription_untouched(service, alice):
    denied = make_subscription("https://fcm.example/1", KEY_ID, owner=BOB)
    with pytest.raises(PermissionDenied):
        service.subscriptions.add(alice, denied)
    assert denied.id is None

    first = make_subscription("https://fcm.example/1", KEY_ID)
    stored = service.subscriptions.add(alice, first)
    assert stored.subscription.id
    assert first.id is None

    dup = make_subscription("https://fcm.example/1", KEY_ID)
    with pytest.raises(DuplicateRecord):
        service.subscriptions.add(alice, dup)
    assert dup.id is None


def test_duplicate_endpoint_conflicts(service, alice):
    service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID))
    with pytest.raises(DuplicateRecord) as exc:
        service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID))
    assert exc.value.details["endpoint"] == "https://fcm.example/1"


def test_concurrent_adds_for_one_endpoint(service, alice):
    def attempt(_):
        try:
            service.subscriptions.add(alice, make_subscription("https://fcm.example/same", KEY_ID))
            return "ok"
        except DuplicateRecord:
            return "dup"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(16)))
    assert outcomes.count("ok") == 1
    assert len(service.subscriptions.list(None, SubscriptionFilter(endpoint="https://fcm.example/same"))) == 1


def test_get_is_gated_on_owner(service, alice, mallory):
    sub_id = service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID)).subscription.id
    with pytest.raises(PermissionDenied):
        service.subscriptions.get(mallory, sub_id)
    with pytest.raises(NotFound):
        service.subscriptions.get(alice, service.subscriptions.create_id())


def test_list_drops_unauthorized_records(service, alice, admin):
    service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID))
    service.subscriptions.add(admin, make_subscription("https://fcm.example/2", KEY_ID, owner=BOB))

    assert len(service.subscriptions.list(admin)) == 2
    mine = service.subscriptions.list(alice)
    assert [s["owner"] for s in mine] == [OWNER_ID]
    assert service.subscriptions.list(alice, SubscriptionFilter(owner=BOB)) == []


def test_list_filters(service, alice):
    service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID))
    service.subscriptions.add(alice, make_subscription("https://fcm.example/2", "https://push.example.com/web-push/vapid-keys/k2"))

    by_key = service.subscriptions.list(alice, SubscriptionFilter(owner=OWNER_ID, signing_key_id=KEY_ID))
    assert [s["push_token"]["endpoint"] for s in by_key] == ["https://fcm.example/1"]

    by_endpoint = service.subscriptions.list(alice, SubscriptionFilter(endpoint="https://fcm.example/2"))
    assert len(by_endpoint) == 1


def test_list_projection_strips_fields_used_for_authorization(service, alice):
    service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID, label="phone"))

    labels = service.subscriptions.list(alice, projection=["label"])
    assert labels == [{"label": "phone"}]

    ids = service.subscriptions.list(alice, projection=["id"])
    assert list(ids[0]) == ["id"]


def test_remove_is_soft_and_hides_the_record(service, alice):
    sub_id = service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID)).subscription.id
    service.subscriptions.remove(alice, sub_id)

    with pytest.raises(NotFound):
        service.subscriptions.get(alice, sub_id)
    assert sub_id not in [s["id"] for s in service.subscriptions.list(alice)]
    with pytest.raises(NotFound):
        service.subscriptions.remove(alice, sub_id)

    # the record is still there, flagged as removed
    raw = service.store.find(service.subscriptions.collection, {"meta.status": "removed"})
    assert len(raw) == 1

    # and the endpoint may subscribe again
    service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID))


def test_remove_requires_permission(service, alice, mallory):
    sub_id = service.subscriptions.add(alice, make_subscription("https://fcm.example/1", KEY_ID)).subscription.id
    with pytest.raises(PermissionDenied):
        service.subscriptions.remove(mallory, sub_id)
    assert service.subscriptions.get(alice, sub_id).id == sub_id


def test_subscription_from_dict_validation():
    keys = browser_keys()
    sub = Subscription.from_dict({
        "owner": OWNER_ID,
        "signing_key_id": KEY_ID,
        "push_token": {"endpoint": "https://fcm.example/1", "expirationTime": None, "keys": keys},
        "device": "pixel",
    })
    assert sub.push_token.has_encryption_keys
    assert sub.push_token.to_dict()["expirationTime"] is None
    assert sub.to_dict()["device"] == "pixel"

    bad = [
        None,
        {"owner": OWNER_ID, "signing_key_id": KEY_ID},
        {"owner": OWNER_ID, "signing_key_id": KEY_ID, "push_token": {"endpoint": "not a url"}},
        {"owner": OWNER_ID, "signing_key_id": KEY_ID, "push_token": {"endpoint": "https://x/1", "keys": {"auth": "a"}}},
        {"owner": OWNER_ID, "signing_key_id": KEY_ID, "push_token": {"endpoint": "https://x/1"}, "extra": 1},
        {"signing_key_id": KEY_ID, "push_token": {"endpoint": "https://x/1"}},
    ]
    for data in bad:
        with pytest.raises(ValidationError):
            Subscription.from_dict(data)
