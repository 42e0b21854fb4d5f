from concurrent.futures import ThreadPoolExecutor
import threading

import pytest
import requests

from webpush_core.config import WebPushConfig
from webpush_core.push_request import PushRequest
from webpush_core.transport import transport_factory
from webpush_core.transport.transport_http import HTTPPushTransport
from webpush_core.transport.transport_base import TransportError, TransportTimeout

# CMD Line Usage: pytest -v -s --log-cli-level=DEBUG .\tests\test_transport_factory.py


class StubSession:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def close(self):
        pass


class StubResponse:
    status_code = 201
    reason = "Created"


def test_transport_factory_uses_config():
    t = transport_factory(WebPushConfig(strict_ssl=False, request_timeout=3.5))
    assert isinstance(t, HTTPPushTransport)
    assert t.verify is False
    assert t.timeout == 3.5


def test_transport_factory_reads_env(monkeypatch):
    monkeypatch.setenv("WEBPUSH_STRICT_SSL", "1")
    monkeypatch.setenv("WEBPUSH_CA_BUNDLE", "/etc/ssl/push-ca.pem")
    monkeypatch.setenv("WEBPUSH_REQUEST_TIMEOUT", "2")
    t = transport_factory()
    assert t.verify == "/etc/ssl/push-ca.pem"
    assert t.timeout == 2.0


def test_post_sends_request():
    session = StubSession(StubResponse())
    t = HTTPPushTransport(timeout=5, session=session)
    res = t.post(PushRequest(endpoint="https://push.example.net/1", headers={"TTL": "60"}, body=b"abc"))

    assert res.status_code == 201
    url, kwargs = session.calls[0]
    assert url == "https://push.example.net/1"
    assert kwargs["data"] == b"abc"
    assert kwargs["headers"] == {"TTL": "60"}
    assert kwargs["timeout"] == 5
    assert kwargs["verify"] is True


def test_empty_body_is_posted_as_empty_bytes():
    session = StubSession(StubResponse())
    HTTPPushTransport(session=session).post(PushRequest(endpoint="https://push.example.net/1"))
    assert session.calls[0][1]["data"] == b""


def test_timeout_is_transport_timeout(caplog):
    t = HTTPPushTransport(session=StubSession(requests.Timeout("slow")))
    with pytest.raises(TransportTimeout):
        t.post(PushRequest(endpoint="https://push.example.net/1"))
    assert "timeout" in caplog.text


def test_connection_error_is_transport_error():
    t = HTTPPushTransport(session=StubSession(requests.ConnectionError("refused")))
    with pytest.raises(TransportError) as exc:
        t.post(PushRequest(endpoint="https://push.example.net/1"))
    assert not isinstance(exc.value, TransportTimeout)


def test_each_thread_gets_its_own_session():
    t = HTTPPushTransport()
    with ThreadPoolExecutor(max_workers=2) as pool:
        barrier = threading.Barrier(2)

        def grab(_):
            barrier.wait()
            return t.session

        a, b = pool.map(grab, range(2))
    assert isinstance(a, requests.Session)
    assert a is not b
    assert t.session is t.session
    t.close()
    assert t._sessions == []


def test_injected_session_is_shared_across_threads():
    session = StubSession(StubResponse())
    t = HTTPPushTransport(session=session)
    with ThreadPoolExecutor(max_workers=2) as pool:
        seen = list(pool.map(lambda _: t.session, range(4)))
    assert all(s is session for s in seen)
