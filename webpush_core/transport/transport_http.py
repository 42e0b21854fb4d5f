# webpush_core/transport/transport_http.py
from typing import Any, List, Optional
import threading
import requests
from webpush_core.logger import get_logger
from webpush_core.transport.transport_base import BaseTransport, TransportError, TransportTimeout

log = get_logger("WebPush.Transport.HTTP")


class HTTPPushTransport(BaseTransport):
    """
    HTTP transport for POSTing push messages to push-service endpoints.

    Features:
    - Strict certificate validation toggle (``strict_ssl``) with an
      optional CA bundle path.
    - Per-request timeout; a timeout surfaces as ``TransportTimeout``.
    - One ``requests.Session`` per calling thread, so ``send_all`` workers
      pool connections without sharing a session. An injected ``session``
      is used as-is by every thread.
    """
    name = "http"

    def __init__(self, strict_ssl: bool = True, timeout: float = 10.0,
                 ca_bundle: Optional[str] = None, session: Optional[requests.Session] = None):
        self.strict_ssl = strict_ssl
        self.timeout = timeout
        self.ca_bundle = ca_bundle
        self._shared = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def verify(self):
        if not self.strict_ssl:
            return False
        return self.ca_bundle or True

    @property
    def session(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def post(self, request: Any) -> requests.Response:
        log.debug(f"[HTTP PUSH] → {request.endpoint} | bytes={len(request.body or b'')}")
        try:
            res = self.session.post(
                request.endpoint,
                data=request.body or b"",
                headers=request.headers,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.Timeout as e:
            log.warning(f"[HTTP PUSH] timeout after {self.timeout}s → {request.endpoint}")
            raise TransportTimeout(f"Timed out posting to {request.endpoint}") from e
        except requests.RequestException as e:
            log.warning(f"[HTTP PUSH] transport failure → {request.endpoint}: {e}")
            raise TransportError(f"Could not reach {request.endpoint}: {e}") from e

        log.debug(f"[HTTP PUSH res] {res.status_code} {res.reason}")
        return res

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()
