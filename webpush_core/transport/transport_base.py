from __future__ import annotations
from typing import Any


class TransportError(Exception):
    """Network-level failure reaching a push service (DNS, connect, TLS)."""
    pass


class TransportTimeout(TransportError):
    pass


class BaseTransport:
    """
    Outbound delivery contract.

    ``post`` sends one built push request (anything exposing ``endpoint``,
    ``headers`` and ``body``) and returns an object with a ``status_code``.
    It raises ``TransportError`` when no HTTP response was obtained; HTTP
    error statuses are returned, not raised.
    """
    name: str = "base"

    def post(self, request: Any) -> Any:
        raise NotImplementedError

    def close(self) -> None:
        return
