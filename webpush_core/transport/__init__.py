# webpush_core/transport/__init__.py
from typing import Optional
from webpush_core.config import WebPushConfig
from webpush_core.transport.transport_base import BaseTransport, TransportError, TransportTimeout
from webpush_core.transport.transport_http import HTTPPushTransport


def transport_factory(config: Optional[WebPushConfig] = None) -> BaseTransport:
    """Outbound push transport configured from ``config`` (or the environment)."""
    config = config or WebPushConfig.from_env()
    return HTTPPushTransport(
        strict_ssl=config.strict_ssl,
        timeout=config.request_timeout,
        ca_bundle=config.ca_bundle,
    )


__all__ = [
    "BaseTransport",
    "HTTPPushTransport",
    "TransportError",
    "TransportTimeout",
    "transport_factory",
]
