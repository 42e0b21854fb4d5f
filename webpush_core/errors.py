"""
webpush_core.errors
-------------------
Typed failures raised by the keyring, subscription store and dispatcher.

Every error carries a ``details`` mapping and the HTTP status a route layer
should answer with. Transport-level failures live in
``webpush_core.transport.transport_base``.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class WebPushError(Exception):
    http_status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFound(WebPushError):
    http_status_code = 404


class PermissionDenied(WebPushError):
    http_status_code = 403


class DuplicateRecord(WebPushError):
    http_status_code = 409


Conflict = DuplicateRecord


class ValidationError(WebPushError):
    http_status_code = 400


class ProtocolError(WebPushError):
    """The push service answered with something other than 201 Created."""

    def __init__(self, message: str, http_status_code: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.http_status_code = http_status_code
        self.details["httpStatusCode"] = http_status_code
