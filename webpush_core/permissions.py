# webpush_core/permissions.py

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Iterable, List, Optional

from webpush_core.errors import PermissionDenied

KEY_INSERT = "WEB_PUSH_VAPID_KEY_INSERT"
KEY_ACCESS = "WEB_PUSH_VAPID_KEY_ACCESS"
KEY_REVOKE = "WEB_PUSH_VAPID_KEY_REVOKE"
SUBSCRIPTION_INSERT = "WEB_PUSH_SUBSCRIPTION_INSERT"
SUBSCRIPTION_ACCESS = "WEB_PUSH_SUBSCRIPTION_ACCESS"
SUBSCRIPTION_REMOVE = "WEB_PUSH_SUBSCRIPTION_REMOVE"

ALL_PERMISSIONS = (
    KEY_INSERT,
    KEY_ACCESS,
    KEY_REVOKE,
    SUBSCRIPTION_INSERT,
    SUBSCRIPTION_ACCESS,
    SUBSCRIPTION_REMOVE,
)


@dataclass
class Identity:
    """
    The principal performing an operation.

    - ``permissions`` apply to resources that reference this identity
      (its own subscriptions, for instance)
    - ``global_permissions`` apply to any resource
    """
    id: str
    permissions: List[str] = field(default_factory=list)
    global_permissions: List[str] = field(default_factory=list)
    status: str = "active"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            id=data["id"],
            permissions=list(data.get("permissions", [])),
            global_permissions=list(data.get("global_permissions", [])),
            status=data.get("status", "active"),
        )


class PermissionChecker:
    """
    Yes/no capability gate keyed on actor + resource.

    ``actor=None`` denotes a trusted internal caller and is always allowed.
    Subclasses may override ``has_permission`` to consult another policy
    source; ``check`` stays the single raising entry point.
    """

    def has_permission(self, actor: Identity, permission: str, resources: List[str]) -> bool:
        if actor.status != "active":
            return False
        if permission in actor.global_permissions:
            return True
        return permission in actor.permissions and actor.id in resources

    def check(self, actor: Optional[Identity], permission: str, resources: Iterable[Optional[str]]) -> None:
        if actor is None:
            return
        refs = [r for r in resources if r]
        if not self.has_permission(actor, permission, refs):
            raise PermissionDenied(
                "Permission denied.",
                {"actor": actor.id, "permission": permission, "resources": refs},
            )
