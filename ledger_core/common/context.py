# ledger_core/common/context.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """
    Who performed a ledger mutation, as recorded in the audit trail.
    """
    id: str
    role: str = "staff"


SYSTEM_ACTOR = Actor(id="system", role="system")


def actor_from_request(request) -> Actor:
    user = getattr(request, "user", None)
    if user is None or not getattr(user, "is_authenticated", False):
        return SYSTEM_ACTOR

    role = "staff"
    groups = getattr(user, "groups", None)
    if groups is not None:
        first = groups.order_by("name").first()
        if first is not None:
            role = first.name.lower()
    if getattr(user, "is_superuser", False):
        role = "admin"

    return Actor(id=str(user.pk), role=role)
