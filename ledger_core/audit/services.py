# ledger_core/audit/services.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.core.serializers.json import DjangoJSONEncoder

from ledger_core.audit.models import AuditAction, AuditEvent


@dataclass(frozen=True)
class AuditRecord:
    event_code: str
    action: str
    resource_type: str
    resource_id: str
    actor_id: str
    actor_role: str
    details: Dict[str, Any]


def _json_safe(details: Dict[str, Any]) -> Dict[str, Any]:
    # Decimals / UUIDs / datetimes -> JSON primitives
    return json.loads(json.dumps(details, cls=DjangoJSONEncoder))


class AuditService:
    """
    Central audit writer: audit(actor_id, actor_role, action, resource_type, resource_id, details).
    """

    @staticmethod
    def log(
        *,
        actor_id: str,
        actor_role: str,
        action: str,
        resource_type: str,
        resource_id,
        details: Optional[Dict[str, Any]] = None,
        event_code: str = "",
    ) -> AuditRecord:
        if action not in AuditAction.values:
            raise ValueError(f"Unknown audit action: {action}")

        details = _json_safe(details or {})

        AuditEvent.objects.create(
            event_code=event_code or f"{resource_type}.{action}",
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            actor_id=str(actor_id),
            actor_role=actor_role or "",
            details=details,
        )

        return AuditRecord(
            event_code=event_code or f"{resource_type}.{action}",
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            actor_id=str(actor_id),
            actor_role=actor_role or "",
            details=details,
        )
