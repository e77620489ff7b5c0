from __future__ import annotations

import logging
from typing import Any

from .models import AuditEvent
from .tenancy import membership_for

logger = logging.getLogger(__name__)

_ENTITY_ID_MAX = AuditEvent._meta.get_field("entity_id").max_length


def _request_details(request) -> dict[str, str]:
    if request is None:
        return {"path": "", "method": "", "ip_address": "", "user_agent": ""}
    return {
        "path": getattr(request, "path", "")[:255],
        "method": getattr(request, "method", ""),
        "ip_address": request.META.get("REMOTE_ADDR", "")[:64],
        "user_agent": request.META.get("HTTP_USER_AGENT", "")[:255],
    }


def create_audit_event(
    *,
    action: str,
    entity_type: str,
    entity_id: str | int | None = None,
    organization_id: int | None = None,
    status: str = AuditEvent.STATUS_SUCCESS,
    message: str = "",
    metadata: dict[str, Any] | None = None,
    user=None,
    request=None,
) -> AuditEvent:
    """Append one row to the organization's audit trail.

    The organization defaults to the acting user's membership so that events
    raised at the HTTP edge never land outside their tenant.
    """
    actor = user or getattr(request, "user", None)
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None

    if organization_id is None and actor is not None:
        membership = membership_for(actor)
        if membership is not None:
            organization_id = membership.organization_id

    if status != AuditEvent.STATUS_SUCCESS:
        logger.warning("Audit event %s on %s:%s finished with status %s", action, entity_type, entity_id, status)

    return AuditEvent.objects.create(
        organization_id=organization_id,
        user=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id if entity_id is not None else "")[:_ENTITY_ID_MAX],
        status=status,
        message=message,
        metadata=metadata or {},
        **_request_details(request),
    )
