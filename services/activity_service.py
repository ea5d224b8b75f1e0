"""
Audit and activity emission.

Each state-changing action writes exactly one audit log (payload hashed) and
one activity feed entry.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

from domain.activity import Activity, AuditLog, activity_type_for_action, payload_hash
from repositories.activity_repository import insert_activity, insert_audit_log
from services.context import ServiceContext

logger = logging.getLogger(__name__)

SYSTEM_USER = "system"


def _message_for(action: str) -> str:
    return action.replace("_", " ").capitalize()


def log_activity(
    ctx: ServiceContext,
    by_uid: str,
    action: str,
    payload: Mapping[str, Any],
    client_id: Optional[UUID] = None,
    project_id: Optional[UUID] = None,
) -> None:
    """
    Append one AuditLog and one Activity for `action`.

    Args:
        by_uid: Actor id (`system` for webhook/automatic actions)
        action: snake_case action name, e.g. `proposal_generated`
        payload: Action details; only its hash is stored in the audit log
    """

    at = ctx.now()
    insert_audit_log(
        ctx.db,
        AuditLog(
            log_id=uuid4(),
            at=at,
            by_uid=by_uid,
            action=action,
            payload_hash=payload_hash(payload),
            client_id=client_id,
            project_id=project_id,
        ),
    )
    insert_activity(
        ctx.db,
        Activity(
            activity_id=uuid4(),
            message=_message_for(action),
            type=activity_type_for_action(action),
            user_id=by_uid,
            timestamp=at,
            client_id=client_id,
            project_id=project_id,
        ),
    )
    logger.info("Activity logged", extra={"action": action, "by_uid": by_uid})


__all__ = ["SYSTEM_USER", "log_activity"]
