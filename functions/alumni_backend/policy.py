"""
Authorization policy for protected operations.

Every protected handler calls ``authorize`` with the action it performs;
role checks read the caller's stored ``user:<id>`` record.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException

from alumni_backend.auth import Caller
from alumni_backend.config import get_settings

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_PROBLEM_STATEMENT = "problem-statement:create"
    VIEW_ANALYTICS = "analytics:view"
    CREATE_ALUMNI = "alumni:create"
    SUBMIT_IDEA = "submission:create"
    CREATE_EVENT = "event:create"
    REGISTER_FOR_EVENT = "event:register"
    CREATE_MENTORSHIP_REQUEST = "mentorship-request:create"
    UPDATE_MENTORSHIP_REQUEST = "mentorship-request:update"
    DONATE = "donation:create"
    CREATE_ANNOUNCEMENT = "announcement:create"
    CREATE_FORUM_POST = "forum-post:create"
    LIKE_FORUM_POST = "forum-post:like"
    CREATE_CONNECTION = "connection:create"


ADMIN_ACTIONS = frozenset({Action.CREATE_PROBLEM_STATEMENT, Action.VIEW_ANALYTICS})


def is_admin(caller: Caller) -> bool:
    return caller.role == get_settings().admin_role


def is_allowed(
    caller: Optional[Caller], action: Action, resource: Optional[dict] = None
) -> bool:
    if caller is None:
        return False
    if action in ADMIN_ACTIONS:
        return is_admin(caller)
    if action is Action.UPDATE_MENTORSHIP_REQUEST:
        participants = {
            (resource or {}).get("mentorId"),
            (resource or {}).get("menteeId"),
        }
        return caller.id in participants or is_admin(caller)
    return True


def authorize(
    caller: Optional[Caller], action: Action, resource: Optional[dict] = None
) -> None:
    if not is_allowed(caller, action, resource):
        logger.warning(
            "Denied %s for user %s",
            action.value,
            caller.id if caller else None,
        )
        raise HTTPException(status_code=403, detail="Access denied")
