"""
Record helpers shared by the resource handlers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException

from alumni_backend.kv import KvStore

USER = "user"
ALUMNI = "alumni"
MENTOR = "mentor"
PROBLEM = "problem"
SUBMISSION = "submission"
EVENT = "event"
REGISTRATION = "registration"
CAMPAIGN = "campaign"
DONATION = "donation"
ANNOUNCEMENT = "announcement"
FORUM_POST = "forum-post"
MENTORSHIP_REQUEST = "mentorship-request"
MENTORSHIP_PAIR = "mentorship-pair"
CONNECTION = "connection"
CONTACT = "contact"


def record_key(kind: str, record_id: str) -> str:
    return f"{kind}:{record_id}"


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def list_records(store: KvStore, kind: str) -> list[dict]:
    return [
        entry.value
        for entry in store.get_by_prefix(f"{kind}:")
        if isinstance(entry.value, dict)
    ]


def get_record(store: KvStore, kind: str, record_id: str) -> dict | None:
    return store.get(record_key(kind, record_id))


def get_record_or_404(
    store: KvStore, kind: str, record_id: str, label: str
) -> dict:
    record = get_record(store, kind, record_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record


def create_record(
    store: KvStore, kind: str, data: dict, **server_fields: Any
) -> dict:
    """
    Store a new record under a generated id.

    Caller data is merged first so server-set fields and the id always win.
    """
    record_id = new_id()
    record = {**data, **server_fields, "id": record_id}
    store.set(record_key(kind, record_id), record)
    return record
