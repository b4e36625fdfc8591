"""
In-process filtering, sorting and pagination over prefix-scanned records.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional

from alumni_backend.schemas import Pagination


def _text_values(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                yield item


def matches_search(record: dict, fields: Iterable[str], term: Optional[str]) -> bool:
    """Case-insensitive substring match against any of ``fields``."""
    if not term:
        return True
    needle = term.lower()
    for name in fields:
        for text in _text_values(record.get(name)):
            if needle in text.lower():
                return True
    return False


def matches_exact(record: dict, field: str, value: Optional[Any]) -> bool:
    """Case-sensitive equality; an empty filter matches everything."""
    if value is None or value == "":
        return True
    current = record.get(field)
    if current is None:
        return False
    if isinstance(current, bool) or isinstance(value, bool):
        return current == value
    return str(current) == str(value)


def sort_records(
    records: list[dict], field: str, *, descending: bool = False
) -> list[dict]:
    """Stable sort on ``field``; records without it always go last."""
    present = [r for r in records if r.get(field) is not None]
    missing = [r for r in records if r.get(field) is None]
    present.sort(key=lambda r: _sort_key(r[field]), reverse=descending)
    return present + missing


def _sort_key(value: Any) -> tuple:
    # Mixed types compare by type first so sorting never raises.
    if isinstance(value, bool):
        return (0, int(value), "")
    if isinstance(value, (int, float)):
        return (0, value, "")
    return (1, 0, str(value))


def paginate(
    items: list[Any], page: int = 1, limit: Optional[int] = None
) -> tuple[list[Any], Pagination]:
    total = len(items)
    if limit is None:
        # Everything fits on page 1; later pages are empty.
        return (items if page == 1 else []), Pagination(
            page=page, limit=total, total=total, totalPages=1 if total else 0
        )
    start = (page - 1) * limit
    return items[start:start + limit], Pagination(
        page=page,
        limit=limit,
        total=total,
        totalPages=math.ceil(total / limit),
    )
