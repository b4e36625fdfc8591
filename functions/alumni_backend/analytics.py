"""
Aggregate statistics computed by scanning whole record kinds.

Nothing is cached: each call reads every record of the kinds it reports on.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from alumni_backend.kv import KvStore
from alumni_backend.resources import (
    ALUMNI,
    CAMPAIGN,
    DONATION,
    EVENT,
    MENTORSHIP_PAIR,
    USER,
    list_records,
)


def _amount(record: dict) -> float:
    value = record.get("amount")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _parse_timestamp(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_analytics(
    store: KvStore,
    *,
    now: Optional[datetime] = None,
    recent_days: int = 30,
) -> dict:
    now = now or datetime.now(timezone.utc)
    users = list_records(store, USER)
    alumni = list_records(store, ALUMNI)
    events = list_records(store, EVENT)
    donations = list_records(store, DONATION)
    pairs = list_records(store, MENTORSHIP_PAIR)

    alumni_by_industry = Counter(
        record["industry"] for record in alumni if record.get("industry")
    )
    total_donations = sum(_amount(record) for record in donations)

    cutoff = now - timedelta(days=recent_days)
    new_alumni = 0
    for record in alumni:
        created = _parse_timestamp(record.get("createdAt"))
        if created and created > cutoff:
            new_alumni += 1

    return {
        "totalUsers": len(users),
        "totalAlumni": len(alumni),
        "totalEvents": len(events),
        "totalDonations": total_donations,
        "alumniByIndustry": dict(alumni_by_industry),
        "recentActivity": {
            "newAlumni": new_alumni,
            "newEvents": sum(1 for record in events if record.get("isActive")),
            "totalFundsRaised": total_donations,
            "activeMentorships": sum(
                1 for record in pairs if record.get("status") == "active"
            ),
        },
    }


def compute_donation_stats(store: KvStore, donor_id: Optional[str] = None) -> dict:
    campaigns = list_records(store, CAMPAIGN)
    donations = list_records(store, DONATION)
    donors = {
        record.get("donorName")
        for record in donations
        if record.get("donorName")
    }
    return {
        "totalRaised": sum(_amount(record) for record in donations),
        "totalDonors": len(donors),
        "activeCampaigns": sum(1 for record in campaigns if record.get("isActive")),
        "myDonations": (
            sum(1 for record in donations if record.get("donorId") == donor_id)
            if donor_id
            else 0
        ),
    }
