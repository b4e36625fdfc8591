"""
HTTP routes for the alumni portal API.

Every list endpoint reads the whole prefix set for its kind and filters,
sorts and paginates in-process.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from alumni_backend.analytics import compute_analytics, compute_donation_stats
from alumni_backend.auth import Caller, get_caller, get_optional_caller
from alumni_backend.config import get_settings
from alumni_backend.dependencies import get_identity_provider, get_kv_store
from alumni_backend.identity import (
    IdentityProvider,
    IdentityProviderError,
    IdentityServiceUnavailable,
)
from alumni_backend.kv import KvStore, update_with_retry
from alumni_backend.pagination import matches_exact, matches_search, paginate, sort_records
from alumni_backend.policy import Action, authorize
from alumni_backend.resources import (
    ALUMNI,
    ANNOUNCEMENT,
    CAMPAIGN,
    CONNECTION,
    CONTACT,
    DONATION,
    EVENT,
    FORUM_POST,
    MENTOR,
    MENTORSHIP_PAIR,
    MENTORSHIP_REQUEST,
    PROBLEM,
    REGISTRATION,
    SUBMISSION,
    USER,
    create_record,
    get_record,
    get_record_or_404,
    list_records,
    record_key,
    utc_now_iso,
)
from alumni_backend.sample_data import seed_sample_data
from alumni_backend.schemas import (
    AlumniCreate,
    AnalyticsResponse,
    AnnouncementCreate,
    ConnectionCreate,
    ContactRequest,
    DonationCreate,
    DonationStatsResponse,
    EventCreate,
    EventRegistrationRequest,
    ForumPostCreate,
    HealthResponse,
    ListResponse,
    MentorshipRequestCreate,
    MentorshipStatusUpdate,
    MessageResponse,
    ProblemListResponse,
    ProblemStatementCreate,
    SignupRequest,
    SignupResponse,
    SubmitIdeaRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _checked_limit(limit: Optional[int]) -> Optional[int]:
    max_page_size = get_settings().max_page_size
    if limit is not None and limit > max_page_size:
        raise HTTPException(
            status_code=400, detail=f"limit must be at most {max_page_size}"
        )
    return limit


def _envelope(records: list[dict], page: int, limit: Optional[int]) -> ListResponse:
    items, pagination = paginate(records, page, _checked_limit(limit))
    return ListResponse(items=items, pagination=pagination)


def _increment(store: KvStore, kind: str, record_id: str, **deltas) -> Optional[dict]:
    def mutate(record: dict) -> dict:
        for field, delta in deltas.items():
            record[field] = (record.get(field) or 0) + delta
        return record

    return update_with_retry(
        store,
        record_key(kind, record_id),
        mutate,
        attempts=get_settings().counter_update_attempts,
    )


def _involves(record: dict, user_id: str) -> bool:
    return record.get("mentorId") == user_id or record.get("menteeId") == user_id


def _event_day(record: dict) -> Optional[date]:
    value = record.get("date")
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# Auth / users


@router.post("/auth/signup", response_model=SignupResponse)
def signup(
    payload: SignupRequest,
    store: KvStore = Depends(get_kv_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    try:
        user = identity.create_user(payload.email, payload.password, payload.userData)
    except IdentityServiceUnavailable:
        raise
    except IdentityProviderError as exc:
        logger.warning("Signup rejected for %s: %s", payload.email, exc)
        raise HTTPException(status_code=400, detail=str(exc))

    settings = get_settings()
    store.set(
        record_key(USER, user.id),
        {
            **payload.userData,
            "id": user.id,
            "email": user.email,
            "role": payload.userData.get("role") or settings.default_signup_role,
            "createdAt": utc_now_iso(),
        },
    )
    return SignupResponse(user=user.as_dict())


@router.get("/user-profile")
def user_profile(caller: Caller = Depends(get_caller)):
    if not caller.profile:
        return {
            "role": get_settings().fallback_profile_role,
            "name": caller.identity.display_name,
        }
    return caller.profile


# Problem statements and idea submissions


@router.get("/problem-statements", response_model=ProblemListResponse)
def list_problem_statements(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    category: str = Query(""),
    theme: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    problems = [
        record
        for record in list_records(store, PROBLEM)
        if matches_search(record, ("title", "organization"), search)
        and matches_exact(record, "category", category)
        and matches_exact(record, "theme", theme)
    ]
    problems = sort_records(problems, "createdAt", descending=True)
    items, pagination = paginate(
        problems, page, _checked_limit(limit or get_settings().default_page_size)
    )
    return ProblemListResponse(problems=items, items=items, pagination=pagination)


@router.get("/problem-statements/{problem_id}")
def get_problem_statement(problem_id: str, store: KvStore = Depends(get_kv_store)):
    return get_record_or_404(store, PROBLEM, problem_id, "Problem statement")


@router.post("/problem-statements")
def create_problem_statement(
    payload: ProblemStatementCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_PROBLEM_STATEMENT)
    return create_record(
        store,
        PROBLEM,
        payload.record_data(),
        submittedIdeasCount=0,
        createdAt=utc_now_iso(),
        createdBy=caller.id,
    )


@router.post("/submit-idea")
def submit_idea(
    payload: SubmitIdeaRequest,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.SUBMIT_IDEA)
    get_record_or_404(store, PROBLEM, payload.problemId, "Problem statement")
    submission = create_record(
        store,
        SUBMISSION,
        payload.ideaData,
        problemId=payload.problemId,
        userId=caller.id,
        status="submitted",
        submittedAt=utc_now_iso(),
    )
    _increment(store, PROBLEM, payload.problemId, submittedIdeasCount=1)
    return submission


# Alumni directory


@router.get("/alumni", response_model=ListResponse)
def list_alumni(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    industry: str = Query(""),
    gradYear: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    alumni = [
        record
        for record in list_records(store, ALUMNI)
        if matches_search(record, ("name", "company", "position", "skills"), search)
        and matches_exact(record, "industry", industry)
        and matches_exact(record, "gradYear", gradYear)
    ]
    return _envelope(sort_records(alumni, "name"), page, limit)


@router.get("/alumni/{alumni_id}")
def get_alumni(alumni_id: str, store: KvStore = Depends(get_kv_store)):
    return get_record_or_404(store, ALUMNI, alumni_id, "Alumni")


@router.post("/alumni")
def create_alumni(
    payload: AlumniCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_ALUMNI)
    return create_record(
        store,
        ALUMNI,
        payload.record_data(),
        userId=caller.id,
        createdAt=utc_now_iso(),
    )


@router.post("/connections")
def create_connection(
    payload: ConnectionCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_CONNECTION)
    return create_record(
        store,
        CONNECTION,
        {},
        fromUserId=payload.fromUserId or caller.id,
        toUserId=payload.toUserId,
        message=payload.message,
        status="pending",
        createdAt=utc_now_iso(),
    )


@router.post("/contact", response_model=MessageResponse)
def submit_contact(payload: ContactRequest, store: KvStore = Depends(get_kv_store)):
    create_record(store, CONTACT, payload.record_data(), submittedAt=utc_now_iso())
    return MessageResponse(message="Contact form submitted successfully")


@router.get("/analytics", response_model=AnalyticsResponse)
def analytics(
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.VIEW_ANALYTICS)
    return compute_analytics(store, recent_days=get_settings().recent_activity_days)


# Events


@router.get("/events", response_model=ListResponse)
def list_events(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    event_type: str = Query("", alias="type"),
    when: Optional[Literal["upcoming", "past"]] = Query(None),
    registered: bool = Query(False),
    caller: Optional[Caller] = Depends(get_optional_caller),
    store: KvStore = Depends(get_kv_store),
):
    registered_ids: set[str] = set()
    if caller:
        registered_ids = {
            record.get("eventId")
            for record in list_records(store, REGISTRATION)
            if record.get("userId") == caller.id
        }

    today = datetime.now(timezone.utc).date()
    events = []
    for record in list_records(store, EVENT):
        if caller:
            record["isRegistered"] = record.get("id") in registered_ids
        if not matches_search(record, ("title", "description", "location"), search):
            continue
        if not matches_exact(record, "type", event_type):
            continue
        if when:
            day = _event_day(record)
            if day is None or (day >= today) != (when == "upcoming"):
                continue
        if registered and not record.get("isRegistered"):
            continue
        events.append(record)
    return _envelope(sort_records(events, "date"), page, limit)


@router.get("/events/{event_id}")
def get_event(
    event_id: str,
    caller: Optional[Caller] = Depends(get_optional_caller),
    store: KvStore = Depends(get_kv_store),
):
    event = get_record_or_404(store, EVENT, event_id, "Event")
    if caller:
        event["isRegistered"] = any(
            record.get("eventId") == event_id and record.get("userId") == caller.id
            for record in list_records(store, REGISTRATION)
        )
    return event


@router.post("/events")
def create_event(
    payload: EventCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_EVENT)
    return create_record(
        store,
        EVENT,
        payload.record_data(),
        registeredCount=0,
        isRegistered=False,
        isActive=True,
        createdAt=utc_now_iso(),
        createdBy=caller.id,
    )


@router.post("/events/{event_id}/register", response_model=MessageResponse)
def register_for_event(
    event_id: str,
    payload: Optional[EventRegistrationRequest] = None,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    event = get_record_or_404(store, EVENT, event_id, "Event")
    authorize(caller, Action.REGISTER_FOR_EVENT, event)
    create_record(
        store,
        REGISTRATION,
        {},
        eventId=event_id,
        userId=caller.id,
        registeredAt=utc_now_iso(),
    )
    _increment(store, EVENT, event_id, registeredCount=1)
    return MessageResponse(message="Registration successful")


# Mentorship


@router.get("/mentors", response_model=ListResponse)
def list_mentors(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    industry: str = Query(""),
    availability: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    mentors = [
        record
        for record in list_records(store, MENTOR)
        if matches_search(record, ("name", "company", "expertise"), search)
        and matches_exact(record, "industry", industry)
        and matches_exact(record, "availability", availability)
    ]
    return _envelope(sort_records(mentors, "name"), page, limit)


@router.post("/mentorship-requests")
def create_mentorship_request(
    payload: MentorshipRequestCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_MENTORSHIP_REQUEST)
    mentor = (
        get_record(store, MENTOR, payload.mentorId)
        or get_record(store, ALUMNI, payload.mentorId)
        or get_record(store, USER, payload.mentorId)
        or {}
    )
    expertise = mentor.get("expertise") or mentor.get("skills") or []
    return create_record(
        store,
        MENTORSHIP_REQUEST,
        {},
        mentorId=payload.mentorId,
        menteeId=payload.menteeId or caller.id,
        mentorName=mentor.get("name") or "Mentor",
        menteeName=caller.identity.display_name,
        message=payload.message,
        status="pending",
        createdAt=utc_now_iso(),
        expertise=expertise[0] if expertise else "General",
    )


@router.get("/mentorship-requests/{user_id}", response_model=ListResponse)
def list_mentorship_requests(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    store: KvStore = Depends(get_kv_store),
):
    requests = [
        record
        for record in list_records(store, MENTORSHIP_REQUEST)
        if _involves(record, user_id)
    ]
    return _envelope(sort_records(requests, "createdAt", descending=True), page, limit)


@router.patch("/mentorship-requests/{request_id}", response_model=MessageResponse)
def update_mentorship_request(
    request_id: str,
    payload: MentorshipStatusUpdate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    request = get_record_or_404(store, MENTORSHIP_REQUEST, request_id, "Request")
    authorize(caller, Action.UPDATE_MENTORSHIP_REQUEST, request)

    previous_status = request.get("status")
    request["status"] = payload.status
    request["updatedAt"] = utc_now_iso()
    store.set(record_key(MENTORSHIP_REQUEST, request_id), request)

    # At most one pair per request.
    if payload.status == "accepted" and previous_status != "accepted":
        create_record(
            store,
            MENTORSHIP_PAIR,
            {},
            requestId=request_id,
            mentorId=request.get("mentorId"),
            menteeId=request.get("menteeId"),
            mentorName=request.get("mentorName"),
            menteeName=request.get("menteeName"),
            startDate=utc_now_iso(),
            status="active",
            goals="Career development and guidance",
            meetings=0,
        )
    return MessageResponse(message=f"Request {payload.status}")


@router.get("/mentorship-pairs/{user_id}", response_model=ListResponse)
def list_mentorship_pairs(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    store: KvStore = Depends(get_kv_store),
):
    pairs = [
        record
        for record in list_records(store, MENTORSHIP_PAIR)
        if _involves(record, user_id)
    ]
    return _envelope(sort_records(pairs, "startDate", descending=True), page, limit)


# Donations


@router.get("/campaigns", response_model=ListResponse)
def list_campaigns(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: str = Query(""),
    active: Optional[bool] = Query(None),
    store: KvStore = Depends(get_kv_store),
):
    campaigns = [
        record
        for record in list_records(store, CAMPAIGN)
        if matches_exact(record, "category", category)
        and matches_exact(record, "isActive", active)
    ]
    return _envelope(campaigns, page, limit)


@router.get("/donations", response_model=ListResponse)
def list_donations(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    campaignId: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    donations = [
        record
        for record in list_records(store, DONATION)
        if matches_exact(record, "campaignId", campaignId)
    ]
    return _envelope(sort_records(donations, "date", descending=True), page, limit)


@router.get("/donation-stats", response_model=DonationStatsResponse)
def donation_stats(
    caller: Optional[Caller] = Depends(get_optional_caller),
    store: KvStore = Depends(get_kv_store),
):
    return compute_donation_stats(store, donor_id=caller.id if caller else None)


@router.post("/donations")
def create_donation(
    payload: DonationCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.DONATE)
    data = payload.record_data()
    data["donorName"] = payload.donorName or caller.display_name
    donation = create_record(
        store,
        DONATION,
        data,
        donorId=caller.id,
        date=utc_now_iso(),
    )
    campaign = _increment(
        store, CAMPAIGN, payload.campaignId, raised=payload.amount, donorCount=1
    )
    if campaign is None:
        logger.info("Donation %s references unknown campaign %s", donation["id"], payload.campaignId)
    return donation


# Communication


@router.get("/announcements", response_model=ListResponse)
def list_announcements(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    category: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    announcements = [
        record
        for record in list_records(store, ANNOUNCEMENT)
        if matches_search(record, ("title", "content"), search)
        and matches_exact(record, "category", category)
    ]
    announcements = sort_records(announcements, "createdAt", descending=True)
    announcements = sort_records(announcements, "isPinned", descending=True)
    return _envelope(announcements, page, limit)


@router.post("/announcements")
def create_announcement(
    payload: AnnouncementCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_ANNOUNCEMENT)
    return create_record(
        store,
        ANNOUNCEMENT,
        payload.record_data(),
        authorId=caller.id,
        authorRole=caller.role or get_settings().admin_role,
        createdAt=utc_now_iso(),
        isPinned=False,
        readBy=[],
    )


@router.get("/forum-posts", response_model=ListResponse)
def list_forum_posts(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: str = Query(""),
    category: str = Query(""),
    store: KvStore = Depends(get_kv_store),
):
    posts = [
        record
        for record in list_records(store, FORUM_POST)
        if matches_search(record, ("title", "content"), search)
        and matches_exact(record, "category", category)
    ]
    return _envelope(sort_records(posts, "lastActivity", descending=True), page, limit)


@router.post("/forum-posts")
def create_forum_post(
    payload: ForumPostCreate,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    authorize(caller, Action.CREATE_FORUM_POST)
    now = utc_now_iso()
    return create_record(
        store,
        FORUM_POST,
        payload.record_data(),
        authorId=caller.id,
        replies=0,
        likes=0,
        isLiked=False,
        createdAt=now,
        lastActivity=now,
    )


@router.post("/forum-posts/{post_id}/like", response_model=MessageResponse)
def like_forum_post(
    post_id: str,
    caller: Caller = Depends(get_caller),
    store: KvStore = Depends(get_kv_store),
):
    post = get_record_or_404(store, FORUM_POST, post_id, "Post")
    authorize(caller, Action.LIKE_FORUM_POST, post)

    def mutate(record: dict) -> dict:
        record["likes"] = (record.get("likes") or 0) + 1
        record["isLiked"] = True
        return record

    update_with_retry(
        store,
        record_key(FORUM_POST, post_id),
        mutate,
        attempts=get_settings().counter_update_attempts,
    )
    return MessageResponse(message="Post liked")


@router.post("/init-sample-data", response_model=MessageResponse)
def init_sample_data(store: KvStore = Depends(get_kv_store)):
    if not seed_sample_data(store):
        return MessageResponse(message="Sample data already exists")
    return MessageResponse(message="Sample data initialized successfully")
