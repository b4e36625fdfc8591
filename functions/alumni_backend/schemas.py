"""
Pydantic schemas for the alumni portal API.

Stored records are loosely typed: create payloads only declare the fields
the handlers rely on and keep any extra fields the client sends.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LooseRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    def record_data(self) -> dict:
        return self.model_dump(exclude_unset=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ListResponse(BaseModel):
    items: list[dict]
    pagination: Pagination


class ProblemListResponse(ListResponse):
    problems: list[dict]


class HealthResponse(BaseModel):
    status: Literal["ok"]


class MessageResponse(BaseModel):
    message: str


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    userData: dict = Field(default_factory=dict)


class SignupResponse(BaseModel):
    user: dict


class ProblemStatementCreate(LooseRecord):
    title: str = Field(..., min_length=1)
    organization: Optional[str] = None
    category: Optional[str] = None
    theme: Optional[str] = None
    deadline: Optional[str] = None


class AlumniCreate(LooseRecord):
    name: Optional[str] = None
    email: Optional[str] = None


class SubmitIdeaRequest(BaseModel):
    problemId: str = Field(..., min_length=1)
    ideaData: dict = Field(default_factory=dict)


class ContactRequest(LooseRecord):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    message: str = Field(..., min_length=1, max_length=5000)


class EventCreate(LooseRecord):
    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    capacity: Optional[int] = Field(default=None, ge=0)


class EventRegistrationRequest(BaseModel):
    # Accepted for older clients; the registration is always for the caller.
    userId: Optional[str] = None


class MentorshipRequestCreate(BaseModel):
    mentorId: str = Field(..., min_length=1)
    menteeId: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=2000)


class MentorshipStatusUpdate(BaseModel):
    status: Literal["accepted", "declined"]


class DonationCreate(LooseRecord):
    campaignId: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    donorName: Optional[str] = None


class AnnouncementCreate(LooseRecord):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class ForumPostCreate(LooseRecord):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class ConnectionCreate(BaseModel):
    toUserId: str = Field(..., min_length=1)
    fromUserId: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=2000)


class RecentActivity(BaseModel):
    newAlumni: int
    newEvents: int
    totalFundsRaised: float
    activeMentorships: int


class AnalyticsResponse(BaseModel):
    totalUsers: int
    totalAlumni: int
    totalEvents: int
    totalDonations: float
    alumniByIndustry: dict[str, int]
    recentActivity: RecentActivity


class DonationStatsResponse(BaseModel):
    totalRaised: float
    totalDonors: int
    activeCampaigns: int
    myDonations: int
