"""
Request/Response schemas for API endpoints.
These schemas define the contract between the web client and the backend.
JSON keys are camelCase; Python attributes stay snake_case.
"""
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tripboard.domain.models import PostType


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Requests
# =============================================================================

class DisplayNameMixin(CamelModel):
    display_name: Optional[str] = Field(default=None, description="Preferred display name for the caller")


class TripCreateRequest(DisplayNameMixin):
    """Request schema for creating a trip."""
    trip_name: Optional[str] = Field(default=None, description="Trip name (max 120 chars)")
    destination_name: Optional[str] = Field(default=None, description="Destination (max 200 chars)")
    start_date: Optional[str] = Field(default=None, description="First day in YYYY-MM-DD format")
    day_count: Optional[Union[int, str]] = Field(default=None, description="Number of days, 1-60")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tripName": "Lisbon long weekend",
                "destinationName": "Lisbon, Portugal",
                "startDate": "2025-06-01",
                "dayCount": 3,
                "displayName": "Ana",
            }
        }
    )


class JoinTripRequest(DisplayNameMixin):
    """Request schema for joining a trip by code."""
    join_code: Optional[str] = Field(default=None, description="8-character join code")


class SessionRequest(DisplayNameMixin):
    """Session bootstrap; the only input is an optional display name."""
    pass


class CommentCreateRequest(DisplayNameMixin):
    comment_body: Optional[str] = None


class ChallengeCreateRequest(DisplayNameMixin):
    challenge_text: Optional[str] = None
    tagged_user_id: Optional[str] = None


class CrawlLocationChallengeCreateRequest(DisplayNameMixin):
    challenge_text: Optional[str] = None


class CrawlReorderRequest(CamelModel):
    ordered_location_ids: Optional[list[str]] = None


# =============================================================================
# Responses
# =============================================================================

class SuccessResponse(CamelModel):
    success: bool = True


class TripSummary(CamelModel):
    """Trip as listed for a user (no feed)."""
    id: UUID
    join_code: str
    trip_name: str
    destination_name: str
    start_date: Optional[date] = None
    day_count: int
    updated_at: datetime


class TripDayResponse(CamelModel):
    day_number: int
    label: str
    trip_date: Optional[date] = None


class MemberResponse(CamelModel):
    user_id: UUID
    display_name: str


class CommentResponse(CamelModel):
    id: UUID
    author_user_id: UUID
    author_name: str
    comment_body: str
    created_at: datetime


class VoteSummary(CamelModel):
    """Vote rollup of a post as seen by one requester."""
    vote_count: int = 0
    has_voted: bool = False
    voter_display_names: list[str] = Field(default_factory=list)


class CrawlLocationChallengeResponse(CamelModel):
    id: UUID
    author_user_id: UUID
    author_name: str
    challenge_text: str
    is_completed: bool
    completed_by_user_id: Optional[UUID] = None
    completed_by_display_name: Optional[str] = None
    created_at: datetime


class ChallengeResponse(CrawlLocationChallengeResponse):
    tagged_user_id: Optional[UUID] = None
    tagged_display_name: Optional[str] = None


class CrawlLocationResponse(CamelModel):
    id: UUID
    sort_order: int
    location_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_completed: bool
    images: list[str] = Field(default_factory=list)
    challenges: list[CrawlLocationChallengeResponse] = Field(default_factory=list)


class PostResponse(VoteSummary):
    """A feed post with everything hanging off it."""
    id: UUID
    day_number: Optional[int] = None
    post_type: PostType
    title: Optional[str] = None
    body: Optional[str] = None
    event_name: Optional[str] = None
    from_time: Optional[str] = Field(default=None, description="HH:MM")
    to_time: Optional[str] = Field(default=None, description="HH:MM")
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    author_user_id: UUID
    author_name: str
    created_at: datetime
    updated_at: datetime
    comments: list[CommentResponse] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    challenges: list[ChallengeResponse] = Field(default_factory=list)
    crawl_locations: list[CrawlLocationResponse] = Field(default_factory=list)


class TripResponse(CamelModel):
    """Full nested trip view."""
    id: UUID
    join_code: str
    trip_name: str
    destination_name: str
    start_date: Optional[date] = None
    day_count: int
    created_at: datetime
    days: list[TripDayResponse] = Field(default_factory=list)
    members: list[MemberResponse] = Field(default_factory=list)
    posts: list[PostResponse] = Field(default_factory=list)


# Envelopes

class TripEnvelope(CamelModel):
    trip: TripResponse


class TripWithUserResponse(CamelModel):
    trip: TripResponse
    user_id: UUID


class TripListResponse(CamelModel):
    trips: list[TripSummary] = Field(default_factory=list)


class SessionResponse(CamelModel):
    """Resolved caller plus their active trips."""
    user_id: UUID
    display_name: str
    email: Optional[str] = None
    trips: list[TripSummary] = Field(default_factory=list)


class PostEnvelope(CamelModel):
    post: PostResponse


class CommentEnvelope(CamelModel):
    comment: CommentResponse


class ChallengeEnvelope(CamelModel):
    challenge: ChallengeResponse


class CrawlLocationChallengeEnvelope(CamelModel):
    challenge: CrawlLocationChallengeResponse
