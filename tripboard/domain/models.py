"""
Core domain models for the Tripboard backend.
All models use Pydantic v2 for type safety and validation.
"""
import datetime as dt
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


# Enums for constrained values
class MemberRole(str, Enum):
    """Role of a user inside a trip."""
    OWNER = "OWNER"
    MEMBER = "MEMBER"


class PostType(str, Enum):
    """Kind of feed post."""
    SUGGESTION = "SUGGESTION"
    EVENT = "EVENT"
    CRAWL = "CRAWL"


# Value objects

class TimeWindow(BaseModel):
    """A same-day time range with the end strictly after the start."""
    start: dt.time
    end: dt.time

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class Coordinates(BaseModel):
    """A valid latitude/longitude pair."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class LocationPayload(BaseModel):
    """A named place, a coordinate pair, or both."""
    location_name: Optional[str] = Field(default=None, max_length=200)
    coordinates: Optional[Coordinates] = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "LocationPayload":
        if not self.location_name and self.coordinates is None:
            raise ValueError("location needs a name or coordinates")
        return self


class CrawlStopDraft(BaseModel):
    """One stop of a crawl itinerary."""
    location_name: str = Field(min_length=1, max_length=200)
    coordinates: Optional[Coordinates] = None
    sort_order: int = Field(ge=0)


# Post drafts: one variant per post type, discriminated by post_type

class SuggestionDraft(BaseModel):
    post_type: Literal[PostType.SUGGESTION] = PostType.SUGGESTION
    day_number: Optional[int] = Field(default=None, ge=1, le=60)
    title: Optional[str] = Field(default=None, max_length=200)
    body: Optional[str] = None
    window: Optional[TimeWindow] = None
    location: Optional[LocationPayload] = None


class EventDraft(BaseModel):
    post_type: Literal[PostType.EVENT] = PostType.EVENT
    day_number: int = Field(ge=1, le=60)
    event_name: str = Field(min_length=1, max_length=200)
    window: TimeWindow
    title: Optional[str] = Field(default=None, max_length=200)
    body: Optional[str] = None
    location: Optional[LocationPayload] = None


class CrawlDraft(BaseModel):
    post_type: Literal[PostType.CRAWL] = PostType.CRAWL
    day_number: Optional[int] = Field(default=None, ge=1, le=60)
    title: str = Field(min_length=1, max_length=200)
    body: Optional[str] = None
    window: TimeWindow
    stops: list[CrawlStopDraft] = Field(min_length=1)

    @property
    def location(self) -> LocationPayload:
        """Top-level location of a crawl is its first stop."""
        first = self.stops[0]
        return LocationPayload(location_name=first.location_name, coordinates=first.coordinates)


PostDraft = Annotated[
    Union[SuggestionDraft, EventDraft, CrawlDraft],
    Field(discriminator="post_type"),
]
