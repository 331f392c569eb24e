"""
Post validator.
Turns the raw fields of a post submission into a typed draft, enforcing the
per-type required-field rules before anything is written.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import pydantic

from tripboard.config import settings
from tripboard.domain.errors import ValidationError
from tripboard.domain.models import (
    Coordinates,
    CrawlDraft,
    CrawlStopDraft,
    EventDraft,
    LocationPayload,
    PostDraft,
    PostType,
    SuggestionDraft,
    TimeWindow,
)
from tripboard.application.normalizers import (
    MAX_TITLE_LENGTH,
    normalize_day_number,
    normalize_latitude,
    normalize_longitude,
    normalize_time,
    parse_json_array,
    trimmed,
)

logger = logging.getLogger(__name__)

MAX_CRAWL_LOCATIONS = 12


@dataclass
class PostFields:
    """Raw post submission, exactly as received."""
    post_type: Any = None
    day_number: Any = None
    title: Any = None
    body: Any = None
    event_name: Any = None
    from_time: Any = None
    to_time: Any = None
    location_name: Any = None
    latitude: Any = None
    longitude: Any = None
    crawl_locations: Any = None


def normalize_post_type(value: Any) -> PostType:
    try:
        return PostType(trimmed(value).upper())
    except ValueError:
        raise ValidationError("Invalid post type.")


def coordinates_from(latitude: Optional[float], longitude: Optional[float]) -> Optional[Coordinates]:
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise ValidationError("Latitude and longitude must be provided together.")
    return Coordinates(latitude=latitude, longitude=longitude)


class PostValidator:
    """Validates post submissions for one of the three post types."""

    def __init__(self, max_crawl_locations: int = MAX_CRAWL_LOCATIONS):
        self.max_crawl_locations = max_crawl_locations

    def parse_crawl_locations(self, value: Any) -> List[CrawlStopDraft]:
        entries = parse_json_array(
            value,
            invalid_message="Crawl locations payload is invalid JSON.",
            not_array_message="Crawl locations payload must be an array.",
        )
        if len(entries) > self.max_crawl_locations:
            raise ValidationError(f"Crawl posts can include up to {self.max_crawl_locations} locations.")

        stops = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ValidationError("Each crawl location must be an object.")
            location_name = trimmed(entry.get("locationName"), MAX_TITLE_LENGTH)
            if not location_name:
                raise ValidationError("Each crawl location needs a location name.")
            coordinates = coordinates_from(
                normalize_latitude(entry.get("latitude")),
                normalize_longitude(entry.get("longitude")),
            )
            stops.append(CrawlStopDraft(location_name=location_name, coordinates=coordinates, sort_order=index))
        return stops

    def validate(self, fields: PostFields, image_count: int = 0) -> PostDraft:
        """
        Validate a submission.

        Args:
            fields: Raw submitted fields
            image_count: Number of images attached to the submission

        Returns:
            SuggestionDraft, EventDraft or CrawlDraft

        Raises:
            ValidationError: On the first violated rule
        """
        day_number = normalize_day_number(fields.day_number)
        post_type = normalize_post_type(fields.post_type)

        title = trimmed(fields.title, MAX_TITLE_LENGTH)
        body = trimmed(fields.body)
        event_name = trimmed(fields.event_name, MAX_TITLE_LENGTH)
        from_time = normalize_time(fields.from_time)
        to_time = normalize_time(fields.to_time)
        location_name = trimmed(fields.location_name, MAX_TITLE_LENGTH)
        coordinates = coordinates_from(
            normalize_latitude(fields.latitude),
            normalize_longitude(fields.longitude),
        )
        stops = self.parse_crawl_locations(fields.crawl_locations)

        location = None
        if location_name or coordinates is not None:
            location = LocationPayload(location_name=location_name or None, coordinates=coordinates)

        try:
            if post_type == PostType.EVENT:
                if not event_name or from_time is None or to_time is None:
                    raise ValidationError("Event post needs event name, from time, and to time.")
                if from_time >= to_time:
                    raise ValidationError("Event end time must be after start time.")
                if day_number is None:
                    raise ValidationError("Event post needs a day.")
                return EventDraft(
                    day_number=day_number,
                    event_name=event_name,
                    window=TimeWindow(start=from_time, end=to_time),
                    title=title or None,
                    body=body or None,
                    location=location,
                )

            if post_type == PostType.CRAWL:
                if not title:
                    raise ValidationError("Crawl post needs a title.")
                if from_time is None or to_time is None:
                    raise ValidationError("Crawl post needs both start and end time.")
                if from_time >= to_time:
                    raise ValidationError("Crawl end time must be after start time.")
                if not stops:
                    raise ValidationError("Crawl post needs at least one location.")
                return CrawlDraft(
                    day_number=day_number,
                    title=title,
                    body=body or None,
                    window=TimeWindow(start=from_time, end=to_time),
                    stops=stops,
                )

            if not title and not body and image_count == 0:
                raise ValidationError("Suggestion post needs a title or body.")
            window = None
            if from_time is not None or to_time is not None:
                if from_time is None or to_time is None:
                    raise ValidationError("Suggestion post needs both start and end time when scheduling.")
                if from_time >= to_time:
                    raise ValidationError("Suggestion end time must be after start time.")
                window = TimeWindow(start=from_time, end=to_time)
            return SuggestionDraft(
                day_number=day_number,
                title=title or None,
                body=body or None,
                window=window,
                location=location,
            )
        except pydantic.ValidationError as e:
            logger.debug(f"Post draft rejected by model validation: {e}")
            raise ValidationError("Post is invalid.")


# Global validator instance
post_validator = PostValidator(settings.max_crawl_locations_per_post)
