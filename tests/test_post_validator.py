"""
Tests for post submission validation.
"""
import json
from datetime import time

import pytest

from tripboard.application.post_validator import PostFields, PostValidator
from tripboard.domain.errors import ValidationError
from tripboard.domain.models import CrawlDraft, EventDraft, PostType, SuggestionDraft


def stops(count):
    return json.dumps([{"locationName": f"Bar {n}", "latitude": 38.7, "longitude": -9.1} for n in range(count)])


class TestPostValidator:
    """Tests for PostValidator."""

    @pytest.fixture
    def validator(self):
        return PostValidator(max_crawl_locations=12)

    def assert_rejected(self, validator, fields, message, image_count=0):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(fields, image_count=image_count)
        assert exc_info.value.message == message

    # --- Suggestions ---

    def test_suggestion_with_title(self, validator):
        draft = validator.validate(PostFields(post_type="suggestion", title="  Try the pastries  "))

        assert isinstance(draft, SuggestionDraft)
        assert draft.title == "Try the pastries"
        assert draft.day_number is None
        assert draft.location is None

    def test_suggestion_needs_content(self, validator):
        self.assert_rejected(validator, PostFields(post_type="SUGGESTION"), "Suggestion post needs a title or body.")

    def test_suggestion_with_only_images(self, validator):
        draft = validator.validate(PostFields(post_type="SUGGESTION"), image_count=2)

        assert draft.post_type == PostType.SUGGESTION

    def test_suggestion_half_schedule(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="SUGGESTION", title="Lunch", from_time="12:00"),
            "Suggestion post needs both start and end time when scheduling.",
        )

    def test_suggestion_location(self, validator):
        draft = validator.validate(
            PostFields(post_type="SUGGESTION", title="View", location_name="Miradouro", latitude="38.71", longitude="-9.13")
        )

        assert draft.location.location_name == "Miradouro"
        assert draft.location.coordinates.latitude == 38.71
        assert draft.location.coordinates.longitude == -9.13

    def test_half_coordinates(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="SUGGESTION", title="View", latitude="38.71"),
            "Latitude and longitude must be provided together.",
        )

    def test_out_of_range_coordinates(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="SUGGESTION", title="View", latitude="91", longitude="0"),
            "Latitude must be between -90 and 90.",
        )
        self.assert_rejected(
            validator,
            PostFields(post_type="SUGGESTION", title="View", latitude="0", longitude="abc"),
            "Longitude must be between -180 and 180.",
        )

    # --- Events ---

    def test_event(self, validator):
        draft = validator.validate(
            PostFields(post_type="EVENT", day_number="2", event_name="Fado night", from_time="21:00", to_time="23:30")
        )

        assert isinstance(draft, EventDraft)
        assert draft.day_number == 2
        assert draft.window.start == time(21, 0)
        assert draft.window.end == time(23, 30)

    def test_event_missing_to_time(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="EVENT", day_number="1", event_name="Fado", from_time="21:00"),
            "Event post needs event name, from time, and to time.",
        )

    def test_event_end_not_after_start(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="EVENT", day_number="1", event_name="Fado", from_time="21:00", to_time="21:00"),
            "Event end time must be after start time.",
        )

    def test_event_one_minute_window(self, validator):
        draft = validator.validate(
            PostFields(post_type="EVENT", day_number="1", event_name="Fado", from_time="21:00", to_time="21:01")
        )

        assert draft.window.end == time(21, 1)

    def test_event_needs_day(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="EVENT", event_name="Fado", from_time="21:00", to_time="22:00"),
            "Event post needs a day.",
        )

    def test_bad_time_format(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="EVENT", day_number="1", event_name="Fado", from_time="9pm", to_time="22:00"),
            "Time must be in HH:MM format.",
        )
        self.assert_rejected(
            validator,
            PostFields(post_type="EVENT", day_number="1", event_name="Fado", from_time="24:00", to_time="22:00"),
            "Time is invalid.",
        )

    # --- Crawls ---

    def crawl(self, **overrides):
        fields = PostFields(
            post_type="CRAWL",
            title="Bairro Alto crawl",
            from_time="20:00",
            to_time="23:59",
            crawl_locations=stops(3),
        )
        for key, value in overrides.items():
            setattr(fields, key, value)
        return fields

    def test_crawl(self, validator):
        draft = validator.validate(self.crawl())

        assert isinstance(draft, CrawlDraft)
        assert [stop.sort_order for stop in draft.stops] == [0, 1, 2]
        assert draft.location.location_name == "Bar 0"

    def test_crawl_twelve_stops(self, validator):
        draft = validator.validate(self.crawl(crawl_locations=stops(12)))

        assert len(draft.stops) == 12

    def test_crawl_thirteen_stops(self, validator):
        self.assert_rejected(
            validator,
            self.crawl(crawl_locations=stops(13)),
            "Crawl posts can include up to 12 locations.",
        )

    def test_crawl_without_stops(self, validator):
        self.assert_rejected(validator, self.crawl(crawl_locations="[]"), "Crawl post needs at least one location.")

    def test_crawl_needs_title(self, validator):
        self.assert_rejected(validator, self.crawl(title="  "), "Crawl post needs a title.")

    def test_crawl_needs_times(self, validator):
        self.assert_rejected(validator, self.crawl(to_time=None), "Crawl post needs both start and end time.")

    def test_crawl_invalid_json(self, validator):
        self.assert_rejected(
            validator,
            self.crawl(crawl_locations="[{"),
            "Crawl locations payload is invalid JSON.",
        )
        self.assert_rejected(
            validator,
            self.crawl(crawl_locations='{"locationName": "Bar"}'),
            "Crawl locations payload must be an array.",
        )

    def test_crawl_stop_needs_name(self, validator):
        self.assert_rejected(
            validator,
            self.crawl(crawl_locations=json.dumps([{"locationName": " "}])),
            "Each crawl location needs a location name.",
        )

    # --- Common ---

    def test_unknown_post_type(self, validator):
        self.assert_rejected(validator, PostFields(post_type="PIN", title="x"), "Invalid post type.")

    def test_day_number_range(self, validator):
        self.assert_rejected(
            validator,
            PostFields(post_type="SUGGESTION", title="x", day_number="61"),
            "Day number must be between 1 and 60.",
        )

    def test_crawl_limit_follows_configuration(self):
        validator = PostValidator(max_crawl_locations=15)

        draft = validator.validate(self.crawl(crawl_locations=stops(15)))
        assert len(draft.stops) == 15

        self.assert_rejected(
            validator,
            self.crawl(crawl_locations=stops(16)),
            "Crawl posts can include up to 15 locations.",
        )
