"""
Field-level input normalization shared by the trip and post services.

Every function trims, caps and parses one raw value and raises
ValidationError with a client-facing message when it cannot.
"""
import json
import math
import re
from datetime import date, time
from typing import Any, Optional
from uuid import UUID

from tripboard.domain.errors import NotFoundError, ValidationError

_JOIN_CODE = re.compile(r"^[A-Z0-9]{8}$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_CLOCK_TIME = re.compile(r"^\d{2}:\d{2}$")

MAX_TRIP_NAME_LENGTH = 120
MAX_DESTINATION_LENGTH = 200
MAX_TITLE_LENGTH = 200
MAX_COMMENT_LENGTH = 2000
MAX_CHALLENGE_LENGTH = 500
MIN_DAY_COUNT = 1
MAX_DAY_COUNT = 60


def trimmed(value: Any, max_length: Optional[int] = None) -> str:
    """Trimmed string, or "" for anything that is not a string."""
    if not isinstance(value, str):
        return ""
    text = value.strip()
    return text[:max_length] if max_length else text


def normalize_join_code(value: Any) -> str:
    code = trimmed(value).upper()
    if not _JOIN_CODE.match(code):
        raise ValidationError("Join code must be 8 characters (A-Z, 0-9).")
    return code


def normalize_trip_name(value: Any) -> str:
    name = trimmed(value, MAX_TRIP_NAME_LENGTH)
    if not name:
        raise ValidationError("Trip name is required.")
    return name


def normalize_destination(value: Any) -> str:
    destination = trimmed(value, MAX_DESTINATION_LENGTH)
    if not destination:
        raise ValidationError("Destination is required.")
    return destination


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    return None


def normalize_day_count(value: Any) -> int:
    parsed = _parse_int(value)
    if parsed is None or not MIN_DAY_COUNT <= parsed <= MAX_DAY_COUNT:
        raise ValidationError(f"Day count must be between {MIN_DAY_COUNT} and {MAX_DAY_COUNT}.")
    return parsed


def normalize_day_number(value: Any) -> Optional[int]:
    """Optional day number; blank means no day."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = _parse_int(value)
    if parsed is None or not MIN_DAY_COUNT <= parsed <= MAX_DAY_COUNT:
        raise ValidationError(f"Day number must be between {MIN_DAY_COUNT} and {MAX_DAY_COUNT}.")
    return parsed


def normalize_start_date(value: Any) -> Optional[date]:
    text = trimmed(value)
    if not text:
        return None
    if not _ISO_DATE.match(text):
        raise ValidationError("Start date must be in YYYY-MM-DD format.")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError("Start date is invalid.")


def normalize_time(value: Any) -> Optional[time]:
    text = trimmed(value)
    if not text:
        return None
    if not _CLOCK_TIME.match(text):
        raise ValidationError("Time must be in HH:MM format.")
    hours, minutes = (int(part) for part in text.split(":"))
    if hours > 23 or minutes > 59:
        raise ValidationError("Time is invalid.")
    return time(hours, minutes)


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = trimmed(value)
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return math.nan


def normalize_latitude(value: Any) -> Optional[float]:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    if not math.isfinite(parsed) or not -90 <= parsed <= 90:
        raise ValidationError("Latitude must be between -90 and 90.")
    return parsed


def normalize_longitude(value: Any) -> Optional[float]:
    parsed = _parse_float(value)
    if parsed is None:
        return None
    if not math.isfinite(parsed) or not -180 <= parsed <= 180:
        raise ValidationError("Longitude must be between -180 and 180.")
    return parsed


def normalize_comment_body(value: Any) -> str:
    body = trimmed(value, MAX_COMMENT_LENGTH)
    if not body:
        raise ValidationError("Comment body is required.")
    return body


def normalize_challenge_text(value: Any) -> str:
    text = trimmed(value, MAX_CHALLENGE_LENGTH)
    if not text:
        raise ValidationError("Challenge text is required.")
    return text


def parse_json_array(value: Any, invalid_message: str, not_array_message: str) -> list:
    """Accept a list or a JSON string holding one; blank means empty."""
    if value is None:
        return []
    parsed = value
    if isinstance(parsed, str):
        text = parsed.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            raise ValidationError(invalid_message)
    if not isinstance(parsed, list):
        raise ValidationError(not_array_message)
    return parsed


def parse_uuid(value: Any, not_found_message: str) -> UUID:
    """Path ids that are not UUIDs cannot match any row."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(trimmed(value))
    except ValueError:
        raise NotFoundError(not_found_message)
