"""
Users API — Field Validation
=============================

What:  Pure functions that inspect a request payload and report problems.
Why:   The repository needs to reject bad input before it reaches MongoDB,
       and the same rules apply to create (all fields required) and update
       (only supplied fields checked).
How:   Each function takes a plain mapping and returns field names; nothing
       here raises or touches the database.

Rules:
    - A field is "missing" when absent, None, or a blank string.
    - `name` and `email` are "invalid" when present but not strings.
    - `dateOfBirth` is "invalid" when it does not parse as an ISO-8601 date
      or datetime. No range check.
    - Email format is not checked; uniqueness is the storage layer's job.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bson import ObjectId

USER_FIELDS = ("name", "email", "dateOfBirth")

MISSING = "missing"
INVALID = "invalid"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_date_of_birth(value: Any) -> Optional[date]:
    """
    Parse a date of birth from JSON input.

    Accepts "1990-01-01", full ISO datetimes such as "1990-01-01T00:00:00.000Z",
    and date/datetime objects. Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def find_missing_fields(
    payload: Mapping[str, Any],
    required: Iterable[str] = USER_FIELDS,
) -> List[str]:
    """Return the required fields that are absent or blank, in order."""
    return [field for field in required if _is_blank(payload.get(field))]


def find_invalid_fields(payload: Mapping[str, Any]) -> List[str]:
    """Return the supplied, non-blank fields whose value has the wrong type."""
    invalid = []
    for field in USER_FIELDS:
        value = payload.get(field)
        if _is_blank(value):
            continue
        if field == "dateOfBirth":
            if parse_date_of_birth(value) is None:
                invalid.append(field)
        elif not isinstance(value, str):
            invalid.append(field)
    return invalid


def validate_user_fields(
    payload: Mapping[str, Any],
    required: Iterable[str] = USER_FIELDS,
) -> Dict[str, str]:
    """
    Combine missing and invalid checks into one report.

    Returns:
        {field: "missing" | "invalid"}; empty when the payload is acceptable.
    """
    errors = {field: MISSING for field in find_missing_fields(payload, required)}
    for field in find_invalid_fields(payload):
        errors.setdefault(field, INVALID)
    return errors


def is_valid_object_id(value: Any) -> bool:
    """True when `value` is a 24-character hex string MongoDB can use as _id."""
    return isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value)
