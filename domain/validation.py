import calendar
import re
from datetime import date, datetime

from .errors import ValidationError


def parse_ymd(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError("Date must be a string in YYYY-MM-DD format")
    value = value.strip()
    if not value:
        raise ValidationError("Date value is empty")
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise ValidationError("Invalid date format")
    year, month, day = map(int, value.split("-"))
    if not (1 <= month <= 12):
        raise ValidationError("Invalid month")
    last_day = calendar.monthrange(year, month)[1]
    if not (1 <= day <= last_day):
        raise ValidationError("Invalid day")
    if year < 1:
        raise ValidationError("Invalid year")
    return date(year, month, day)


def parse_optional_ymd(value: str | date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return parse_ymd(value)


def ensure_date_range(date_from: date | None, date_to: date | None) -> None:
    if date_from is not None and date_to is not None and date_to < date_from:
        raise ValidationError("Period end date cannot be earlier than period start date")


def require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} must not be empty")
    return text


def optional_text(value: str | None) -> str | None:
    text = (value or "").strip()
    return text or None


def ensure_positive_id(value: int, field: str = "id") -> int:
    try:
        normalized = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if isinstance(value, bool) or normalized <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return normalized
