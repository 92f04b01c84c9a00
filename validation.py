"""
Input coercion helpers for request payloads.

All of these raise ValidationError with a message suitable for the client.
"""
import re
from datetime import date, datetime

from errors import ValidationError

EMAIL_RE = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$")
PHONE_RE = re.compile(r"^[0-9]{10}$")


def require_text(value, field, max_length=None):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return value


def require_number(value, field, minimum=None, maximum=None):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a number")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return value


def parse_id(value, field):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid id")


def parse_date(value, field="scheduledDate"):
    """Accept a date, an ISO date, or an ISO datetime (date part is kept)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")

    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1]
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        for fmt in ("%Y-%m-%d %H:%M:%S", "%d/%m/%Y"):
            try:
                return datetime.strptime(raw, fmt).date()
            except ValueError:
                continue
    raise ValidationError(f"{field} must be a valid date")


def validate_email(value):
    email = require_text(value, "email", max_length=120).lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def validate_phone(value):
    if value in (None, ""):
        return None
    phone = str(value).strip()
    if not PHONE_RE.match(phone):
        raise ValidationError("Please provide a valid 10-digit phone number")
    return phone
