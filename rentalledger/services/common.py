"""Shared service helpers and factories."""

import math
import secrets
import time
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote, urlparse

from flask import current_app, has_app_context

from rentalledger.exceptions import InvalidDateRangeError, ValidationError
from rentalledger.models.store import Store
from rentalledger.utils.constants import CONFIRMATION_PREFIX

STORE_EXTENSION = "rentalledger.store"
ONE_DAY = timedelta(days=1)


def _store() -> Store:
    """Store bound to the current app, or the process-wide one outside a request."""
    if has_app_context():
        store = current_app.extensions.get(STORE_EXTENSION)
        if store is not None:
            return store
    return Store.instance()


def utcnow() -> datetime:
    """Wrapper for easier testing/mocking."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return utcnow().isoformat()


# -------- date & math helpers --------
def as_datetime(x) -> datetime:
    """
    Coerce a date-like value to a naive datetime in its own offset, so the
    calendar date is the one the caller wrote.
    Accepts date, datetime, 'YYYY-MM-DD' and ISO strings with a time part.
    """
    if isinstance(x, datetime):
        return x.replace(tzinfo=None)
    if isinstance(x, date):
        return datetime(x.year, x.month, x.day)
    if isinstance(x, str) and x.strip():
        s = x.strip().replace("Z", "+00:00")
        try:
            return as_datetime(datetime.fromisoformat(s))
        except ValueError:
            pass
    raise InvalidDateRangeError(f"Error: unsupported date {x!r} (use YYYY-MM-DD)")


def as_date(x) -> date:
    """Coerce any date-like to a calendar date."""
    return as_datetime(x).date()


def number_of_days(pickup, return_) -> int:
    """
    Whole rental days between pickup and return: the difference rounded up
    to the next full day, never less than 1.
    """
    delta = as_datetime(return_) - as_datetime(pickup)
    days = math.ceil(delta / ONE_DAY)
    return max(1, days)


def round2(x: float) -> float:
    return round(float(x), 2)


def rental_amount(daily_rate, days: int):
    """rate * days, kept integral when the rate is integral."""
    amount = daily_rate * days
    if isinstance(amount, float):
        return round2(amount)
    return amount


def to_float_safe(value) -> Optional[float]:
    """Safely convert to float; return None if invalid."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def text(value, label: str) -> str:
    """Stripped text input; None reads as ''. Anything but a string is a ValidationError."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"Error: {label} must be text")
    return value.strip()


def norm_type(value: Optional[str]) -> str:
    """Normalize vehicle type to lowercase string; return '' for None."""
    return text(value, "vehicle type").lower()


# -------- confirmation numbers --------
def generate_confirmation_number() -> str:
    """
    Human-facing booking code: prefix, last 8 digits of the millisecond clock
    and a 4-digit random suffix. Not unique by construction; callers check
    the ledger for collisions.
    """
    millis = str(int(time.time() * 1000))
    return f"{CONFIRMATION_PREFIX}{millis[-8:]}{secrets.randbelow(10000):04d}"


# -------- validators / normalizers --------
def valid_image_path(s: Optional[str]) -> bool:
    """Accept a site-relative /path or an absolute http(s) URL."""
    if not s:
        return False
    s = s.strip()
    if s.startswith("/"):
        return True
    u = urlparse(s)
    return u.scheme in ("http", "https") and bool(u.netloc)


def full_image_url(image: Optional[str], base_url: Optional[str]) -> str:
    """
    Turn a site-relative image path into an absolute URL under ``base_url``.
    Absolute URLs and empty values pass through unchanged.
    """
    if not image:
        return ""
    if image.startswith(("http://", "https://")) or not image.startswith("/"):
        return image
    if not base_url:
        return image
    return base_url.rstrip("/") + quote(image)
