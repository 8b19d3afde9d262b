"""Display helpers for receipts: local timestamps and currency."""
from datetime import datetime, timezone

import pytz

DEFAULT_TIMEZONE = "Asia/Manila"


def fmt_iso_local(value, tz_name: str = DEFAULT_TIMEZONE, use_12h: bool = False) -> str:
    """
    Format a date/datetime (or its ISO string) in the display time zone.
    Supports:
      - 'YYYY-MM-DD' (rendered as a date, no conversion)
      - 'YYYY-MM-DDTHH:MM:SS[.ffffff]' with or without 'Z' / '+00:00'
    On parse error, returns the original value so the receipt never goes blank.
    """
    if value is None:
        return ""

    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return ""
        s_norm = s.replace("T", " ")
        if s_norm.endswith("Z"):
            s_norm = s_norm[:-1] + "+00:00"

        if ":" not in s_norm:
            # Date-only
            try:
                d = datetime.strptime(s_norm, "%Y-%m-%d").date()
            except ValueError:
                return s
            return d.strftime("%d/%m/%Y")

        try:
            dt = datetime.fromisoformat(s_norm)
        except ValueError:
            return s

    # If naive datetime, assume UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    try:
        local_tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        local_tz = pytz.utc
    dt_local = dt.astimezone(local_tz)

    if use_12h:
        # Avoid %-I (not portable on Windows). Strip any leading zero manually.
        hh = dt_local.strftime("%I").lstrip("0") or "0"
        return f"{dt_local.strftime('%d %b %Y')}, {hh}:{dt_local.strftime('%M %p')}"
    return dt_local.strftime("%d/%m/%Y %H:%M")


def format_currency(amount, symbol: str = "₱") -> str:
    """Two decimals with thousands separators, e.g. ₱1,234.50."""
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    return f"{symbol}{value:,.2f}"
