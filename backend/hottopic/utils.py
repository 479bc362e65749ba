"""
Shared utility functions for the hot-topic service.
"""
from __future__ import annotations

import re
import secrets
import string
from datetime import date, datetime, time, timezone
from typing import Union

import tldextract
from dateutil import parser as dateparser

DateLike = Union[date, datetime, str]

_TAG_RE = re.compile(r"<[^>]+>")

# Bundled public suffix snapshot; no network fetch at first use
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def strip_html(text: str | None) -> str:
    """Remove markup such as the <b> highlights search APIs wrap around matches."""
    return normalize_text(_TAG_RE.sub("", text or ""))


def extract_domain_from_url(url: str) -> str:
    """
    Extract the main domain from a URL.

    Args:
        url: Full URL string

    Returns:
        Normalized domain name in lowercase
    """
    try:
        extracted = _tld_extract(url)
        domain = f"{extracted.domain}.{extracted.suffix}" if extracted.suffix else extracted.domain
        return (domain or "").lower()
    except Exception:
        from urllib.parse import urlparse
        return urlparse(url).netloc.lower()


def parse_date(value: DateLike) -> date:
    """
    Parse a date, datetime or date string into a date.

    Raises:
        ValueError: If the string cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unparseable date: {value!r}")
    try:
        return dateparser.parse(value).date()
    except OverflowError as e:
        raise ValueError(f"Unparseable date: {value!r}") from e


def parse_utc_datetime(date_string: str | None) -> datetime | None:
    """Parse a timestamp string into an aware UTC datetime; None when absent or unparseable."""
    if not date_string:
        return None
    try:
        parsed = dateparser.parse(date_string)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo:
        return parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=timezone.utc)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc).replace(microsecond=0)


def clamp_to_range(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def generate_report_id(at: datetime | None = None) -> str:
    """
    Generate a report id of the form ``RPT-<epoch ms>-<9 upper alnum>``.
    """
    moment = at or now_utc()
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"RPT-{int(moment.timestamp() * 1000)}-{suffix}"


def to_int(value) -> int:
    """Coerce API counters (often strings, sometimes missing) to int."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
