"""
Lenient field parsers shared by the feed adapters.
"""

from datetime import datetime

from dateutil import parser as date_parser
from loguru import logger

from skywave.utils import ensure_utc, utcnow


def parse_timestamp(
    value: str | None, source: str, default: datetime | None = None
) -> datetime:
    """Parse a feed timestamp (naive means UTC); falls back to `default` or now."""
    fallback = default or utcnow()
    if not value or not value.strip():
        return fallback
    try:
        return ensure_utc(date_parser.isoparse(value.strip()))
    except ValueError:
        try:
            return ensure_utc(date_parser.parse(value))
        except (ValueError, OverflowError):
            logger.warning(f"Unable to parse timestamp from {source}: '{value}'")
            return fallback


def parse_float(value: str | float | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value.strip())
    except ValueError:
        return None


def parse_frequency_mhz_to_khz(value: str | float | None) -> float | None:
    freq = parse_float(value)
    return freq * 1000.0 if freq is not None else None


def split_location_desc(value: str | None) -> tuple[str | None, str | None]:
    """Split "US-WA" into ("US", "WA"); missing parts come back as None."""
    if not value or "-" not in value:
        return None, None
    country, _, region = value.strip().partition("-")
    return country or None, region or None
