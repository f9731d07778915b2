"""
WA7BNM contest calendar data source.

Feed: https://www.contestcalendar.com/weeklycontcustom.php (iCalendar)
Only SUMMARY, DTSTART, DTEND and URL are read from each VEVENT.
"""

import re
from datetime import datetime, timedelta

from dateutil import parser as date_parser
from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator, model_validator

from skywave.datasource.base import ResilientDataSource
from skywave.models.contests import Contest
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings
from skywave.utils import ensure_utc

_ESCAPES = re.compile(r"\\([\\;,nN])")


class ContestEvent(BaseModel):
    """A VEVENT reduced to the fields the app needs."""

    summary: str
    start_time: datetime
    end_time: datetime
    details_url: str | None = None

    @field_validator("summary")
    @classmethod
    def _summary_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Contest summary (name) is required")
        return value.strip()

    @model_validator(mode="after")
    def _end_after_start(self) -> "ContestEvent":
        if self.end_time < self.start_time:
            raise ValueError("Contest end time must be after start time")
        return self


def _unescape(value: str) -> str:
    return _ESCAPES.sub(
        lambda m: "\n" if m.group(1) in "nN" else m.group(1), value
    )


def _unfold(text: str) -> list[str]:
    """Join RFC 5545 continuation lines onto the line they continue."""
    lines: list[str] = []
    for raw in text.splitlines():
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        elif raw.strip():
            lines.append(raw)
    return lines


def _parse_ical_datetime(value: str) -> datetime:
    return ensure_utc(date_parser.isoparse(value.strip()))


def parse_ical_events(text: str) -> list[dict[str, str]]:
    """
    Split an iCalendar document into VEVENT property maps.

    Property parameters (";TZID=..." etc.) are dropped; values are unescaped.
    """
    if "BEGIN:VCALENDAR" not in text.upper():
        raise InvalidApiResponseError("Response is not an iCalendar document")

    events: list[dict[str, str]] = []
    current: dict[str, str] | None = None
    for line in _unfold(text):
        upper = line.upper()
        if upper == "BEGIN:VEVENT":
            current = {}
            continue
        if upper == "END:VEVENT":
            if current is not None:
                events.append(current)
            current = None
            continue
        if current is None or ":" not in line:
            continue
        key, _, value = line.partition(":")
        name = key.split(";", 1)[0].strip().upper()
        current[name] = _unescape(value)
    return events


class ContestCalendarSource(ResilientDataSource[list[Contest]]):
    """Upcoming and running contests from the WA7BNM calendar."""

    URL = "https://www.contestcalendar.com/weeklycontcustom.php"
    SERVICE_ID = "contests"
    SOURCE_LABEL = "WA7BNM Contest Calendar"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_contests)
    TIMEOUT = 15.0
    MAX_RESPONSE_BYTES = 1_000_000

    async def do_fetch(self) -> list[Contest]:
        text = await self.client.get_text(
            self.service_id,
            self.URL,
            timeout=self.timeout,
            max_bytes=self.MAX_RESPONSE_BYTES,
        )
        if not text or not text.strip():
            raise InvalidApiResponseError(
                "Empty response from contest calendar", service_id=self.service_id
            )

        contests = []
        for props in parse_ical_events(text):
            try:
                event = ContestEvent(
                    summary=props.get("SUMMARY", ""),
                    start_time=_parse_ical_datetime(props["DTSTART"]),
                    end_time=_parse_ical_datetime(props["DTEND"]),
                    details_url=props.get("URL"),
                )
            except (KeyError, ValueError, ValidationError) as e:
                logger.warning(f"[{self.service_id}] skipping malformed contest event: {e}")
                continue

            contests.append(
                Contest(
                    name=event.summary,
                    start_time=event.start_time,
                    end_time=event.end_time,
                    calendar_source_url=event.details_url,
                )
            )
        return contests

    def get_default_value(self) -> list[Contest]:
        return []
