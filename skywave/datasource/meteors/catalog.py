"""
Meteor shower catalog data source.

Annual showers are stored as month/day templates in meteor_showers.json and
projected onto the current and next year. Goes through the same fetch
pipeline as the network feeds, but never touches the network.
"""

import json
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from skywave.datasource.base import ResilientDataSource
from skywave.models.meteors import MeteorShower
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings

CATALOG_PATH = Path(__file__).parent / "meteor_showers.json"

# Recently ended showers stay listed this long
RECENT_PAST = timedelta(days=7)


class MeteorShowerTemplate(BaseModel):
    name: str
    code: str
    peak_month_day: str  # "MM-DD"
    peak_duration_hours: int = Field(gt=0)
    visibility_start_offset: int = Field(le=0)  # days relative to peak date
    visibility_end_offset: int = Field(ge=0)
    peak_zhr: int = Field(ge=0)
    parent_body: str | None = None
    info_url: str | None = None

    @field_validator("peak_month_day")
    @classmethod
    def _valid_month_day(cls, value: str) -> str:
        month, _, day = value.partition("-")
        # Leap year so any real calendar day validates
        date(2000, int(month), int(day))
        return value

    def for_year(self, year: int) -> MeteorShower:
        month, _, day = self.peak_month_day.partition("-")
        peak_date = date(year, int(month), int(day))
        peak_start = datetime.combine(peak_date, time.min, tzinfo=timezone.utc)
        visibility_end_date = peak_date + timedelta(days=self.visibility_end_offset)
        return MeteorShower(
            name=f"{self.name} {year}",
            code=self.code,
            peak_start=peak_start,
            peak_end=peak_start + timedelta(hours=self.peak_duration_hours),
            visibility_start=peak_start + timedelta(days=self.visibility_start_offset),
            visibility_end=datetime.combine(
                visibility_end_date, time(23, 59, 59), tzinfo=timezone.utc
            ),
            peak_zhr=self.peak_zhr,
            parent_body=self.parent_body,
            info_url=self.info_url,
        )


def load_templates(path: Path = CATALOG_PATH) -> list[MeteorShowerTemplate]:
    """
    Read shower templates from the catalog file.

    Raises:
        InvalidApiResponseError: File missing or not the expected shape
        pydantic.ValidationError: A template has invalid fields
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidApiResponseError(
            f"Cannot read meteor shower catalog {path}: {e}", service_id="meteors"
        ) from e

    showers = data.get("showers") if isinstance(data, dict) else None
    if not isinstance(showers, list):
        raise InvalidApiResponseError(
            "Meteor shower catalog has no 'showers' list", service_id="meteors"
        )
    return [MeteorShowerTemplate.model_validate(item) for item in showers]


class MeteorShowerSource(ResilientDataSource[list[MeteorShower]]):
    """Showers visible now, recently ended, or starting within the look-ahead."""

    SERVICE_ID = "meteors"
    SOURCE_LABEL = "Meteor Shower Catalog"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_meteors)

    def __init__(
        self,
        *args,
        lookahead_days: int | None = None,
        catalog_path: Path = CATALOG_PATH,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.lookahead = timedelta(
            days=lookahead_days or global_settings.meteor_lookahead_days
        )
        self.catalog_path = catalog_path
        self._templates: list[MeteorShowerTemplate] | None = None

    async def do_fetch(self) -> list[MeteorShower]:
        if self._templates is None:
            self._templates = load_templates(self.catalog_path)
        return self.showers_at(self._clock())

    def showers_at(self, now: datetime) -> list[MeteorShower]:
        """Project every template onto this year and next, keeping relevant ones."""
        cutoff_past = now - RECENT_PAST
        cutoff_future = now + self.lookahead

        result = []
        for template in self._templates or []:
            for year in (now.year, now.year + 1):
                shower = template.for_year(year)
                if (
                    shower.visibility_end >= cutoff_past
                    and shower.visibility_start <= cutoff_future
                ):
                    result.append(shower)

        result.sort(key=lambda s: s.peak_start)
        return result

    def get_default_value(self) -> list[MeteorShower]:
        return []
