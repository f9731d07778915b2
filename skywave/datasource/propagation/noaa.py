"""
NOAA Space Weather Prediction Center data source for solar flux and sunspots.

API: https://services.swpc.noaa.gov/json/solar-cycle/observed-solar-cycle-indices.json
Free, no API key. Monthly observed values; only the latest entry is used.
"""

from datetime import datetime, timedelta

from dateutil import parser as date_parser
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from skywave.datasource.base import ResilientDataSource
from skywave.models.propagation import SolarIndices
from skywave.services.cache import degraded_label
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings
from skywave.utils import ensure_utc


class NoaaSolarCycleEntry(BaseModel):
    """One row of the observed solar cycle indices feed."""

    model_config = ConfigDict(extra="ignore")

    time_tag: str = Field(alias="time-tag", min_length=1)
    solar_flux: float = Field(alias="f10.7", ge=0, le=1000)
    sunspot_number: float = Field(alias="ssn", ge=0, le=1000)


class NoaaSolarSource(ResilientDataSource[SolarIndices]):
    """
    NOAA SWPC solar indices.

    Supplies solar flux and sunspot number. K and A are left at zero since
    this feed does not carry them; the merge takes those from HamQSL.
    """

    URL = "https://services.swpc.noaa.gov/json/solar-cycle/observed-solar-cycle-indices.json"
    SERVICE_ID = "noaa"
    SOURCE_LABEL = "NOAA SWPC"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_noaa)
    MAX_RESPONSE_BYTES = 2_000_000

    async def do_fetch(self) -> SolarIndices:
        data = await self.client.get_json(
            self.service_id, self.URL, max_bytes=self.MAX_RESPONSE_BYTES
        )
        if not isinstance(data, list) or not data:
            raise InvalidApiResponseError(
                "Empty response from NOAA API", service_id=self.service_id
            )

        latest = NoaaSolarCycleEntry.model_validate(data[-1])
        return SolarIndices(
            solar_flux_index=latest.solar_flux,
            a_index=0,
            k_index=0,
            sunspot_number=round(latest.sunspot_number),
            timestamp=self.parse_timestamp(latest.time_tag),
            source=self.SOURCE_LABEL,
        )

    def get_default_value(self) -> SolarIndices:
        return SolarIndices.placeholder(degraded_label(self.SOURCE_LABEL), self._clock())

    def describe(self, data: SolarIndices) -> str:
        return f"SFI={data.solar_flux_index}, sunspots={data.sunspot_number}"

    def parse_timestamp(self, time_tag: str) -> datetime:
        """Parse "2024-05", "2024-05-01" or a full ISO instant; fall back to now."""
        try:
            return ensure_utc(date_parser.isoparse(time_tag))
        except ValueError:
            logger.warning(
                f"[{self.service_id}] unparseable time-tag '{time_tag}', using now"
            )
            return self._clock()
