"""
Summits on the Air (SOTA) spots.

API: https://api2.sota.org.uk/api/spots/50
Free, no API key. Frequencies are published in MHz.
"""

from datetime import timedelta

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skywave.datasource.base import ResilientDataSource
from skywave.datasource.parsing import parse_frequency_mhz_to_khz, parse_timestamp
from skywave.models.activations import Activation, ActivationType, Summit
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings


class SotaSpot(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    activator_callsign: str = Field(alias="activatorCallsign")
    association_code: str = Field(alias="associationCode")
    summit_code: str = Field(alias="summitCode")
    frequency: str | float | None = None
    mode: str | None = None
    summit_details: str | None = Field(default=None, alias="summitDetails")
    time_stamp: str | None = Field(default=None, alias="timeStamp")

    @property
    def reference(self) -> str:
        return f"{self.association_code}/{self.summit_code}"


class SotaSource(ResilientDataSource[list[Activation]]):
    """Recent SOTA spots (last 50)."""

    URL = "https://api2.sota.org.uk/api/spots/50"
    SERVICE_ID = "sota"
    SOURCE_LABEL = "SOTA API"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_sota)
    MAX_RESPONSE_BYTES = 1_000_000

    async def do_fetch(self) -> list[Activation]:
        data = await self.client.get_json(
            self.service_id, self.URL, max_bytes=self.MAX_RESPONSE_BYTES
        )
        if not isinstance(data, list):
            raise InvalidApiResponseError(
                "Expected a list of spots", service_id=self.service_id
            )

        activations = []
        for raw in data:
            try:
                activations.append(self.to_activation(SotaSpot.model_validate(raw)))
            except ValidationError as e:
                logger.warning(
                    f"[{self.service_id}] skipping malformed spot: {e.error_count()} error(s)"
                )
        return activations

    def to_activation(self, spot: SotaSpot) -> Activation:
        summit = Summit(
            reference=spot.reference,
            name=spot.summit_details or spot.reference,
            association_code=spot.association_code,
        )
        spotted_at = parse_timestamp(spot.time_stamp, "SOTA", default=self._clock())
        return Activation(
            spot_id=str(spot.id) if spot.id is not None else None,
            activator_callsign=spot.activator_callsign,
            type=ActivationType.SOTA,
            frequency=parse_frequency_mhz_to_khz(spot.frequency),
            mode=spot.mode,
            spotted_at=spotted_at,
            last_seen_at=spotted_at,
            location=summit,
            source=self.SOURCE_LABEL,
        )

    def get_default_value(self) -> list[Activation]:
        return []
