"""
Parks on the Air (POTA) activator spots.

API: https://api.pota.app/spot/activator
Free, no API key. Frequencies are published in kHz.
"""

from datetime import timedelta

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skywave.datasource.base import ResilientDataSource
from skywave.datasource.parsing import parse_float, parse_timestamp, split_location_desc
from skywave.models.activations import Activation, ActivationType, Park
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings


class PotaSpot(BaseModel):
    """One spot as published by the POTA API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    spot_id: int | None = Field(default=None, alias="spotId")
    activator: str
    reference: str
    frequency: str | float | None = None
    mode: str | None = None
    name: str | None = None
    location_desc: str | None = Field(default=None, alias="locationDesc")
    grid6: str | None = None
    latitude: str | float | None = None
    longitude: str | float | None = None
    spot_time: str | None = Field(default=None, alias="spotTime")
    qsos: int | None = None


class PotaSource(ResilientDataSource[list[Activation]]):
    """Current POTA activations."""

    URL = "https://api.pota.app/spot/activator"
    SERVICE_ID = "pota"
    SOURCE_LABEL = "POTA API"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_pota)
    MAX_RESPONSE_BYTES = 2_000_000

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
                activations.append(self.to_activation(PotaSpot.model_validate(raw)))
            except ValidationError as e:
                logger.warning(
                    f"[{self.service_id}] skipping malformed spot: {e.error_count()} error(s)"
                )
        return activations

    def to_activation(self, spot: PotaSpot) -> Activation:
        country, region = split_location_desc(spot.location_desc)
        park = Park(
            reference=spot.reference,
            name=spot.name or spot.reference,
            region_code=region,
            country_code=country,
            grid=spot.grid6,
            latitude=parse_float(spot.latitude),
            longitude=parse_float(spot.longitude),
        )
        spotted_at = parse_timestamp(spot.spot_time, "POTA", default=self._clock())
        return Activation(
            spot_id=str(spot.spot_id) if spot.spot_id is not None else None,
            activator_callsign=spot.activator,
            type=ActivationType.POTA,
            frequency=parse_float(spot.frequency),
            mode=spot.mode,
            spotted_at=spotted_at,
            last_seen_at=spotted_at,
            qso_count=spot.qsos,
            location=park,
            source=self.SOURCE_LABEL,
        )

    def get_default_value(self) -> list[Activation]:
        return []
