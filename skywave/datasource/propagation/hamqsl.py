"""
HamQSL solar XML data sources.

Feed: https://www.hamqsl.com/solarxml.php
One XML document carries both the solar indices and the calculated HF band
conditions, so two sources share the parser below.
"""

from datetime import timedelta

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field

from skywave.datasource.base import ResilientDataSource
from skywave.models.common import FrequencyBand
from skywave.models.propagation import BandCondition, BandConditionRating, SolarIndices
from skywave.services.cache import degraded_label
from skywave.services.errors import InvalidApiResponseError
from skywave.settings import global_settings

HAMQSL_URL = "https://www.hamqsl.com/solarxml.php"

# HamQSL rates bands in pairs
BAND_GROUPS: dict[str, tuple[FrequencyBand, ...]] = {
    "80m-40m": (FrequencyBand.BAND_80M, FrequencyBand.BAND_40M),
    "30m-20m": (FrequencyBand.BAND_30M, FrequencyBand.BAND_20M),
    "17m-15m": (FrequencyBand.BAND_17M, FrequencyBand.BAND_15M),
    "12m-10m": (FrequencyBand.BAND_12M, FrequencyBand.BAND_10M),
}


class HamQslBandEntry(BaseModel):
    name: str
    time: str
    value: str


class HamQslSolarData(BaseModel):
    """The parts of <solardata> this app uses, range-checked."""

    model_config = ConfigDict(extra="ignore")

    solarflux: float | None = Field(default=None, ge=0, le=1000)
    aindex: int | None = Field(default=None, ge=0, le=500)
    kindex: int | None = Field(default=None, ge=0, le=9)
    sunspots: int | None = Field(default=None, ge=0, le=1000)
    bands: list[HamQslBandEntry] = Field(default_factory=list)


def _text(node) -> str | None:
    if node is None:
        return None
    text = node.get_text(strip=True)
    return text or None


def parse_hamqsl_xml(xml: str, service_id: str = "hamqsl") -> HamQslSolarData:
    """
    Parse the HamQSL document.

    Raises:
        InvalidApiResponseError: Empty body or no <solardata> element
        pydantic.ValidationError: Non-numeric or out-of-range values
    """
    if not xml or not xml.strip():
        raise InvalidApiResponseError("Empty response from HamQSL", service_id=service_id)

    soup = BeautifulSoup(xml, "html.parser")
    solardata = soup.find("solardata")
    if solardata is None:
        raise InvalidApiResponseError(
            "Missing solardata element in XML response", service_id=service_id
        )

    bands = []
    conditions = solardata.find("calculatedconditions")
    if conditions is not None:
        for band in conditions.find_all("band"):
            bands.append(
                HamQslBandEntry(
                    name=band.get("name", ""),
                    time=band.get("time", ""),
                    value=band.get_text(strip=True),
                )
            )

    return HamQslSolarData(
        solarflux=_text(solardata.find("solarflux")),
        aindex=_text(solardata.find("aindex")),
        kindex=_text(solardata.find("kindex")),
        sunspots=_text(solardata.find("sunspots")),
        bands=bands,
    )


class HamQslSolarSource(ResilientDataSource[SolarIndices]):
    """HamQSL solar indices; the preferred provider for K and A."""

    URL = HAMQSL_URL
    SERVICE_ID = "hamqsl-solar"
    SOURCE_LABEL = "HamQSL"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_hamqsl_solar)
    MAX_RESPONSE_BYTES = 256_000

    async def do_fetch(self) -> SolarIndices:
        xml = await self.client.get_text(
            self.service_id, self.URL, max_bytes=self.MAX_RESPONSE_BYTES
        )
        data = parse_hamqsl_xml(xml, self.service_id)
        return SolarIndices(
            solar_flux_index=data.solarflux or 0.0,
            a_index=data.aindex or 0,
            k_index=data.kindex or 0,
            sunspot_number=data.sunspots or 0,
            timestamp=self._clock(),
            source=self.SOURCE_LABEL,
        )

    def get_default_value(self) -> SolarIndices:
        return SolarIndices.placeholder(degraded_label(self.SOURCE_LABEL), self._clock())

    def describe(self, data: SolarIndices) -> str:
        return f"K={data.k_index}, A={data.a_index}"


class HamQslBandSource(ResilientDataSource[list[BandCondition]]):
    """Daytime HF band conditions from HamQSL."""

    URL = HAMQSL_URL
    SERVICE_ID = "hamqsl-band"
    SOURCE_LABEL = "HamQSL"
    REFRESH_INTERVAL = timedelta(minutes=global_settings.refresh_interval_hamqsl_bands)
    MAX_RESPONSE_BYTES = 256_000
    TIME_PERIOD = "day"

    async def do_fetch(self) -> list[BandCondition]:
        xml = await self.client.get_text(
            self.service_id, self.URL, max_bytes=self.MAX_RESPONSE_BYTES
        )
        data = parse_hamqsl_xml(xml, self.service_id)

        conditions = []
        for entry in data.bands:
            if entry.time.lower() != self.TIME_PERIOD:
                continue
            rating = BandConditionRating.from_string(entry.value)
            for band in BAND_GROUPS.get(entry.name.lower(), ()):
                conditions.append(BandCondition(band=band, rating=rating))
        return conditions

    def get_default_value(self) -> list[BandCondition]:
        return []
