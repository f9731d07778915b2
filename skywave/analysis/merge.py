"""
Multi-source merge for solar indices.

NOAA SWPC publishes the better solar flux and sunspot figures; HamQSL
publishes current K and A indices. The merged record takes each field from
its preferred provider and falls back to whichever provider is present.
"""

from datetime import datetime

from loguru import logger

from skywave.models.common import resolve_now
from skywave.models.propagation import SolarIndices
from skywave.services.cache import CacheManager

NOAA_SLOT = "noaa"
HAMQSL_SLOT = "hamqsl-solar"


def merge_solar_indices(
    noaa: SolarIndices | None,
    hamqsl: SolarIndices | None,
    now: datetime | None = None,
) -> SolarIndices | None:
    """
    Field-level merge of two solar index records.

    Returns:
        The merged record, the single available record unchanged, or None
        when neither provider has data.
    """
    if noaa is None and hamqsl is None:
        return None
    if hamqsl is None:
        return noaa
    if noaa is None:
        return hamqsl

    return SolarIndices(
        solar_flux_index=noaa.solar_flux_index,
        sunspot_number=noaa.sunspot_number,
        k_index=hamqsl.k_index,
        a_index=hamqsl.a_index,
        timestamp=resolve_now(now),
        source=f"{noaa.source} + {hamqsl.source}",
    )


class SolarIndicesMerger:
    """
    Merges whatever the provider cache slots currently hold.

    Degraded placeholders are ignored; stale-but-real values are used.
    """

    def __init__(
        self,
        cache: CacheManager,
        noaa_slot: str = NOAA_SLOT,
        hamqsl_slot: str = HAMQSL_SLOT,
    ):
        self.cache = cache
        self.noaa_slot = noaa_slot
        self.hamqsl_slot = hamqsl_slot
        self.latest: SolarIndices | None = None

    def _real_value(self, name: str) -> SolarIndices | None:
        slot = self.cache.get(name)
        if slot is None or not slot.has_real_data:
            return None
        return slot.value

    def merge_from_cache(self, now: datetime | None = None) -> SolarIndices | None:
        noaa = self._real_value(self.noaa_slot)
        hamqsl = self._real_value(self.hamqsl_slot)

        if noaa is None or hamqsl is None:
            missing = [
                name
                for name, value in ((self.noaa_slot, noaa), (self.hamqsl_slot, hamqsl))
                if value is None
            ]
            if len(missing) < 2:
                logger.warning(f"Partial solar merge, no data from: {', '.join(missing)}")

        merged = merge_solar_indices(noaa, hamqsl, now)
        self.latest = merged
        return merged
