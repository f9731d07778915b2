"""
Solar indices and band condition data sources.
"""

from skywave.datasource.propagation.noaa import NoaaSolarSource
from skywave.datasource.propagation.hamqsl import HamQslBandSource, HamQslSolarSource

__all__ = ["NoaaSolarSource", "HamQslSolarSource", "HamQslBandSource"]
