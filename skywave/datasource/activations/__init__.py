"""
POTA and SOTA activation data sources.
"""

from skywave.datasource.activations.pota import PotaSource
from skywave.datasource.activations.sota import SotaSource

__all__ = ["PotaSource", "SotaSource"]
