"""
Multi-source merge and read-side dashboard queries.
"""

from skywave.analysis.types import (
    DashboardCard,
    FeedStatus,
    FreshnessInfo,
    Section,
)
from skywave.analysis.merge import SolarIndicesMerger, merge_solar_indices
from skywave.analysis.dashboard import (
    DashboardService,
    calculate_priority,
    priority_to_hotness,
)

__all__ = [
    # Types
    "DashboardCard",
    "FeedStatus",
    "FreshnessInfo",
    "Section",
    # Merge
    "SolarIndicesMerger",
    "merge_solar_indices",
    # Dashboard
    "DashboardService",
    "calculate_priority",
    "priority_to_hotness",
]
