"""
Displayable entities. Each one scores itself in [0, 100] and says whether it
is favorable right now.
"""

from skywave.models.common import (
    Event,
    EventStatus,
    FrequencyBand,
    Scoreable,
)
from skywave.models.propagation import BandCondition, BandConditionRating, SolarIndices
from skywave.models.activations import (
    Activation,
    ActivationsSummary,
    ActivationType,
    Park,
    Summit,
)
from skywave.models.meteors import MeteorShower
from skywave.models.contests import Contest

__all__ = [
    "Scoreable",
    "Event",
    "EventStatus",
    "FrequencyBand",
    "BandCondition",
    "BandConditionRating",
    "SolarIndices",
    "Activation",
    "ActivationsSummary",
    "ActivationType",
    "Park",
    "Summit",
    "MeteorShower",
    "Contest",
]
