"""
Meteor shower catalog data source.
"""

from skywave.datasource.meteors.catalog import MeteorShowerSource

__all__ = ["MeteorShowerSource"]
