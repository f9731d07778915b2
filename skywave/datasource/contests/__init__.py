"""
Contest calendar data source.
"""

from skywave.datasource.contests.calendar import ContestCalendarSource

__all__ = ["ContestCalendarSource"]
