"""
Daily attendance status: which periods a class has recorded for a date and
what may be taken next.

The status is never stored. It is projected from the set of periods that
have at least one AttendanceRecord row, so it cannot drift from the records.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from ..choices import AttendancePeriod
from .exceptions import TransportFailure

logger = logging.getLogger(__name__)


class DayState(enum.Enum):
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETE = 'complete'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class AttendanceDayStatus:
    has_morning: bool = False
    has_afternoon: bool = False
    known: bool = True
    error: Optional[str] = None

    @classmethod
    def unknown(cls, error=None):
        """Status when the backing store could not be read."""
        return cls(known=False, error=error)

    @property
    def is_complete(self):
        return self.known and self.has_morning and self.has_afternoon

    @property
    def next_period(self):
        if not self.known:
            return None
        if not self.has_morning:
            return AttendancePeriod.MORNING
        if not self.has_afternoon:
            return AttendancePeriod.AFTERNOON
        return None

    @property
    def display_next_period(self):
        """Next period for display; an unknown day is shown as not started."""
        if not self.known:
            return AttendancePeriod.MORNING
        return self.next_period

    @property
    def state(self):
        if not self.known:
            return DayState.UNKNOWN
        if self.is_complete:
            return DayState.COMPLETE
        if self.has_morning or self.has_afternoon:
            return DayState.IN_PROGRESS
        return DayState.NOT_STARTED

    def has_period(self, period):
        if period == AttendancePeriod.MORNING:
            return self.has_morning
        return self.has_afternoon

    def to_dict(self):
        next_period = self.next_period
        return {
            'has_morning': self.has_morning,
            'has_afternoon': self.has_afternoon,
            'is_complete': self.is_complete,
            'next_period': next_period.value if next_period else None,
            'state': self.state.value,
            'error': self.error,
        }


def project_day_status(periods):
    """
    Project a day status from the periods that have records.

    Args:
        periods: Iterable of AttendancePeriod (or their string values)

    Returns:
        AttendanceDayStatus
    """
    recorded = {AttendancePeriod(p) for p in periods}
    return AttendanceDayStatus(
        has_morning=AttendancePeriod.MORNING in recorded,
        has_afternoon=AttendancePeriod.AFTERNOON in recorded,
    )


class AttendanceStatusResolver:
    """Resolve the day status for a class through an AttendanceStore."""

    def __init__(self, store):
        self.store = store

    def resolve(self, class_id, date, context=None):
        """
        Read the recorded periods for exactly (class_id, date).

        A store failure is reported as an UNKNOWN status carrying the error,
        never as complete and never as not started.
        """
        try:
            periods = self.store.recorded_periods(class_id, date, context=context)
        except TransportFailure as e:
            logger.warning(f"Attendance status unavailable for class {class_id} on {date}: {e.message}")
            return AttendanceDayStatus.unknown(error=e.message)
        return project_day_status(periods)
