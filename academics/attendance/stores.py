"""
Attendance persistence collaborators.

``DatabaseAttendanceStore`` is the authoritative store: it serializes writes
per class, re-checks the recorded periods inside the transaction and lets the
unique constraint catch anything that slips past, so two sessions racing on
the same class/date cannot both record a period.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from django.db import DatabaseError, IntegrityError, transaction

from ..choices import AttendancePeriod, AttendanceStatus
from .exceptions import (
    PeriodAlreadyRecorded, PeriodOutOfOrder, SubmissionRejected, TransportFailure,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceEntry:
    student_id: int
    status: str

    def to_dict(self):
        return {'student_id': self.student_id, 'status': str(self.status)}


def describe_actor(context):
    if context is None:
        return 'system'
    actor = str(context.user)
    if context.is_impersonating:
        actor += f' (as teacher {context.acting_as_id})'
    return actor


class AttendanceStore(ABC):
    """Backing store for AttendanceRecord rows."""

    @abstractmethod
    def recorded_periods(self, class_id, date, context=None):
        """Return the set of AttendancePeriod that have records for the day."""

    @abstractmethod
    def submit_period(self, class_id, date, period, session_id, term_id, entries, context=None):
        """
        Persist one period for a class, all entries or none.

        Returns:
            int: number of records created

        Raises:
            SubmissionRejected: the store refused the submission
            TransportFailure: the store could not be reached
        """


class DatabaseAttendanceStore(AttendanceStore):

    def recorded_periods(self, class_id, date, context=None):
        from ..models import AttendanceRecord

        try:
            values = (
                AttendanceRecord.objects
                .filter(class_assigned_id=class_id, date=date)
                .order_by()
                .values_list('period', flat=True)
                .distinct()
            )
            return {AttendancePeriod(value) for value in values}
        except DatabaseError as e:
            logger.exception(f"Attendance status query failed for class {class_id} on {date}")
            raise TransportFailure(f'Could not read attendance: {e}') from e

    def submit_period(self, class_id, date, period, session_id, term_id, entries, context=None):
        from students.models import Student
        from ..models import AttendanceRecord, Class

        period = AttendancePeriod(period)
        entries = list(entries)
        self._validate_entries(entries)

        if session_id is None or term_id is None:
            raise SubmissionRejected('No current session or term is set. Please configure them in settings.')

        try:
            with transaction.atomic():
                # Serializes concurrent submissions for the same class
                try:
                    Class.objects.select_for_update().get(pk=class_id)
                except Class.DoesNotExist:
                    raise SubmissionRejected(f'Class {class_id} does not exist.')
                self._check_term(session_id, term_id)

                recorded = self.recorded_periods(class_id, date, context=context)
                if period in recorded:
                    raise PeriodAlreadyRecorded(
                        f'{period.label} attendance has already been recorded for this class on {date}.'
                    )
                previous = period.previous
                if previous is not None and previous not in recorded:
                    raise PeriodOutOfOrder()

                roster_ids = set(
                    Student.objects.filter(
                        current_class_id=class_id,
                        status=Student.Status.ACTIVE,
                    ).values_list('pk', flat=True)
                )
                submitted_ids = {entry.student_id for entry in entries}
                strangers = sorted(submitted_ids - roster_ids)
                if strangers:
                    raise SubmissionRejected(
                        f'Students not on the class roster: {", ".join(map(str, strangers))}.'
                    )
                missing = sorted(roster_ids - submitted_ids)
                if missing:
                    raise SubmissionRejected(
                        f'Submission is missing {len(missing)} student(s) from the roster. Reload and try again.'
                    )

                created = AttendanceRecord.objects.bulk_create([
                    AttendanceRecord(
                        student_id=entry.student_id,
                        class_assigned_id=class_id,
                        date=date,
                        period=period,
                        status=entry.status,
                        academic_session_id=session_id,
                        term_id=term_id,
                    )
                    for entry in entries
                ])
        except IntegrityError as e:
            if period in self.recorded_periods(class_id, date, context=context):
                logger.warning(f"Duplicate {period} attendance for class {class_id} on {date}: {e}")
                raise PeriodAlreadyRecorded() from e
            logger.exception(f"Attendance submission for class {class_id} on {date} violated a constraint")
            raise SubmissionRejected(f'Attendance could not be saved: {e}') from e
        except DatabaseError as e:
            logger.exception(f"Attendance submission failed for class {class_id} on {date}")
            raise TransportFailure(f'Could not save attendance: {e}') from e

        logger.info(
            f"Recorded {len(created)} {period} attendance records for class {class_id} "
            f"on {date} by {describe_actor(context)}"
        )
        return len(created)

    @staticmethod
    def _check_term(session_id, term_id):
        from core.models import Term

        term_session_id = (
            Term.objects.filter(pk=term_id).values_list('academic_session_id', flat=True).first()
        )
        if term_session_id is None:
            raise SubmissionRejected(f'Term {term_id} does not exist.')
        if term_session_id != session_id:
            raise SubmissionRejected(f'Term {term_id} does not belong to academic session {session_id}.')

    @staticmethod
    def _validate_entries(entries):
        if not entries:
            raise SubmissionRejected('No students were included in the submission.')

        seen = set()
        for entry in entries:
            if entry.student_id in seen:
                raise SubmissionRejected(f'Student {entry.student_id} appears more than once.')
            seen.add(entry.student_id)
            if entry.status not in AttendanceStatus.values:
                raise SubmissionRejected(f'Invalid attendance status {entry.status!r}.')
