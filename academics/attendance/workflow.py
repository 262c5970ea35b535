"""
Attendance submission workflow.

One workflow instance drives the register for one class and one date:

    IDLE -> ROSTER_LOADING -> READY -> SUBMITTING -> SUCCEEDED | FAILED

After SUCCEEDED the day status is re-resolved and the workflow is READY again
for the next period (or closed for input once the day is complete). After
FAILED it goes back to the last stable state with ``last_error`` set.
"""
import enum
import logging
from dataclasses import dataclass

from django.utils import timezone

from .. import config
from ..choices import AttendanceStatus
from .exceptions import (
    AlreadyComplete, NoClassAssigned, RosterEmpty, SubmissionInProgress,
    TransportFailure, WorkflowNotReady,
)
from .status import AttendanceDayStatus, AttendanceStatusResolver
from .stores import AttendanceEntry, describe_actor

logger = logging.getLogger(__name__)


class WorkflowState(enum.Enum):
    IDLE = 'idle'
    ROSTER_LOADING = 'roster_loading'
    READY = 'ready'
    SUBMITTING = 'submitting'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


@dataclass(frozen=True)
class SubmissionReceipt:
    period: str
    recorded: int
    status: AttendanceDayStatus


class AttendanceSubmissionWorkflow:

    def __init__(self, context, roster_source, store, date=None, default_status=None):
        self.context = context
        self.roster_source = roster_source
        self.store = store
        self.resolver = AttendanceStatusResolver(store)
        self.date = date or timezone.localdate()
        self.default_status = AttendanceStatus(default_status or config.DEFAULT_STATUS)

        self.state = WorkflowState.IDLE
        self.class_id = None
        self.roster = []
        self.selections = {}
        self.status = AttendanceDayStatus.unknown()
        self.last_error = None
        self.last_outcome = None
        self._abandoned = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def can_edit(self):
        return self.state == WorkflowState.READY

    @property
    def can_submit(self):
        return (
            self.state == WorkflowState.READY
            and self.status.known
            and not self.status.is_complete
            and bool(self.roster)
        )

    @property
    def next_period(self):
        return self.status.next_period

    def counts(self):
        """Number of students currently selected per status."""
        totals = {status.value: 0 for status in AttendanceStatus}
        for status in self.selections.values():
            totals[status.value] += 1
        return totals

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load_roster(self, class_id=None):
        """
        Load the class roster and resolve the day status.

        Raises:
            NoClassAssigned: no class given and the acting user has no form class
            TransportFailure: the roster could not be loaded
        """
        if class_id is None and self.context is not None:
            class_id = self.context.class_id
        if class_id is None:
            raise NoClassAssigned()

        self._transition(WorkflowState.ROSTER_LOADING)
        self._abandoned = False
        try:
            roster = list(self.roster_source.get_roster(class_id, context=self.context))
        except TransportFailure as e:
            self.last_error = e
            self._transition(WorkflowState.IDLE)
            raise

        self.class_id = class_id
        self.roster = roster
        self._reset_selections()
        self.status = self.resolver.resolve(class_id, self.date, context=self.context)
        self._transition(WorkflowState.READY)
        return self.roster

    def set_student_status(self, student_id, status):
        """Change one student's selection. Ignored unless the workflow is READY."""
        if not self.can_edit:
            return
        if student_id not in self.selections:
            raise ValueError(f'Student {student_id} is not on the roster for this class.')
        self.selections[student_id] = AttendanceStatus(status)

    def mark_all(self, status):
        """Overwrite every student's selection. Ignored unless the workflow is READY."""
        if not self.can_edit:
            return
        status = AttendanceStatus(status)
        for student_id in self.selections:
            self.selections[student_id] = status

    def refresh_status(self):
        if self.class_id is None:
            return self.status
        self.status = self.resolver.resolve(self.class_id, self.date, context=self.context)
        return self.status

    def submit(self):
        """
        Submit the current selections for the next period.

        The status is re-resolved at call time so a day completed by another
        session in the meantime is caught before anything is sent.

        Returns:
            SubmissionReceipt, or None when the workflow was abandoned while
            the request was in flight.
        """
        if self.state == WorkflowState.SUBMITTING:
            raise SubmissionInProgress()
        if self.state != WorkflowState.READY:
            raise WorkflowNotReady()

        status = self.refresh_status()
        if not status.known:
            raise TransportFailure(status.error)
        if status.is_complete:
            raise AlreadyComplete()
        if not self.roster:
            raise RosterEmpty()

        period = status.next_period
        entries = [
            AttendanceEntry(student_id=entry.student_id, status=self.selections[entry.student_id])
            for entry in self.roster
        ]

        self._transition(WorkflowState.SUBMITTING)
        try:
            recorded = self.store.submit_period(
                self.class_id,
                self.date,
                period,
                self.context.session_id if self.context else None,
                self.context.term_id if self.context else None,
                entries,
                context=self.context,
            )
        except TransportFailure as e:
            if self._abandoned:
                logger.info(f"Discarding failed {period} submission for abandoned workflow: {e.message}")
                return None
            self.last_error = e
            self.last_outcome = WorkflowState.FAILED
            self._transition(WorkflowState.FAILED)
            self.refresh_status()
            self._transition(WorkflowState.READY)
            raise
        except Exception as e:
            logger.exception(f"Unexpected error submitting {period} attendance for class {self.class_id}")
            if not self._abandoned:
                self.last_error = e
                self.last_outcome = WorkflowState.FAILED
                self._transition(WorkflowState.FAILED)
                self.refresh_status()
                self._transition(WorkflowState.READY)
            raise

        if self._abandoned:
            logger.info(
                f"Workflow for class {self.class_id} was abandoned; "
                f"{period} submission completed on the server and the result was discarded"
            )
            return None

        self.last_error = None
        self.last_outcome = WorkflowState.SUCCEEDED
        self._transition(WorkflowState.SUCCEEDED)
        logger.info(
            f"{describe_actor(self.context)} submitted {period} attendance for class "
            f"{self.class_id} on {self.date} ({recorded} students)"
        )

        self.refresh_status()
        self._reset_selections()
        self._transition(WorkflowState.READY)
        return SubmissionReceipt(period=period, recorded=recorded, status=self.status)

    def abandon(self):
        """
        Leave the workflow (e.g. the user navigated away).

        An in-flight submission is not cancelled; its result is dropped when
        it arrives.
        """
        self._abandoned = True
        self._transition(WorkflowState.IDLE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_selections(self):
        self.selections = {entry.student_id: self.default_status for entry in self.roster}

    def _transition(self, new_state):
        if new_state != self.state:
            logger.debug(f"Attendance workflow {self.state.value} -> {new_state.value} (class {self.class_id})")
        self.state = new_state
