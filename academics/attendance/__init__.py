from .exceptions import (  # noqa: F401
    AlreadyComplete, AttendanceError, NoClassAssigned, PeriodAlreadyRecorded,
    PeriodOutOfOrder, RosterEmpty, SubmissionInProgress, SubmissionRejected,
    TransportFailure, ValidationGuard, WorkflowNotReady,
)
from .status import AttendanceDayStatus, AttendanceStatusResolver, DayState, project_day_status  # noqa: F401
from .stores import AttendanceEntry, AttendanceStore, DatabaseAttendanceStore  # noqa: F401
from .workflow import AttendanceSubmissionWorkflow, SubmissionReceipt, WorkflowState  # noqa: F401
