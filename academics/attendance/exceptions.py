"""
Attendance error taxonomy.

ValidationGuard errors are detected before any collaborator call and never
reach the network. TransportFailure errors come back from a collaborator and
are retryable, except access denials and the two server-side period
rejections, which change what the next submission will target. Every error
carries a stable ``code`` and a user-facing ``message``.
"""


class AttendanceError(Exception):
    code = 'attendance_error'
    default_message = 'Attendance could not be processed.'
    retryable = False

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.code, 'message': self.message, 'retryable': self.retryable}


# ---------------------------------------------------------------------------
# Client-detected preconditions
# ---------------------------------------------------------------------------

class ValidationGuard(AttendanceError):
    code = 'validation_guard'


class NoClassAssigned(ValidationGuard):
    code = 'no_class_assigned'
    default_message = 'You have not been assigned a class. Ask an administrator to assign one.'


class AlreadyComplete(ValidationGuard):
    code = 'already_complete'
    default_message = 'Attendance for this day is complete. Morning and afternoon have both been taken.'


class RosterEmpty(ValidationGuard):
    code = 'roster_empty'
    default_message = 'There are no active students in this class.'


class SubmissionInProgress(ValidationGuard):
    code = 'submission_in_progress'
    default_message = 'Attendance is already being submitted. Please wait.'


class WorkflowNotReady(ValidationGuard):
    code = 'not_ready'
    default_message = 'Load the class roster before submitting attendance.'


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------

class TransportFailure(AttendanceError):
    code = 'transport_failure'
    default_message = 'Could not reach the attendance service. Please try again.'
    retryable = True


class AccessDenied(TransportFailure):
    code = 'forbidden'
    default_message = 'You are not allowed to take attendance for this class. Sign in again or ask an administrator.'
    retryable = False


class SubmissionRejected(TransportFailure):
    code = 'submission_rejected'
    default_message = 'The attendance submission was rejected. Please try again.'


class PeriodAlreadyRecorded(SubmissionRejected):
    code = 'period_already_recorded'
    default_message = 'This period has already been recorded for the class.'
    retryable = False


class PeriodOutOfOrder(SubmissionRejected):
    code = 'period_out_of_order'
    default_message = 'Morning attendance must be taken before afternoon attendance.'
    retryable = False
