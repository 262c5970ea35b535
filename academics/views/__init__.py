"""
Academics views package.

- base: JSON responses, role decorators and request parsing helpers
- attendance: roster, day status, period submission and summaries
- api: CSRF token for API clients and class lookups used by score entry
"""
from .base import (
    is_school_admin,
    admin_required,
    is_teacher_or_admin,
    teacher_or_admin_required,
)

from .attendance import (
    class_roster,
    attendance_status,
    submit_attendance,
    class_attendance,
    class_attendance_summary,
    student_attendance_summary,
)

from .api import api_class_subjects, csrf_token
