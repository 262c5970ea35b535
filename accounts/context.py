"""
Explicit acting-user context.

Attendance and result operations never look up the current user or an
impersonation flag globally. Views build an ``ActingContext`` once per request
and pass it into every workflow and collaborator call. An admin "acting as" a
teacher is just a context whose ``acting_as`` is set.
"""
from dataclasses import dataclass
from typing import Any, Optional

from django.core.exceptions import PermissionDenied

ACTING_AS_HEADER = 'X-Acting-As'
ACTING_AS_PARAM = 'act_as'


@dataclass(frozen=True)
class ActingContext:
    user: Any
    teacher: Any = None
    acting_as: Any = None
    session_id: Optional[int] = None
    term_id: Optional[int] = None
    form_class_id: Optional[int] = None

    @property
    def is_admin(self):
        return bool(self.user is not None and getattr(self.user, 'is_admin', False))

    @property
    def is_impersonating(self):
        return self.acting_as is not None

    @property
    def effective_teacher(self):
        """The teacher whose assignments apply: the impersonated one if any."""
        return self.acting_as if self.acting_as is not None else self.teacher

    @property
    def acting_as_id(self):
        return self.acting_as.pk if self.acting_as is not None else None

    @property
    def class_id(self):
        """Form class of the effective teacher, or None when unassigned."""
        if self.form_class_id is not None:
            return self.form_class_id
        teacher = self.effective_teacher
        if teacher is None:
            return None
        form_class = teacher.form_classes.filter(is_active=True).order_by('pk').first()
        return form_class.pk if form_class else None

    def to_headers(self):
        """Request headers that carry this context to the REST API."""
        if self.acting_as_id is None:
            return {}
        return {ACTING_AS_HEADER: str(self.acting_as_id)}

    def can_take_attendance(self, class_obj):
        """Admins, and the form teacher of the class, may submit attendance."""
        if self.is_admin:
            return True
        teacher = self.effective_teacher
        return teacher is not None and class_obj.form_teacher_id == teacher.pk

    def can_view_class(self, class_obj):
        """Admins, the form teacher and any subject teacher of the class."""
        if self.can_take_attendance(class_obj):
            return True
        teacher = self.effective_teacher
        if teacher is None:
            return False
        return class_obj.subjects.filter(teacher=teacher).exists()

    @classmethod
    def for_user(cls, user, act_as=None, term=None):
        """
        Build the context for ``user``.

        Args:
            user: The authenticated user
            act_as: Optional Teacher pk to impersonate (admins only)
            term: Optional Term; defaults to the current term

        Raises:
            PermissionDenied: a non-admin tried to impersonate, or the
                impersonated teacher does not exist
        """
        from core.models import AcademicSession, Term
        from teachers.models import Teacher

        teacher = getattr(user, 'teacher_profile', None)

        acting_as = None
        if act_as not in (None, ''):
            if not getattr(user, 'is_admin', False):
                raise PermissionDenied('Only administrators can act as another user.')
            try:
                acting_as = Teacher.objects.get(pk=int(act_as))
            except (Teacher.DoesNotExist, TypeError, ValueError):
                raise PermissionDenied(f'Cannot act as unknown teacher {act_as!r}.')

        if term is None:
            term = Term.get_current()
        if term is not None:
            session_id = term.academic_session_id
            term_id = term.pk
        else:
            session = AcademicSession.get_current()
            session_id = session.pk if session else None
            term_id = None

        return cls(
            user=user,
            teacher=teacher,
            acting_as=acting_as,
            session_id=session_id,
            term_id=term_id,
        )

    @classmethod
    def from_request(cls, request, term=None):
        """Read impersonation from the X-Acting-As header or ?act_as= param."""
        act_as = request.headers.get(ACTING_AS_HEADER) or request.GET.get(ACTING_AS_PARAM)
        return cls.for_user(request.user, act_as=act_as, term=term)
