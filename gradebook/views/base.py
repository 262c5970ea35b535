import logging

from django.core.exceptions import ValidationError
from django.shortcuts import get_object_or_404

from academics.views.base import (  # noqa: F401
    admin_required,
    is_school_admin,
    is_teacher_or_admin,
    json_body,
    json_error,
    parse_optional_int,
    teacher_or_admin_required,
)
from core.models import Term

from ..grading import GradeTableError
from ..models import GradingSystem

logger = logging.getLogger(__name__)


class TermNotSet(Exception):
    pass


def resolve_term(request, term_id=None):
    """
    Term from ``term_id`` (argument or ?term_id=), falling back to the
    acting context's current term.

    Raises:
        TermNotSet: no term given and no current term configured
        ValueError: term_id is not an integer
    """
    if term_id is None:
        term_id = parse_optional_int(request.GET.get('term_id'), 'term_id')
    if term_id is None:
        term_id = request.acting.term_id
    if term_id is None:
        raise TermNotSet('No current term is set. Pass term_id or configure a current term.')
    return get_object_or_404(Term.objects.select_related('academic_session'), pk=term_id)


def resolve_grade_table(request):
    """
    GradeTable from ?grading_system=<uuid>, else the default system.

    Raises:
        GradeTableError: the stored scales do not form a valid table
    """
    system_id = request.GET.get('grading_system')
    if system_id:
        try:
            system = GradingSystem.objects.get(pk=system_id, is_active=True)
        except (GradingSystem.DoesNotExist, ValidationError, ValueError):
            raise GradeTableError(f'Unknown grading system {system_id!r}.')
        return system.as_table()
    return GradingSystem.get_default_table()
