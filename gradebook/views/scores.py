"""Score entry, score approval and term grade locking."""
import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from academics.models import Class, Subject
from core.models import Term

from ..models import Assessment, Score
from ..services import ScoreEntryError, GradesLocked, approve_scores, record_scores, set_grades_locked
from .base import (
    TermNotSet, admin_required, json_body, json_error, parse_optional_int, resolve_term,
    teacher_or_admin_required,
)

logger = logging.getLogger(__name__)


@require_POST
@teacher_or_admin_required
def score_entry(request):
    """
    Save one assessment's scores for a class and subject.

    Body:
        {"class_id": 1, "subject_id": 2, "assessment_id": "<uuid>", "term_id"?: 3,
         "scores": [{"student_id": 10, "score": 8.5}, ...]}
    """
    try:
        data = json_body(request)
        class_id = parse_optional_int(data.get('class_id'), 'class_id')
        subject_id = parse_optional_int(data.get('subject_id'), 'subject_id')
        if class_id is None or subject_id is None or not data.get('assessment_id'):
            raise ValueError('class_id, subject_id and assessment_id are required.')
        entries = data.get('scores')
        if not isinstance(entries, list):
            raise ValueError('scores must be a list.')
        term = resolve_term(request, parse_optional_int(data.get('term_id'), 'term_id'))
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))

    class_obj = get_object_or_404(Class, pk=class_id)
    subject = get_object_or_404(Subject, pk=subject_id)
    try:
        assessment = Assessment.objects.get(pk=data['assessment_id'], is_active=True)
    except (Assessment.DoesNotExist, ValidationError, ValueError):
        return json_error('not_found', 'Assessment not found.', status=404)

    try:
        counts = record_scores(term, class_obj, subject, assessment, entries, request.acting)
    except GradesLocked as e:
        return json_error(e.code, e.message, status=423)
    except ScoreEntryError as e:
        return json_error(e.code, e.message)
    except PermissionDenied as e:
        return json_error('forbidden', str(e), status=403)

    return JsonResponse({'term_id': term.pk, **counts})


@require_GET
@teacher_or_admin_required
def subject_scores(request, pk, subject_pk):
    """Scores already entered for a class and subject, grouped by student."""
    class_obj = get_object_or_404(Class, pk=pk)
    subject = get_object_or_404(Subject, pk=subject_pk)
    if not request.acting.can_view_class(class_obj):
        return json_error('forbidden', "You don't have permission to view this class.", status=403)

    try:
        term = resolve_term(request)
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))

    students = {}
    for score in Score.objects.filter(
        term=term, class_assigned=class_obj, subject=subject
    ).select_related('assessment'):
        students.setdefault(score.student_id, {})[str(score.assessment_id)] = str(score.score)

    return JsonResponse({
        'class_id': class_obj.pk,
        'subject_id': subject.pk,
        'term_id': term.pk,
        'grades_locked': term.grades_locked,
        'assessments': [
            {'id': str(a.pk), 'name': a.name, 'max_score': str(a.max_score)}
            for a in Assessment.objects.filter(is_active=True)
        ],
        'scores': {str(student_id): values for student_id, values in students.items()},
    })


@require_POST
@admin_required
def lock_term(request, pk):
    """Lock ({"locked": true}) or unlock score entry for a term."""
    term = get_object_or_404(Term, pk=pk)
    try:
        locked = json_body(request).get('locked', True)
    except ValueError as e:
        return json_error('invalid_request', str(e))
    if not isinstance(locked, bool):
        return json_error('invalid_request', 'locked must be true or false.')

    try:
        set_grades_locked(term, locked, request.acting)
    except PermissionDenied as e:
        return json_error('forbidden', str(e), status=403)

    return JsonResponse({
        'term_id': term.pk,
        'grades_locked': term.grades_locked,
        'grades_locked_at': term.grades_locked_at.isoformat() if term.grades_locked_at else None,
    })


@require_POST
@admin_required
def approve_subject(request, pk, subject_pk):
    """Approve every score of a class and subject for the term."""
    class_obj = get_object_or_404(Class, pk=pk)
    subject = get_object_or_404(Subject, pk=subject_pk)
    try:
        term = resolve_term(request)
        approved = approve_scores(term, class_obj, subject, request.acting)
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))
    except ScoreEntryError as e:
        return json_error(e.code, e.message)
    except PermissionDenied as e:
        return json_error('forbidden', str(e), status=403)

    return JsonResponse({'term_id': term.pk, 'approved': approved})
