"""Result summaries, class and subject rankings, and the broadsheet export."""
import logging

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET

from academics.models import Class, Subject
from students.models import Student
from students.roster import DatabaseRosterSource

from ..aggregation import ResultAggregator, class_statistics, subject_statistics
from ..exports import build_broadsheet, workbook_response
from ..grading import GradeTableError
from ..models import GradingSystem
from ..stores import DatabaseScoreSource
from .base import (
    TermNotSet, json_error, parse_optional_int, resolve_grade_table, resolve_term,
    teacher_or_admin_required,
)

logger = logging.getLogger(__name__)


def _shared_ties(request):
    value = request.GET.get('ties')
    if value is None:
        return None
    return value.lower() == 'shared'


def _aggregator(request, term):
    return ResultAggregator(
        DatabaseScoreSource(term),
        DatabaseRosterSource(),
        table=resolve_grade_table(request),
    )


def _forbidden():
    return json_error('forbidden', "You don't have permission to view results for this class.", status=403)


@require_GET
@teacher_or_admin_required
def student_summary(request, pk):
    """One student's subject totals, average, grade and class position."""
    student = get_object_or_404(Student, pk=pk)

    try:
        class_id = parse_optional_int(request.GET.get('class_id'), 'class_id') or student.current_class_id
        term = resolve_term(request)
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))
    if class_id is None:
        return json_error('no_class', f'{student.full_name} is not in a class.')

    class_obj = get_object_or_404(Class, pk=class_id)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        summary = _aggregator(request, term).summarize(
            student.pk, class_obj.pk, shared_ties=_shared_ties(request), context=request.acting
        )
    except GradeTableError as e:
        return json_error('invalid_grading_system', str(e), status=409)

    payload = summary.to_dict()
    if not payload['student_name']:
        payload['student_name'] = student.full_name
    payload.update({'class_id': class_obj.pk, 'term_id': term.pk})
    return JsonResponse(payload)


@require_GET
@teacher_or_admin_required
def class_ranking(request, pk):
    """Every student of a class, best first, with positions and class statistics."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        term = resolve_term(request)
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))

    try:
        ranked = _aggregator(request, term).rank(
            class_obj.pk, shared_ties=_shared_ties(request), context=request.acting
        )
    except GradeTableError as e:
        return json_error('invalid_grading_system', str(e), status=409)

    return JsonResponse({
        'class_id': class_obj.pk,
        'class_name': class_obj.name,
        'term_id': term.pk,
        'students': [summary.to_dict() for summary in ranked],
        'statistics': class_statistics(ranked).to_dict(),
    })


@require_GET
@teacher_or_admin_required
def subject_results(request, pk, subject_pk):
    """One subject's class results: students best first with positions, plus subject statistics."""
    class_obj = get_object_or_404(Class, pk=pk)
    subject = get_object_or_404(Subject, pk=subject_pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        term = resolve_term(request)
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))

    try:
        ranked = _aggregator(request, term).rank_subject(
            class_obj.pk, subject.pk, shared_ties=_shared_ties(request), context=request.acting
        )
    except GradeTableError as e:
        return json_error('invalid_grading_system', str(e), status=409)

    return JsonResponse({
        'class_id': class_obj.pk,
        'class_name': class_obj.name,
        'subject_id': subject.pk,
        'subject_name': subject.name,
        'term_id': term.pk,
        'students': [
            {
                'student_id': summary.student_id,
                'student_name': summary.student_name,
                'scores': summary.subjects[0].to_dict()['scores'] if summary.has_results else [],
                'total': str(summary.average),
                'grade': summary.grade,
                'remark': summary.remark,
                'position': summary.position,
                'position_display': summary.position_display,
            }
            for summary in ranked
        ],
        'statistics': subject_statistics(subject.pk, ranked).to_dict(),
    })


@require_GET
@teacher_or_admin_required
def class_broadsheet(request, pk):
    """Download the class broadsheet for a term as an Excel workbook."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        term = resolve_term(request)
        ranked = _aggregator(request, term).rank(
            class_obj.pk, shared_ties=_shared_ties(request), context=request.acting
        )
    except (ValueError, TermNotSet) as e:
        return json_error('invalid_request', str(e))
    except GradeTableError as e:
        return json_error('invalid_grading_system', str(e), status=409)

    admission_numbers = dict(
        Student.objects.filter(pk__in=[s.student_id for s in ranked]).values_list('pk', 'admission_number')
    )
    wb = build_broadsheet(class_obj.name, str(term), ranked, class_statistics(ranked), admission_numbers)

    logger.info(f"Broadsheet for {class_obj} ({term}) exported by {request.user}")
    filename = f"broadsheet_{class_obj.name.replace(' ', '_')}_{term.name.replace(' ', '_')}.xlsx"
    return workbook_response(wb, filename)


@require_GET
@teacher_or_admin_required
def grading_systems(request):
    """Active grading systems and their bands."""
    systems = []
    for system in GradingSystem.objects.filter(is_active=True).prefetch_related('scales'):
        try:
            bands = system.as_table().to_list()
            error = None
        except GradeTableError as e:
            bands = []
            error = str(e)
        systems.append({
            'id': str(system.pk),
            'name': system.name,
            'is_default': system.is_default,
            'bands': bands,
            'error': error,
        })
    return JsonResponse({'grading_systems': systems})
