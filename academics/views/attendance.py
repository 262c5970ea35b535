"""Attendance JSON endpoints: roster, day status, period submission and summaries."""
import logging
from collections import defaultdict

from django.shortcuts import get_object_or_404
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from students.models import Student
from students.roster import DatabaseRosterSource

from ..attendance.exceptions import (
    AlreadyComplete, PeriodAlreadyRecorded, PeriodOutOfOrder, SubmissionRejected, TransportFailure,
)
from ..attendance.status import AttendanceStatusResolver
from ..attendance.stores import AttendanceEntry, DatabaseAttendanceStore
from ..attendance.summary import summarize_records, summarize_statuses
from ..choices import AttendancePeriod
from ..models import AttendanceRecord, Class
from .base import (
    json_body, json_error, parse_date, parse_optional_int, teacher_or_admin_required,
)

logger = logging.getLogger(__name__)


def _class_payload(class_obj):
    return {
        'id': class_obj.pk,
        'name': class_obj.name,
        'form_teacher_id': class_obj.form_teacher_id,
    }


def _forbidden():
    return json_error('forbidden', "You don't have permission to access this class.", status=403)


@require_GET
@teacher_or_admin_required
def class_roster(request, pk):
    """Active students of a class in roster order."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        roster = DatabaseRosterSource().get_roster(class_obj.pk, context=request.acting)
    except TransportFailure as e:
        return json_error(e.code, e.message, status=503)

    return JsonResponse({
        'class': _class_payload(class_obj),
        'students': [entry.to_dict() for entry in roster],
    })


@require_GET
@teacher_or_admin_required
def attendance_status(request, pk):
    """Which periods are recorded for the class on ?date= and what comes next."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        day = parse_date(request.GET.get('date'))
    except ValueError as e:
        return json_error('invalid_date', str(e))

    status = AttendanceStatusResolver(DatabaseAttendanceStore()).resolve(
        class_obj.pk, day, context=request.acting
    )
    if not status.known:
        return json_error('status_unavailable', status.error or 'Attendance status is unavailable.', status=503)

    payload = status.to_dict()
    payload.update({
        'class_id': class_obj.pk,
        'date': day.isoformat(),
        'can_take_attendance': request.acting.can_take_attendance(class_obj),
    })
    return JsonResponse(payload)


@require_POST
@teacher_or_admin_required
def submit_attendance(request, pk):
    """
    Record one period for the whole class.

    Body:
        {"date": "YYYY-MM-DD", "period": "Morning"?, "session_id"?, "term_id"?,
         "attendances": [{"student_id": 1, "status": "Present"}, ...]}

    When ``period`` is omitted the next period for the day is used.
    """
    class_obj = get_object_or_404(Class, pk=pk)
    acting = request.acting
    if not acting.can_take_attendance(class_obj):
        return json_error('forbidden', 'Only the form teacher or an administrator can take attendance.', status=403)

    try:
        data = json_body(request)
        day = parse_date(data.get('date'))
        session_id = parse_optional_int(data.get('session_id'), 'session_id') or acting.session_id
        term_id = parse_optional_int(data.get('term_id'), 'term_id') or acting.term_id
        raw_entries = data.get('attendances')
        if not isinstance(raw_entries, list):
            raise ValueError('attendances must be a list.')
        entries = [
            AttendanceEntry(student_id=int(item['student_id']), status=item['status'])
            for item in raw_entries
        ]
    except (KeyError, TypeError) as e:
        return json_error('invalid_request', f'Malformed attendance entry: {e}')
    except ValueError as e:
        return json_error('invalid_request', str(e))

    store = DatabaseAttendanceStore()
    period = data.get('period')
    if period:
        try:
            period = AttendancePeriod(period)
        except ValueError:
            return json_error('invalid_period', f'Unknown period {period!r}.')
    else:
        status = AttendanceStatusResolver(store).resolve(class_obj.pk, day, context=acting)
        if not status.known:
            return json_error('status_unavailable', status.error, status=503)
        if status.is_complete:
            error = AlreadyComplete()
            return json_error(error.code, error.message, status=409)
        period = status.next_period

    try:
        recorded = store.submit_period(class_obj.pk, day, period, session_id, term_id, entries, context=acting)
    except (PeriodAlreadyRecorded, PeriodOutOfOrder) as e:
        return json_error(e.code, e.message, status=409)
    except SubmissionRejected as e:
        return json_error(e.code, e.message, status=400)
    except TransportFailure as e:
        return json_error(e.code, e.message, status=503)

    status = AttendanceStatusResolver(store).resolve(class_obj.pk, day, context=acting)
    return JsonResponse({
        'recorded': recorded,
        'period': period.value,
        'date': day.isoformat(),
        'status': status.to_dict(),
    }, status=201)


@require_GET
@teacher_or_admin_required
def class_attendance(request, pk):
    """Records taken for a class on ?date=, grouped by period."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        day = parse_date(request.GET.get('date'))
    except ValueError as e:
        return json_error('invalid_date', str(e))

    records = (
        AttendanceRecord.objects
        .filter(class_assigned=class_obj, date=day)
        .select_related('student')
        .order_by('student__last_name', 'student__first_name', 'student__admission_number')
    )

    periods = defaultdict(list)
    for record in records:
        periods[record.period].append({
            'student_id': record.student_id,
            'student_name': record.student.full_name,
            'admission_no': record.student.admission_number,
            'status': record.status,
            'remarks': record.remarks,
        })

    return JsonResponse({
        'class': _class_payload(class_obj),
        'date': day.isoformat(),
        'periods': {
            period.value: {
                'records': periods.get(period.value, []),
                'summary': summarize_statuses(r['status'] for r in periods.get(period.value, [])),
            }
            for period in AttendancePeriod.ordered()
        },
    })


def _record_filters(request):
    """
    Queryset filters from ?term_id=, ?start_date= and ?end_date=.

    Without any of them the acting context's current term is used. A date
    range on its own is not narrowed to the current term.

    Raises:
        ValueError: a malformed id or date, or an inverted range
    """
    term_id = parse_optional_int(request.GET.get('term_id'), 'term_id')
    start = request.GET.get('start_date')
    end = request.GET.get('end_date')
    start = parse_date(start, default_today=False) if start else None
    end = parse_date(end, default_today=False) if end else None
    if start and end and start > end:
        raise ValueError('start_date must be on or before end_date.')
    if term_id is None and start is None and end is None:
        term_id = request.acting.term_id

    filters = {}
    if term_id is not None:
        filters['term_id'] = term_id
    if start is not None:
        filters['date__gte'] = start
    if end is not None:
        filters['date__lte'] = end
    scope = {
        'term_id': term_id,
        'start_date': start.isoformat() if start else None,
        'end_date': end.isoformat() if end else None,
    }
    return filters, scope


@require_GET
@teacher_or_admin_required
def class_attendance_summary(request, pk):
    """Per-student and overall attendance rates for a class, by term or date range."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not request.acting.can_view_class(class_obj):
        return _forbidden()

    try:
        filters, scope = _record_filters(request)
    except ValueError as e:
        return json_error('invalid_request', str(e))

    records = AttendanceRecord.objects.filter(class_assigned=class_obj, **filters)

    per_student = defaultdict(list)
    for student_id, status in records.values_list('student_id', 'status'):
        per_student[student_id].append(status)

    students = Student.objects.filter(
        current_class=class_obj, status=Student.Status.ACTIVE
    ).order_by('last_name', 'first_name', 'admission_number', 'pk')

    rows = []
    for student in students:
        summary = summarize_statuses(per_student.get(student.pk, []))
        summary.update({'student_id': student.pk, 'student_name': student.full_name})
        rows.append(summary)

    days_recorded = records.order_by().values('date').distinct().count()

    return JsonResponse({
        'class': _class_payload(class_obj),
        **scope,
        'days_recorded': days_recorded,
        'overall': summarize_records(records),
        'students': rows,
    })


@require_GET
@teacher_or_admin_required
def student_attendance_summary(request, pk):
    """Attendance counts and rate for one student, optionally for one term or date range."""
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=pk)
    acting = request.acting
    if not acting.is_admin and not (student.current_class and acting.can_view_class(student.current_class)):
        return json_error('forbidden', "You don't have permission to view this student.", status=403)

    try:
        filters, scope = _record_filters(request)
    except ValueError as e:
        return json_error('invalid_request', str(e))

    records = AttendanceRecord.objects.filter(student=student, **filters)

    summary = summarize_records(records)
    summary.update({
        'student_id': student.pk,
        'student_name': student.full_name,
        **scope,
    })
    return JsonResponse(summary)
