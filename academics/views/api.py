"""API endpoints for academics app."""
from django.shortcuts import get_object_or_404
from django.http import JsonResponse
from django.middleware.csrf import get_token
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET

from ..models import Class, ClassSubject
from .base import json_error, teacher_or_admin_required


@require_GET
@ensure_csrf_cookie
def csrf_token(request):
    """Issue the CSRF cookie and token that API clients send back on POST."""
    return JsonResponse({'csrf_token': get_token(request)})


@require_GET
@teacher_or_admin_required
def api_class_subjects(request, pk):
    """Subjects offered by a class.

    For admins: every subject allocated to the class.
    For teachers: only the subjects they are allocated to teach there.
    """
    class_obj = get_object_or_404(Class, pk=pk)
    acting = request.acting

    class_subjects = ClassSubject.objects.filter(
        class_assigned=class_obj
    ).select_related('subject', 'teacher').order_by('subject__name')

    teacher = acting.effective_teacher
    if not acting.is_admin or acting.is_impersonating:
        if teacher is None:
            return json_error('forbidden', "You don't have permission to access this class.", status=403)
        class_subjects = class_subjects.filter(teacher=teacher)

    subjects = [
        {
            'id': cs.subject.pk,
            'name': cs.subject.name,
            'code': cs.subject.code,
            'teacher_id': cs.teacher_id,
            'is_assigned': teacher is not None and cs.teacher_id == teacher.pk,
        }
        for cs in class_subjects
    ]

    return JsonResponse({'class_id': class_obj.pk, 'subjects': subjects})
