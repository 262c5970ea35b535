"""
Score entry, approval and term grade locking.

Every function takes the acting context explicitly; nothing reads the
current user from a global.
"""
import logging
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from academics.models import ClassSubject
from students.models import Student

from .grading import to_decimal
from .models import Score

logger = logging.getLogger(__name__)


class ScoreEntryError(Exception):
    code = 'score_entry_error'

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class GradesLocked(ScoreEntryError):
    code = 'grades_locked'


class InvalidScore(ScoreEntryError):
    code = 'invalid_score'


def _allocation(class_obj, subject):
    try:
        return ClassSubject.objects.select_related('teacher').get(class_assigned=class_obj, subject=subject)
    except ClassSubject.DoesNotExist:
        raise ScoreEntryError(f'{subject} is not offered in {class_obj}.')


def can_enter_scores(context, allocation):
    """Admins, and the teacher allocated to the subject in the class."""
    if context.is_admin:
        return True
    teacher = context.effective_teacher
    return teacher is not None and allocation.teacher_id == teacher.pk


def record_scores(term, class_obj, subject, assessment, entries, context):
    """
    Create or update one assessment's scores for a class and subject.

    Args:
        entries: Iterable of {"student_id": int, "score": number or None};
            a None score clears the student's mark
        context: ActingContext of the user entering scores

    Returns:
        dict with ``created``, ``updated`` and ``cleared`` counts

    Raises:
        GradesLocked: the term's grades are locked
        InvalidScore: a score is outside 0..max_score, or a student is not
            an active member of the class
        PermissionDenied: the user may not enter scores for this subject
    """
    if term.grades_locked:
        raise GradesLocked(f'Grades for {term} are locked. Scores cannot be changed.')

    allocation = _allocation(class_obj, subject)
    if not can_enter_scores(context, allocation):
        raise PermissionDenied('You are not assigned to this subject for this class.')

    roster_ids = set(
        Student.objects.filter(
            current_class=class_obj, status=Student.Status.ACTIVE
        ).values_list('pk', flat=True)
    )

    cleaned = {}
    for entry in entries:
        try:
            student_id = int(entry['student_id'])
        except (KeyError, TypeError, ValueError):
            raise InvalidScore(f'Invalid score entry {entry!r}.')
        if student_id not in roster_ids:
            raise InvalidScore(f'Student {student_id} is not in {class_obj}.')

        value = entry.get('score')
        if value in (None, ''):
            cleaned[student_id] = None
            continue
        try:
            value = to_decimal(value)
        except TypeError as e:
            raise InvalidScore(str(e))
        if value.is_nan() or value < 0 or value > assessment.max_score:
            raise InvalidScore(
                f'Score {value} for student {student_id} must be between 0 and {assessment.max_score}.'
            )
        cleaned[student_id] = value.quantize(Decimal('0.01'))

    counts = {'created': 0, 'updated': 0, 'cleared': 0}
    with transaction.atomic():
        existing = {
            score.student_id: score
            for score in Score.objects.select_for_update().filter(
                term=term, subject=subject, assessment=assessment, student_id__in=list(cleaned)
            )
        }

        for student_id, value in cleaned.items():
            score = existing.get(student_id)
            if value is None:
                if score is not None:
                    score.delete()
                    counts['cleared'] += 1
                continue

            if score is None:
                Score.objects.create(
                    student_id=student_id,
                    subject=subject,
                    class_assigned=class_obj,
                    term=term,
                    assessment=assessment,
                    score=value,
                    entered_by=context.user,
                )
                counts['created'] += 1
            elif score.score != value or score.class_assigned_id != class_obj.pk:
                score.score = value
                score.class_assigned = class_obj
                score.entered_by = context.user
                score.is_approved = False
                score.approved_by = None
                score.approved_at = None
                score.save()
                counts['updated'] += 1

    logger.info(
        f"{context.user} recorded {assessment.name} scores for {subject} in {class_obj} ({term}): "
        f"{counts['created']} created, {counts['updated']} updated, {counts['cleared']} cleared"
    )
    return counts


def approve_scores(term, class_obj, subject, context):
    """Mark every score of a class/subject in a term as approved. Admin only."""
    if not context.is_admin:
        raise PermissionDenied('Only administrators can approve scores.')

    _allocation(class_obj, subject)
    approved = Score.objects.filter(
        term=term, class_assigned=class_obj, subject=subject, is_approved=False
    ).update(is_approved=True, approved_by=context.user, approved_at=timezone.now())

    logger.info(f"{context.user} approved {approved} {subject} scores for {class_obj} ({term})")
    return approved


def set_grades_locked(term, locked, context):
    """Lock or unlock score entry for a term. Admin only."""
    if not context.is_admin:
        raise PermissionDenied('Only administrators can lock or unlock grades.')

    if locked:
        term.lock_grades(context.user)
    else:
        term.unlock_grades()
    logger.info(f"Grades for {term} {'locked' if locked else 'unlocked'} by {context.user}")
    return term
