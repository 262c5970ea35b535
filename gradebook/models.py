import uuid
from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from decimal import Decimal
from academics.models import Class, Subject
from students.models import Student
from core.models import Term

from .grading import GradeTable, get_default_table


class GradingSystem(models.Model):
    """A named band table (e.g., A-F, Percentage, or a school's own scale)"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=100,
        unique=True,
        help_text='Name of the grading system (e.g., A-F, Percentage)'
    )
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    is_default = models.BooleanField(
        default=False,
        help_text='Used for summaries and rankings when no system is chosen'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'grading_system'
        ordering = ['name']
        verbose_name = 'Grading System'
        verbose_name_plural = 'Grading Systems'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Only one default system
        if self.is_default:
            GradingSystem.objects.filter(is_default=True).exclude(pk=self.pk).update(is_default=False)
        super().save(*args, **kwargs)

    def as_table(self):
        """
        Build a validated GradeTable from this system's scales.

        Raises:
            GradeTableError: the scales leave a gap, overlap or miss 0-100
        """
        scales = self.scales.order_by('-min_percentage')
        return GradeTable(
            [
                (scale.min_percentage, scale.max_percentage, scale.grade_label, scale.interpretation)
                for scale in scales
            ],
            name=self.name,
        )

    def get_grade_for_score(self, score):
        """Look up the grade for a given score."""
        if score is None:
            return None
        return self.as_table().grade_of(score)

    @classmethod
    def get_default_table(cls):
        """The default system's table, or the built-in table when none is set."""
        system = cls.objects.filter(is_default=True, is_active=True).first()
        if system is None:
            return get_default_table()
        return system.as_table()


class GradeScale(models.Model):
    """One band of a grading system (e.g., A = 70-100, Excellent)"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    grading_system = models.ForeignKey(
        GradingSystem,
        on_delete=models.CASCADE,
        related_name='scales',
        db_index=True
    )
    grade_label = models.CharField(
        max_length=10,
        help_text='Grade label (e.g., A, B, C or A+, B+)'
    )
    min_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Minimum percentage for this grade (inclusive)'
    )
    max_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Maximum percentage for this grade (inclusive)'
    )
    interpretation = models.CharField(
        max_length=50,
        blank=True,
        help_text='Grade interpretation (e.g., Excellent, Very Good, Pass, Fail)'
    )
    order = models.IntegerField(
        default=0,
        help_text='Display order (lower numbers appear first)'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.grade_label} ({self.min_percentage}-{self.max_percentage}%) - {self.interpretation}"

    def clean(self):
        """Validate that min <= max and ranges don't overlap"""
        if self.min_percentage > self.max_percentage:
            raise ValidationError('Minimum percentage cannot be greater than maximum percentage')

        overlapping = GradeScale.objects.filter(
            grading_system=self.grading_system
        ).exclude(pk=self.pk).filter(
            models.Q(
                min_percentage__lte=self.max_percentage,
                max_percentage__gte=self.min_percentage
            )
        )

        if overlapping.exists():
            raise ValidationError(
                f'Grade range overlaps with existing grade: {overlapping.first()}'
            )

    class Meta:
        db_table = 'grade_scale'
        ordering = ['grading_system', 'order', '-min_percentage']
        verbose_name = 'Grade Scale'
        verbose_name_plural = 'Grade Scales'
        unique_together = ['grading_system', 'grade_label']
        indexes = [
            models.Index(fields=['grading_system', 'min_percentage', 'max_percentage'], name='grade_scale_grading_4a1e7b_idx'),
        ]


class Assessment(models.Model):
    """
    A score component every subject is assessed on in a term.
    e.g., 1st Test (10), 2nd Test (10), 3rd Test (10), Exam (70)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=50, unique=True)
    short_name = models.CharField(max_length=10, blank=True)
    max_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text='Maximum marks for this component'
    )
    order = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'assessment'
        ordering = ['order', 'name']
        verbose_name = 'Assessment'
        verbose_name_plural = 'Assessments'

    def __str__(self):
        return f"{self.name} ({self.max_score})"


class Score(models.Model):
    """A student's mark for one assessment of one subject in one term"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='scores',
        db_index=True
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='scores'
    )
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='scores'
    )
    term = models.ForeignKey(
        Term,
        on_delete=models.CASCADE,
        related_name='scores'
    )
    assessment = models.ForeignKey(
        Assessment,
        on_delete=models.PROTECT,
        related_name='scores'
    )
    score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text='Marks obtained'
    )
    entered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='entered_scores'
    )
    is_approved = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_scores'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.subject.name} {self.assessment.name}: {self.score}"

    def clean(self):
        """Validate that the score doesn't exceed the component's maximum"""
        if self.score is not None and self.score > self.assessment.max_score:
            raise ValidationError(
                f'Score ({self.score}) cannot exceed the maximum for {self.assessment.name} '
                f'({self.assessment.max_score})'
            )

    class Meta:
        db_table = 'score'
        ordering = ['student', 'subject', 'assessment__order']
        verbose_name = 'Score'
        verbose_name_plural = 'Scores'
        unique_together = ['student', 'subject', 'term', 'assessment']
        indexes = [
            models.Index(fields=['class_assigned', 'term'], name='score_class_a_9d3c52_idx'),
            models.Index(fields=['student', 'term'], name='score_student_6f2b18_idx'),
        ]
