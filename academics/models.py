from django.db import models
from django.utils.translation import gettext_lazy as _
from teachers.models import Teacher

from .choices import AttendancePeriod, AttendanceStatus


class Class(models.Model):
    """
    Represents a class/classroom grouping of students.

    Name format: JSS1 A, JSS3 C, SSS2 B
    """
    class LevelType(models.TextChoices):
        JUNIOR = 'junior', _('Junior Secondary')
        SENIOR = 'senior', _('Senior Secondary')

    level_type = models.CharField(
        max_length=10,
        choices=LevelType.choices,
        default=LevelType.JUNIOR
    )
    level_number = models.PositiveSmallIntegerField(
        help_text="1, 2, 3"
    )
    arm = models.CharField(
        max_length=5,
        help_text="A, B, C, D"
    )

    # Auto-generated class name
    name = models.CharField(
        max_length=20,
        editable=False,
        help_text="Auto-generated: JSS1 A, SSS2 B"
    )

    capacity = models.PositiveIntegerField(
        default=40,
        help_text="Maximum number of students"
    )

    form_teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='form_classes',
        help_text="The form teacher responsible for this class's register."
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['level_type', 'level_number', 'arm']
        verbose_name = "Class"
        verbose_name_plural = "Classes"
        unique_together = ['level_type', 'level_number', 'arm']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.name = self.generate_name()
        super().save(*args, **kwargs)

    def generate_name(self):
        """Generate class name based on level type."""
        prefix = 'JSS' if self.level_type == self.LevelType.JUNIOR else 'SSS'
        return f"{prefix}{self.level_number} {self.arm}"


class Subject(models.Model):
    """
    Represents a subject taught at the school.
    """
    name = models.CharField(
        max_length=100,
        help_text="e.g., Mathematics, English Language, Basic Science"
    )
    code = models.CharField(
        max_length=20,
        unique=True,
        help_text="e.g., MTH, ENG"
    )
    is_core = models.BooleanField(
        default=True,
        help_text="Core subjects are mandatory"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_core', 'name']
        verbose_name = "Subject"
        verbose_name_plural = "Subjects"

    def __str__(self):
        return self.name


class ClassSubject(models.Model):
    """
    Links a Class to a Subject and assigns the subject teacher.
    Example: 'Mr. Okafor' teaches 'Mathematics' to 'JSS2 B'.
    """
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='subjects'
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='class_allocations'
    )
    teacher = models.ForeignKey(
        Teacher,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subject_assignments'
    )

    class Meta:
        unique_together = ['class_assigned', 'subject']
        verbose_name = "Subject Allocation"
        verbose_name_plural = "Subject Allocations"

    def __str__(self):
        return f"{self.subject.name} - {self.class_assigned.name}"


class AttendanceRecord(models.Model):
    """
    One student's status for one period of one day.

    Rows are only ever created by submitting a whole period for a class, and
    the unique constraint guarantees a period cannot be entered twice.
    """
    Period = AttendancePeriod
    Status = AttendanceStatus

    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )
    date = models.DateField()
    period = models.CharField(max_length=10, choices=AttendancePeriod.choices)
    status = models.CharField(max_length=10, choices=AttendanceStatus.choices, default=AttendanceStatus.PRESENT)
    academic_session = models.ForeignKey(
        'core.AcademicSession',
        on_delete=models.PROTECT,
        related_name='attendance_records'
    )
    term = models.ForeignKey(
        'core.Term',
        on_delete=models.PROTECT,
        related_name='attendance_records'
    )
    remarks = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-date', 'period', 'student']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'class_assigned', 'date', 'period'],
                name='unique_attendance_per_period',
            ),
        ]
        indexes = [
            models.Index(fields=['class_assigned', 'date', 'period'], name='academics_a_class_a_8c2f4e_idx'),
            models.Index(fields=['student', 'term'], name='academics_a_student_3b7d91_idx'),
        ]

    def __str__(self):
        return f"{self.student} - {self.date} {self.period}: {self.status}"
