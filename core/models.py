from django.conf import settings
from django.db import models
from django.utils import timezone
from .choices import Gender


class Person(models.Model):
    """
    Abstract Person model shared by staff records.
    """
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    middle_name = models.CharField(max_length=50, blank=True, default='')

    gender = models.CharField(
        max_length=1,
        choices=Gender.choices,
        default=Gender.MALE
    )
    date_of_birth = models.DateField(null=True, blank=True)

    # Contact
    phone_number = models.CharField(max_length=17, blank=True)
    email = models.EmailField(blank=True, null=True)

    class Meta:
        abstract = True

    def __str__(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(filter(None, parts))


class AcademicSession(models.Model):
    """
    Represents an academic session (e.g., 2024/2025).
    Attendance records and scores are stamped with the session they belong to.
    """
    name = models.CharField(
        max_length=50,
        help_text="e.g., 2024/2025"
    )
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(
        default=False,
        help_text="Only one academic session can be current at a time"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-start_date']
        verbose_name = "Academic Session"
        verbose_name_plural = "Academic Sessions"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Ensure only one academic session is current
        if self.is_current:
            AcademicSession.objects.filter(is_current=True).exclude(pk=self.pk).update(is_current=False)
        super().save(*args, **kwargs)

    @classmethod
    def get_current(cls):
        """Get the current academic session."""
        return cls.objects.filter(is_current=True).first()


class Term(models.Model):
    """
    Represents a term within an academic session.
    """
    TERM_NUMBER_CHOICES = [
        (1, 'First Term'),
        (2, 'Second Term'),
        (3, 'Third Term'),
    ]

    academic_session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        related_name='terms'
    )
    name = models.CharField(
        max_length=50,
        help_text="e.g., First Term"
    )
    term_number = models.PositiveSmallIntegerField(
        choices=TERM_NUMBER_CHOICES,
        default=1,
    )
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(
        default=False,
        help_text="Only one term can be current at a time"
    )

    # Grade locking
    grades_locked = models.BooleanField(
        default=False,
        help_text="When locked, scores cannot be modified"
    )
    grades_locked_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When grades were locked"
    )
    grades_locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='locked_terms',
        help_text="User who locked the grades"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['academic_session', 'term_number']
        verbose_name = "Term"
        verbose_name_plural = "Terms"
        unique_together = ['academic_session', 'term_number']

    def __str__(self):
        return f"{self.name} - {self.academic_session.name}"

    def save(self, *args, **kwargs):
        # Ensure only one term is current
        if self.is_current:
            Term.objects.filter(is_current=True).exclude(pk=self.pk).update(is_current=False)
        super().save(*args, **kwargs)

    @classmethod
    def get_current(cls):
        """Get the current term."""
        return cls.objects.filter(is_current=True).select_related('academic_session').first()

    def contains(self, day):
        return self.start_date <= day <= self.end_date

    def lock_grades(self, user):
        """Lock grades for this term."""
        self.grades_locked = True
        self.grades_locked_at = timezone.now()
        self.grades_locked_by = user
        self.save(update_fields=['grades_locked', 'grades_locked_at', 'grades_locked_by'])

    def unlock_grades(self):
        """Unlock grades for this term."""
        self.grades_locked = False
        self.grades_locked_at = None
        self.grades_locked_by = None
        self.save(update_fields=['grades_locked', 'grades_locked_at', 'grades_locked_by'])
