from django.db import models
from django.utils.translation import gettext_lazy as _


class AttendancePeriod(models.TextChoices):
    """Daily capture windows, declared in the order they must be taken."""
    MORNING = 'Morning', _('Morning')
    AFTERNOON = 'Afternoon', _('Afternoon')

    @classmethod
    def ordered(cls):
        return [cls.MORNING, cls.AFTERNOON]

    @property
    def previous(self):
        ordered = self.ordered()
        index = ordered.index(self)
        return ordered[index - 1] if index > 0 else None


class AttendanceStatus(models.TextChoices):
    PRESENT = 'Present', _('Present')
    ABSENT = 'Absent', _('Absent')
    LATE = 'Late', _('Late')
    EXCUSED = 'Excused', _('Excused')
