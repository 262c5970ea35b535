"""
Class roster collaborator.

``normalize_roster_entry`` is the single place where the different spellings
of student fields (model attributes, snake_case JSON, camelCase JSON) are
mapped to one canonical ``RosterEntry``. Everything downstream of a
``RosterSource`` only ever sees ``RosterEntry`` objects.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from django.db import DatabaseError

from academics.attendance.exceptions import TransportFailure

logger = logging.getLogger(__name__)

# canonical field -> accepted spellings, first match wins
FIELD_ALIASES = {
    'student_id': ('student_id', 'studentId', 'id', 'pk'),
    'first_name': ('first_name', 'firstName'),
    'last_name': ('last_name', 'lastName'),
    'other_names': ('other_names', 'otherNames', 'middle_name', 'middleName'),
    'admission_no': ('admission_no', 'admissionNo', 'admission_number', 'admissionNumber'),
    'gender': ('gender',),
}


@dataclass(frozen=True)
class RosterEntry:
    student_id: int
    first_name: str
    last_name: str
    admission_no: str = ''
    gender: str = ''
    other_names: str = ''

    @property
    def full_name(self):
        names = [self.first_name]
        if self.other_names:
            names.append(self.other_names)
        names.append(self.last_name)
        return ' '.join(n for n in names if n)

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'other_names': self.other_names,
            'full_name': self.full_name,
            'admission_no': self.admission_no,
            'gender': self.gender,
        }


def _lookup(data, field):
    for key in FIELD_ALIASES[field]:
        if isinstance(data, dict):
            value = data.get(key)
        else:
            value = getattr(data, key, None)
        if value not in (None, ''):
            return value
    return None


def normalize_roster_entry(data):
    """
    Map a student record of any known shape to a RosterEntry.

    Args:
        data: A dict (API payload) or an object (Student model instance)

    Raises:
        ValueError: when no student id can be found
    """
    student_id = _lookup(data, 'student_id')
    if student_id is None:
        raise ValueError(f'Roster entry has no student id: {data!r}')

    return RosterEntry(
        student_id=int(student_id),
        first_name=str(_lookup(data, 'first_name') or ''),
        last_name=str(_lookup(data, 'last_name') or ''),
        other_names=str(_lookup(data, 'other_names') or ''),
        admission_no=str(_lookup(data, 'admission_no') or ''),
        gender=str(_lookup(data, 'gender') or ''),
    )


class RosterSource(ABC):
    """External student directory: the active students of a class, in order."""

    @abstractmethod
    def get_roster(self, class_id, context=None):
        """Return the class roster as a list of RosterEntry."""


class DatabaseRosterSource(RosterSource):
    """Roster read straight from the Student table."""

    def get_roster(self, class_id, context=None):
        from .models import Student

        try:
            students = list(
                Student.objects.filter(
                    current_class_id=class_id,
                    status=Student.Status.ACTIVE,
                ).order_by('last_name', 'first_name', 'admission_number', 'pk')
            )
        except DatabaseError as e:
            logger.exception(f"Roster query failed for class {class_id}")
            raise TransportFailure(f'Could not load roster: {e}') from e

        return [normalize_roster_entry(student) for student in students]
