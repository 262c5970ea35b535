from datetime import date

from django.test import TestCase

from academics.models import Class
from teachers.models import Teacher


class TeacherModelTests(TestCase):
    """Tests for the Teacher model."""

    def _create_teacher(self, **kwargs):
        defaults = {
            'first_name': 'Ngozi',
            'last_name': 'Okafor',
            'gender': 'F',
            'staff_id': 'TCH-001',
            'employment_date': date(2020, 9, 1),
        }
        defaults.update(kwargs)
        return Teacher.objects.create(**defaults)

    def test_create_teacher(self):
        teacher = self._create_teacher()
        self.assertEqual(teacher.status, Teacher.Status.ACTIVE)
        self.assertEqual(str(teacher), 'Ngozi Okafor (TCH-001)')

    def test_full_name_with_middle_name(self):
        teacher = self._create_teacher(middle_name='Adaeze')
        self.assertEqual(teacher.full_name, 'Ngozi Adaeze Okafor')

    def test_form_classes(self):
        teacher = self._create_teacher()
        class_obj = Class.objects.create(level_number=3, arm='B', form_teacher=teacher)
        self.assertEqual(list(teacher.form_classes.all()), [class_obj])
        self.assertEqual(class_obj.name, 'JSS3 B')
