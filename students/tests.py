from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase

from academics.models import Class
from students.models import Student
from students.roster import DatabaseRosterSource, normalize_roster_entry


class NormalizeRosterEntryTests(SimpleTestCase):
    """Every known spelling maps to the same RosterEntry."""

    def test_snake_case(self):
        entry = normalize_roster_entry({
            'student_id': '7', 'first_name': 'Ada', 'last_name': 'Adams', 'admission_no': 'ADM001',
        })
        self.assertEqual(entry.student_id, 7)
        self.assertEqual(entry.full_name, 'Ada Adams')
        self.assertEqual(entry.admission_no, 'ADM001')

    def test_camel_case(self):
        entry = normalize_roster_entry({
            'studentId': 7, 'firstName': 'Ada', 'lastName': 'Adams',
            'middleName': 'Ifeoma', 'admissionNumber': 'ADM001',
        })
        self.assertEqual(entry.other_names, 'Ifeoma')
        self.assertEqual(entry.full_name, 'Ada Ifeoma Adams')
        self.assertEqual(entry.admission_no, 'ADM001')

    def test_object(self):
        student = SimpleNamespace(pk=3, first_name='Bayo', last_name='Bello', admission_number='ADM002', gender='M')
        entry = normalize_roster_entry(student)
        self.assertEqual(entry.student_id, 3)
        self.assertEqual(entry.gender, 'M')

    def test_missing_id(self):
        with self.assertRaises(ValueError):
            normalize_roster_entry({'first_name': 'Ada'})

    def test_to_dict(self):
        data = normalize_roster_entry({'id': 1, 'first_name': 'Ada', 'last_name': 'Adams'}).to_dict()
        self.assertEqual(data['student_id'], 1)
        self.assertEqual(data['full_name'], 'Ada Adams')


class DatabaseRosterSourceTests(TestCase):
    """Tests for the Student-backed roster."""

    def setUp(self):
        self.class_obj = Class.objects.create(level_number=2, arm='C')

    def _create(self, first_name, last_name, admission_number, **kwargs):
        return Student.objects.create(
            first_name=first_name, last_name=last_name, gender='F',
            admission_number=admission_number, current_class=self.class_obj, **kwargs
        )

    def test_roster_order(self):
        """Last name, then first name, then admission number."""
        self._create('Bola', 'Adams', 'ADM004')
        self._create('Ada', 'Adams', 'ADM003')
        self._create('Ada', 'Adams', 'ADM001')
        self._create('Chidi', 'Aba', 'ADM002')

        roster = DatabaseRosterSource().get_roster(self.class_obj.pk)
        self.assertEqual([e.admission_no for e in roster], ['ADM002', 'ADM001', 'ADM003', 'ADM004'])

    def test_only_active_students(self):
        self._create('Ada', 'Adams', 'ADM001')
        self._create('Bayo', 'Bello', 'ADM002', status=Student.Status.GRADUATED)
        Student.objects.create(first_name='Zara', last_name='Zubair', gender='F', admission_number='ADM009')

        roster = DatabaseRosterSource().get_roster(self.class_obj.pk)
        self.assertEqual([e.admission_no for e in roster], ['ADM001'])

    def test_empty_class(self):
        self.assertEqual(DatabaseRosterSource().get_roster(self.class_obj.pk), [])
