from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase

from core.models import AcademicSession, Term

User = get_user_model()


class AcademicSessionModelTests(TestCase):
    """Tests for the AcademicSession model."""

    def _create_session(self, **kwargs):
        defaults = {
            'name': '2025/2026',
            'start_date': date(2025, 9, 1),
            'end_date': date(2026, 7, 31),
        }
        defaults.update(kwargs)
        return AcademicSession.objects.create(**defaults)

    def test_only_one_current(self):
        """Marking a session current clears the previous one."""
        first = self._create_session(is_current=True)
        second = self._create_session(
            name='2026/2027', start_date=date(2026, 9, 1), end_date=date(2027, 7, 31), is_current=True
        )
        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertEqual(AcademicSession.get_current(), second)

    def test_get_current_none(self):
        self._create_session()
        self.assertIsNone(AcademicSession.get_current())


class TermModelTests(TestCase):
    """Tests for the Term model."""

    def setUp(self):
        self.session = AcademicSession.objects.create(
            name='2025/2026', start_date=date(2025, 9, 1), end_date=date(2026, 7, 31), is_current=True
        )
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='testpass123')

    def _create_term(self, **kwargs):
        defaults = {
            'academic_session': self.session,
            'name': 'First Term',
            'term_number': 1,
            'start_date': date(2025, 9, 1),
            'end_date': date(2025, 12, 15),
        }
        defaults.update(kwargs)
        return Term.objects.create(**defaults)

    def test_str(self):
        self.assertEqual(str(self._create_term()), 'First Term - 2025/2026')

    def test_only_one_current_term(self):
        first = self._create_term(is_current=True)
        second = self._create_term(
            name='Second Term', term_number=2,
            start_date=date(2026, 1, 5), end_date=date(2026, 4, 1), is_current=True,
        )
        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertEqual(Term.get_current(), second)

    def test_contains(self):
        term = self._create_term()
        self.assertTrue(term.contains(date(2025, 10, 6)))
        self.assertFalse(term.contains(date(2026, 1, 10)))

    def test_lock_grades(self):
        term = self._create_term()
        term.lock_grades(self.admin)
        term.refresh_from_db()
        self.assertTrue(term.grades_locked)
        self.assertIsNotNone(term.grades_locked_at)
        self.assertEqual(term.grades_locked_by, self.admin)

    def test_unlock_grades(self):
        term = self._create_term()
        term.lock_grades(self.admin)
        term.unlock_grades()
        term.refresh_from_db()
        self.assertFalse(term.grades_locked)
        self.assertIsNone(term.grades_locked_at)
        self.assertIsNone(term.grades_locked_by)
