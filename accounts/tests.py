from datetime import date

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import TestCase

from accounts.context import ActingContext
from academics.models import Class, ClassSubject, Subject
from core.models import AcademicSession, Term
from teachers.models import Teacher

User = get_user_model()


class UserManagerTests(TestCase):
    """Tests for the custom UserManager."""

    def test_create_user(self):
        """Test creating a regular user with email."""
        user = User.objects.create_user(email='test@example.com', password='testpass123')
        self.assertEqual(user.email, 'test@example.com')
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_admin)

    def test_create_user_without_email_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')

    def test_create_superuser(self):
        user = User.objects.create_superuser(email='owner@example.com', password='testpass123')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)

    def test_create_school_admin(self):
        user = User.objects.create_school_admin(email='admin@example.com', password='testpass123')
        self.assertTrue(user.is_school_admin)
        self.assertFalse(user.is_staff)
        self.assertEqual(user.role_label, 'Admin')


class RoleLabelTests(TestCase):
    """Form teachers are decided by class assignment."""

    def setUp(self):
        self.user = User.objects.create_teacher(email='teacher@example.com', password='testpass123')
        self.teacher = Teacher.objects.create(user=self.user, first_name='Ngozi', last_name='Okafor', staff_id='T001')

    def test_subject_teacher(self):
        self.assertEqual(self.user.role_label, 'Subject Teacher')

    def test_form_teacher(self):
        Class.objects.create(level_number=1, arm='A', form_teacher=self.teacher)
        self.assertTrue(self.user.is_form_teacher)
        self.assertEqual(self.user.role_label, 'Form Teacher')

    def test_plain_user(self):
        user = User.objects.create_user(email='parent@example.com', password='testpass123')
        self.assertEqual(user.role_label, 'User')


class ActingContextTests(TestCase):
    """Tests for ActingContext."""

    def setUp(self):
        session = AcademicSession.objects.create(
            name='2025/2026', start_date=date(2025, 9, 1), end_date=date(2026, 7, 31), is_current=True
        )
        self.term = Term.objects.create(
            academic_session=session, name='First Term', term_number=1,
            start_date=date(2025, 9, 1), end_date=date(2025, 12, 15), is_current=True
        )
        self.admin = User.objects.create_school_admin(email='admin@school.com', password='testpass123')

        self.form_user = User.objects.create_teacher(email='form@school.com', password='testpass123')
        self.form_teacher = Teacher.objects.create(
            user=self.form_user, first_name='Ngozi', last_name='Okafor', staff_id='T001'
        )
        self.subject_user = User.objects.create_teacher(email='maths@school.com', password='testpass123')
        self.subject_teacher = Teacher.objects.create(
            user=self.subject_user, first_name='Musa', last_name='Ibrahim', staff_id='T002'
        )

        self.class_obj = Class.objects.create(level_number=1, arm='A', form_teacher=self.form_teacher)
        self.other_class = Class.objects.create(level_number=1, arm='B')
        maths = Subject.objects.create(name='Mathematics', code='MTH')
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=maths, teacher=self.subject_teacher)

    def test_current_term(self):
        context = ActingContext.for_user(self.form_user)
        self.assertEqual(context.term_id, self.term.pk)
        self.assertEqual(context.session_id, self.term.academic_session_id)

    def test_form_teacher_class(self):
        context = ActingContext.for_user(self.form_user)
        self.assertEqual(context.class_id, self.class_obj.pk)
        self.assertTrue(context.can_take_attendance(self.class_obj))
        self.assertFalse(context.can_view_class(self.other_class))
        self.assertEqual(context.to_headers(), {})

    def test_subject_teacher_permissions(self):
        context = ActingContext.for_user(self.subject_user)
        self.assertIsNone(context.class_id)
        self.assertFalse(context.can_take_attendance(self.class_obj))
        self.assertTrue(context.can_view_class(self.class_obj))

    def test_admin_acting_as_teacher(self):
        context = ActingContext.for_user(self.admin, act_as=str(self.form_teacher.pk))
        self.assertTrue(context.is_impersonating)
        self.assertEqual(context.effective_teacher, self.form_teacher)
        self.assertEqual(context.class_id, self.class_obj.pk)
        self.assertEqual(context.to_headers(), {'X-Acting-As': str(self.form_teacher.pk)})

    def test_teacher_cannot_impersonate(self):
        with self.assertRaises(PermissionDenied):
            ActingContext.for_user(self.subject_user, act_as=self.form_teacher.pk)

    def test_unknown_teacher(self):
        with self.assertRaises(PermissionDenied):
            ActingContext.for_user(self.admin, act_as=9999)

    def test_no_current_term(self):
        Term.objects.update(is_current=False)
        context = ActingContext.for_user(self.admin)
        self.assertIsNone(context.term_id)
        self.assertEqual(context.session_id, self.term.academic_session_id)
