"""
Tests for the academics app.

Focuses on:
- Day status projection and the status resolver
- The attendance submission workflow (guards, re-entrancy, abandon, rejections)
- The database attendance store (ordering, duplicates, roster checks)
- Attendance JSON endpoints and the REST client
"""
import json
from io import StringIO
from datetime import date
from types import SimpleNamespace
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import IntegrityError
from django.test import Client, SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from accounts.context import ActingContext
from academics.attendance.client import AttendanceApiClient
from academics.attendance.exceptions import (
    AccessDenied, AlreadyComplete, NoClassAssigned, PeriodAlreadyRecorded, PeriodOutOfOrder, RosterEmpty,
    SubmissionInProgress, SubmissionRejected, TransportFailure, ValidationGuard, WorkflowNotReady,
)
from academics.attendance.status import (
    AttendanceDayStatus, AttendanceStatusResolver, DayState, project_day_status,
)
from academics.attendance.stores import AttendanceEntry, AttendanceStore, DatabaseAttendanceStore
from academics.attendance.summary import summarize_statuses
from academics.attendance.workflow import AttendanceSubmissionWorkflow, WorkflowState
from academics.choices import AttendancePeriod, AttendanceStatus
from academics.models import AttendanceRecord, Class, ClassSubject, Subject
from core.models import AcademicSession, Term
from students.models import Student
from students.roster import DatabaseRosterSource, RosterEntry, RosterSource
from teachers.models import Teacher

User = get_user_model()

DAY = date(2025, 10, 6)


# =============================================================================
# IN-MEMORY COLLABORATORS
# =============================================================================

class InMemoryRosterSource(RosterSource):

    def __init__(self, roster=None, fail=False):
        self.roster = roster or []
        self.fail = fail

    def get_roster(self, class_id, context=None):
        if self.fail:
            raise TransportFailure('directory offline')
        return list(self.roster)


class InMemoryAttendanceStore(AttendanceStore):
    """Keeps recorded periods per (class, date) and enforces the same rules as the database store."""

    def __init__(self):
        self.records = {}
        self.submit_calls = 0
        self.before_submit = None
        self.fail_reads = False
        self.fail_submit = None

    def recorded_periods(self, class_id, date, context=None):
        if self.fail_reads:
            raise TransportFailure('store offline')
        return set(self.records.get((class_id, date), {}))

    def submit_period(self, class_id, date, period, session_id, term_id, entries, context=None):
        self.submit_calls += 1
        if self.before_submit:
            self.before_submit()
        if self.fail_submit:
            raise self.fail_submit

        period = AttendancePeriod(period)
        day = self.records.setdefault((class_id, date), {})
        if period in day:
            raise PeriodAlreadyRecorded()
        if period.previous is not None and period.previous not in day:
            raise PeriodOutOfOrder()
        day[period] = list(entries)
        return len(entries)


ROSTER = [
    RosterEntry(student_id=1, first_name='Ada', last_name='Adams'),
    RosterEntry(student_id=2, first_name='Bayo', last_name='Bello'),
    RosterEntry(student_id=3, first_name='Chidi', last_name='Chukwu'),
]


def make_context(class_id=10):
    user = SimpleNamespace(is_admin=False, email='form@school.com')
    return ActingContext(user=user, session_id=1, term_id=1, form_class_id=class_id)


# =============================================================================
# DAY STATUS
# =============================================================================

class AttendanceDayStatusTests(SimpleTestCase):
    """Tests for the day status projection."""

    def test_no_records_is_not_started(self):
        """Zero records means Morning is next and the day is not complete."""
        status = project_day_status([])
        self.assertFalse(status.has_morning)
        self.assertFalse(status.is_complete)
        self.assertEqual(status.next_period, AttendancePeriod.MORNING)
        self.assertEqual(status.state, DayState.NOT_STARTED)

    def test_morning_only(self):
        """Morning recorded means Afternoon is next."""
        status = project_day_status([AttendancePeriod.MORNING])
        self.assertTrue(status.has_morning)
        self.assertFalse(status.is_complete)
        self.assertEqual(status.next_period, AttendancePeriod.AFTERNOON)
        self.assertEqual(status.state, DayState.IN_PROGRESS)

    def test_both_periods_complete(self):
        """Both periods recorded completes the day with nothing next."""
        status = project_day_status(['Morning', 'Afternoon'])
        self.assertTrue(status.is_complete)
        self.assertIsNone(status.next_period)
        self.assertEqual(status.state, DayState.COMPLETE)

    def test_unknown_is_neither_complete_nor_not_started(self):
        """An unreadable day is UNKNOWN; only display falls back to Morning."""
        status = AttendanceDayStatus.unknown('offline')
        self.assertEqual(status.state, DayState.UNKNOWN)
        self.assertFalse(status.is_complete)
        self.assertIsNone(status.next_period)
        self.assertEqual(status.display_next_period, AttendancePeriod.MORNING)
        self.assertEqual(status.to_dict()['error'], 'offline')

    def test_to_dict(self):
        """Serialized status uses period values."""
        data = project_day_status([AttendancePeriod.MORNING]).to_dict()
        self.assertEqual(data['next_period'], 'Afternoon')
        self.assertEqual(data['state'], 'in_progress')
        self.assertTrue(data['has_morning'])


class AttendanceStatusResolverTests(SimpleTestCase):
    """Tests for AttendanceStatusResolver."""

    def test_reads_exact_class_and_date(self):
        """Records for another date or class do not count."""
        store = InMemoryAttendanceStore()
        store.records[(10, date(2025, 10, 5))] = {AttendancePeriod.MORNING: []}
        store.records[(11, DAY)] = {AttendancePeriod.MORNING: []}

        status = AttendanceStatusResolver(store).resolve(10, DAY)
        self.assertEqual(status.state, DayState.NOT_STARTED)

    def test_store_failure_yields_unknown(self):
        """A transport failure is reported as UNKNOWN, never as not started."""
        store = InMemoryAttendanceStore()
        store.fail_reads = True

        with self.assertLogs('academics.attendance.status', level='WARNING'):
            status = AttendanceStatusResolver(store).resolve(10, DAY)
        self.assertFalse(status.known)
        self.assertEqual(status.state, DayState.UNKNOWN)
        self.assertEqual(status.error, 'store offline')


# =============================================================================
# SUBMISSION WORKFLOW
# =============================================================================

class AttendanceSubmissionWorkflowTests(SimpleTestCase):
    """Tests for AttendanceSubmissionWorkflow against in-memory collaborators."""

    def setUp(self):
        self.store = InMemoryAttendanceStore()
        self.roster_source = InMemoryRosterSource(ROSTER)
        self.workflow = AttendanceSubmissionWorkflow(
            make_context(), self.roster_source, self.store, date=DAY
        )

    def test_full_day_scenario(self):
        """Morning with mixed statuses, then Afternoon, then the day is closed."""
        self.workflow.load_roster()
        self.assertEqual(self.workflow.state, WorkflowState.READY)
        self.assertEqual(set(self.workflow.selections.values()), {AttendanceStatus.PRESENT})
        self.assertEqual(self.workflow.next_period, AttendancePeriod.MORNING)

        self.workflow.set_student_status(2, AttendanceStatus.ABSENT)
        self.workflow.set_student_status(3, 'Late')
        receipt = self.workflow.submit()

        self.assertEqual(receipt.period, AttendancePeriod.MORNING)
        self.assertEqual(receipt.recorded, 3)
        morning = self.store.records[(10, DAY)][AttendancePeriod.MORNING]
        self.assertEqual(
            [(e.student_id, e.status) for e in morning],
            [(1, AttendanceStatus.PRESENT), (2, AttendanceStatus.ABSENT), (3, AttendanceStatus.LATE)],
        )
        self.assertTrue(receipt.status.has_morning)
        self.assertEqual(receipt.status.next_period, AttendancePeriod.AFTERNOON)
        self.assertEqual(self.workflow.state, WorkflowState.READY)
        self.assertEqual(set(self.workflow.selections.values()), {AttendanceStatus.PRESENT})

        receipt = self.workflow.submit()
        self.assertEqual(receipt.period, AttendancePeriod.AFTERNOON)
        self.assertTrue(receipt.status.is_complete)
        self.assertFalse(self.workflow.can_submit)

        calls = self.store.submit_calls
        with self.assertRaises(AlreadyComplete):
            self.workflow.submit()
        self.assertEqual(self.store.submit_calls, calls)

    def test_no_class_assigned(self):
        """A user without a form class cannot load a roster."""
        context = ActingContext(user=SimpleNamespace(is_admin=False))
        workflow = AttendanceSubmissionWorkflow(context, self.roster_source, self.store, date=DAY)
        with self.assertRaises(NoClassAssigned):
            workflow.load_roster()
        self.assertEqual(workflow.state, WorkflowState.IDLE)

    def test_submit_before_loading(self):
        """Submitting from IDLE is a guard failure."""
        with self.assertRaises(WorkflowNotReady):
            self.workflow.submit()
        self.assertEqual(self.store.submit_calls, 0)

    def test_empty_roster(self):
        """An empty class cannot be submitted."""
        workflow = AttendanceSubmissionWorkflow(make_context(), InMemoryRosterSource([]), self.store, date=DAY)
        workflow.load_roster()
        with self.assertRaises(RosterEmpty):
            workflow.submit()
        self.assertEqual(self.store.submit_calls, 0)

    def test_roster_failure_returns_to_idle(self):
        """A roster transport failure is raised and leaves the workflow IDLE."""
        workflow = AttendanceSubmissionWorkflow(
            make_context(), InMemoryRosterSource(fail=True), self.store, date=DAY
        )
        with self.assertRaises(TransportFailure):
            workflow.load_roster()
        self.assertEqual(workflow.state, WorkflowState.IDLE)
        self.assertIsNotNone(workflow.last_error)

    def test_unknown_student(self):
        """Editing a student who is not on the roster is an error."""
        self.workflow.load_roster()
        with self.assertRaises(ValueError):
            self.workflow.set_student_status(99, AttendanceStatus.ABSENT)

    def test_edits_ignored_when_not_ready(self):
        """Selections cannot change before the roster is loaded."""
        self.workflow.set_student_status(1, AttendanceStatus.ABSENT)
        self.workflow.mark_all(AttendanceStatus.ABSENT)
        self.assertEqual(self.workflow.selections, {})

    def test_mark_all(self):
        """mark_all overwrites every selection."""
        self.workflow.load_roster()
        self.workflow.set_student_status(1, AttendanceStatus.LATE)
        self.workflow.mark_all(AttendanceStatus.ABSENT)
        self.assertEqual(set(self.workflow.selections.values()), {AttendanceStatus.ABSENT})
        self.assertEqual(self.workflow.counts()['Absent'], 3)

    @override_settings(ATTENDANCE_DEFAULT_STATUS='Absent')
    def test_default_status_setting(self):
        """Registers open with the configured status."""
        workflow = AttendanceSubmissionWorkflow(make_context(), self.roster_source, self.store, date=DAY)
        workflow.load_roster()
        self.assertEqual(set(workflow.selections.values()), {AttendanceStatus.ABSENT})

    def test_resubmit_while_submitting(self):
        """A second submit while one is in flight is rejected and edits are ignored."""
        self.workflow.load_roster()
        seen = {}

        def reenter():
            try:
                self.workflow.submit()
            except SubmissionInProgress as e:
                seen['error'] = e
            self.workflow.set_student_status(1, AttendanceStatus.ABSENT)
            seen['selection'] = self.workflow.selections[1]

        self.store.before_submit = reenter
        self.workflow.submit()

        self.assertIsInstance(seen['error'], SubmissionInProgress)
        self.assertIsInstance(seen['error'], ValidationGuard)
        self.assertEqual(seen['selection'], AttendanceStatus.PRESENT)
        self.assertEqual(self.store.submit_calls, 1)

    def test_abandon_discards_result(self):
        """Abandoning mid-flight keeps the server write but drops the result."""
        self.workflow.load_roster()
        self.store.before_submit = self.workflow.abandon

        receipt = self.workflow.submit()

        self.assertIsNone(receipt)
        self.assertEqual(self.workflow.state, WorkflowState.IDLE)
        self.assertIn(AttendancePeriod.MORNING, self.store.records[(10, DAY)])

    def test_period_recorded_by_another_session(self):
        """A server-side duplicate is surfaced and the status re-resolved."""
        self.workflow.load_roster()

        def other_session():
            self.store.records[(10, DAY)] = {AttendancePeriod.MORNING: []}

        self.store.before_submit = other_session
        with self.assertRaises(PeriodAlreadyRecorded) as ctx:
            self.workflow.submit()

        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(self.workflow.state, WorkflowState.READY)
        self.assertEqual(self.workflow.last_outcome, WorkflowState.FAILED)
        self.assertEqual(self.workflow.next_period, AttendancePeriod.AFTERNOON)

    def test_transport_failure_on_submit(self):
        """A failed request returns to READY with a retryable error."""
        self.workflow.load_roster()
        self.store.fail_submit = TransportFailure('timeout')

        with self.assertRaises(TransportFailure) as ctx:
            self.workflow.submit()

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(self.workflow.state, WorkflowState.READY)
        self.assertIs(self.workflow.last_error, ctx.exception)

        self.store.fail_submit = None
        receipt = self.workflow.submit()
        self.assertEqual(receipt.period, AttendancePeriod.MORNING)
        self.assertIsNone(self.workflow.last_error)

    def test_unexpected_store_error_returns_to_ready(self):
        """Any error from the store releases the submit guard."""
        self.workflow.load_roster()
        self.store.fail_submit = ValueError('bad payload')

        with self.assertLogs('academics.attendance.workflow', level='ERROR'):
            with self.assertRaises(ValueError):
                self.workflow.submit()

        self.assertEqual(self.workflow.state, WorkflowState.READY)
        self.assertEqual(self.workflow.last_outcome, WorkflowState.FAILED)
        self.assertIsInstance(self.workflow.last_error, ValueError)

        self.store.fail_submit = None
        receipt = self.workflow.submit()
        self.assertEqual(receipt.period, AttendancePeriod.MORNING)
        self.assertEqual(self.store.submit_calls, 2)

    def test_unknown_status_blocks_submit(self):
        """When the status cannot be read nothing is sent."""
        self.workflow.load_roster()
        self.store.fail_reads = True

        with self.assertRaises(TransportFailure):
            self.workflow.submit()
        self.assertEqual(self.store.submit_calls, 0)


class SummarizeStatusesTests(SimpleTestCase):
    """Tests for attendance rate calculation."""

    def test_late_counts_as_attended(self):
        summary = summarize_statuses(['Present', 'Present', 'Late', 'Absent'])
        self.assertEqual(summary['total'], 4)
        self.assertEqual(summary['attended'], 3)
        self.assertEqual(str(summary['rate']), '75.00')

    def test_empty(self):
        summary = summarize_statuses([])
        self.assertEqual(summary['total'], 0)
        self.assertEqual(str(summary['rate']), '0.00')

    def test_rounding(self):
        summary = summarize_statuses(['Present', 'Absent', 'Excused'])
        self.assertEqual(str(summary['rate']), '33.33')


# =============================================================================
# DATABASE TESTS
# =============================================================================

class AcademicsTestCase(TestCase):
    """Base test case with a session, a class and three students."""

    def setUp(self):
        self.admin_user = User.objects.create_school_admin(email='admin@school.com', password='testpass123')

        self.form_user = User.objects.create_teacher(email='form@school.com', password='testpass123')
        self.form_teacher = Teacher.objects.create(
            user=self.form_user, first_name='Ngozi', last_name='Okafor', staff_id='T001'
        )
        self.subject_user = User.objects.create_teacher(email='maths@school.com', password='testpass123')
        self.subject_teacher = Teacher.objects.create(
            user=self.subject_user, first_name='Musa', last_name='Ibrahim', staff_id='T002'
        )

        self.session = AcademicSession.objects.create(
            name='2025/2026', start_date=date(2025, 9, 1), end_date=date(2026, 7, 31), is_current=True
        )
        self.term = Term.objects.create(
            academic_session=self.session, name='First Term', term_number=1,
            start_date=date(2025, 9, 1), end_date=date(2025, 12, 15), is_current=True
        )

        self.class_obj = Class.objects.create(
            level_type=Class.LevelType.JUNIOR, level_number=1, arm='A', form_teacher=self.form_teacher
        )
        self.other_class = Class.objects.create(level_type=Class.LevelType.JUNIOR, level_number=1, arm='B')

        self.maths = Subject.objects.create(name='Mathematics', code='MTH')
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths, teacher=self.subject_teacher)

        self.chidi = self.create_student('Chidi', 'Chukwu', 'ADM003')
        self.ada = self.create_student('Ada', 'Adams', 'ADM001')
        self.bayo = self.create_student('Bayo', 'Bello', 'ADM002')
        self.create_student('Tolu', 'Adams', 'ADM009', status=Student.Status.TRANSFERRED)
        self.create_student('Zara', 'Zubair', 'ADM010', class_obj=self.other_class)

    def create_student(self, first_name, last_name, admission_number, class_obj=None, status=None):
        return Student.objects.create(
            first_name=first_name,
            last_name=last_name,
            gender='M',
            admission_number=admission_number,
            current_class=class_obj or self.class_obj,
            status=status or Student.Status.ACTIVE,
        )

    def entries(self, statuses=None):
        statuses = statuses or {}
        return [
            AttendanceEntry(student_id=s.pk, status=statuses.get(s.pk, AttendanceStatus.PRESENT))
            for s in (self.ada, self.bayo, self.chidi)
        ]

    def context(self, user=None, **kwargs):
        return ActingContext.for_user(user or self.form_user, **kwargs)


class DatabaseAttendanceStoreTests(AcademicsTestCase):
    """Tests for DatabaseAttendanceStore."""

    def submit(self, period, entries=None):
        return DatabaseAttendanceStore().submit_period(
            self.class_obj.pk, DAY, period, self.session.pk, self.term.pk,
            entries if entries is not None else self.entries(),
        )

    def test_submit_morning(self):
        """A morning submission creates one record per student."""
        recorded = self.submit(AttendancePeriod.MORNING)
        self.assertEqual(recorded, 3)
        self.assertEqual(AttendanceRecord.objects.filter(period='Morning').count(), 3)
        self.assertEqual(
            DatabaseAttendanceStore().recorded_periods(self.class_obj.pk, DAY),
            {AttendancePeriod.MORNING},
        )

    def test_duplicate_period(self):
        """The same period cannot be recorded twice."""
        self.submit(AttendancePeriod.MORNING)
        with self.assertRaises(PeriodAlreadyRecorded):
            self.submit(AttendancePeriod.MORNING)
        self.assertEqual(AttendanceRecord.objects.count(), 3)

    def test_afternoon_before_morning(self):
        """Afternoon requires Morning first."""
        with self.assertRaises(PeriodOutOfOrder):
            self.submit(AttendancePeriod.AFTERNOON)
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_missing_student(self):
        """A submission must cover the whole roster."""
        with self.assertRaises(SubmissionRejected):
            self.submit(AttendancePeriod.MORNING, self.entries()[:2])
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_student_from_another_class(self):
        """Students outside the roster are rejected."""
        stranger = Student.objects.get(admission_number='ADM010')
        entries = self.entries() + [AttendanceEntry(student_id=stranger.pk, status='Present')]
        with self.assertRaises(SubmissionRejected):
            self.submit(AttendancePeriod.MORNING, entries)

    def test_invalid_status(self):
        entries = self.entries()
        entries[0] = AttendanceEntry(student_id=self.ada.pk, status='Sleeping')
        with self.assertRaises(SubmissionRejected):
            self.submit(AttendancePeriod.MORNING, entries)

    def test_duplicate_student(self):
        entries = self.entries() + [AttendanceEntry(student_id=self.ada.pk, status='Absent')]
        with self.assertRaises(SubmissionRejected):
            self.submit(AttendancePeriod.MORNING, entries)

    def test_no_term(self):
        """Without a session and term nothing can be stamped."""
        with self.assertRaises(SubmissionRejected):
            DatabaseAttendanceStore().submit_period(
                self.class_obj.pk, DAY, AttendancePeriod.MORNING, None, None, self.entries()
            )

    def test_unknown_term(self):
        """A term that does not exist is rejected, not reported as a duplicate."""
        with self.assertRaises(SubmissionRejected) as ctx:
            DatabaseAttendanceStore().submit_period(
                self.class_obj.pk, DAY, AttendancePeriod.MORNING, self.session.pk, 99999, self.entries()
            )
        self.assertNotIsInstance(ctx.exception, PeriodAlreadyRecorded)
        self.assertIn('99999', ctx.exception.message)
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_term_from_another_session(self):
        other_session = AcademicSession.objects.create(
            name='2024/2025', start_date=date(2024, 9, 1), end_date=date(2025, 7, 31)
        )
        with self.assertRaises(SubmissionRejected) as ctx:
            DatabaseAttendanceStore().submit_period(
                self.class_obj.pk, DAY, AttendancePeriod.MORNING, other_session.pk, self.term.pk, self.entries()
            )
        self.assertNotIsInstance(ctx.exception, PeriodAlreadyRecorded)
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_integrity_error_without_duplicate(self):
        """A constraint failure that is not a recorded period is a rejection."""
        with mock.patch.object(AttendanceRecord.objects, 'bulk_create', side_effect=IntegrityError('FOREIGN KEY')):
            with self.assertLogs('academics.attendance.stores', level='ERROR'):
                with self.assertRaises(SubmissionRejected) as ctx:
                    self.submit(AttendancePeriod.MORNING)
        self.assertNotIsInstance(ctx.exception, PeriodAlreadyRecorded)
        self.assertTrue(ctx.exception.retryable)

    def test_integrity_error_from_concurrent_submission(self):
        """A unique violation for a period that is now recorded is a duplicate."""
        store = DatabaseAttendanceStore()
        with mock.patch.object(store, 'recorded_periods', side_effect=[set(), {AttendancePeriod.MORNING}]), \
                mock.patch.object(AttendanceRecord.objects, 'bulk_create', side_effect=IntegrityError('UNIQUE')):
            with self.assertRaises(PeriodAlreadyRecorded):
                store.submit_period(
                    self.class_obj.pk, DAY, AttendancePeriod.MORNING, self.session.pk, self.term.pk, self.entries()
                )


class DatabaseRosterSourceTests(AcademicsTestCase):
    """Tests for the database roster."""

    def test_active_students_in_roster_order(self):
        roster = DatabaseRosterSource().get_roster(self.class_obj.pk)
        self.assertEqual([e.admission_no for e in roster], ['ADM001', 'ADM002', 'ADM003'])
        self.assertEqual(roster[0].full_name, 'Ada Adams')


class WorkflowDatabaseTests(AcademicsTestCase):
    """The workflow end to end against the database collaborators."""

    def test_full_day(self):
        workflow = AttendanceSubmissionWorkflow(
            self.context(), DatabaseRosterSource(), DatabaseAttendanceStore(), date=DAY
        )
        workflow.load_roster()
        self.assertEqual(workflow.class_id, self.class_obj.pk)

        workflow.set_student_status(self.bayo.pk, AttendanceStatus.ABSENT)
        workflow.set_student_status(self.chidi.pk, AttendanceStatus.LATE)
        workflow.submit()

        morning = dict(
            AttendanceRecord.objects.filter(period='Morning').values_list('student_id', 'status')
        )
        self.assertEqual(morning, {self.ada.pk: 'Present', self.bayo.pk: 'Absent', self.chidi.pk: 'Late'})
        self.assertTrue(AttendanceRecord.objects.filter(term=self.term, academic_session=self.session).exists())

        receipt = workflow.submit()
        self.assertTrue(receipt.status.is_complete)
        self.assertEqual(AttendanceRecord.objects.filter(period='Afternoon', status='Present').count(), 3)

        with self.assertRaises(AlreadyComplete):
            workflow.submit()
        self.assertEqual(AttendanceRecord.objects.count(), 6)

    def test_second_session_sees_progress(self):
        """A workflow opened after Morning was taken starts at Afternoon."""
        first = AttendanceSubmissionWorkflow(
            self.context(), DatabaseRosterSource(), DatabaseAttendanceStore(), date=DAY
        )
        second = AttendanceSubmissionWorkflow(
            self.context(user=self.admin_user), DatabaseRosterSource(), DatabaseAttendanceStore(), date=DAY
        )
        first.load_roster()
        second.load_roster(self.class_obj.pk)

        first.submit()
        with self.assertRaises(PeriodAlreadyRecorded):
            second.store.submit_period(
                self.class_obj.pk, DAY, AttendancePeriod.MORNING, self.session.pk, self.term.pk, self.entries()
            )

        receipt = second.submit()
        self.assertEqual(receipt.period, AttendancePeriod.AFTERNOON)


# =============================================================================
# VIEW TESTS
# =============================================================================

class AttendanceViewTests(AcademicsTestCase):
    """Tests for the attendance JSON endpoints."""

    def setUp(self):
        super().setUp()
        self.client.force_login(self.form_user)

    def post_submit(self, payload, **extra):
        return self.client.post(
            reverse('academics:submit_attendance', args=[self.class_obj.pk]),
            data=json.dumps(payload),
            content_type='application/json',
            **extra
        )

    def payload(self, statuses=None, **kwargs):
        data = {
            'date': DAY.isoformat(),
            'attendances': [e.to_dict() for e in self.entries(statuses)],
        }
        data.update(kwargs)
        return data

    def test_unauthenticated(self):
        self.client.logout()
        response = self.client.get(reverse('academics:class_roster', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'not_authenticated')

    def test_roster(self):
        response = self.client.get(reverse('academics:class_roster', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        students = response.json()['students']
        self.assertEqual([s['admission_no'] for s in students], ['ADM001', 'ADM002', 'ADM003'])

    def test_roster_forbidden_for_unrelated_teacher(self):
        response = self.client.get(reverse('academics:class_roster', args=[self.other_class.pk]))
        self.assertEqual(response.status_code, 403)

    def test_status_not_started(self):
        response = self.client.get(
            reverse('academics:attendance_status', args=[self.class_obj.pk]), {'date': DAY.isoformat()}
        )
        data = response.json()
        self.assertEqual(data['state'], 'not_started')
        self.assertEqual(data['next_period'], 'Morning')
        self.assertTrue(data['can_take_attendance'])

    def test_status_invalid_date(self):
        response = self.client.get(
            reverse('academics:attendance_status', args=[self.class_obj.pk]), {'date': '06/10/2025'}
        )
        self.assertEqual(response.status_code, 400)

    def test_submit_day(self):
        """Periods are taken in order and a complete day is refused."""
        response = self.post_submit(self.payload({self.bayo.pk: 'Absent'}))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['period'], 'Morning')
        self.assertEqual(response.json()['status']['next_period'], 'Afternoon')

        response = self.post_submit(self.payload())
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['period'], 'Afternoon')
        self.assertTrue(response.json()['status']['is_complete'])

        response = self.post_submit(self.payload())
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'already_complete')
        self.assertEqual(AttendanceRecord.objects.count(), 6)

    def test_explicit_period_conflicts(self):
        response = self.post_submit(self.payload(period='Afternoon'))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'period_out_of_order')

        self.post_submit(self.payload(period='Morning'))
        response = self.post_submit(self.payload(period='Morning'))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'period_already_recorded')

    def test_incomplete_roster_rejected(self):
        payload = self.payload()
        payload['attendances'] = payload['attendances'][:1]
        response = self.post_submit(payload)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'submission_rejected')

    def test_unknown_term_rejected(self):
        """An unknown term is a bad request, not a recorded period."""
        response = self.post_submit(self.payload(term_id=99999))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'submission_rejected')
        self.assertFalse(AttendanceRecord.objects.exists())

        response = self.client.get(
            reverse('academics:attendance_status', args=[self.class_obj.pk]), {'date': DAY.isoformat()}
        )
        self.assertEqual(response.json()['state'], 'not_started')

    def test_malformed_body(self):
        response = self.client.post(
            reverse('academics:submit_attendance', args=[self.class_obj.pk]),
            data='not json',
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_subject_teacher_cannot_submit(self):
        """Subject teachers can view the class but only the form teacher takes attendance."""
        self.client.force_login(self.subject_user)
        self.assertEqual(
            self.client.get(reverse('academics:class_roster', args=[self.class_obj.pk])).status_code, 200
        )
        response = self.post_submit(self.payload())
        self.assertEqual(response.status_code, 403)

    def test_only_admins_impersonate(self):
        response = self.client.get(
            reverse('academics:class_roster', args=[self.class_obj.pk]),
            HTTP_X_ACTING_AS=str(self.subject_teacher.pk),
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_acting_as_form_teacher(self):
        self.client.force_login(self.admin_user)
        response = self.post_submit(self.payload(), HTTP_X_ACTING_AS=str(self.form_teacher.pk))
        self.assertEqual(response.status_code, 201)

    def test_class_attendance_and_summaries(self):
        self.post_submit(self.payload({self.bayo.pk: 'Absent', self.chidi.pk: 'Late'}))

        response = self.client.get(
            reverse('academics:class_attendance', args=[self.class_obj.pk]), {'date': DAY.isoformat()}
        )
        morning = response.json()['periods']['Morning']
        self.assertEqual(len(morning['records']), 3)
        self.assertEqual(morning['summary']['absent'], 1)
        self.assertEqual(response.json()['periods']['Afternoon']['records'], [])

        response = self.client.get(reverse('academics:class_attendance_summary', args=[self.class_obj.pk]))
        data = response.json()
        self.assertEqual(data['days_recorded'], 1)
        self.assertEqual(data['overall']['rate'], '66.67')

        response = self.client.get(
            reverse('academics:student_attendance_summary', args=[self.bayo.pk]), {'term_id': self.term.pk}
        )
        self.assertEqual(response.json()['absent'], 1)
        self.assertEqual(response.json()['rate'], '0.00')

    def test_summaries_by_date_range(self):
        next_day = date(2025, 10, 7)
        self.post_submit(self.payload({self.bayo.pk: 'Absent'}))
        self.post_submit(self.payload({self.bayo.pk: 'Absent'}, date=next_day.isoformat()))
        self.post_submit(self.payload(date=next_day.isoformat()))
        url = reverse('academics:class_attendance_summary', args=[self.class_obj.pk])

        data = self.client.get(url, {'start_date': DAY.isoformat(), 'end_date': DAY.isoformat()}).json()
        self.assertEqual(data['days_recorded'], 1)
        self.assertEqual(data['overall']['total'], 3)
        self.assertEqual(data['start_date'], '2025-10-06')
        self.assertIsNone(data['term_id'])

        data = self.client.get(url, {'start_date': next_day.isoformat()}).json()
        self.assertEqual(data['days_recorded'], 1)
        self.assertEqual(data['overall']['total'], 6)

        data = self.client.get(url, {'start_date': DAY.isoformat(), 'end_date': next_day.isoformat()}).json()
        self.assertEqual(data['days_recorded'], 2)

        response = self.client.get(
            reverse('academics:student_attendance_summary', args=[self.bayo.pk]),
            {'start_date': next_day.isoformat(), 'end_date': next_day.isoformat()},
        )
        self.assertEqual(response.json()['total'], 2)
        self.assertEqual(response.json()['absent'], 1)

    def test_summary_invalid_range(self):
        url = reverse('academics:class_attendance_summary', args=[self.class_obj.pk])
        response = self.client.get(url, {'start_date': '2025-10-07', 'end_date': '2025-10-06'})
        self.assertEqual(response.status_code, 400)
        response = self.client.get(url, {'start_date': '07/10/2025'})
        self.assertEqual(response.status_code, 400)

    def test_class_subjects(self):
        self.client.force_login(self.subject_user)
        response = self.client.get(reverse('academics:api_class_subjects', args=[self.class_obj.pk]))
        subjects = response.json()['subjects']
        self.assertEqual([s['code'] for s in subjects], ['MTH'])
        self.assertTrue(subjects[0]['is_assigned'])


class AttendanceCsrfTests(AcademicsTestCase):
    """Submissions with CSRF checks enforced, as a real client sees them."""

    def setUp(self):
        super().setUp()
        self.csrf_client = Client(enforce_csrf_checks=True)
        self.csrf_client.force_login(self.form_user)

    def post_submit(self, **extra):
        payload = {
            'date': DAY.isoformat(),
            'attendances': [e.to_dict() for e in self.entries()],
        }
        return self.csrf_client.post(
            reverse('academics:submit_attendance', args=[self.class_obj.pk]),
            data=json.dumps(payload),
            content_type='application/json',
            **extra
        )

    def test_submit_without_token_is_forbidden(self):
        response = self.post_submit()
        self.assertEqual(response.status_code, 403)
        self.assertFalse(AttendanceRecord.objects.exists())

    def test_submit_with_issued_token(self):
        response = self.csrf_client.get(reverse('academics:csrf_token'))
        self.assertEqual(response.status_code, 200)
        token = response.json()['csrf_token']
        self.assertIn('csrftoken', self.csrf_client.cookies)

        response = self.post_submit(HTTP_X_CSRFTOKEN=token)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(AttendanceRecord.objects.count(), 3)


# =============================================================================
# REST CLIENT
# =============================================================================

def _response(status_code, data=None):
    response = mock.Mock()
    response.status_code = status_code
    if data is None:
        response.json.side_effect = ValueError('No JSON')
    else:
        response.json.return_value = data
    return response


class AttendanceApiClientTests(SimpleTestCase):
    """Tests for AttendanceApiClient with a mocked requests session."""

    def setUp(self):
        self.session = mock.Mock()
        self.client_api = AttendanceApiClient(
            base_url='http://testserver/academics/api/', timeout=5, session=self.session
        )

    def test_roster_is_normalized(self):
        self.session.request.return_value = _response(200, {'students': [
            {'studentId': 7, 'firstName': 'Ada', 'lastName': 'Adams', 'admissionNo': 'ADM001'},
            {'id': 8, 'first_name': 'Bayo', 'last_name': 'Bello', 'admission_number': 'ADM002'},
        ]})

        roster = self.client_api.get_roster(10)

        self.assertEqual([e.student_id for e in roster], [7, 8])
        self.assertEqual(roster[1].admission_no, 'ADM002')
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('GET', 'http://testserver/academics/api/classes/10/roster/'))
        self.assertEqual(kwargs['timeout'], 5)

    def test_acting_as_header(self):
        self.session.request.return_value = _response(200, {'has_morning': True, 'has_afternoon': False})
        context = ActingContext(user=None, acting_as=SimpleNamespace(pk=4))

        periods = self.client_api.recorded_periods(10, DAY, context=context)

        self.assertEqual(periods, {AttendancePeriod.MORNING})
        kwargs = self.session.request.call_args[1]
        self.assertEqual(kwargs['headers']['X-Acting-As'], '4')
        self.assertEqual(kwargs['params'], {'date': '2025-10-06'})

    def test_timeout(self):
        self.session.request.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(TransportFailure):
            self.client_api.recorded_periods(10, DAY)

    def test_status_server_error(self):
        self.session.request.return_value = _response(503, {'error': 'status_unavailable', 'message': 'db down'})
        with self.assertRaises(TransportFailure) as ctx:
            self.client_api.recorded_periods(10, DAY)
        self.assertEqual(ctx.exception.message, 'db down')

    def test_submit(self):
        self.session.request.return_value = _response(201, {'recorded': 2})
        entries = [AttendanceEntry(1, AttendanceStatus.PRESENT), AttendanceEntry(2, AttendanceStatus.LATE)]

        recorded = self.client_api.submit_period(10, DAY, AttendancePeriod.MORNING, 1, 2, entries)

        self.assertEqual(recorded, 2)
        body = self.session.request.call_args[1]['json']
        self.assertEqual(body['period'], 'Morning')
        self.assertEqual(body['attendances'][1], {'student_id': 2, 'status': 'Late'})

    def test_submit_conflicts(self):
        self.session.request.return_value = _response(409, {'error': 'period_out_of_order', 'message': 'x'})
        with self.assertRaises(PeriodOutOfOrder):
            self.client_api.submit_period(10, DAY, 'Afternoon', 1, 2, [AttendanceEntry(1, 'Present')])

        self.session.request.return_value = _response(409, {'error': 'period_already_recorded', 'message': 'x'})
        with self.assertRaises(PeriodAlreadyRecorded):
            self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])

    def test_submit_rejected_and_failed(self):
        self.session.request.return_value = _response(400, {'error': 'submission_rejected', 'message': 'bad'})
        with self.assertRaises(SubmissionRejected):
            self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])

        self.session.request.return_value = _response(502)
        with self.assertRaises(TransportFailure) as ctx:
            self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])
        self.assertNotIsInstance(ctx.exception, SubmissionRejected)

    def test_submit_malformed_count(self):
        self.session.request.return_value = _response(201, {'recorded': None})
        with self.assertRaises(TransportFailure) as ctx:
            self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])
        self.assertTrue(ctx.exception.retryable)

    def test_submit_fetches_csrf_token(self):
        self.session.cookies = {}
        self.session.request.side_effect = [
            _response(200, {'csrf_token': 'tok123'}),
            _response(201, {'recorded': 1}),
            _response(201, {'recorded': 1}),
        ]

        self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])
        self.client_api.submit_period(10, DAY, 'Afternoon', 1, 2, [AttendanceEntry(1, 'Present')])

        calls = self.session.request.call_args_list
        self.assertEqual(len(calls), 3)
        self.assertEqual(calls[0][0], ('GET', 'http://testserver/academics/api/csrf/'))
        for call in calls[1:]:
            self.assertEqual(call[0][0], 'POST')
            self.assertEqual(call[1]['headers']['X-CSRFToken'], 'tok123')
            self.assertEqual(call[1]['headers']['Referer'], 'http://testserver/academics/api/')

    def test_submit_uses_csrf_cookie(self):
        self.session.cookies = {'csrftoken': 'cookie-token'}
        self.session.request.return_value = _response(201, {'recorded': 1})

        self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])

        self.assertEqual(self.session.request.call_count, 1)
        self.assertEqual(self.session.request.call_args[1]['headers']['X-CSRFToken'], 'cookie-token')

    def test_forbidden_is_not_retryable(self):
        """A 403 page (e.g. CSRF failure) is an access error, not a transport hiccup."""
        self.session.cookies = {'csrftoken': 'stale'}
        self.session.request.return_value = _response(403)
        with self.assertRaises(AccessDenied) as ctx:
            self.client_api.submit_period(10, DAY, 'Morning', 1, 2, [AttendanceEntry(1, 'Present')])
        self.assertFalse(ctx.exception.retryable)

        self.session.request.return_value = _response(401, {'error': 'not_authenticated', 'message': 'Sign in'})
        with self.assertRaises(AccessDenied) as ctx:
            self.client_api.get_roster(10)
        self.assertEqual(ctx.exception.message, 'Sign in')


class SeedAcademicsCommandTests(TestCase):

    def test_seed(self):
        call_command('seed_academics', '--arms', 'A', 'B', stdout=StringIO())
        self.assertEqual(Class.objects.count(), 12)
        self.assertTrue(Subject.objects.filter(code='MTH').exists())
        self.assertIsNotNone(Term.get_current())
