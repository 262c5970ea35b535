"""
Tests for the gradebook app.

Focuses on:
- Grade band lookup and table validation
- Result aggregation and deterministic class positions
- Score entry, approval and grade locking
- Result endpoints and the broadsheet export
"""
import io
import json
from datetime import date
from decimal import Decimal

import openpyxl
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from accounts.context import ActingContext
from academics.models import Class, ClassSubject, Subject
from core.models import AcademicSession, Term
from students.models import Student
from students.roster import RosterEntry, RosterSource
from teachers.models import Teacher

from .aggregation import (
    ResultAggregator, SubjectScores, assign_positions, class_statistics, subject_statistics, summarize_scores,
)
from .grading import (
    DEFAULT_GRADE_TABLE, PERCENTAGE_GRADE_TABLE, GradeTable, GradeTableError,
    get_default_table, grade_of, ordinal, performance_remark,
)
from .models import Assessment, GradeScale, GradingSystem, Score
from .services import GradesLocked, InvalidScore, record_scores
from .stores import DatabaseScoreSource, InMemoryScoreSource

User = get_user_model()


# =============================================================================
# GRADE ENGINE
# =============================================================================

class GradeTableTests(SimpleTestCase):
    """Tests for grade band lookup."""

    def test_band_boundaries(self):
        """Each band's minimum belongs to that band."""
        cases = [(70, 'A'), (69, 'B'), (60, 'B'), (59, 'C'), (45, 'D'), (40, 'E'), (39, 'F'), (0, 'F'), (100, 'A')]
        for score, grade in cases:
            with self.subTest(score=score):
                self.assertEqual(grade_of(score, DEFAULT_GRADE_TABLE).grade, grade)

    def test_fractional_score_between_bands(self):
        """69.5 is not yet 70, so it stays in B."""
        self.assertEqual(DEFAULT_GRADE_TABLE.grade_of(Decimal('69.5')).grade, 'B')
        self.assertEqual(DEFAULT_GRADE_TABLE.grade_of(39.99).grade, 'F')

    def test_out_of_domain_scores(self):
        """Negative, above-maximum and NaN scores fall to the lowest band."""
        for score in (-5, 150, float('nan')):
            with self.subTest(score=score):
                self.assertEqual(DEFAULT_GRADE_TABLE.grade_of(score).grade, 'F')

    def test_remark(self):
        result = grade_of(85)
        self.assertEqual(result.to_dict(), {'grade': 'A', 'remark': 'Excellent'})

    def test_lower_band_remarks(self):
        """D is a pass; E is only fair."""
        self.assertEqual(grade_of(47).remark, 'Pass')
        self.assertEqual(grade_of(42).remark, 'Fair')
        self.assertEqual(grade_of(30).remark, 'Fail')

    def test_non_numeric_score(self):
        with self.assertRaises(TypeError):
            grade_of('seventy')

    def test_percentage_table(self):
        self.assertEqual(PERCENTAGE_GRADE_TABLE.grade_of(95).grade, 'A+')
        self.assertEqual(PERCENTAGE_GRADE_TABLE.grade_of(72).grade, 'B')
        self.assertEqual(PERCENTAGE_GRADE_TABLE.grade_of(49).grade, 'F')

    @override_settings(GRADEBOOK_DEFAULT_GRADING_SYSTEM='PERCENTAGE')
    def test_default_table_setting(self):
        self.assertIs(get_default_table(), PERCENTAGE_GRADE_TABLE)
        self.assertEqual(grade_of(92).grade, 'A+')

    @override_settings(GRADEBOOK_DEFAULT_GRADING_SYSTEM='GPA')
    def test_unknown_default_table(self):
        with self.assertRaises(GradeTableError):
            get_default_table()

    def test_fine_grained_step(self):
        """Bands with two-decimal edges validate with a matching step."""
        table = GradeTable([(50, 100, 'P', 'Pass'), (0, '49.99', 'F', 'Fail')], step='0.01')
        self.assertEqual(table.grade_of('49.995').grade, 'F')
        self.assertEqual(table.grade_of(50).grade, 'P')


class GradeTableValidationTests(SimpleTestCase):
    """A table must partition its domain."""

    def assertInvalid(self, bands, **kwargs):
        with self.assertRaises(GradeTableError):
            GradeTable(bands, **kwargs)

    def test_empty(self):
        self.assertInvalid([])

    def test_gap(self):
        self.assertInvalid([(70, 100, 'A'), (50, 59, 'C'), (0, 49, 'F')])

    def test_overlap(self):
        self.assertInvalid([(60, 100, 'A'), (0, 65, 'F')])

    def test_wrong_order(self):
        self.assertInvalid([(0, 49, 'F'), (50, 100, 'A')])

    def test_top_band_short_of_maximum(self):
        self.assertInvalid([(50, 90, 'A'), (0, 49, 'F')])

    def test_lowest_band_above_minimum(self):
        self.assertInvalid([(50, 100, 'A'), (10, 49, 'F')])

    def test_inverted_band(self):
        self.assertInvalid([(100, 70, 'A'), (0, 69, 'F')])

    def test_builtin_tables_are_valid(self):
        self.assertEqual(DEFAULT_GRADE_TABLE.grades, ['A', 'B', 'C', 'D', 'E', 'F'])
        self.assertEqual(len(PERCENTAGE_GRADE_TABLE), 8)


class RemarkAndOrdinalTests(SimpleTestCase):

    def test_ordinal(self):
        cases = {1: '1st', 2: '2nd', 3: '3rd', 4: '4th', 11: '11th', 12: '12th', 13: '13th',
                 21: '21st', 22: '22nd', 101: '101st', 111: '111th'}
        for position, expected in cases.items():
            self.assertEqual(ordinal(position), expected)

    def test_performance_remark(self):
        self.assertEqual(performance_remark(70), 'Outstanding Performance')
        self.assertEqual(performance_remark(Decimal('69.99')), 'Very Good Performance')
        self.assertEqual(performance_remark(45), 'Satisfactory Performance')
        self.assertEqual(performance_remark(40), 'Fair Performance')
        self.assertEqual(performance_remark(39), 'Needs Improvement')
        self.assertEqual(performance_remark(float('nan')), 'Needs Improvement')


# =============================================================================
# AGGREGATION
# =============================================================================

class StaticRosterSource(RosterSource):

    def __init__(self, roster):
        self.roster = roster

    def get_roster(self, class_id, context=None):
        return list(self.roster)


ROSTER = [
    RosterEntry(student_id=1, first_name='Ada', last_name='Adams'),
    RosterEntry(student_id=2, first_name='Bayo', last_name='Bello'),
    RosterEntry(student_id=3, first_name='Chidi', last_name='Chukwu'),
]


def subject(subject_id, name, *scores):
    return SubjectScores(subject_id=subject_id, subject_name=name, scores=tuple(scores))


class SummarizeScoresTests(SimpleTestCase):
    """Tests for a single student's summary."""

    def test_totals_average_and_grades(self):
        summary = summarize_scores(1, 'Ada Adams', [
            subject(1, 'Mathematics', 8, 9, 7, 50),
            subject(2, 'English Language', 10, None, 5, 40),
        ])
        maths, english = summary.subjects
        self.assertEqual(maths.total, Decimal('74'))
        self.assertEqual(maths.grade, 'A')
        self.assertEqual(english.total, Decimal('55'))
        self.assertEqual(english.grade, 'C')
        self.assertEqual(summary.total, Decimal('129'))
        self.assertEqual(summary.average, Decimal('64.50'))
        self.assertEqual(summary.grade, 'B')
        self.assertIsNone(summary.position)

    def test_no_subjects(self):
        """A student without scores averages 0."""
        summary = summarize_scores(1, 'Ada Adams', [])
        self.assertEqual(summary.average, Decimal('0.00'))
        self.assertEqual(summary.grade, 'F')
        self.assertFalse(summary.has_results)
        self.assertEqual(summary.to_dict()['average'], '0.00')

    def test_average_rounding(self):
        summary = summarize_scores(1, 'Ada Adams', [
            subject(1, 'Mathematics', 70), subject(2, 'English Language', 71), subject(3, 'French', 71),
        ])
        self.assertEqual(summary.average, Decimal('70.67'))


class ResultAggregatorTests(SimpleTestCase):
    """Tests for class ranking."""

    def aggregator(self, scores, roster=ROSTER):
        return ResultAggregator(InMemoryScoreSource(scores), StaticRosterSource(roster))

    def test_tie_broken_by_roster_order(self):
        """Equal averages get sequential positions, earlier on the roster first."""
        scores = {
            1: [subject(1, 'Mathematics', 72)],
            2: [subject(1, 'Mathematics', 72)],
            3: [subject(1, 'Mathematics', 60)],
        }
        ranked = self.aggregator(scores).rank(10)
        self.assertEqual([(s.student_id, s.position) for s in ranked], [(1, 1), (2, 2), (3, 3)])

        # same input, same answer
        again = self.aggregator(scores).rank(10)
        self.assertEqual([s.student_id for s in again], [1, 2, 3])

    def test_tie_follows_roster_not_input_ids(self):
        scores = {1: [subject(1, 'Mathematics', 72)], 2: [subject(1, 'Mathematics', 72)]}
        roster = [ROSTER[1], ROSTER[0]]
        ranked = self.aggregator(scores, roster).rank(10)
        self.assertEqual([s.student_id for s in ranked], [2, 1])

    def test_shared_ties(self):
        scores = {
            1: [subject(1, 'Mathematics', 72)],
            2: [subject(1, 'Mathematics', 72)],
            3: [subject(1, 'Mathematics', 60)],
        }
        ranked = self.aggregator(scores).rank(10, shared_ties=True)
        self.assertEqual([s.position for s in ranked], [1, 1, 3])
        self.assertEqual(ranked[1].position_display, '1st')

    @override_settings(GRADEBOOK_RANK_SHARED_TIES=True)
    def test_shared_ties_setting(self):
        scores = {1: [subject(1, 'Mathematics', 50)], 2: [subject(1, 'Mathematics', 50)]}
        ranked = self.aggregator(scores, ROSTER[:2]).rank(10)
        self.assertEqual([s.position for s in ranked], [1, 1])

    def test_ranking_uses_rounded_average(self):
        """72.0033 and 72.00 display the same, so they tie."""
        scores = {
            1: [subject(1, 'Mathematics', 72), subject(2, 'English Language', 72), subject(3, 'French', 72)],
            2: [subject(1, 'Mathematics', '72.01'), subject(2, 'English Language', 72), subject(3, 'French', 72)],
        }
        ranked = self.aggregator(scores, ROSTER[:2]).rank(10)
        self.assertEqual(ranked[0].average, ranked[1].average)
        self.assertEqual([s.student_id for s in ranked], [1, 2])

    def test_every_roster_student_is_ranked(self):
        """Students without scores are ranked last with an average of 0."""
        scores = {2: [subject(1, 'Mathematics', 55)]}
        ranked = self.aggregator(scores).rank(10)
        self.assertEqual(len(ranked), len(ROSTER))
        self.assertEqual(ranked[0].student_id, 2)
        self.assertEqual([s.position for s in ranked], [1, 2, 3])
        self.assertEqual(ranked[1].average, Decimal('0.00'))

    def test_summarize_includes_position(self):
        scores = {1: [subject(1, 'Mathematics', 40)], 3: [subject(1, 'Mathematics', 90)]}
        summary = self.aggregator(scores).summarize(1, 10)
        self.assertEqual(summary.position, 2)
        self.assertEqual(summary.student_name, 'Ada Adams')

    def test_summarize_student_off_roster(self):
        scores = {9: [subject(1, 'Mathematics', 66)]}
        summary = self.aggregator(scores).summarize(9, 10)
        self.assertIsNone(summary.position)
        self.assertEqual(summary.grade, 'B')

    def test_rank_subject(self):
        """A subject ranking follows that subject's totals, not the overall average."""
        scores = {
            1: [subject(1, 'Mathematics', 20, 30), subject(2, 'English Language', 90)],
            2: [subject(1, 'Mathematics', 30, 50), subject(2, 'English Language', 40)],
            3: [subject(1, 'Mathematics', 80)],
        }
        ranked = self.aggregator(scores).rank_subject(10, 1)
        self.assertEqual([(s.student_id, s.position) for s in ranked], [(2, 1), (3, 2), (1, 3)])
        self.assertEqual(ranked[0].average, Decimal('80.00'))
        self.assertEqual([s.subject_name for s in ranked[0].subjects], ['Mathematics'])
        self.assertEqual(ranked[2].grade, 'C')

        shared = self.aggregator(scores).rank_subject(10, 1, shared_ties=True)
        self.assertEqual([s.position for s in shared], [1, 1, 3])

    def test_subject_statistics(self):
        scores = {
            1: [subject(2, 'English Language', 90)],
            2: [subject(2, 'English Language', 41)],
            3: [subject(1, 'Mathematics', 80)],
        }
        ranked = self.aggregator(scores).rank_subject(10, 2)
        self.assertEqual(ranked[2].student_id, 3)
        self.assertFalse(ranked[2].has_results)

        stats = subject_statistics(2, ranked)
        self.assertEqual(stats.total_students, 3)
        self.assertEqual(stats.students_with_scores, 2)
        self.assertEqual(stats.highest_score, Decimal('90.00'))
        self.assertEqual(stats.lowest_score, Decimal('41.00'))
        self.assertEqual(stats.subject_average, Decimal('65.50'))
        self.assertEqual(stats.grade_distribution, {'A': 1, 'E': 1})

    def test_subject_statistics_empty(self):
        stats = subject_statistics(1, self.aggregator({}).rank_subject(10, 1))
        self.assertEqual(stats.students_with_scores, 0)
        self.assertEqual(stats.to_dict()['subject_average'], '0.00')

    def test_assign_positions_keeps_length(self):
        summaries = [summarize_scores(i, '', []) for i in range(5)]
        self.assertEqual(len(assign_positions(summaries)), 5)

    def test_class_statistics(self):
        scores = {1: [subject(1, 'Mathematics', 80)], 2: [subject(1, 'Mathematics', 72)]}
        ranked = self.aggregator(scores).rank(10)
        stats = class_statistics(ranked, top=1)

        self.assertEqual(stats.total_students, 3)
        self.assertEqual(stats.students_with_results, 2)
        self.assertEqual(stats.highest_average, Decimal('80.00'))
        self.assertEqual(stats.lowest_average, Decimal('72.00'))
        self.assertEqual(stats.class_average, Decimal('76.00'))
        self.assertEqual(stats.grade_distribution, {'A': 2})
        self.assertEqual([s.student_id for s in stats.top_performers], [1])

    def test_class_statistics_empty(self):
        stats = class_statistics([])
        self.assertEqual(stats.class_average, Decimal('0.00'))
        self.assertEqual(stats.to_dict()['top_performers'], [])


# =============================================================================
# DATABASE TESTS
# =============================================================================

class GradebookTestCase(TestCase):
    """Base test case with a class, two subjects, two assessments and three students."""

    def setUp(self):
        self.admin_user = User.objects.create_school_admin(email='admin@school.com', password='testpass123')
        self.form_user = User.objects.create_teacher(email='form@school.com', password='testpass123')
        self.form_teacher = Teacher.objects.create(
            user=self.form_user, first_name='Ngozi', last_name='Okafor', staff_id='T001'
        )
        self.maths_user = User.objects.create_teacher(email='maths@school.com', password='testpass123')
        self.maths_teacher = Teacher.objects.create(
            user=self.maths_user, first_name='Musa', last_name='Ibrahim', staff_id='T002'
        )

        session = AcademicSession.objects.create(
            name='2025/2026', start_date=date(2025, 9, 1), end_date=date(2026, 7, 31), is_current=True
        )
        self.term = Term.objects.create(
            academic_session=session, name='First Term', term_number=1,
            start_date=date(2025, 9, 1), end_date=date(2025, 12, 15), is_current=True
        )

        self.class_obj = Class.objects.create(
            level_type=Class.LevelType.JUNIOR, level_number=1, arm='A', form_teacher=self.form_teacher
        )
        self.maths = Subject.objects.create(name='Mathematics', code='MTH')
        self.english = Subject.objects.create(name='English Language', code='ENG')
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.maths, teacher=self.maths_teacher)
        ClassSubject.objects.create(class_assigned=self.class_obj, subject=self.english)

        self.ca = Assessment.objects.create(name='Continuous Assessment', short_name='CA', max_score=30, order=1)
        self.exam = Assessment.objects.create(name='Exam', short_name='EXAM', max_score=70, order=2)

        self.ada = self.create_student('Ada', 'Adams', 'ADM001')
        self.bayo = self.create_student('Bayo', 'Bello', 'ADM002')
        self.chidi = self.create_student('Chidi', 'Chukwu', 'ADM003')

    def create_student(self, first_name, last_name, admission_number, class_obj=None):
        return Student.objects.create(
            first_name=first_name,
            last_name=last_name,
            gender='F',
            admission_number=admission_number,
            current_class=class_obj or self.class_obj,
        )

    def add_score(self, student, subject, assessment, value):
        return Score.objects.create(
            student=student, subject=subject, class_assigned=self.class_obj,
            term=self.term, assessment=assessment, score=Decimal(str(value)),
        )

    def add_tied_results(self):
        """Ada and Bayo both average 72.00; Chidi only sat Mathematics (40)."""
        for student, (maths_ca, maths_exam, eng_ca, eng_exam) in (
            (self.ada, (20, 52, 25, 47)),
            (self.bayo, (22, 50, 20, 52)),
        ):
            self.add_score(student, self.maths, self.ca, maths_ca)
            self.add_score(student, self.maths, self.exam, maths_exam)
            self.add_score(student, self.english, self.ca, eng_ca)
            self.add_score(student, self.english, self.exam, eng_exam)
        self.add_score(self.chidi, self.maths, self.ca, 10)
        self.add_score(self.chidi, self.maths, self.exam, 30)

    def create_system(self, name, bands, is_default=False):
        system = GradingSystem.objects.create(name=name, is_default=is_default)
        for order, (low, high, label) in enumerate(bands, start=1):
            GradeScale.objects.create(
                grading_system=system, grade_label=label,
                min_percentage=low, max_percentage=high, order=order,
            )
        return system


class GradingSystemModelTests(GradebookTestCase):
    """Tests for GradingSystem and GradeScale."""

    def test_as_table(self):
        system = self.create_system('Pass/Fail', [(50, 100, 'P'), (0, 49, 'F')])
        table = system.as_table()
        self.assertEqual(table.grades, ['P', 'F'])
        self.assertEqual(system.get_grade_for_score(49.5).grade, 'F')
        self.assertIsNone(system.get_grade_for_score(None))

    def test_invalid_scales(self):
        system = self.create_system('Broken', [(70, 100, 'A'), (0, 50, 'F')])
        with self.assertRaises(GradeTableError):
            system.as_table()

    def test_single_default(self):
        first = self.create_system('First', [(0, 100, 'P')], is_default=True)
        second = self.create_system('Second', [(0, 100, 'Q')], is_default=True)
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertEqual(GradingSystem.get_default_table().name, second.name)

    def test_builtin_table_without_default(self):
        self.assertIs(GradingSystem.get_default_table(), get_default_table())

    def test_scale_overlap_validation(self):
        system = self.create_system('Overlap', [(50, 100, 'P')])
        scale = GradeScale(grading_system=system, grade_label='F', min_percentage=0, max_percentage=60)
        with self.assertRaises(ValidationError):
            scale.clean()


class DatabaseScoreSourceTests(GradebookTestCase):

    def test_components_in_assessment_order(self):
        self.add_score(self.ada, self.maths, self.exam, 50)
        self.add_score(self.ada, self.maths, self.ca, 20)
        self.add_score(self.ada, self.english, self.exam, 40)

        subjects = DatabaseScoreSource(self.term).get_subject_scores(self.ada.pk, self.class_obj.pk)

        self.assertEqual([s.subject_name for s in subjects], ['English Language', 'Mathematics'])
        self.assertEqual(subjects[0].scores, (None, Decimal('40.00')))
        self.assertEqual(subjects[1].total, Decimal('70.00'))

    def test_other_terms_excluded(self):
        other_term = Term.objects.create(
            academic_session=self.term.academic_session, name='Second Term', term_number=2,
            start_date=date(2026, 1, 5), end_date=date(2026, 4, 1)
        )
        Score.objects.create(
            student=self.ada, subject=self.maths, class_assigned=self.class_obj,
            term=other_term, assessment=self.exam, score=60,
        )
        self.assertEqual(DatabaseScoreSource(self.term).get_subject_scores(self.ada.pk, self.class_obj.pk), [])


class ScoreServiceTests(GradebookTestCase):
    """Tests for record_scores."""

    def test_create_update_clear(self):
        context = ActingContext.for_user(self.maths_user)
        counts = record_scores(self.term, self.class_obj, self.maths, self.ca, [
            {'student_id': self.ada.pk, 'score': 25},
            {'student_id': self.bayo.pk, 'score': '18.5'},
        ], context)
        self.assertEqual(counts, {'created': 2, 'updated': 0, 'cleared': 0})

        Score.objects.filter(student=self.ada).update(is_approved=True)
        counts = record_scores(self.term, self.class_obj, self.maths, self.ca, [
            {'student_id': self.ada.pk, 'score': 26},
            {'student_id': self.bayo.pk, 'score': None},
        ], context)
        self.assertEqual(counts, {'created': 0, 'updated': 1, 'cleared': 1})

        score = Score.objects.get(student=self.ada)
        self.assertEqual(score.score, Decimal('26.00'))
        self.assertFalse(score.is_approved)
        self.assertFalse(Score.objects.filter(student=self.bayo).exists())

    def test_score_above_maximum(self):
        context = ActingContext.for_user(self.maths_user)
        with self.assertRaises(InvalidScore):
            record_scores(self.term, self.class_obj, self.maths, self.ca, [
                {'student_id': self.ada.pk, 'score': 31},
            ], context)
        self.assertFalse(Score.objects.exists())

    def test_unassigned_teacher(self):
        context = ActingContext.for_user(self.maths_user)
        with self.assertRaises(PermissionDenied):
            record_scores(self.term, self.class_obj, self.english, self.ca, [
                {'student_id': self.ada.pk, 'score': 20},
            ], context)

    def test_locked_term(self):
        self.term.lock_grades(self.admin_user)
        with self.assertRaises(GradesLocked):
            record_scores(self.term, self.class_obj, self.maths, self.ca, [
                {'student_id': self.ada.pk, 'score': 20},
            ], ActingContext.for_user(self.admin_user))


class ResultViewTests(GradebookTestCase):
    """Tests for the result endpoints."""

    def setUp(self):
        super().setUp()
        self.add_tied_results()
        self.client.force_login(self.form_user)

    def test_class_ranking(self):
        response = self.client.get(reverse('gradebook:class_ranking', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        data = response.json()

        students = data['students']
        self.assertEqual([s['student_id'] for s in students], [self.ada.pk, self.bayo.pk, self.chidi.pk])
        self.assertEqual([s['position'] for s in students], [1, 2, 3])
        self.assertEqual(students[0]['average'], '72.00')
        self.assertEqual(students[0]['grade'], 'A')
        self.assertEqual(students[2]['grade'], 'E')
        self.assertEqual(data['statistics']['highest_average'], '72.00')

    def test_class_ranking_shared_ties(self):
        response = self.client.get(
            reverse('gradebook:class_ranking', args=[self.class_obj.pk]), {'ties': 'shared'}
        )
        self.assertEqual([s['position'] for s in response.json()['students']], [1, 1, 3])

    def test_default_grading_system(self):
        self.create_system('Percentage', [
            (band.min_score, band.max_score, band.grade) for band in PERCENTAGE_GRADE_TABLE
        ], is_default=True)
        response = self.client.get(reverse('gradebook:class_ranking', args=[self.class_obj.pk]))
        self.assertEqual(response.json()['students'][0]['grade'], 'B')

    def test_invalid_grading_system(self):
        broken = self.create_system('Broken', [(70, 100, 'A'), (0, 50, 'F')])
        response = self.client.get(
            reverse('gradebook:class_ranking', args=[self.class_obj.pk]), {'grading_system': str(broken.pk)}
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'invalid_grading_system')

    def test_subject_results(self):
        response = self.client.get(
            reverse('gradebook:subject_results', args=[self.class_obj.pk, self.maths.pk])
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        students = data['students']
        self.assertEqual(data['subject_name'], 'Mathematics')
        self.assertEqual([s['student_id'] for s in students], [self.ada.pk, self.bayo.pk, self.chidi.pk])
        self.assertEqual([s['position'] for s in students], [1, 2, 3])
        self.assertEqual(students[0]['scores'], ['20.00', '52.00'])
        self.assertEqual(students[0]['total'], '72.00')
        self.assertEqual(students[2]['grade'], 'E')
        self.assertEqual(students[2]['remark'], 'Fair')
        self.assertEqual(data['statistics']['highest_score'], '72.00')
        self.assertEqual(data['statistics']['lowest_score'], '40.00')
        self.assertEqual(data['statistics']['subject_average'], '61.33')

    def test_subject_results_missing_scores(self):
        """Chidi has no English score: ranked last and left out of the statistics."""
        response = self.client.get(
            reverse('gradebook:subject_results', args=[self.class_obj.pk, self.english.pk]),
            {'ties': 'shared'},
        )
        data = response.json()
        self.assertEqual([s['position'] for s in data['students']], [1, 1, 3])
        self.assertEqual(data['students'][2]['scores'], [])
        self.assertEqual(data['statistics']['students_with_scores'], 2)
        self.assertEqual(data['statistics']['lowest_score'], '72.00')

    def test_subject_results_forbidden(self):
        other = Class.objects.create(level_type=Class.LevelType.JUNIOR, level_number=2, arm='A')
        response = self.client.get(reverse('gradebook:subject_results', args=[other.pk, self.maths.pk]))
        self.assertEqual(response.status_code, 403)

    def test_student_summary(self):
        response = self.client.get(reverse('gradebook:student_summary', args=[self.chidi.pk]))
        data = response.json()
        self.assertEqual(data['position'], 3)
        self.assertEqual(data['position_display'], '3rd')
        self.assertEqual(data['subject_count'], 1)
        self.assertEqual(data['subjects'][0]['scores'], ['10.00', '30.00'])
        self.assertEqual(data['performance_remark'], 'Fair Performance')

    def test_unrelated_teacher_forbidden(self):
        other = Class.objects.create(level_type=Class.LevelType.JUNIOR, level_number=2, arm='A')
        response = self.client.get(reverse('gradebook:class_ranking', args=[other.pk]))
        self.assertEqual(response.status_code, 403)

    def test_broadsheet(self):
        response = self.client.get(reverse('gradebook:class_broadsheet', args=[self.class_obj.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response['Content-Type'], 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )
        self.assertIn('broadsheet_JSS1_A_First_Term.xlsx', response['Content-Disposition'])

        wb = openpyxl.load_workbook(io.BytesIO(response.content))
        ws = wb['Broadsheet']
        headers = [cell.value for cell in ws[3]]
        self.assertEqual(headers[:7], [
            'Position', 'Admission No', 'Student Name', 'English Language', 'Grade', 'Mathematics', 'Grade',
        ])
        self.assertEqual([ws.cell(row=4, column=c).value for c in (1, 2, 3)], ['1st', 'ADM001', 'Ada Adams'])
        self.assertFalse(ws.cell(row=6, column=4).value)
        self.assertIn('Summary', wb.sheetnames)

    def test_grading_systems(self):
        self.create_system('Pass/Fail', [(50, 100, 'P'), (0, 49, 'F')])
        self.create_system('Broken', [(70, 100, 'A'), (0, 50, 'F')])
        response = self.client.get(reverse('gradebook:grading_systems'))
        systems = {s['name']: s for s in response.json()['grading_systems']}
        self.assertEqual([b['grade'] for b in systems['Pass/Fail']['bands']], ['P', 'F'])
        self.assertIsNone(systems['Pass/Fail']['error'])
        self.assertEqual(systems['Broken']['bands'], [])
        self.assertTrue(systems['Broken']['error'])


class ScoreViewTests(GradebookTestCase):
    """Tests for score entry, approval and locking endpoints."""

    def post(self, name, payload, args=None):
        return self.client.post(
            reverse(name, args=args), data=json.dumps(payload), content_type='application/json'
        )

    def payload(self, subject, scores, assessment=None):
        return {
            'class_id': self.class_obj.pk,
            'subject_id': subject.pk,
            'assessment_id': str((assessment or self.ca).pk),
            'scores': scores,
        }

    def test_subject_teacher_enters_scores(self):
        self.client.force_login(self.maths_user)
        response = self.post('gradebook:score_entry', self.payload(self.maths, [
            {'student_id': self.ada.pk, 'score': 24},
            {'student_id': self.bayo.pk, 'score': 19.5},
        ]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['created'], 2)

        response = self.client.get(
            reverse('gradebook:subject_scores', args=[self.class_obj.pk, self.maths.pk])
        )
        self.assertEqual(response.json()['scores'][str(self.bayo.pk)][str(self.ca.pk)], '19.50')

    def test_invalid_score(self):
        self.client.force_login(self.maths_user)
        response = self.post('gradebook:score_entry', self.payload(self.maths, [
            {'student_id': self.ada.pk, 'score': 31},
        ]))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'invalid_score')

    def test_student_from_another_class(self):
        other = Class.objects.create(level_type=Class.LevelType.JUNIOR, level_number=2, arm='A')
        stranger = self.create_student('Zara', 'Zubair', 'ADM010', class_obj=other)
        self.client.force_login(self.maths_user)
        response = self.post('gradebook:score_entry', self.payload(self.maths, [
            {'student_id': stranger.pk, 'score': 10},
        ]))
        self.assertEqual(response.status_code, 400)

    def test_other_subject_forbidden(self):
        self.client.force_login(self.maths_user)
        response = self.post('gradebook:score_entry', self.payload(self.english, [
            {'student_id': self.ada.pk, 'score': 10},
        ]))
        self.assertEqual(response.status_code, 403)

    def test_unknown_assessment(self):
        self.client.force_login(self.maths_user)
        payload = self.payload(self.maths, [])
        payload['assessment_id'] = 'not-a-uuid'
        response = self.post('gradebook:score_entry', payload)
        self.assertEqual(response.status_code, 404)

    def test_lock_and_approve(self):
        self.add_score(self.ada, self.maths, self.ca, 20)
        self.add_score(self.bayo, self.maths, self.ca, 21)
        self.client.force_login(self.admin_user)

        response = self.post('gradebook:approve_subject', {}, args=[self.class_obj.pk, self.maths.pk])
        self.assertEqual(response.json()['approved'], 2)
        self.assertFalse(Score.objects.filter(is_approved=False).exists())

        response = self.post('gradebook:lock_term', {'locked': True}, args=[self.term.pk])
        self.assertTrue(response.json()['grades_locked'])

        self.client.force_login(self.maths_user)
        response = self.post('gradebook:score_entry', self.payload(self.maths, [
            {'student_id': self.ada.pk, 'score': 25},
        ]))
        self.assertEqual(response.status_code, 423)
        self.assertEqual(Score.objects.get(student=self.ada).score, Decimal('20.00'))

    def test_lock_requires_admin(self):
        self.client.force_login(self.maths_user)
        response = self.post('gradebook:lock_term', {'locked': True}, args=[self.term.pk])
        self.assertEqual(response.status_code, 403)
        self.term.refresh_from_db()
        self.assertFalse(self.term.grades_locked)

    def test_lock_rejects_non_boolean(self):
        self.client.force_login(self.admin_user)
        response = self.post('gradebook:lock_term', {'locked': 'yes'}, args=[self.term.pk])
        self.assertEqual(response.status_code, 400)


class SeedGradingDataCommandTests(TestCase):

    def test_seed(self):
        call_command('seed_grading_data', stdout=io.StringIO())
        self.assertEqual(Assessment.objects.count(), 4)
        self.assertEqual(sum(a.max_score for a in Assessment.objects.all()), 100)
        self.assertEqual(GradingSystem.objects.count(), 2)
        self.assertEqual(GradingSystem.get_default_table().name, 'A-F')
        self.assertEqual(GradingSystem.get_default_table().grade_of(72).grade, 'A')

    def test_seed_is_idempotent(self):
        call_command('seed_grading_data', stdout=io.StringIO())
        call_command('seed_grading_data', stdout=io.StringIO())
        self.assertEqual(GradeScale.objects.count(), 14)
