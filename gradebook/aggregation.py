"""
Result summary aggregation: per-subject totals, averages, grades and class
positions. Nothing here is persisted; summaries are rebuilt on every request
from the scores a ``ScoreSource`` returns.

Ranking order:
    1. average, highest first (the rounded average that is displayed)
    2. roster order (last name, first name, admission number)

Positions are sequential by default, so two students on the same average
get 1 and 2, the one earlier on the roster first. With ``shared_ties`` they
both get 1 and the next student gets 3.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from . import config
from .grading import GradeTable, get_default_table, ordinal, performance_remark, to_decimal

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def round2(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SubjectScores:
    """Raw component scores of one subject, None for a missing component."""
    subject_id: int
    subject_name: str
    scores: Tuple = ()

    @property
    def total(self) -> Decimal:
        return sum((to_decimal(s) for s in self.scores if s is not None), Decimal('0'))


@dataclass(frozen=True)
class SubjectResult:
    subject_id: int
    subject_name: str
    scores: Tuple
    total: Decimal
    grade: str
    remark: str

    def to_dict(self):
        return {
            'subject_id': self.subject_id,
            'subject_name': self.subject_name,
            'scores': [None if s is None else str(s) for s in self.scores],
            'total': str(self.total),
            'grade': self.grade,
            'remark': self.remark,
        }


@dataclass(frozen=True)
class StudentResultSummary:
    student_id: int
    student_name: str
    subjects: Tuple = ()
    total: Decimal = Decimal('0')
    average: Decimal = Decimal('0.00')
    grade: str = ''
    remark: str = ''
    position: Optional[int] = None

    @property
    def subject_count(self):
        return len(self.subjects)

    @property
    def has_results(self):
        return bool(self.subjects)

    @property
    def position_display(self):
        return ordinal(self.position) if self.position else ''

    @property
    def performance_remark(self):
        return performance_remark(self.average)

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'student_name': self.student_name,
            'subjects': [s.to_dict() for s in self.subjects],
            'subject_count': self.subject_count,
            'total': str(self.total),
            'average': str(self.average),
            'grade': self.grade,
            'remark': self.remark,
            'performance_remark': self.performance_remark,
            'position': self.position,
            'position_display': self.position_display,
        }


@dataclass(frozen=True)
class ClassStatistics:
    total_students: int
    students_with_results: int
    highest_average: Decimal
    lowest_average: Decimal
    class_average: Decimal
    grade_distribution: dict = field(default_factory=dict)
    top_performers: Tuple = ()

    def to_dict(self):
        return {
            'total_students': self.total_students,
            'students_with_results': self.students_with_results,
            'highest_average': str(self.highest_average),
            'lowest_average': str(self.lowest_average),
            'class_average': str(self.class_average),
            'grade_distribution': self.grade_distribution,
            'top_performers': [
                {'student_id': s.student_id, 'student_name': s.student_name,
                 'average': str(s.average), 'position': s.position}
                for s in self.top_performers
            ],
        }


@dataclass(frozen=True)
class SubjectStatistics:
    subject_id: int
    total_students: int
    students_with_scores: int
    highest_score: Decimal
    lowest_score: Decimal
    subject_average: Decimal
    grade_distribution: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'subject_id': self.subject_id,
            'total_students': self.total_students,
            'students_with_scores': self.students_with_scores,
            'highest_score': str(self.highest_score),
            'lowest_score': str(self.lowest_score),
            'subject_average': str(self.subject_average),
            'grade_distribution': self.grade_distribution,
        }


def summarize_scores(student_id, student_name, subject_scores: Sequence[SubjectScores],
                     table: Optional[GradeTable] = None) -> StudentResultSummary:
    """
    Build one student's summary from raw subject scores.

    Subjects are weighted equally. A student with no subjects averages 0.
    """
    table = table or get_default_table()

    subjects = []
    for item in subject_scores:
        total = item.total
        result = table.grade_of(total)
        subjects.append(SubjectResult(
            subject_id=item.subject_id,
            subject_name=item.subject_name,
            scores=tuple(item.scores),
            total=total,
            grade=result.grade,
            remark=result.remark,
        ))

    total = sum((s.total for s in subjects), Decimal('0'))
    average = round2(total / len(subjects)) if subjects else round2(0)
    overall = table.grade_of(average)

    return StudentResultSummary(
        student_id=student_id,
        student_name=student_name,
        subjects=tuple(subjects),
        total=total,
        average=average,
        grade=overall.grade,
        remark=overall.remark,
    )


def assign_positions(summaries: Sequence[StudentResultSummary], shared_ties=False) -> List[StudentResultSummary]:
    """
    Rank summaries given in roster order.

    Returns:
        New summaries with ``position`` set, best first. The result has
        exactly as many entries as the input.
    """
    ordered = sorted(
        enumerate(summaries),
        key=lambda pair: (-pair[1].average, pair[0]),
    )

    ranked = []
    previous_average = None
    previous_position = 0
    for index, (_, summary) in enumerate(ordered, start=1):
        if shared_ties and summary.average == previous_average:
            position = previous_position
        else:
            position = index
        ranked.append(replace(summary, position=position))
        previous_average = summary.average
        previous_position = position
    return ranked


def class_statistics(summaries: Sequence[StudentResultSummary], top=None) -> ClassStatistics:
    """
    Class-level figures over students who have an average above zero.
    """
    top = config.TOP_PERFORMERS_LIMIT if top is None else top
    with_results = [s for s in summaries if s.has_results and s.average > 0]
    averages = [s.average for s in with_results]

    if averages:
        highest = max(averages)
        lowest = min(averages)
        class_average = round2(sum(averages, Decimal('0')) / len(averages))
    else:
        highest = lowest = class_average = round2(0)

    ranked = sorted(
        (s for s in with_results if s.position is not None),
        key=lambda s: s.position,
    )

    return ClassStatistics(
        total_students=len(summaries),
        students_with_results=len(with_results),
        highest_average=highest,
        lowest_average=lowest,
        class_average=class_average,
        grade_distribution=dict(Counter(s.grade for s in with_results)),
        top_performers=tuple(ranked[:top]),
    )


def subject_statistics(subject_id, summaries: Sequence[StudentResultSummary]) -> SubjectStatistics:
    """
    Highest, lowest and average subject total over students who have at
    least one score in the subject. ``summaries`` come from ``rank_subject``.
    """
    with_scores = [s for s in summaries if s.has_results]
    totals = [s.average for s in with_scores]

    if totals:
        highest = max(totals)
        lowest = min(totals)
        average = round2(sum(totals, Decimal('0')) / len(totals))
    else:
        highest = lowest = average = round2(0)

    return SubjectStatistics(
        subject_id=subject_id,
        total_students=len(summaries),
        students_with_scores=len(with_scores),
        highest_score=highest,
        lowest_score=lowest,
        subject_average=average,
        grade_distribution=dict(Counter(s.grade for s in with_scores)),
    )


class ResultAggregator:
    """
    Combine a roster with its scores into summaries and class positions.

    Args:
        score_source: ScoreSource for one term
        roster_source: RosterSource giving the class in roster order
        table: GradeTable; defaults to the built-in default table
    """

    def __init__(self, score_source, roster_source, table: Optional[GradeTable] = None):
        self.score_source = score_source
        self.roster_source = roster_source
        self.table = table or get_default_table()

    def _summaries(self, class_id, context=None):
        roster = self.roster_source.get_roster(class_id, context=context)
        scores = self.score_source.get_class_scores(class_id, [entry.student_id for entry in roster])
        return [
            summarize_scores(entry.student_id, entry.full_name, scores.get(entry.student_id, []), self.table)
            for entry in roster
        ]

    def rank(self, class_id, shared_ties=None, context=None) -> List[StudentResultSummary]:
        """Every student on the roster, best first, with positions."""
        if shared_ties is None:
            shared_ties = config.RANK_SHARED_TIES
        ranked = assign_positions(self._summaries(class_id, context=context), shared_ties=shared_ties)
        logger.debug(f"Ranked {len(ranked)} students in class {class_id}")
        return ranked

    def rank_subject(self, class_id, subject_id, shared_ties=None, context=None) -> List[StudentResultSummary]:
        """
        Every student on the roster ranked on one subject's total, best
        first. Each summary holds only that subject, so its ``average`` is the
        subject total. Students without a score in the subject count as 0.
        """
        if shared_ties is None:
            shared_ties = config.RANK_SHARED_TIES
        roster = self.roster_source.get_roster(class_id, context=context)
        scores = self.score_source.get_class_scores(class_id, [entry.student_id for entry in roster])

        summaries = []
        for entry in roster:
            subject = [s for s in scores.get(entry.student_id, []) if s.subject_id == subject_id]
            summaries.append(summarize_scores(entry.student_id, entry.full_name, subject, self.table))

        ranked = assign_positions(summaries, shared_ties=shared_ties)
        logger.debug(f"Ranked {len(ranked)} students in class {class_id} on subject {subject_id}")
        return ranked

    def summarize(self, student_id, class_id, shared_ties=None, context=None) -> StudentResultSummary:
        """
        One student's summary, including their class position when the
        student is on the class roster.
        """
        for summary in self.rank(class_id, shared_ties=shared_ties, context=context):
            if summary.student_id == student_id:
                return summary

        # Not on the roster (e.g. transferred): no position
        return summarize_scores(
            student_id, '', self.score_source.get_subject_scores(student_id, class_id), self.table
        )
