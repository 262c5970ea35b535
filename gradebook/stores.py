"""
Score collaborators for the result aggregator.
"""
import logging
from abc import ABC, abstractmethod
from collections import defaultdict

from .aggregation import SubjectScores

logger = logging.getLogger(__name__)


class ScoreSource(ABC):
    """Raw component scores per subject for the students of a class."""

    @abstractmethod
    def get_subject_scores(self, student_id, class_id):
        """Return a list of SubjectScores for one student."""

    def get_class_scores(self, class_id, student_ids):
        """Return {student_id: [SubjectScores]} for a whole roster."""
        return {
            student_id: self.get_subject_scores(student_id, class_id)
            for student_id in student_ids
        }


class InMemoryScoreSource(ScoreSource):
    """
    Scores held in a dict, keyed by student id.

    Usage:
        source = InMemoryScoreSource({
            1: [SubjectScores(1, 'Mathematics', (8, 9, 7, 50))],
        })
    """

    def __init__(self, scores=None):
        self.scores = scores or {}

    def get_subject_scores(self, student_id, class_id):
        return list(self.scores.get(student_id, []))


class DatabaseScoreSource(ScoreSource):
    """
    Scores for one term read from the Score table.

    Component scores are ordered by Assessment.order; a component with no
    Score row is None. Subjects without any Score row are left out.
    """

    def __init__(self, term):
        self.term = term

    def _assessments(self):
        from .models import Assessment
        return list(Assessment.objects.filter(is_active=True).order_by('order', 'name'))

    def _rows(self, class_id, student_ids):
        from .models import Score
        return (
            Score.objects
            .filter(term=self.term, class_assigned_id=class_id, student_id__in=list(student_ids))
            .select_related('subject')
            .order_by('subject__name', 'subject_id')
        )

    def _build(self, rows, assessments):
        positions = {assessment.pk: index for index, assessment in enumerate(assessments)}
        by_student = defaultdict(dict)
        for row in rows:
            if row.assessment_id not in positions:
                continue
            subjects = by_student[row.student_id]
            if row.subject_id not in subjects:
                subjects[row.subject_id] = (row.subject.name, [None] * len(assessments))
            subjects[row.subject_id][1][positions[row.assessment_id]] = row.score

        return {
            student_id: [
                SubjectScores(subject_id=subject_id, subject_name=name, scores=tuple(values))
                for subject_id, (name, values) in subjects.items()
            ]
            for student_id, subjects in by_student.items()
        }

    def get_subject_scores(self, student_id, class_id):
        return self.get_class_scores(class_id, [student_id]).get(student_id, [])

    def get_class_scores(self, class_id, student_ids):
        assessments = self._assessments()
        scores = self._build(self._rows(class_id, student_ids), assessments)
        logger.debug(f"Loaded scores for {len(scores)} students in class {class_id}, term {self.term}")
        return scores
