"""
Gradebook views package.

- base: term and grading system resolution, shared decorators
- results: student summaries, class and subject rankings, broadsheet export
- scores: score entry, approval and grade locking
"""
from .results import (
    student_summary,
    class_ranking,
    subject_results,
    class_broadsheet,
    grading_systems,
)

from .scores import (
    score_entry,
    subject_scores,
    lock_term,
    approve_subject,
)
