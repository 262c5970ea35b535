"""
Grade engine.

A ``GradeTable`` is an ordered list of score bands, highest first. Tables are
validated when they are built, so a lookup can never fall through: every
number maps to exactly one band.

Lookup rules:
    - inside the domain, the highest band whose minimum is <= the score wins,
      so a fractional score between two integer bands (69.5) takes the lower
      band and a score equal to a band's maximum takes that band;
    - outside the domain (negative, or above the top band) the lowest band
      is returned.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence, Tuple

from . import config


class GradeTableError(ValueError):
    """Raised when a band table is not a complete, ordered partition of its domain."""


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise TypeError(f'Score must be a number, got {value!r}') from e


@dataclass(frozen=True)
class GradeBand:
    min_score: Decimal
    max_score: Decimal
    grade: str
    remark: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'min_score', to_decimal(self.min_score))
        object.__setattr__(self, 'max_score', to_decimal(self.max_score))

    def __str__(self):
        return f"{self.grade} ({self.min_score}-{self.max_score})"


@dataclass(frozen=True)
class GradeResult:
    grade: str
    remark: str

    def to_dict(self):
        return {'grade': self.grade, 'remark': self.remark}


class GradeTable:
    """
    An ordered, gap-free, non-overlapping set of grade bands.

    Args:
        bands: GradeBand objects, or (min, max, grade, remark) tuples,
            ordered from the highest band down
        domain: (min, max) of valid scores
        step: widest allowed gap between one band's minimum and the next
            band's maximum (1 for integer bands)
        name: Display name
    """

    def __init__(self, bands: Sequence, domain: Tuple = (0, 100), step=1, name: str = ''):
        self.bands = tuple(b if isinstance(b, GradeBand) else GradeBand(*b) for b in bands)
        self.domain = (to_decimal(domain[0]), to_decimal(domain[1]))
        self.step = to_decimal(step)
        self.name = name
        self._validate()

    def __iter__(self):
        return iter(self.bands)

    def __len__(self):
        return len(self.bands)

    def __repr__(self):
        return f"<GradeTable {self.name or 'unnamed'}: {', '.join(b.grade for b in self.bands)}>"

    @property
    def lowest(self) -> GradeBand:
        return self.bands[-1]

    @property
    def grades(self):
        return [band.grade for band in self.bands]

    def _validate(self):
        if not self.bands:
            raise GradeTableError('A grade table needs at least one band.')

        domain_min, domain_max = self.domain
        if domain_min > domain_max:
            raise GradeTableError(f'Invalid domain {domain_min}-{domain_max}.')

        for band in self.bands:
            if band.min_score > band.max_score:
                raise GradeTableError(f'Band {band} has a minimum above its maximum.')

        for upper, lower in zip(self.bands, self.bands[1:]):
            if lower.min_score >= upper.min_score:
                raise GradeTableError(f'Bands must be ordered from highest to lowest: {lower} follows {upper}.')
            if lower.max_score >= upper.min_score:
                raise GradeTableError(f'Band {lower} overlaps {upper}.')
            if upper.min_score - lower.max_score > self.step:
                raise GradeTableError(f'Gap between {lower} and {upper}.')

        if self.bands[0].max_score != domain_max:
            raise GradeTableError(f'Top band {self.bands[0]} does not reach {domain_max}.')
        if self.lowest.min_score != domain_min:
            raise GradeTableError(f'Lowest band {self.lowest} does not start at {domain_min}.')

    def band_for(self, score) -> GradeBand:
        score = to_decimal(score)
        domain_min, domain_max = self.domain
        if score.is_nan() or score < domain_min or score > domain_max:
            return self.lowest
        for band in self.bands:
            if band.min_score <= score:
                return band
        return self.lowest

    def grade_of(self, score) -> GradeResult:
        band = self.band_for(score)
        return GradeResult(grade=band.grade, remark=band.remark)

    def to_list(self):
        return [
            {
                'grade': band.grade,
                'min_score': band.min_score,
                'max_score': band.max_score,
                'remark': band.remark,
            }
            for band in self.bands
        ]


DEFAULT_GRADE_TABLE = GradeTable([
    (70, 100, 'A', 'Excellent'),
    (60, 69, 'B', 'Very Good'),
    (50, 59, 'C', 'Good'),
    (45, 49, 'D', 'Pass'),
    (40, 44, 'E', 'Fair'),
    (0, 39, 'F', 'Fail'),
], name='A-F')

PERCENTAGE_GRADE_TABLE = GradeTable([
    (90, 100, 'A+', 'Outstanding'),
    (80, 89, 'A', 'Excellent'),
    (75, 79, 'B+', 'Very Good'),
    (70, 74, 'B', 'Good'),
    (65, 69, 'C+', 'Above Average'),
    (60, 64, 'C', 'Average'),
    (50, 59, 'D', 'Below Average'),
    (0, 49, 'F', 'Fail'),
], name='Percentage')

BUILTIN_TABLES = {
    'AF': DEFAULT_GRADE_TABLE,
    'PERCENTAGE': PERCENTAGE_GRADE_TABLE,
}


def get_default_table() -> GradeTable:
    """Built-in table named by GRADEBOOK_DEFAULT_GRADING_SYSTEM."""
    key = str(config.DEFAULT_GRADING_SYSTEM).upper()
    try:
        return BUILTIN_TABLES[key]
    except KeyError:
        raise GradeTableError(f'Unknown built-in grading system {key!r}.')


def grade_of(score, table: Optional[GradeTable] = None) -> GradeResult:
    """Grade and remark for a score, using the default table when none is given."""
    return (table or get_default_table()).grade_of(score)


PERFORMANCE_REMARKS = (
    (Decimal('70'), 'Outstanding Performance'),
    (Decimal('60'), 'Very Good Performance'),
    (Decimal('50'), 'Good Performance'),
    (Decimal('45'), 'Satisfactory Performance'),
    (Decimal('40'), 'Fair Performance'),
)


def performance_remark(average) -> str:
    """Overall remark for a student's average, used on report cards."""
    average = to_decimal(average)
    if average.is_nan():
        return 'Needs Improvement'
    for threshold, remark in PERFORMANCE_REMARKS:
        if average >= threshold:
            return remark
    return 'Needs Improvement'


def ordinal(position) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    position = int(position)
    if 10 <= position % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(position % 10, 'th')
    return f"{position}{suffix}"
