"""
Attendance statistics over recorded statuses.
"""
from decimal import Decimal, ROUND_HALF_UP

from .. import config
from ..choices import AttendanceStatus


def attendance_rate(attended, total):
    """Percentage of attended periods, 2 dp. Zero when nothing was recorded."""
    if not total:
        return Decimal('0.00')
    rate = Decimal(attended) * 100 / Decimal(total)
    return rate.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def summarize_statuses(statuses):
    """
    Count statuses and compute the attendance rate.

    Late counts as attended; Absent and Excused do not.

    Args:
        statuses: Iterable of AttendanceStatus values

    Returns:
        dict with one count per status, ``total``, ``attended`` and ``rate``
    """
    counts = {status.value: 0 for status in AttendanceStatus}
    for status in statuses:
        counts[AttendanceStatus(status).value] += 1

    total = sum(counts.values())
    attended = sum(counts[status] for status in config.ATTENDED_STATUSES)

    return {
        'present': counts[AttendanceStatus.PRESENT.value],
        'absent': counts[AttendanceStatus.ABSENT.value],
        'late': counts[AttendanceStatus.LATE.value],
        'excused': counts[AttendanceStatus.EXCUSED.value],
        'total': total,
        'attended': attended,
        'rate': attendance_rate(attended, total),
    }


def summarize_records(records):
    """Summary for an AttendanceRecord queryset."""
    return summarize_statuses(records.values_list('status', flat=True))
