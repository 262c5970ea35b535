"""
Class broadsheet workbook: every student's subject totals, average, grade and
position for one term, plus a summary sheet with class statistics.
"""
import openpyxl
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from django.http import HttpResponse

from . import config

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _styles():
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color=config.EXCEL_HEADER_COLOR, end_color=config.EXCEL_HEADER_COLOR, fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    return header_font, header_fill, thin_border


def subject_columns(summaries):
    """(subject_id, subject_name) pairs across all students, sorted by name."""
    subjects = {}
    for summary in summaries:
        for subject in summary.subjects:
            subjects.setdefault(subject.subject_id, subject.subject_name)
    return sorted(subjects.items(), key=lambda item: (item[1], item[0]))


def build_broadsheet(class_name, term_name, ranked, statistics, admission_numbers=None):
    """
    Build the broadsheet workbook.

    Args:
        class_name: e.g. "JSS1 A"
        term_name: e.g. "First Term - 2025/2026"
        ranked: StudentResultSummary list with positions, best first
        statistics: ClassStatistics for the same summaries
        admission_numbers: Optional {student_id: admission number}
    """
    admission_numbers = admission_numbers or {}
    header_font, header_fill, thin_border = _styles()

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Broadsheet"

    ws.cell(row=1, column=1, value=f"{class_name} Broadsheet - {term_name}").font = Font(bold=True, size=14)

    subjects = subject_columns(ranked)
    headers = ["Position", "Admission No", "Student Name"]
    for _, name in subjects:
        headers.extend([name, "Grade"])
    headers.extend(["Total", "Average", "Grade", "Remark"])

    header_row = 3
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=header_row, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = thin_border

    for row, summary in enumerate(ranked, header_row + 1):
        results = {subject.subject_id: subject for subject in summary.subjects}
        values = [
            summary.position_display,
            admission_numbers.get(summary.student_id, ''),
            summary.student_name,
        ]
        for subject_id, _ in subjects:
            result = results.get(subject_id)
            values.extend([float(result.total), result.grade] if result else ['', ''])
        values.extend([
            float(summary.total),
            float(summary.average),
            summary.grade,
            summary.performance_remark,
        ])

        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = thin_border
            if col != 3:
                cell.alignment = Alignment(horizontal='center')

    ws.column_dimensions['A'].width = 10
    ws.column_dimensions['B'].width = 15
    ws.column_dimensions['C'].width = 28
    for col in range(4, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 12
    ws.freeze_panes = ws.cell(row=header_row + 1, column=4)

    summary_ws = wb.create_sheet("Summary")
    rows = [
        ("Class", class_name),
        ("Term", term_name),
        ("Students", statistics.total_students),
        ("Students with results", statistics.students_with_results),
        ("Highest average", float(statistics.highest_average)),
        ("Lowest average", float(statistics.lowest_average)),
        ("Class average", float(statistics.class_average)),
    ]
    for grade, count in sorted(statistics.grade_distribution.items()):
        rows.append((f"Grade {grade}", count))

    for row, (label, value) in enumerate(rows, 1):
        summary_ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        summary_ws.cell(row=row, column=2, value=value)
    summary_ws.column_dimensions['A'].width = 24
    summary_ws.column_dimensions['B'].width = 30

    return wb


def workbook_response(wb, filename):
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)
    return response
