"""
Management command to seed the built-in grading systems and the standard
score components (three 10-mark tests and a 70-mark exam).

Usage:
    python manage.py seed_grading_data
    python manage.py seed_grading_data --force
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from gradebook.grading import DEFAULT_GRADE_TABLE, PERCENTAGE_GRADE_TABLE
from gradebook.models import Assessment, GradeScale, GradingSystem

ASSESSMENTS = [
    {'name': '1st Test', 'short_name': 'T1', 'max_score': 10, 'order': 1},
    {'name': '2nd Test', 'short_name': 'T2', 'max_score': 10, 'order': 2},
    {'name': '3rd Test', 'short_name': 'T3', 'max_score': 10, 'order': 3},
    {'name': 'Exam', 'short_name': 'EXAM', 'max_score': 70, 'order': 4},
]


class Command(BaseCommand):
    help = 'Seed default grading systems (A-F, Percentage) and assessments'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Overwrite existing grading data',
        )

    def handle(self, *args, **options):
        force = options['force']

        with transaction.atomic():
            self.create_assessments(force)
            self.create_grading_system(DEFAULT_GRADE_TABLE, 'Standard A-F grading', is_default=True, force=force)
            self.create_grading_system(PERCENTAGE_GRADE_TABLE, 'Percentage grading with plus grades', force=force)

        self.stdout.write(self.style.SUCCESS('Successfully seeded grading data'))

    def create_assessments(self, force):
        if Assessment.objects.exists() and not force:
            self.stdout.write('Assessments already exist. Use --force to overwrite.')
            return

        for data in ASSESSMENTS:
            Assessment.objects.update_or_create(name=data['name'], defaults=data)
            self.stdout.write(f'  Assessment: {data["name"]} ({data["max_score"]} marks)')

        self.stdout.write(self.style.SUCCESS('Created assessments'))

    def create_grading_system(self, table, description, is_default=False, force=False):
        existing = GradingSystem.objects.filter(name=table.name).first()
        if existing and not force:
            self.stdout.write(f'{table.name} grading system already exists. Use --force to overwrite.')
            return

        if existing:
            existing.delete()

        system = GradingSystem.objects.create(
            name=table.name,
            description=description,
            is_active=True,
            is_default=is_default,
        )

        for order, band in enumerate(table, start=1):
            GradeScale.objects.create(
                grading_system=system,
                grade_label=band.grade,
                min_percentage=band.min_score,
                max_percentage=band.max_score,
                interpretation=band.remark,
                order=order,
            )

        # Stored scales must round-trip into a valid table
        system.as_table()
        self.stdout.write(self.style.SUCCESS(f'Created {table.name} grading system ({len(table)} grades)'))
