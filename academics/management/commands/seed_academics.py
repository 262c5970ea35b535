"""
Management command to seed academic data: the current session and term,
subjects, and the JSS/SSS classes.

Usage:
    python manage.py seed_academics

    # With specific options
    python manage.py seed_academics --subjects --classes --arms A B

    # Force overwrite existing subjects
    python manage.py seed_academics --force
"""
from datetime import date

from django.core.management.base import BaseCommand
from django.db import transaction

from academics.models import Class, Subject
from core.models import AcademicSession, Term

SUBJECTS = [
    # (name, code, is_core)
    ('English Language', 'ENG', True),
    ('Mathematics', 'MTH', True),
    ('Basic Science', 'BSC', True),
    ('Social Studies', 'SST', True),
    ('Civic Education', 'CVE', True),
    ('Computer Studies', 'CMP', False),
    ('Agricultural Science', 'AGR', False),
    ('French', 'FRE', False),
]


class Command(BaseCommand):
    help = 'Seed academic data: current session/term, subjects and classes'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Overwrite existing subjects',
        )
        parser.add_argument(
            '--session',
            action='store_true',
            help='Seed only the current session and term',
        )
        parser.add_argument(
            '--subjects',
            action='store_true',
            help='Seed only subjects',
        )
        parser.add_argument(
            '--classes',
            action='store_true',
            help='Seed only classes',
        )
        parser.add_argument(
            '--arms',
            nargs='+',
            default=['A'],
            help='Class arms to create for every level (default: A)',
        )

    def handle(self, *args, **options):
        force = options['force']

        # If no specific option, seed all
        seed_all = not (options['session'] or options['subjects'] or options['classes'])

        with transaction.atomic():
            if seed_all or options['session']:
                self.create_session()
            if seed_all or options['subjects']:
                self.create_subjects(force)
            if seed_all or options['classes']:
                self.create_classes(options['arms'])

        self.stdout.write(self.style.SUCCESS('Successfully seeded academic data'))

    def create_session(self):
        """Create the current session (Sept-July) and its first term."""
        today = date.today()
        start_year = today.year if today.month >= 9 else today.year - 1
        name = f"{start_year}/{start_year + 1}"

        session, created = AcademicSession.objects.get_or_create(
            name=name,
            defaults={
                'start_date': date(start_year, 9, 1),
                'end_date': date(start_year + 1, 7, 31),
                'is_current': True,
            }
        )
        if not session.is_current:
            session.is_current = True
            session.save()

        term, _ = Term.objects.get_or_create(
            academic_session=session,
            term_number=1,
            defaults={
                'name': 'First Term',
                'start_date': date(start_year, 9, 1),
                'end_date': date(start_year, 12, 15),
                'is_current': not Term.objects.filter(is_current=True).exists(),
            }
        )
        self.stdout.write(f"  Session: {session} ({'created' if created else 'exists'}), term: {term.name}")

    def create_subjects(self, force):
        if Subject.objects.exists() and not force:
            self.stdout.write('Subjects already exist. Use --force to overwrite.')
            return

        for name, code, is_core in SUBJECTS:
            Subject.objects.update_or_create(
                code=code,
                defaults={'name': name, 'is_core': is_core, 'is_active': True},
            )
            self.stdout.write(f'  Subject: {name} ({code})')

        self.stdout.write(self.style.SUCCESS(f'Created {len(SUBJECTS)} subjects'))

    def create_classes(self, arms):
        count = 0
        for level_type in (Class.LevelType.JUNIOR, Class.LevelType.SENIOR):
            for level_number in (1, 2, 3):
                for arm in arms:
                    _, created = Class.objects.get_or_create(
                        level_type=level_type,
                        level_number=level_number,
                        arm=arm.upper(),
                    )
                    count += int(created)

        self.stdout.write(self.style.SUCCESS(f'Created {count} classes'))
