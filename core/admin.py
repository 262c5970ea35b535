from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import AcademicSession, Term


@admin.register(AcademicSession)
class AcademicSessionAdmin(ModelAdmin):
    list_display = ('name', 'start_date', 'end_date', 'is_current')


@admin.register(Term)
class TermAdmin(ModelAdmin):
    list_display = ('name', 'academic_session', 'start_date', 'end_date', 'is_current', 'grades_locked')
    list_filter = ('academic_session', 'is_current', 'grades_locked')
    readonly_fields = ('grades_locked_at', 'grades_locked_by')
