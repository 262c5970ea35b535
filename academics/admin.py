from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import AttendanceRecord, Class, ClassSubject, Subject


class ClassSubjectInline(TabularInline):
    model = ClassSubject
    extra = 0
    autocomplete_fields = ('subject', 'teacher')


@admin.register(Class)
class ClassAdmin(ModelAdmin):
    list_display = ('name', 'form_teacher', 'capacity', 'is_active')
    list_filter = ('level_type', 'level_number', 'is_active')
    search_fields = ('name',)
    autocomplete_fields = ('form_teacher',)
    inlines = [ClassSubjectInline]


@admin.register(Subject)
class SubjectAdmin(ModelAdmin):
    list_display = ('name', 'code', 'is_core', 'is_active')
    list_filter = ('is_core', 'is_active')
    search_fields = ('name', 'code')


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(ModelAdmin):
    """Records are written by period submissions only, so the admin is read-only."""
    list_display = ('student', 'class_assigned', 'date', 'period', 'status', 'term')
    list_filter = ('period', 'status', 'class_assigned', 'term')
    search_fields = ('student__first_name', 'student__last_name', 'student__admission_number')
    date_hierarchy = 'date'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
