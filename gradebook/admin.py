from django.contrib import admin

from unfold.admin import ModelAdmin, TabularInline

from .models import Assessment, GradeScale, GradingSystem, Score


class GradeScaleInline(TabularInline):
    model = GradeScale
    extra = 0
    fields = ('grade_label', 'min_percentage', 'max_percentage', 'interpretation', 'order')


@admin.register(GradingSystem)
class GradingSystemAdmin(ModelAdmin):
    list_display = ('name', 'is_active', 'is_default')
    inlines = [GradeScaleInline]


@admin.register(Assessment)
class AssessmentAdmin(ModelAdmin):
    list_display = ('name', 'short_name', 'max_score', 'order', 'is_active')


@admin.register(Score)
class ScoreAdmin(ModelAdmin):
    list_display = ('student', 'subject', 'assessment', 'score', 'term', 'is_approved')
    list_filter = ('term', 'class_assigned', 'subject', 'assessment', 'is_approved')
    search_fields = ('student__first_name', 'student__last_name', 'student__admission_number')
    raw_id_fields = ('student',)
