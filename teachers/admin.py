from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Teacher


@admin.register(Teacher)
class TeacherAdmin(ModelAdmin):
    list_display = ('full_name', 'staff_id', 'subject_specialization', 'status')
    list_filter = ('status',)
    search_fields = ('first_name', 'last_name', 'staff_id')
