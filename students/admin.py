from django.contrib import admin

from unfold.admin import ModelAdmin

from .models import Student


@admin.register(Student)
class StudentAdmin(ModelAdmin):
    list_display = ('full_name', 'admission_number', 'current_class', 'gender', 'status')
    list_filter = ('status', 'gender', 'current_class')
    search_fields = ('first_name', 'last_name', 'admission_number')
