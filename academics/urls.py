from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    path('api/csrf/', views.csrf_token, name='csrf_token'),

    # Roster and subjects
    path('api/classes/<int:pk>/roster/', views.class_roster, name='class_roster'),
    path('api/classes/<int:pk>/subjects/', views.api_class_subjects, name='api_class_subjects'),

    # Attendance
    path('api/classes/<int:pk>/attendance/', views.class_attendance, name='class_attendance'),
    path('api/classes/<int:pk>/attendance/status/', views.attendance_status, name='attendance_status'),
    path('api/classes/<int:pk>/attendance/submit/', views.submit_attendance, name='submit_attendance'),
    path('api/classes/<int:pk>/attendance/summary/', views.class_attendance_summary, name='class_attendance_summary'),
    path('api/students/<int:pk>/attendance/summary/', views.student_attendance_summary, name='student_attendance_summary'),
]
