from django.urls import path
from . import views

app_name = 'gradebook'

urlpatterns = [
    # Results
    path('api/students/<int:pk>/summary/', views.student_summary, name='student_summary'),
    path('api/classes/<int:pk>/ranking/', views.class_ranking, name='class_ranking'),
    path('api/classes/<int:pk>/subjects/<int:subject_pk>/results/', views.subject_results, name='subject_results'),
    path('api/grading-systems/', views.grading_systems, name='grading_systems'),
    path('classes/<int:pk>/broadsheet/', views.class_broadsheet, name='class_broadsheet'),

    # Score entry
    path('api/scores/', views.score_entry, name='score_entry'),
    path('api/classes/<int:pk>/subjects/<int:subject_pk>/scores/', views.subject_scores, name='subject_scores'),
    path('api/classes/<int:pk>/subjects/<int:subject_pk>/approve/', views.approve_subject, name='approve_subject'),

    # Grade locking
    path('api/terms/<int:pk>/lock/', views.lock_term, name='lock_term'),
]
