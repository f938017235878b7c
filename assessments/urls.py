from django.urls import path
from .views import (
    AdminStatsView, ExamSessionDetailView, GradingSessionDetailView, PendingGradingListView,
    RecordAnswerView, StartExamView, StudentExamAttemptsView, SubmitExamView, SubmitGradeView,
    UploadAnswerFileView,
)

urlpatterns = [
    # --- Grading Module (Admin) ---
    path('admin/stats/', AdminStatsView.as_view(), name='admin-stats'),
    path('admin/grading/pending/', PendingGradingListView.as_view(), name='grading-pending'),
    path('admin/grading/session/<int:pk>/', GradingSessionDetailView.as_view(), name='grading-session'),
    path('admin/grading/submit/<int:session_id>/', SubmitGradeView.as_view(), name='grading-submit'),

    # --- Student Exam Flow ---
    path('exams/attempts/', StudentExamAttemptsView.as_view(), name='student-attempts'),
    path('exams/<int:exam_id>/start/', StartExamView.as_view(), name='start_exam'),
    path('exams/session/<int:pk>/', ExamSessionDetailView.as_view(), name='session_detail'),
    path('exams/session/<int:session_id>/answers/', RecordAnswerView.as_view(), name='record_answer'),
    path('exams/session/<int:session_id>/files/', UploadAnswerFileView.as_view(), name='upload_answer_file'),
    path('exams/session/<int:session_id>/submit/', SubmitExamView.as_view(), name='submit_exam'),
]
