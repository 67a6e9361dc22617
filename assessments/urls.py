from django.urls import path
from .views import (
    AnswerListView,
    AnswerUpsertView,
    ExamSessionDetailView,
    ExamSessionLookupView,
    PublishedExamListView,
    SanitizedQuestionListView,
    StartExamView,
    StudentExamAttemptsView,
    SubmitExamView,
)

urlpatterns = [
    # --- Student Exam Flow ---
    path('exams/', PublishedExamListView.as_view(), name='student-exams'),
    path('exams/<int:exam_id>/start/', StartExamView.as_view(), name='start-exam'),
    path('exams/<int:exam_id>/session/', ExamSessionLookupView.as_view(), name='exam-session'),
    path('exams/<int:exam_id>/questions/', SanitizedQuestionListView.as_view(), name='exam-questions'),

    path('sessions/', StudentExamAttemptsView.as_view(), name='student-sessions'),
    path('sessions/<int:pk>/', ExamSessionDetailView.as_view(), name='session-detail'),
    path('sessions/<int:session_id>/answers/', AnswerListView.as_view(), name='session-answers'),
    path('sessions/<int:session_id>/answers/<int:question_id>/', AnswerUpsertView.as_view(), name='session-answer'),
    path('sessions/<int:session_id>/submit/', SubmitExamView.as_view(), name='submit-exam'),
]
