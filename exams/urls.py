from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ExamViewSet, QuestionViewSet, SchoolClassViewSet

router = DefaultRouter()
router.register(r'exams', ExamViewSet, basename='admin-exams')
router.register(r'questions', QuestionViewSet, basename='admin-questions')
router.register(r'classes', SchoolClassViewSet, basename='admin-classes')

urlpatterns = [
    path('', include(router.urls)),
]
