from rest_framework import generics, status, views
from rest_framework.response import Response

from exams.catalog import list_questions_sanitized
from exams.models import Exam
from exams.permissions import IsStudent
from exams.serializers import StudentExamSerializer, StudentQuestionSerializer
from . import services
from .exceptions import SessionNotFound
from .models import ExamSession
from .scoring import score_session
from .serializers import (
    AnswerUpsertSerializer, ExamSessionSerializer, ScoreResultSerializer, StudentAnswerSerializer,
)


# --- STUDENT VIEWS ---

class PublishedExamListView(generics.ListAPIView):
    """Published exams, newest first. Status is derived client side from the student's sessions."""
    permission_classes = [IsStudent]
    serializer_class = StudentExamSerializer

    def get_queryset(self):
        return Exam.objects.filter(is_published=True).select_related('school_class').order_by('-created_at')


class StudentExamAttemptsView(generics.ListAPIView):
    """List all exam sessions for the logged-in student."""
    permission_classes = [IsStudent]
    serializer_class = ExamSessionSerializer

    def get_queryset(self):
        queryset = ExamSession.objects.filter(student=self.request.user).order_by('-started_at')
        exam_ids = self.request.query_params.get('exam_ids')
        if exam_ids:
            queryset = queryset.filter(exam_id__in=[i for i in exam_ids.split(',') if i.strip().isdigit()])
        return queryset


class StartExamView(views.APIView):
    """
    Student starts or resumes an exam.
    Returns 201 with a new session, or 200 with the existing one.
    """
    permission_classes = [IsStudent]

    def post(self, request, exam_id):
        session, created = services.create_session(exam_id, request.user)
        serializer = ExamSessionSerializer(session)
        return Response(serializer.data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class ExamSessionLookupView(views.APIView):
    """The student's session for an exam, or 404 if the exam was never started."""
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        session = services.get_session(exam_id, request.user)
        if session is None:
            raise SessionNotFound()
        return Response(ExamSessionSerializer(session).data)


class SanitizedQuestionListView(views.APIView):
    """Questions for an exam the student has started, without the answer key."""
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        services.require_session(exam_id, request.user)
        questions = list_questions_sanitized(exam_id)
        return Response(StudentQuestionSerializer(questions, many=True).data)


class ExamSessionDetailView(generics.RetrieveAPIView):
    """Allow student to retrieve one of their own sessions."""
    permission_classes = [IsStudent]
    serializer_class = ExamSessionSerializer

    def get_object(self):
        return services.get_owned_session(self.kwargs['pk'], self.request.user)


class AnswerListView(views.APIView):
    permission_classes = [IsStudent]

    def get(self, request, session_id):
        session = services.get_owned_session(session_id, request.user)
        answers = services.list_answers(session)
        return Response(StudentAnswerSerializer(answers, many=True).data)


class AnswerUpsertView(views.APIView):
    """Save the student's choice for one question. Repeating the call overwrites it."""
    permission_classes = [IsStudent]

    def put(self, request, session_id, question_id):
        session = services.get_owned_session(session_id, request.user)
        serializer = AnswerUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        answer = services.upsert_answer(session, question_id, serializer.validated_data['selected_option'])
        return Response(StudentAnswerSerializer(answer).data)


class SubmitExamView(views.APIView):
    """
    Student submits the exam.
    Scores server side from the stored answers; the request carries no answers.
    """
    permission_classes = [IsStudent]

    def post(self, request, session_id):
        result = score_session(session_id, student=request.user)
        return Response(ScoreResultSerializer(result.as_dict()).data)
