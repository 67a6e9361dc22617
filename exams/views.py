import logging

from django.db import transaction
from django.db.models import Count, Q
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from assessments.serializers import ExamResultSerializer
from cores.models import AuditLog, SchoolSetting
from .importers import parse_question_csv, parse_question_text, save_parsed_questions
from .models import Exam, Question, SchoolClass
from .permissions import IsTeacherOrAdmin
from .serializers import (
    ExamSerializer, QuestionImportSerializer, QuestionSerializer, SchoolClassSerializer,
)

logger = logging.getLogger(__name__)


class ExamViewSet(viewsets.ModelViewSet):
    """Teacher/admin management of CBT exams."""
    serializer_class = ExamSerializer
    permission_classes = [IsTeacherOrAdmin]

    # Enable search on title and subject
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'subject', 'school_class__name']

    def get_queryset(self):
        return (
            Exam.objects.select_related('school_class')
            .annotate(
                question_count=Count('questions', distinct=True),
                session_count=Count('sessions', filter=Q(sessions__is_submitted=True), distinct=True),
            )
            .order_by('-created_at')
        )

    def perform_create(self, serializer):
        school = SchoolSetting.load()
        data = serializer.validated_data
        extra = {}
        if 'duration_minutes' not in data:
            extra['duration_minutes'] = school.default_exam_duration
        if not data.get('term'):
            extra['term'] = school.current_term
        if not data.get('academic_year'):
            extra['academic_year'] = school.current_academic_year
        exam = serializer.save(created_by=self.request.user, **extra)
        AuditLog.objects.create(
            actor=self.request.user,
            action='CREATE',
            target_model='Exam',
            target_object_id=str(exam.id),
            details=f"Created exam: {exam.title}",
        )

    def perform_update(self, serializer):
        exam = serializer.save()
        AuditLog.objects.create(
            actor=self.request.user,
            action='UPDATE',
            target_model='Exam',
            target_object_id=str(exam.id),
            details=f"Updated exam: {exam.title}",
        )

    def perform_destroy(self, instance):
        AuditLog.objects.create(
            actor=self.request.user,
            action='DELETE',
            target_model='Exam',
            target_object_id=str(instance.id),
            details=f"Deleted exam: {instance.title}",
        )
        instance.delete()

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        """Toggle the publication flag."""
        exam = self.get_object()
        exam.is_published = not exam.is_published
        exam.save(update_fields=['is_published', 'updated_at'])
        AuditLog.objects.create(
            actor=request.user,
            action='PUBLISH',
            target_model='Exam',
            target_object_id=str(exam.id),
            details=f"{'Published' if exam.is_published else 'Unpublished'} exam: {exam.title}",
        )
        return Response({"id": exam.id, "is_published": exam.is_published})

    @action(detail=True, methods=['get'])
    def results(self, request, pk=None):
        """Every attempt at this exam, best score first."""
        exam = self.get_object()
        sessions = (
            exam.sessions.select_related('student', 'exam')
            .order_by('-is_submitted', '-total_score', 'submitted_at')
        )
        return Response(ExamResultSerializer(sessions, many=True).data)

    @action(
        detail=True, methods=['post'], url_path='import-questions',
        parser_classes=[JSONParser, MultiPartParser, FormParser],
    )
    def import_questions(self, request, pk=None):
        """
        Bulk-add questions from pasted text or a CSV upload.
        With dry_run the parsed preview is returned and nothing is saved.
        """
        exam = self.get_object()
        serializer = QuestionImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get('file'):
            try:
                content = data['file'].read().decode('utf-8-sig')
            except UnicodeDecodeError:
                return Response({"detail": "CSV file must be UTF-8 encoded."}, status=status.HTTP_400_BAD_REQUEST)
            parsed = parse_question_csv(content, data['marks'])
        else:
            parsed = parse_question_text(data['text'], data['marks'])

        valid_count = sum(1 for q in parsed if q.valid)
        preview = [q.as_dict() for q in parsed]
        if data['dry_run']:
            return Response({"valid": valid_count, "total": len(parsed), "questions": preview})

        if not valid_count:
            return Response(
                {"detail": "No valid questions to import.", "questions": preview},
                status=status.HTTP_400_BAD_REQUEST,
            )

        created = save_parsed_questions(exam, parsed)
        AuditLog.objects.create(
            actor=request.user,
            action='IMPORT',
            target_model='Exam',
            target_object_id=str(exam.id),
            details=f"Imported {created} questions into {exam.title}",
        )
        return Response(
            {"imported": created, "total": len(parsed), "total_marks": exam.total_marks, "questions": preview},
            status=status.HTTP_201_CREATED,
        )


class QuestionViewSet(viewsets.ModelViewSet):
    """Question bank with answer keys. Staff only."""
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacherOrAdmin]

    filter_backends = [filters.SearchFilter]
    search_fields = ['question_text']

    def get_queryset(self):
        queryset = Question.objects.select_related('exam').order_by('exam_id', 'order_index', 'created_at')
        # Filter by Exam if provided ?exam_id=1
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        return queryset

    def perform_create(self, serializer):
        exam = serializer.validated_data['exam']
        with transaction.atomic():
            question = serializer.save(order_index=exam.next_order_index())
            exam.recalculate_total_marks()
        logger.info("Question %s added to exam %s", question.pk, exam.pk)

    def perform_update(self, serializer):
        previous_exam = serializer.instance.exam
        with transaction.atomic():
            question = serializer.save()
            question.exam.recalculate_total_marks()
            if previous_exam.pk != question.exam_id:
                previous_exam.recalculate_total_marks()

    def perform_destroy(self, instance):
        exam = instance.exam
        with transaction.atomic():
            instance.delete()
            exam.recalculate_total_marks()


class SchoolClassViewSet(viewsets.ModelViewSet):
    queryset = SchoolClass.objects.all()
    serializer_class = SchoolClassSerializer
    permission_classes = [IsTeacherOrAdmin]
