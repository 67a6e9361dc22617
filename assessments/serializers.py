from rest_framework import serializers
from exams.models import Question
from .models import ExamSession, StudentAnswer

class StudentAnswerSerializer(serializers.ModelSerializer):
    question_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = StudentAnswer
        fields = ['id', 'session', 'question_id', 'selected_option', 'updated_at']
        read_only_fields = ['session', 'updated_at']

class AnswerUpsertSerializer(serializers.Serializer):
    selected_option = serializers.CharField(allow_null=True, allow_blank=True, max_length=1)

    def validate_selected_option(self, value):
        if not value:
            return None
        value = value.upper()
        if value not in Question.Option.values:
            raise serializers.ValidationError("Choose one of A, B, C or D.")
        return value

class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    exam_id = serializers.IntegerField(read_only=True)
    student_id = serializers.IntegerField(read_only=True)
    status = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = [
            'id', 'exam_id', 'student_id', 'started_at', 'is_submitted',
            'total_score', 'correct_count', 'total_questions', 'submitted_at', 'status',
        ]
        read_only_fields = fields

    def get_status(self, obj):
        if obj.is_submitted:
            return "completed"
        return "in_progress"

class ExamResultSerializer(serializers.ModelSerializer):
    """One row of a staff results table."""
    student_name = serializers.CharField(source='student.get_full_name', read_only=True)
    student_email = serializers.CharField(source='student.email', read_only=True)
    percentage = serializers.IntegerField(read_only=True)

    class Meta:
        model = ExamSession
        fields = [
            'id', 'student_id', 'student_name', 'student_email', 'started_at',
            'is_submitted', 'submitted_at', 'total_score', 'correct_count',
            'total_questions', 'percentage',
        ]

class ScoreResultSerializer(serializers.Serializer):
    score = serializers.IntegerField()
    correct_count = serializers.IntegerField()
    total_questions = serializers.IntegerField()
    already_submitted = serializers.BooleanField()
