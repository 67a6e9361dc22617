# exams/serializers.py
from rest_framework import serializers
from .models import Exam, Question, SchoolClass

# --- Helper Serializers ---

class SchoolClassSerializer(serializers.ModelSerializer):
    class Meta:
        model = SchoolClass
        fields = '__all__'

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    """Staff view of a question. Includes the answer key."""
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'exam_title', 'question_text',
            'option_a', 'option_b', 'option_c', 'option_d',
            'correct_option', 'marks', 'order_index', 'created_at',
        ]
        read_only_fields = ['order_index', 'created_at']

    def to_internal_value(self, data):
        # Accept 'b' as well as 'B'
        if hasattr(data, 'get') and isinstance(data.get('correct_option'), str):
            data = data.copy()
            data['correct_option'] = data['correct_option'].strip().upper()
        return super().to_internal_value(data)

    def validate_marks(self, value):
        if value < 1:
            raise serializers.ValidationError("A question is worth at least one mark.")
        return value

    def validate(self, attrs):
        for field in ('question_text', 'option_a', 'option_b', 'option_c', 'option_d'):
            if field in attrs:
                attrs[field] = attrs[field].strip()
                if not attrs[field]:
                    raise serializers.ValidationError({field: "This field may not be blank."})
        return attrs


class StudentQuestionSerializer(serializers.Serializer):
    """Sanitized question as sent to the exam-taking client. There is no answer key field."""
    id = serializers.IntegerField()
    exam_id = serializers.IntegerField()
    question_text = serializers.CharField()
    option_a = serializers.CharField()
    option_b = serializers.CharField()
    option_c = serializers.CharField()
    option_d = serializers.CharField()
    marks = serializers.IntegerField()
    order_index = serializers.IntegerField()
    created_at = serializers.DateTimeField()

# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    class_name = serializers.SerializerMethodField()

    # Read-only counts, annotated by the viewset when listing
    question_count = serializers.SerializerMethodField()
    session_count = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'subject', 'school_class', 'class_name',
            'term', 'academic_year', 'duration_minutes', 'total_marks',
            'start_time', 'end_time', 'instructions', 'is_published',
            'created_by', 'created_at', 'updated_at',
            'question_count', 'session_count',
        ]
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_class_name(self, obj):
        return obj.school_class.name if obj.school_class_id else None

    def get_question_count(self, obj):
        if hasattr(obj, 'question_count'):
            return obj.question_count
        return obj.questions.count()

    def get_session_count(self, obj):
        if hasattr(obj, 'session_count'):
            return obj.session_count
        return obj.sessions.filter(is_submitted=True).count()

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title is required.")
        return value.strip()

    def validate_subject(self, value):
        if not value.strip():
            raise serializers.ValidationError("Subject is required.")
        return value.strip()

    def validate_duration_minutes(self, value):
        if value < 1:
            raise serializers.ValidationError("Duration must be at least one minute.")
        return value

    def validate(self, attrs):
        start = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start and end and end <= start:
            raise serializers.ValidationError({'end_time': "End time must be after start time."})
        return attrs


class StudentExamSerializer(serializers.ModelSerializer):
    """Published exam as listed to students."""
    class_name = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'subject', 'class_name', 'term', 'academic_year',
            'duration_minutes', 'total_marks', 'start_time', 'end_time',
            'instructions', 'is_published', 'created_at',
        ]

    def get_class_name(self, obj):
        return obj.school_class.name if obj.school_class_id else None


class QuestionImportSerializer(serializers.Serializer):
    text = serializers.CharField(required=False, allow_blank=True)
    file = serializers.FileField(required=False)
    marks = serializers.IntegerField(required=False, min_value=1, default=1)
    dry_run = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs.get('text', '').strip() and not attrs.get('file'):
            raise serializers.ValidationError("Provide question text or a CSV file.")
        return attrs
