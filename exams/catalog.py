"""Student-facing question catalog. Never selects ``correct_option``."""
from .models import Question

SANITIZED_QUESTION_FIELDS = (
    'id', 'exam_id', 'question_text',
    'option_a', 'option_b', 'option_c', 'option_d',
    'marks', 'order_index', 'created_at',
)


def list_questions_sanitized(exam_id):
    return list(
        Question.objects.filter(exam_id=exam_id)
        .order_by('order_index', 'created_at')
        .values(*SANITIZED_QUESTION_FIELDS)
    )
