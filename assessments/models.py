# assessments/models.py
from django.db import models
from django.conf import settings
from exams.models import Exam, Question
from exams.status import percentage

class ExamSession(models.Model):
    """Tracks a student's single attempt at an exam."""
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='sessions')
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_sessions')
    started_at = models.DateTimeField(auto_now_add=True)

    # Written once, by the scoring procedure only
    is_submitted = models.BooleanField(default=False)
    total_score = models.PositiveIntegerField(null=True, blank=True)
    correct_count = models.PositiveIntegerField(null=True, blank=True)
    total_questions = models.PositiveIntegerField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['exam', 'student'], name='unique_exam_session_per_student'),
        ]

    def __str__(self):
        return f"{self.student} - {self.exam.title}"

    @property
    def percentage(self):
        if not self.is_submitted:
            return 0
        return percentage(self.total_score, self.exam.total_marks)

class StudentAnswer(models.Model):
    session = models.ForeignKey(ExamSession, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, related_name='answers', on_delete=models.CASCADE)

    selected_option = models.CharField(max_length=1, choices=Question.Option.choices, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('session', 'question')
