# exams/models.py
from django.conf import settings
from django.db import models
from django.db.models import Sum


class SchoolClass(models.Model):
    name = models.CharField(max_length=100)
    level = models.CharField(max_length=20, blank=True)
    academic_year = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'school classes'

    def __str__(self):
        return self.name


class Exam(models.Model):
    """A CBT exam definition. Students only ever see published exams."""
    title = models.CharField(max_length=255)
    subject = models.CharField(max_length=100)
    school_class = models.ForeignKey(SchoolClass, on_delete=models.SET_NULL, null=True, blank=True, related_name='exams')
    term = models.CharField(max_length=50, blank=True)
    academic_year = models.CharField(max_length=20, blank=True)

    duration_minutes = models.PositiveIntegerField(default=30)
    total_marks = models.PositiveIntegerField(default=0)

    # Availability window, both ends optional
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)

    instructions = models.TextField(blank=True)
    is_published = models.BooleanField(default=False)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_exams')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def recalculate_total_marks(self):
        total = self.questions.aggregate(total=Sum('marks'))['total'] or 0
        self.total_marks = total
        self.save(update_fields=['total_marks', 'updated_at'])
        return total

    def next_order_index(self):
        return self.questions.count()


class Question(models.Model):
    class Option(models.TextChoices):
        A = "A", "A"
        B = "B", "B"
        C = "C", "C"
        D = "D", "D"

    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)
    question_text = models.TextField()
    option_a = models.CharField(max_length=500)
    option_b = models.CharField(max_length=500)
    option_c = models.CharField(max_length=500)
    option_d = models.CharField(max_length=500)

    # Only the scoring procedure and the staff catalog read this field
    correct_option = models.CharField(max_length=1, choices=Option.choices)

    marks = models.PositiveIntegerField(default=1)
    order_index = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['order_index', 'created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(correct_option__in=["A", "B", "C", "D"]),
                name='question_correct_option_valid',
            ),
        ]

    def __str__(self):
        return f"{self.question_text[:50]}..."
