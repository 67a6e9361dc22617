from django.db import models
from django.core.cache import cache
from django.conf import settings

class SchoolSetting(models.Model):
    """Single row of school-wide configuration, always pk=1 and served from cache."""
    CACHE_KEY = 'school_settings'

    school_name = models.CharField(max_length=100, default="The Quiverfull School")
    support_email = models.EmailField(default="info@school.example")
    currency = models.CharField(max_length=8, default="₦")

    # Filled into new exams that leave them blank
    current_term = models.CharField(max_length=50, blank=True, default="First Term")
    current_academic_year = models.CharField(max_length=20, blank=True)

    pass_mark_percentage = models.PositiveIntegerField(default=50, help_text="Pass mark percentage for CBT results")
    default_exam_duration = models.PositiveIntegerField(default=30, help_text="Minutes, used when a new exam gives none")

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'school settings'
        verbose_name_plural = 'school settings'

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)
        cache.set(self.CACHE_KEY, self)

    def delete(self, *args, **kwargs):
        # Singleton row is never removed
        cache.delete(self.CACHE_KEY)

    @classmethod
    def load(cls):
        obj = cache.get(cls.CACHE_KEY)
        if obj is None:
            obj, _ = cls.objects.get_or_create(pk=1)
            cache.set(cls.CACHE_KEY, obj)
        return obj

    def __str__(self):
        return f"Settings for {self.school_name}"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('LOGIN', 'Login'),
        ('PUBLISH', 'Publish Toggled'),
        ('IMPORT', 'Questions Imported'),
        ('SUBMIT', 'Exam Submitted'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Exam, ExamSession, User")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"
