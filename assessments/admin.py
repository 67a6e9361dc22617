from django.contrib import admin

from .models import ExamSession, StudentAnswer


@admin.register(ExamSession)
class ExamSessionAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'is_submitted', 'total_score', 'submitted_at')
    list_filter = ('is_submitted',)
    readonly_fields = ('is_submitted', 'total_score', 'correct_count', 'total_questions', 'submitted_at')


admin.site.register(StudentAnswer)
