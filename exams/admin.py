from django.contrib import admin

# Register your models here.
from .models import Exam, Question, SchoolClass


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'subject', 'school_class', 'total_marks', 'is_published')
    list_filter = ('is_published', 'subject', 'term')
    inlines = [QuestionInline]


admin.site.register(Question)
admin.site.register(SchoolClass)
