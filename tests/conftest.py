from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from exams.models import Exam, Question, SchoolClass

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


def _make_user(email, role, **extra):
    return User.objects.create_user(
        username=email,
        email=email,
        password="pass-12345",
        first_name=email.split("@")[0].title(),
        last_name="Test",
        role=role,
        **extra,
    )


@pytest.fixture
def student(db):
    return _make_user("ada@school.test", User.Role.STUDENT)


@pytest.fixture
def other_student(db):
    return _make_user("bola@school.test", User.Role.STUDENT)


@pytest.fixture
def teacher(db):
    return _make_user("teacher@school.test", User.Role.TEACHER)


@pytest.fixture
def admin_user(db):
    return _make_user("admin@school.test", User.Role.ADMIN, is_staff=True)


@pytest.fixture
def school_class(db):
    return SchoolClass.objects.create(name="Basic 5", level="basic5", academic_year="2025/2026")


@pytest.fixture
def exam(db, school_class, teacher):
    return Exam.objects.create(
        title="Mathematics First Term",
        subject="Mathematics",
        school_class=school_class,
        term="First Term",
        academic_year="2025/2026",
        duration_minutes=30,
        is_published=True,
        start_time=timezone.now() - timedelta(hours=1),
        end_time=timezone.now() + timedelta(hours=1),
        created_by=teacher,
    )


@pytest.fixture
def make_question():
    def _make(exam, correct="A", marks=1, text=None):
        question = Question.objects.create(
            exam=exam,
            question_text=text or f"Question {exam.questions.count() + 1}",
            option_a="one",
            option_b="two",
            option_c="three",
            option_d="four",
            correct_option=correct,
            marks=marks,
            order_index=exam.next_order_index(),
        )
        exam.recalculate_total_marks()
        return question
    return _make


@pytest.fixture
def three_question_exam(exam, make_question):
    """Marks [1, 1, 2]; correct options A, B, C."""
    questions = [
        make_question(exam, correct="A", marks=1),
        make_question(exam, correct="B", marks=1),
        make_question(exam, correct="C", marks=2),
    ]
    return exam, questions


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def student_client(student):
    return _client_for(student)


@pytest.fixture
def teacher_client(teacher):
    return _client_for(teacher)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)
