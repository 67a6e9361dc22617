"""
Session and answer storage for the student exam flow.

Every function takes the requesting student explicitly; callers never see
another student's rows.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from exams.models import Exam, Question
from exams.status import is_open
from .exceptions import (
    ExamNotFound, ExamUnavailable, QuestionNotFound,
    SessionAlreadySubmitted, SessionNotFound, SessionNotStarted,
)
from .models import ExamSession, StudentAnswer

logger = logging.getLogger(__name__)


def get_published_exam(exam_id):
    try:
        return Exam.objects.select_related('school_class').get(pk=exam_id, is_published=True)
    except Exam.DoesNotExist:
        raise ExamNotFound()


def get_session(exam_id, student):
    return ExamSession.objects.filter(exam_id=exam_id, student=student).first()


def get_owned_session(session_id, student):
    try:
        return ExamSession.objects.select_related('exam').get(pk=session_id, student=student)
    except ExamSession.DoesNotExist:
        raise SessionNotFound()


def create_session(exam_id, student):
    """
    Return ``(session, created)`` for the student's attempt at ``exam_id``.

    An existing attempt is always returned, so a resume works after the exam
    window closes. A brand new attempt needs the exam to be published and open.
    Two racing calls both end up with the same row.
    """
    existing = get_session(exam_id, student)
    if existing is not None:
        return existing, False

    exam = get_published_exam(exam_id)
    if not is_open(exam, timezone.now()):
        raise ExamUnavailable()

    try:
        with transaction.atomic():
            session = ExamSession.objects.create(exam=exam, student=student)
    except IntegrityError:
        # Lost the race on the (exam, student) constraint
        logger.info("Duplicate session create for exam %s by user %s, reusing existing row", exam_id, student.pk)
        return ExamSession.objects.get(exam_id=exam_id, student=student), False

    logger.info("Session %s started for exam %s by user %s", session.pk, exam_id, student.pk)
    return session, True


def require_session(exam_id, student):
    session = get_session(exam_id, student)
    if session is None:
        raise SessionNotStarted()
    return session


def list_answers(session):
    return list(session.answers.order_by('question_id'))


def upsert_answer(session, question_id, option):
    """
    Record ``option`` (or None to clear) for a question. Last write wins.

    The session row is locked and re-read before writing, so an answer can
    never land after ``score_session`` has marked the session submitted.
    """
    if not Question.objects.filter(pk=question_id, exam_id=session.exam_id).exists():
        raise QuestionNotFound()

    with transaction.atomic():
        open_session = ExamSession.objects.select_for_update().filter(pk=session.pk, is_submitted=False)
        if not open_session.exists():
            session.is_submitted = True
            raise SessionAlreadySubmitted()

        answer, _ = StudentAnswer.objects.update_or_create(
            session=session,
            question_id=question_id,
            defaults={'selected_option': option},
        )
    return answer
