"""
Trusted scoring procedure.

This is the only code on the student path that reads
``Question.correct_option``. A session is scored at most once; calling it
again returns what was stored the first time.
"""
import logging
from dataclasses import asdict, dataclass

from django.db import transaction
from django.utils import timezone

from cores.models import AuditLog
from exams.models import Question
from .exceptions import SessionNotFound
from .models import ExamSession, StudentAnswer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreResult:
    score: int
    correct_count: int
    total_questions: int
    already_submitted: bool = False

    def as_dict(self):
        return asdict(self)


def _stored_result(session):
    return ScoreResult(
        score=session.total_score or 0,
        correct_count=session.correct_count or 0,
        total_questions=session.total_questions or 0,
        already_submitted=True,
    )


def compute_score(exam_id, session_id):
    """Return ``(score, correct_count, total_questions)`` without writing anything."""
    questions = Question.objects.filter(exam_id=exam_id).values_list('id', 'correct_option', 'marks')
    selected = dict(
        StudentAnswer.objects.filter(session_id=session_id).values_list('question_id', 'selected_option')
    )

    score = 0
    correct_count = 0
    total_questions = 0
    for question_id, correct_option, marks in questions:
        total_questions += 1
        if selected.get(question_id) == correct_option:
            score += marks
            correct_count += 1
    return score, correct_count, total_questions


def score_session(session_id, student=None):
    """
    Score and submit a session.

    ``student`` restricts the lookup to that student's sessions; pass None only
    from trusted staff code.
    """
    lookup = {'pk': session_id}
    if student is not None:
        lookup['student'] = student

    with transaction.atomic():
        try:
            session = ExamSession.objects.select_for_update().get(**lookup)
        except ExamSession.DoesNotExist:
            raise SessionNotFound()

        if session.is_submitted:
            logger.info("Session %s already submitted, returning stored score", session.pk)
            return _stored_result(session)

        score, correct_count, total_questions = compute_score(session.exam_id, session.pk)
        submitted_at = timezone.now()

        updated = ExamSession.objects.filter(pk=session.pk, is_submitted=False).update(
            is_submitted=True,
            total_score=score,
            correct_count=correct_count,
            total_questions=total_questions,
            submitted_at=submitted_at,
        )
        if not updated:
            session.refresh_from_db()
            return _stored_result(session)

        AuditLog.objects.create(
            actor_id=session.student_id,
            action='SUBMIT',
            target_model='ExamSession',
            target_object_id=str(session.pk),
            details=f"Submitted exam {session.exam_id}: {score} marks, {correct_count}/{total_questions} correct",
        )

    logger.info(
        "Session %s scored: %s marks (%s/%s correct)",
        session.pk, score, correct_count, total_questions,
    )
    return ScoreResult(score=score, correct_count=correct_count, total_questions=total_questions)
