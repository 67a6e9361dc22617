"""
Exam availability status for a single student.

Pure functions over anything exposing ``start_time`` / ``end_time`` (the exam)
and ``is_submitted`` (the student's session), so both the Django models and
the client dataclasses can be passed in.
"""
import enum


class ExamStatus(str, enum.Enum):
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    NOT_STARTED = "not_started"


def get_exam_status(exam, session, now):
    if session is not None and session.is_submitted:
        return ExamStatus.COMPLETED
    if session is not None:
        return ExamStatus.IN_PROGRESS
    if exam.start_time is not None and exam.start_time > now:
        return ExamStatus.NOT_STARTED
    # A closed exam shares the not_started status
    if exam.end_time is not None and exam.end_time < now:
        return ExamStatus.NOT_STARTED
    return ExamStatus.AVAILABLE


def is_open(exam, now):
    """True when a new attempt may be started on ``exam`` at ``now``."""
    if not getattr(exam, 'is_published', True):
        return False
    return get_exam_status(exam, None, now) == ExamStatus.AVAILABLE


def percentage(score, total):
    """Whole-number percentage of ``total``, halves rounded up. 0 when there are no marks."""
    if not total or total <= 0:
        return 0
    return (200 * (score or 0) + total) // (2 * total)
