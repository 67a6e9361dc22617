"""Plain data shapes the client works with, parsed from API payloads."""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from django.utils.dateparse import parse_datetime

from exams.status import ExamStatus

OPTION_LETTERS = ("A", "B", "C", "D")


def _dt(value):
    if value is None or isinstance(value, datetime):
        return value
    return parse_datetime(value)


@dataclass
class ExamDefinition:
    id: int
    title: str
    subject: str = ""
    class_name: Optional[str] = None
    term: str = ""
    academic_year: str = ""
    duration_minutes: int = 30
    total_marks: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    instructions: str = ""
    is_published: bool = True

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            subject=data.get("subject", ""),
            class_name=data.get("class_name"),
            term=data.get("term", ""),
            academic_year=data.get("academic_year", ""),
            duration_minutes=int(data.get("duration_minutes") or 0),
            total_marks=int(data.get("total_marks") or 0),
            start_time=_dt(data.get("start_time")),
            end_time=_dt(data.get("end_time")),
            instructions=data.get("instructions", ""),
            is_published=data.get("is_published", True),
        )


@dataclass
class SessionInfo:
    id: int
    exam_id: int
    is_submitted: bool = False
    total_score: Optional[int] = None
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            exam_id=data["exam_id"],
            is_submitted=bool(data.get("is_submitted")),
            total_score=data.get("total_score"),
            submitted_at=_dt(data.get("submitted_at")),
        )


@dataclass
class StudentQuestion:
    id: int
    exam_id: int
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    marks: int = 1
    order_index: int = 0

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            exam_id=data["exam_id"],
            question_text=data["question_text"],
            option_a=data["option_a"],
            option_b=data["option_b"],
            option_c=data["option_c"],
            option_d=data["option_d"],
            marks=int(data.get("marks") or 0),
            order_index=int(data.get("order_index") or 0),
        )

    def option_text(self, letter):
        return getattr(self, f"option_{letter.lower()}")


@dataclass
class StoredAnswer:
    question_id: int
    selected_option: Optional[str]

    @classmethod
    def from_dict(cls, data):
        return cls(question_id=data["question_id"], selected_option=data.get("selected_option"))


@dataclass(frozen=True)
class ScoreResult:
    score: int
    correct_count: int
    total_questions: int
    already_submitted: bool = False

    @classmethod
    def from_dict(cls, data):
        return cls(
            score=int(data["score"]),
            correct_count=int(data["correct_count"]),
            total_questions=int(data["total_questions"]),
            already_submitted=bool(data.get("already_submitted", False)),
        )


@dataclass
class ExamListing:
    exam: ExamDefinition
    session: Optional[SessionInfo]
    status: ExamStatus


@dataclass(frozen=True)
class SubmitSummary:
    answered: int
    total: int

    @property
    def unanswered(self):
        return self.total - self.answered


@dataclass(frozen=True)
class ExamResult:
    score: int
    total_marks: int
    percentage: int
    passed: bool
    correct_count: int
    total_questions: int

    @property
    def wrong_or_skipped(self):
        return self.total_questions - self.correct_count


@dataclass
class ExamContext:
    """Explicit settings handed to the controller instead of global state."""
    pass_mark_percentage: int = 50
    tick_seconds: float = 1.0
    clock: Optional[Callable[[], datetime]] = None
