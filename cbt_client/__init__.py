"""Client side of the CBT exam flow: storage backends and the exam controller."""
from .backends import ExamBackend, HttpExamBackend
from .controller import ExamController, ExamView
from .types import ExamContext, ExamResult, SubmitSummary

__all__ = [
    "ExamBackend",
    "ExamContext",
    "ExamController",
    "ExamResult",
    "ExamView",
    "HttpExamBackend",
    "SubmitSummary",
]
