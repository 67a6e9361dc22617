"""
Bulk question import.

Two input formats are accepted. Plain text, one block per question with blank
lines between blocks::

    1. What is 2 + 2?
    A. 3
    B. 4
    C. 5
    D. 6
    Answer: B

and CSV with the header
``question_text, option_a, option_b, option_c, option_d, correct_option, marks``.
"""
import csv
import io
import logging
import re
from dataclasses import asdict, dataclass
from typing import List, Optional

from django.db import transaction

from .models import Question

logger = logging.getLogger(__name__)

OPTION_LETTERS = ("A", "B", "C", "D")

_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_NUMBER_PREFIX = re.compile(r"^\d+[.)]\s*")
_OPTION_LINE = re.compile(r"^([A-Da-d])[.)]\s*(.+)")
_ANSWER_LINE = re.compile(r"^answer\s*:\s*([A-Da-d])", re.IGNORECASE)


@dataclass
class ParsedQuestion:
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: str
    marks: int
    valid: bool
    error: Optional[str] = None

    def as_dict(self):
        return asdict(self)


def _validate(question_text, options, correct):
    if not question_text:
        return "Missing question"
    if not correct:
        return "Missing answer line"
    if not all(options.get(letter) for letter in OPTION_LETTERS):
        return "Missing/incomplete options"
    return None


def parse_question_text(text: str, default_marks: int = 1) -> List[ParsedQuestion]:
    blocks = [b for b in _BLOCK_SPLIT.split((text or "").strip()) if b.strip()]
    parsed = []
    for block in blocks:
        lines = [line.strip() for line in block.strip().splitlines() if line.strip()]
        question_text = _NUMBER_PREFIX.sub("", lines[0]) if lines else ""
        options = {}
        correct = ""
        for line in lines[1:]:
            match = _OPTION_LINE.match(line)
            if match:
                options[match.group(1).upper()] = match.group(2).strip()
                continue
            match = _ANSWER_LINE.match(line)
            if match:
                correct = match.group(1).upper()

        error = _validate(question_text, options, correct)
        parsed.append(ParsedQuestion(
            question_text=question_text,
            option_a=options.get("A", ""),
            option_b=options.get("B", ""),
            option_c=options.get("C", ""),
            option_d=options.get("D", ""),
            correct_option=correct or "A",
            marks=default_marks,
            valid=error is None,
            error=error,
        ))
    return parsed


def parse_question_csv(content: str, default_marks: int = 1) -> List[ParsedQuestion]:
    reader = csv.DictReader(io.StringIO(content))
    parsed = []
    for row in reader:
        row = {(k or "").strip().lower(): (v or "").strip() for k, v in row.items()}
        options = {letter: row.get(f"option_{letter.lower()}", "") for letter in OPTION_LETTERS}
        correct = row.get("correct_option", "").upper()
        if correct and correct not in OPTION_LETTERS:
            correct = ""
        try:
            marks = int(row.get("marks") or default_marks)
        except ValueError:
            marks = default_marks

        error = _validate(row.get("question_text", ""), options, correct)
        parsed.append(ParsedQuestion(
            question_text=row.get("question_text", ""),
            option_a=options["A"],
            option_b=options["B"],
            option_c=options["C"],
            option_d=options["D"],
            correct_option=correct or "A",
            marks=max(marks, 1),
            valid=error is None,
            error=error,
        ))
    return parsed


def save_parsed_questions(exam, parsed: List[ParsedQuestion]) -> int:
    """Append the valid questions to ``exam`` and refresh its total marks."""
    valid = [q for q in parsed if q.valid]
    if not valid:
        return 0

    with transaction.atomic():
        start = exam.next_order_index()
        Question.objects.bulk_create([
            Question(
                exam=exam,
                question_text=q.question_text,
                option_a=q.option_a,
                option_b=q.option_b,
                option_c=q.option_c,
                option_d=q.option_d,
                correct_option=q.correct_option,
                marks=q.marks,
                order_index=start + i,
            )
            for i, q in enumerate(valid)
        ])
        exam.recalculate_total_marks()

    logger.info("Imported %s questions into exam %s", len(valid), exam.pk)
    return len(valid)
