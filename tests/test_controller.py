import asyncio
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from cbt_client.backends import ExamBackend
from cbt_client.controller import ExamController, ExamView, format_time, percentage
from cbt_client.exceptions import (
    ConflictError, InvalidTransition, PersistenceFailure, ScoringFailure,
)
from cbt_client.types import (
    ExamContext, ExamDefinition, ScoreResult, SessionInfo, StoredAnswer, StudentQuestion,
)
from exams.status import ExamStatus

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
FAST_TICK = 0.001


class FakeBackend(ExamBackend):
    """In-memory stand-in for the API. Holds the answer key the way the server does."""

    def __init__(self):
        self.exams = {}
        self.key = {}
        self.questions = {}
        self.sessions = {}
        self.answers = {}
        self.calls = []
        self.fail_upserts = 0
        self.fail_scoring = 0
        self.conflict_on_create = False
        self._ids = itertools.count(100)

    def add_exam(self, exam_id, correct, marks=None, duration_minutes=1, **extra):
        marks = marks or [1] * len(correct)
        self.exams[exam_id] = ExamDefinition(
            id=exam_id, title=f"Exam {exam_id}", subject="Maths",
            duration_minutes=duration_minutes, total_marks=sum(marks), **extra,
        )
        self.questions[exam_id] = []
        for index, (option, mark) in enumerate(zip(correct, marks)):
            qid = exam_id * 10 + index
            self.questions[exam_id].append(StudentQuestion(
                id=qid, exam_id=exam_id, question_text=f"Q{index + 1}",
                option_a="a", option_b="b", option_c="c", option_d="d",
                marks=mark, order_index=index,
            ))
            self.key[qid] = (option, mark)
        return self.exams[exam_id]

    def _session_for(self, exam_id):
        return next((s for s in self.sessions.values() if s.exam_id == exam_id), None)

    def list_published_exams(self):
        self.calls.append("list_published_exams")
        return list(self.exams.values())

    def list_sessions(self, exam_ids=None):
        self.calls.append("list_sessions")
        return [s for s in self.sessions.values() if exam_ids is None or s.exam_id in exam_ids]

    def get_session(self, exam_id):
        self.calls.append("get_session")
        return self._session_for(exam_id)

    def create_session(self, exam_id):
        self.calls.append("create_session")
        existing = self._session_for(exam_id)
        if existing is not None:
            if self.conflict_on_create:
                raise ConflictError("duplicate", 409)
            return existing
        session = SessionInfo(id=next(self._ids), exam_id=exam_id)
        self.sessions[session.id] = session
        return session

    def list_questions_sanitized(self, exam_id):
        self.calls.append("list_questions_sanitized")
        return list(self.questions[exam_id])

    def list_answers(self, session_id):
        self.calls.append("list_answers")
        return [StoredAnswer(question_id=q, selected_option=o) for (s, q), o in self.answers.items() if s == session_id]

    def upsert_answer(self, session_id, question_id, option):
        self.calls.append(("upsert_answer", question_id, option))
        if self.fail_upserts:
            self.fail_upserts -= 1
            raise PersistenceFailure("network down")
        self.answers[(session_id, question_id)] = option

    def score_session(self, session_id):
        self.calls.append("score_session")
        if self.fail_scoring:
            self.fail_scoring -= 1
            raise ScoringFailure("server error", 500)
        session = self.sessions[session_id]
        if session.is_submitted:
            return ScoreResult(session.total_score, session.correct_count, session.total_questions, True)
        score = correct = 0
        questions = self.questions[session.exam_id]
        for question in questions:
            option, mark = self.key[question.id]
            if self.answers.get((session_id, question.id)) == option:
                score += mark
                correct += 1
        session.is_submitted = True
        session.total_score = score
        session.correct_count = correct
        session.total_questions = len(questions)
        return ScoreResult(score, correct, len(questions))


def make_controller(backend, **context):
    context.setdefault("tick_seconds", FAST_TICK)
    context.setdefault("clock", lambda: NOW)
    return ExamController(backend, ExamContext(**context))


def run(coro):
    return asyncio.run(coro)


async def wait_for(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def backend():
    return FakeBackend()


def test_helpers():
    assert format_time(125) == "02:05"
    assert percentage(1, 3) == 33
    assert percentage(1, 2) == 50
    assert percentage(5, 8) == 63
    assert percentage(3, 0) == 0


def test_listing_statuses(backend):
    backend.add_exam(1, "AB")
    backend.add_exam(2, "AB", start_time=NOW + timedelta(hours=1))
    backend.add_exam(3, "AB", end_time=NOW - timedelta(hours=1))
    backend.add_exam(4, "AB")
    backend.add_exam(5, "AB")
    backend.sessions[1] = SessionInfo(id=1, exam_id=4)
    backend.sessions[2] = SessionInfo(id=2, exam_id=5, is_submitted=True, total_score=2)

    async def scenario():
        async with make_controller(backend) as controller:
            listings = await controller.load_exams()
            return {l.exam.id: l.status for l in listings}

    assert run(scenario()) == {
        1: ExamStatus.AVAILABLE,
        2: ExamStatus.NOT_STARTED,
        3: ExamStatus.NOT_STARTED,
        4: ExamStatus.IN_PROGRESS,
        5: ExamStatus.COMPLETED,
    }


def test_manual_attempt_end_to_end(backend):
    backend.add_exam(1, "ABC", marks=[1, 1, 2])

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            controller.request_start(1)
            assert controller.view == ExamView.CONFIRM_START
            assert await controller.confirm_start()
            assert controller.view == ExamView.TAKING
            assert controller.time_left == 60
            assert controller.timer_running

            q1, q2, q3 = controller.questions
            controller.select_answer(q1.id, "a")
            controller.select_answer(q2.id, "D")
            controller.next_question()
            assert controller.current_question is q2

            summary = controller.request_submit()
            assert controller.view == ExamView.CONFIRM_SUBMIT
            assert (summary.answered, summary.total, summary.unanswered) == (2, 3, 1)
            assert not controller.timer_running

            controller.cancel_submit()
            assert controller.view == ExamView.TAKING
            assert controller.timer_running

            controller.request_submit()
            result = await controller.confirm_submit()
            assert controller.view == ExamView.RESULT
            assert not controller.timer_running
            return result

    result = run(scenario())
    assert (result.score, result.correct_count, result.total_questions) == (1, 1, 3)
    assert result.total_marks == 4
    assert result.percentage == 25
    assert result.passed is False
    assert result.wrong_or_skipped == 2
    # Writes were issued before scoring
    assert backend.calls.index("score_session") > backend.calls.index(("upsert_answer", 11, "D"))


def test_timer_expiry_submits_without_confirmation(backend):
    backend.add_exam(1, "ABCDA", duration_minutes=1)

    async def scenario():
        async with make_controller(backend) as controller:
            await controller.load_exams()
            await controller.start_exam(1)
            q1, q2 = controller.questions[:2]
            controller.select_answer(q1.id, "A")
            controller.select_answer(q2.id, "C")
            await wait_for(lambda: controller.view == ExamView.RESULT)
            return controller

    controller = run(scenario())
    session = next(iter(backend.sessions.values()))
    assert session.is_submitted is True
    assert controller.time_left == 0
    assert controller.result.correct_count == 1
    assert controller.result.total_questions == 5
    assert "score_session" in backend.calls


def test_resume_restores_stored_answers_before_any_input(backend):
    backend.add_exam(1, "ABC")
    backend.sessions[7] = SessionInfo(id=7, exam_id=1)
    backend.answers[(7, 10)] = "B"
    backend.answers[(7, 12)] = "C"

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            assert controller.listing_for(1).status == ExamStatus.IN_PROGRESS
            await controller.start_exam(1)
            return dict(controller.answers), controller.time_left

    answers, time_left = run(scenario())
    assert answers == {10: "B", 12: "C"}
    # Resume restarts the full duration
    assert time_left == 60
    assert "create_session" not in backend.calls


def test_duplicate_create_fetches_existing_session(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            # Another tab started the exam after our list was loaded
            backend.sessions[9] = SessionInfo(id=9, exam_id=1)
            backend.conflict_on_create = True
            await controller.start_exam(1)
            return controller.session.id

    assert run(scenario()) == 9
    assert len(backend.sessions) == 1


def test_double_start_only_starts_once(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            results = await asyncio.gather(controller.start_exam(1), controller.start_exam(1))
            return results

    assert sorted(run(scenario())) == [False, True]
    assert backend.calls.count("create_session") == 1
    assert len(backend.sessions) == 1


def test_completed_and_closed_exams_cannot_be_started(backend):
    backend.add_exam(1, "AB", end_time=NOW - timedelta(minutes=1))
    backend.add_exam(2, "AB")
    backend.sessions[3] = SessionInfo(id=3, exam_id=2, is_submitted=True, total_score=1)

    async def scenario():
        async with make_controller(backend) as controller:
            await controller.load_exams()
            for exam_id in (1, 2):
                with pytest.raises(InvalidTransition):
                    await controller.start_exam(exam_id)
            assert controller.view == ExamView.LIST

    run(scenario())


def test_scoring_failure_keeps_state_and_can_be_retried(backend):
    backend.add_exam(1, "AB")
    backend.fail_scoring = 1

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            await controller.start_exam(1)
            controller.select_answer(controller.questions[0].id, "A")
            controller.request_submit()

            assert await controller.confirm_submit() is None
            assert controller.view == ExamView.CONFIRM_SUBMIT
            assert isinstance(controller.last_error, ScoringFailure)
            assert controller.result is None
            assert controller.answers == {10: "A"}

            result = await controller.confirm_submit()
            assert controller.view == ExamView.RESULT
            assert controller.last_error is None
            return result

    assert run(scenario()).score == 1


def test_failed_answer_write_is_kept_and_retried_before_submit(backend):
    backend.add_exam(1, "AB")
    backend.fail_upserts = 1

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            await controller.start_exam(1)
            saved = await controller.select_answer(controller.questions[0].id, "A")
            assert saved is False
            assert controller.answers == {10: "A"}

            controller.request_submit()
            return await controller.confirm_submit()

    result = run(scenario())
    assert result.score == 1
    assert backend.calls.count(("upsert_answer", 10, "A")) == 2


def test_back_to_list_clears_state_and_shows_completed(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            await controller.start_exam(1)
            controller.request_submit()
            await controller.confirm_submit()
            listings = await controller.back_to_list()

            assert controller.view == ExamView.LIST
            assert controller.session is None
            assert controller.questions == []
            assert controller.answers == {}
            assert controller.result is None
            return listings[0].status

    assert run(scenario()) == ExamStatus.COMPLETED


def test_leaving_mid_exam_stops_the_timer(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        async with make_controller(backend) as controller:
            await controller.load_exams()
            await controller.start_exam(1)
            timer = controller._timer_task
            await controller.back_to_list()
            await asyncio.sleep(0.01)
            assert timer.cancelled()
            assert not controller.timer_running
            return controller.listing_for(1).status

    assert run(scenario()) == ExamStatus.IN_PROGRESS
    assert "score_session" not in backend.calls


def test_close_cancels_timer(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        controller = make_controller(backend)
        await controller.load_exams()
        await controller.start_exam(1)
        timer = controller._timer_task
        await controller.close()
        return timer

    assert run(scenario()).cancelled()
    assert "score_session" not in backend.calls


def test_invalid_calls(backend):
    backend.add_exam(1, "AB")

    async def scenario():
        async with make_controller(backend, tick_seconds=60) as controller:
            await controller.load_exams()
            with pytest.raises(InvalidTransition):
                controller.select_answer(10, "A")
            with pytest.raises(InvalidTransition):
                await controller.confirm_submit()
            await controller.start_exam(1)
            with pytest.raises(ValueError):
                controller.select_answer(10, "E")
            with pytest.raises(ValueError):
                controller.select_answer(999, "A")
            with pytest.raises(IndexError):
                controller.go_to(5)

    run(scenario())
