"""
Take-exam state machine.

The controller moves between the views ``list -> confirm_start -> taking ->
confirm_submit -> result`` and back to ``list``. It owns the countdown task
and the worker thread that talks to the backend; every backend call goes
through one single-thread executor, so calls reach the backend in the order
they were issued and the final submit always follows the last answer write.
"""
import asyncio
import enum
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from exams.status import ExamStatus, get_exam_status, percentage
from .exceptions import BackendError, ConflictError, InvalidTransition
from .types import OPTION_LETTERS, ExamContext, ExamListing, ExamResult, SubmitSummary

logger = logging.getLogger(__name__)

STARTABLE = (ExamStatus.AVAILABLE, ExamStatus.IN_PROGRESS)


class ExamView(str, enum.Enum):
    LIST = "list"
    CONFIRM_START = "confirm_start"
    TAKING = "taking"
    CONFIRM_SUBMIT = "confirm_submit"
    RESULT = "result"


def format_time(seconds):
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class ExamController:

    def __init__(self, backend, context=None):
        self.backend = backend
        self.context = context or ExamContext()
        self._clock = self.context.clock or (lambda: datetime.now(timezone.utc))
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cbt-backend")
        self._timer_task = None
        self._starting = False

        self.view = ExamView.LIST
        self.listings = []
        self.loading = False
        self.last_error = None
        self._reset_exam_state()

    def _reset_exam_state(self):
        self.active_exam = None
        self.session = None
        self.questions = []
        self.answers = {}
        self.current_index = 0
        self.time_left = 0
        self.submitting = False
        self.result = None
        self._pending_exam_id = None
        self._pending_writes = []
        self._unsynced = set()

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _require(self, *views):
        if self.view not in views:
            expected = ", ".join(v.value for v in views)
            raise InvalidTransition(f"cannot do that from '{self.view.value}' (needs {expected})")

    # --- Listing ---------------------------------------------------------

    async def load_exams(self):
        self.loading = True
        try:
            exams = await self._call(self.backend.list_published_exams)
            sessions = await self._call(self.backend.list_sessions, [e.id for e in exams]) if exams else []
        except BackendError as exc:
            logger.warning("Could not load exams: %s", exc)
            self.last_error = exc
            return self.listings
        finally:
            self.loading = False

        by_exam = {s.exam_id: s for s in sessions}
        now = self._clock()
        self.listings = [
            ExamListing(exam=exam, session=by_exam.get(exam.id), status=get_exam_status(exam, by_exam.get(exam.id), now))
            for exam in exams
        ]
        return self.listings

    def listing_for(self, exam_id):
        for listing in self.listings:
            if listing.exam.id == exam_id:
                return listing
        return None

    # --- Starting --------------------------------------------------------

    def request_start(self, exam_id):
        self._require(ExamView.LIST)
        self._startable_listing(exam_id)
        self._pending_exam_id = exam_id
        self.view = ExamView.CONFIRM_START

    def cancel_start(self):
        self._require(ExamView.CONFIRM_START)
        self._pending_exam_id = None
        self.view = ExamView.LIST

    async def confirm_start(self):
        self._require(ExamView.CONFIRM_START)
        return await self.start_exam(self._pending_exam_id)

    def _startable_listing(self, exam_id):
        listing = self.listing_for(exam_id)
        if listing is None:
            raise InvalidTransition(f"exam {exam_id} is not in the loaded list")
        if listing.status not in STARTABLE:
            raise InvalidTransition(f"exam {exam_id} is {listing.status.value}")
        return listing

    async def start_exam(self, exam_id):
        """
        Start or resume ``exam_id`` and enter the taking view.

        Returns False, leaving the view unchanged, when a start is already
        running or the backend fails.
        """
        self._require(ExamView.LIST, ExamView.CONFIRM_START)
        listing = self._startable_listing(exam_id)
        if self._starting:
            return False

        self._starting = True
        self.loading = True
        try:
            session = listing.session
            if session is None:
                try:
                    session = await self._call(self.backend.create_session, exam_id)
                except ConflictError:
                    session = await self._call(self.backend.get_session, exam_id)
            questions = await self._call(self.backend.list_questions_sanitized, exam_id)
            stored = await self._call(self.backend.list_answers, session.id)
        except BackendError as exc:
            logger.warning("Could not start exam %s: %s", exam_id, exc)
            self.last_error = exc
            return False
        finally:
            self._starting = False
            self.loading = False

        self._reset_exam_state()
        self.active_exam = listing.exam
        self.session = session
        self.questions = list(questions)
        self.answers = {a.question_id: a.selected_option for a in stored if a.selected_option}
        # TODO: resume from time already spent once sessions carry a server-side deadline
        self.time_left = listing.exam.duration_minutes * 60
        self.last_error = None
        self.view = ExamView.TAKING
        self._start_timer()
        logger.info("Session %s in progress for exam %s (%s answers restored)", session.id, exam_id, len(self.answers))
        return True

    # --- Taking ----------------------------------------------------------

    @property
    def current_question(self):
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def answered_count(self):
        return len(self.answers)

    def go_to(self, index):
        self._require(ExamView.TAKING)
        if not 0 <= index < len(self.questions):
            raise IndexError(f"question {index} out of range")
        self.current_index = index

    def next_question(self):
        self._require(ExamView.TAKING)
        self.current_index = min(self.current_index + 1, max(len(self.questions) - 1, 0))

    def previous_question(self):
        self._require(ExamView.TAKING)
        self.current_index = max(self.current_index - 1, 0)

    def select_answer(self, question_id, option):
        """
        Record ``option`` locally and schedule its write to the backend.
        Must be called from the running event loop. Returns the write task.
        """
        self._require(ExamView.TAKING)
        if self.submitting:
            raise InvalidTransition("exam is being submitted")
        option = (option or "").upper()
        if option not in OPTION_LETTERS:
            raise ValueError(f"option must be one of {', '.join(OPTION_LETTERS)}")
        if not any(q.id == question_id for q in self.questions):
            raise ValueError(f"question {question_id} is not part of this exam")

        self.answers[question_id] = option
        task = asyncio.get_running_loop().create_task(
            self._persist_answer(self.session.id, question_id, option)
        )
        self._pending_writes = [t for t in self._pending_writes if not t.done()]
        self._pending_writes.append(task)
        return task

    async def _persist_answer(self, session_id, question_id, option):
        try:
            await self._call(self.backend.upsert_answer, session_id, question_id, option)
        except BackendError as exc:
            logger.warning("Answer for question %s not saved: %s", question_id, exc)
            if self.session is not None and self.session.id == session_id:
                self._unsynced.add(question_id)
            return False
        if self.session is not None and self.session.id == session_id:
            self._unsynced.discard(question_id)
        return True

    async def _drain_writes(self):
        pending, self._pending_writes = self._pending_writes, []
        if pending:
            await asyncio.gather(*pending)
        for question_id in sorted(self._unsynced):
            await self._persist_answer(self.session.id, question_id, self.answers[question_id])
        if self._unsynced:
            logger.warning("Submitting session %s with %s unsaved answers", self.session.id, len(self._unsynced))

    # --- Timer -----------------------------------------------------------

    def _start_timer(self):
        self._stop_timer()
        self._timer_task = asyncio.get_running_loop().create_task(self._run_timer())

    def _stop_timer(self):
        task, self._timer_task = self._timer_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _run_timer(self):
        while self.time_left > 0:
            await asyncio.sleep(self.context.tick_seconds)
            self.time_left -= 1
        logger.info("Time is up for session %s", self.session.id)
        await self._submit(auto=True)

    @property
    def timer_running(self):
        return self._timer_task is not None and not self._timer_task.done()

    # --- Submitting ------------------------------------------------------

    def request_submit(self):
        self._require(ExamView.TAKING)
        self._stop_timer()
        self.view = ExamView.CONFIRM_SUBMIT
        return SubmitSummary(answered=self.answered_count, total=len(self.questions))

    def cancel_submit(self):
        self._require(ExamView.CONFIRM_SUBMIT)
        self.view = ExamView.TAKING
        self._start_timer()

    async def confirm_submit(self):
        self._require(ExamView.CONFIRM_SUBMIT)
        return await self._submit(auto=False)

    async def _submit(self, auto):
        if self.session is None or self.submitting:
            return None
        self.submitting = True
        self._stop_timer()
        try:
            await self._drain_writes()
            score = await self._call(self.backend.score_session, self.session.id)
        except BackendError as exc:
            logger.error("Scoring failed for session %s (auto=%s): %s", self.session.id, auto, exc)
            self.last_error = exc
            return None
        finally:
            self.submitting = False

        total_marks = self.active_exam.total_marks
        pct = percentage(score.score, total_marks)
        self.result = ExamResult(
            score=score.score,
            total_marks=total_marks,
            percentage=pct,
            passed=pct >= self.context.pass_mark_percentage,
            correct_count=score.correct_count,
            total_questions=score.total_questions,
        )
        self.last_error = None
        self.view = ExamView.RESULT
        return self.result

    # --- Leaving ---------------------------------------------------------

    async def back_to_list(self):
        """Drop all exam-taking state and reload the exam list."""
        if self.submitting:
            raise InvalidTransition("exam is being submitted")
        self._stop_timer()
        self._reset_exam_state()
        self.view = ExamView.LIST
        return await self.load_exams()

    async def close(self):
        task, self._timer_task = self._timer_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes)
        self._executor.shutdown(wait=False)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
