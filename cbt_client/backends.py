"""
Storage interface used by the exam controller, and its HTTP implementation.

A backend is bound to one signed-in student; none of its calls can see the
answer key. Scoring happens on the server through ``score_session``.
"""
import abc
import logging
import os

import requests

from .exceptions import (
    BackendError, ConflictError, ExamUnavailableError, NotFoundError,
    PersistenceFailure, ScoringFailure,
)
from .types import ExamContext, ExamDefinition, ScoreResult, SessionInfo, StoredAnswer, StudentQuestion

logger = logging.getLogger(__name__)


class ExamBackend(abc.ABC):

    @abc.abstractmethod
    def list_published_exams(self):
        """Return ``ExamDefinition`` objects, newest first."""

    @abc.abstractmethod
    def list_sessions(self, exam_ids=None):
        """Return the student's ``SessionInfo`` objects."""

    @abc.abstractmethod
    def get_session(self, exam_id):
        """Return the student's ``SessionInfo`` for ``exam_id`` or None."""

    @abc.abstractmethod
    def create_session(self, exam_id):
        """Return the student's session for ``exam_id``, creating it if needed."""

    @abc.abstractmethod
    def list_questions_sanitized(self, exam_id):
        """Return ``StudentQuestion`` objects in display order."""

    @abc.abstractmethod
    def list_answers(self, session_id):
        """Return ``StoredAnswer`` objects."""

    @abc.abstractmethod
    def upsert_answer(self, session_id, question_id, option):
        pass

    @abc.abstractmethod
    def score_session(self, session_id):
        """Return a ``ScoreResult``."""


class HttpExamBackend(ExamBackend):
    """ExamBackend over the school platform REST API."""

    timeout = 20

    def __init__(self, base_url, token=None, session=None):
        self.base_url = base_url.rstrip('/')
        self.http = session or requests.Session()
        if token:
            self.http.headers.update({"Authorization": f"Bearer {token}"})

    @classmethod
    def from_env(cls):
        return cls(
            os.environ.get("CBT_API_URL", "http://localhost:8000"),
            token=os.environ.get("CBT_API_TOKEN"),
        )

    def login(self, email, password):
        """Exchange credentials for a bearer token and keep it on this backend."""
        data = self._request("POST", "/api/auth/login/", json={"email": email, "password": password})
        self.http.headers.update({"Authorization": f"Bearer {data['access']}"})
        return data.get("user")

    def fetch_context(self, **overrides):
        """``ExamContext`` using the school's configured pass mark."""
        data = self._request("GET", "/api/settings/") or {}
        overrides.setdefault("pass_mark_percentage", int(data.get("pass_mark_percentage", 50)))
        return ExamContext(**overrides)

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise BackendError(f"{method} {path} timed out")
        except requests.exceptions.ConnectionError:
            raise BackendError(f"Could not connect to {self.base_url}")
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise BackendError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            if resp.status_code == 404:
                raise NotFoundError(detail, resp.status_code)
            if resp.status_code == 409:
                raise ConflictError(detail, resp.status_code)
            if resp.status_code == 403:
                raise ExamUnavailableError(detail, resp.status_code)
            raise BackendError(detail, resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(f"{method} {path} returned a non-JSON body", resp.status_code) from exc

    def list_published_exams(self):
        return [ExamDefinition.from_dict(row) for row in self._request("GET", "/api/cbt/exams/")]

    def list_sessions(self, exam_ids=None):
        params = {}
        if exam_ids:
            params["exam_ids"] = ",".join(str(i) for i in exam_ids)
        return [SessionInfo.from_dict(row) for row in self._request("GET", "/api/cbt/sessions/", params=params)]

    def get_session(self, exam_id):
        try:
            return SessionInfo.from_dict(self._request("GET", f"/api/cbt/exams/{exam_id}/session/"))
        except NotFoundError:
            return None

    def create_session(self, exam_id):
        try:
            data = self._request("POST", f"/api/cbt/exams/{exam_id}/start/")
        except ConflictError:
            # Another tab created it first
            existing = self.get_session(exam_id)
            if existing is None:
                raise
            return existing
        return SessionInfo.from_dict(data)

    def list_questions_sanitized(self, exam_id):
        rows = self._request("GET", f"/api/cbt/exams/{exam_id}/questions/")
        return [StudentQuestion.from_dict(row) for row in rows]

    def list_answers(self, session_id):
        rows = self._request("GET", f"/api/cbt/sessions/{session_id}/answers/")
        return [StoredAnswer.from_dict(row) for row in rows]

    def upsert_answer(self, session_id, question_id, option):
        try:
            self._request(
                "PUT", f"/api/cbt/sessions/{session_id}/answers/{question_id}/",
                json={"selected_option": option},
            )
        except BackendError as exc:
            raise PersistenceFailure(str(exc), exc.status_code) from exc

    def score_session(self, session_id):
        try:
            data = self._request("POST", f"/api/cbt/sessions/{session_id}/submit/")
        except BackendError as exc:
            raise ScoringFailure(str(exc), exc.status_code) from exc
        if not data:
            raise ScoringFailure("Empty response from scoring")
        return ScoreResult.from_dict(data)
