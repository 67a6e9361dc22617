import json

import pytest
import requests

from cbt_client.backends import HttpExamBackend
from cbt_client.exceptions import (
    BackendError, ExamUnavailableError, NotFoundError, PersistenceFailure, ScoringFailure,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body=None):
        self.status_code = status_code
        self._payload = payload
        if body is not None:
            self.content = body.encode()
        else:
            self.content = b"" if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode()

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class RecordingSession:
    """Replays queued responses (or raises queued exceptions) and records each request."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append((method, url, kwargs))
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_backend(*responses):
    http = RecordingSession(*responses)
    return HttpExamBackend("http://cbt.test/", token="abc", session=http), http


def test_token_sets_bearer_header():
    backend, http = make_backend()
    assert http.headers["Authorization"] == "Bearer abc"
    assert backend.base_url == "http://cbt.test"


def test_login_replaces_token():
    backend, http = make_backend(FakeResponse(200, {"access": "new", "refresh": "r", "user": {"id": 4}}))
    user = backend.login("ada@school.test", "secret")
    assert user == {"id": 4}
    assert http.headers["Authorization"] == "Bearer new"
    method, url, kwargs = http.requests[0]
    assert (method, url) == ("POST", "http://cbt.test/api/auth/login/")
    assert kwargs["json"] == {"email": "ada@school.test", "password": "secret"}


def test_list_published_exams_parses_rows():
    row = {
        "id": 1, "title": "Maths", "subject": "Maths", "duration_minutes": 30, "total_marks": 10,
        "start_time": "2026-03-02T08:00:00Z", "end_time": None,
    }
    backend, _ = make_backend(FakeResponse(200, [row]))
    [exam] = backend.list_published_exams()
    assert exam.id == 1
    assert exam.start_time.year == 2026
    assert exam.start_time.tzinfo is not None
    assert exam.end_time is None


def test_list_sessions_sends_exam_ids():
    backend, http = make_backend(FakeResponse(200, [{"id": 3, "exam_id": 1, "is_submitted": True, "total_score": 4}]))
    [session] = backend.list_sessions([1, 2])
    assert session.is_submitted is True
    assert http.requests[0][2]["params"] == {"exam_ids": "1,2"}


def test_get_session_returns_none_when_missing():
    backend, _ = make_backend(FakeResponse(404, {"detail": "Not found"}))
    assert backend.get_session(1) is None


def test_create_session_falls_back_to_existing_on_conflict():
    backend, http = make_backend(
        FakeResponse(409, {"detail": "Session already exists."}),
        FakeResponse(200, {"id": 8, "exam_id": 1, "is_submitted": False}),
    )
    session = backend.create_session(1)
    assert session.id == 8
    assert [r[0] for r in http.requests] == ["POST", "GET"]
    assert http.requests[1][1] == "http://cbt.test/api/cbt/exams/1/session/"


def test_closed_exam_maps_to_unavailable():
    backend, _ = make_backend(FakeResponse(403, {"detail": "This exam is not open."}))
    with pytest.raises(ExamUnavailableError) as excinfo:
        backend.create_session(1)
    assert excinfo.value.status_code == 403
    assert "not open" in str(excinfo.value)


def test_missing_exam_maps_to_not_found():
    backend, _ = make_backend(FakeResponse(404, {"detail": "Exam not found."}))
    with pytest.raises(NotFoundError):
        backend.list_questions_sanitized(99)


def test_upsert_answer_sends_option():
    backend, http = make_backend(FakeResponse(200, {"question_id": 5, "selected_option": "B"}))
    backend.upsert_answer(3, 5, "B")
    method, url, kwargs = http.requests[0]
    assert method == "PUT"
    assert url == "http://cbt.test/api/cbt/sessions/3/answers/5/"
    assert kwargs["json"] == {"selected_option": "B"}


def test_upsert_failure_is_persistence_failure():
    backend, _ = make_backend(FakeResponse(500))
    with pytest.raises(PersistenceFailure) as excinfo:
        backend.upsert_answer(3, 5, "B")
    assert excinfo.value.status_code == 500


def test_score_session_parses_result():
    backend, _ = make_backend(FakeResponse(200, {
        "score": 3, "correct_count": 2, "total_questions": 3, "already_submitted": True,
    }))
    result = backend.score_session(3)
    assert (result.score, result.correct_count, result.total_questions) == (3, 2, 3)
    assert result.already_submitted is True


def test_scoring_errors_are_scoring_failures():
    backend, _ = make_backend(FakeResponse(502), requests.exceptions.Timeout())
    with pytest.raises(ScoringFailure):
        backend.score_session(3)
    with pytest.raises(ScoringFailure):
        backend.score_session(3)


def test_network_errors_become_backend_errors():
    backend, _ = make_backend(
        requests.exceptions.ConnectionError(),
        requests.exceptions.Timeout(),
    )
    with pytest.raises(BackendError, match="Could not connect"):
        backend.list_published_exams()
    with pytest.raises(BackendError, match="timed out"):
        backend.list_answers(1)


def test_fetch_context_uses_school_pass_mark():
    backend, http = make_backend(FakeResponse(200, {"school_name": "Test", "pass_mark_percentage": 40}))
    context = backend.fetch_context(tick_seconds=0.5)
    assert context.pass_mark_percentage == 40
    assert context.tick_seconds == 0.5
    assert http.requests[0][1] == "http://cbt.test/api/settings/"


def test_from_env(monkeypatch):
    monkeypatch.setenv("CBT_API_URL", "http://school.test/")
    monkeypatch.setenv("CBT_API_TOKEN", "t0k")
    backend = HttpExamBackend.from_env()
    assert backend.base_url == "http://school.test"
    assert backend.http.headers["Authorization"] == "Bearer t0k"


@pytest.mark.parametrize("error", [
    requests.exceptions.TooManyRedirects(),
    requests.exceptions.ChunkedEncodingError(),
    requests.exceptions.InvalidURL(),
])
def test_other_transport_errors_become_backend_errors(error):
    backend, _ = make_backend(error, error)
    with pytest.raises(BackendError):
        backend.list_published_exams()
    with pytest.raises(ScoringFailure):
        backend.score_session(3)


def test_non_json_success_body_is_a_backend_error():
    page = "<html><body>Gateway login</body></html>"
    backend, _ = make_backend(FakeResponse(200, body=page), FakeResponse(200, body=page))
    with pytest.raises(BackendError) as excinfo:
        backend.list_answers(1)
    assert excinfo.value.status_code == 200
    with pytest.raises(ScoringFailure):
        backend.score_session(3)
