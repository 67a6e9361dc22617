from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied


class ExamNotFound(NotFound):
    default_detail = "Exam not found."
    default_code = 'exam_not_found'


class SessionNotFound(NotFound):
    default_detail = "Session not found."
    default_code = 'session_not_found'


class QuestionNotFound(NotFound):
    default_detail = "Question does not belong to this exam."
    default_code = 'question_not_found'


class ExamUnavailable(PermissionDenied):
    default_detail = "This exam is not open for new attempts."
    default_code = 'exam_unavailable'


class SessionNotStarted(PermissionDenied):
    default_detail = "Start the exam before loading its questions."
    default_code = 'session_not_started'


class SessionAlreadySubmitted(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Exam already submitted."
    default_code = 'session_submitted'
