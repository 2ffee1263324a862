# ------------------------------------------
# Domain errors raised by the service layer
# - Each error carries its HTTP status and a short error name
# - `extra` is merged into the JSON error envelope by main.py
# ------------------------------------------

from typing import Any, Dict, Optional


class QuizServiceError(Exception):
    status_code = 500
    error = "ServerError"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class InvalidArgument(QuizServiceError):
    status_code = 400
    error = "InvalidArgument"


class LimitExceeded(QuizServiceError):
    status_code = 400
    error = "LimitExceeded"


class Conflict(QuizServiceError):
    status_code = 400
    error = "Conflict"


class Forbidden(QuizServiceError):
    status_code = 403
    error = "Forbidden"


class NotFound(QuizServiceError):
    status_code = 404
    error = "NotFound"
