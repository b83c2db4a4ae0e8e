from typing import Any


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400


class DuplicateIdError(ValidationError):
    pass


class NotFoundError(AppError):
    status_code = 404


class ConfigurationError(AppError):
    """Missing upstream credential. The message tells the operator what to set."""

    status_code = 500


class UpstreamError(AppError):
    """
    Any failure talking to YouTube, tagged with a short reason:
    network | quota_exceeded | http_error | bad_response | all_keywords_failed
    """

    status_code = 500

    def __init__(self, message: str, reason: str = "http_error", details: Any = None):
        super().__init__(message, details)
        self.reason = reason


class QuotaExceededError(UpstreamError):
    def __init__(self, message: str = "YouTube API quota exceeded", details: Any = None):
        super().__init__(message, reason="quota_exceeded", details=details)
