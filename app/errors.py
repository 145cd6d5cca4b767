"""
app/errors.py
Erreurs métier levées par les services et traduites en réponses JSON par main.py
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self, details_key: str = "fields") -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body[details_key] = self.details
        return body


class ValidationFailed(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class RateLimitError(AppError):
    status_code = 429

    def __init__(self, message: str, limit: int, remaining: int, reset_time: int):
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.reset_time = reset_time


class StoreUnavailable(AppError):
    status_code = 500
