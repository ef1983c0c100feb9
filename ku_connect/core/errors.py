"""
Error kinds raised by the request pipeline and route handlers.

Every error maps to one HTTP status and one of two body shapes:
    {"error": "<message>"}
    {"errors": [{"field": "...", "message": "..."}]}   (validation only)
"""

from typing import Dict, List, Optional


class PipelineError(Exception):
    """Base class - a terminal failure that ends the request."""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}

    def to_body(self) -> dict:
        return {"error": self.message}


class Unauthorized(PipelineError):
    status_code = 401
    kind = "unauthorized"

    def __init__(self, message: str = "Access token required", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer", **(headers or {})})


class Forbidden(PipelineError):
    status_code = 403
    kind = "forbidden"

    def __init__(self, message: str = "Access denied", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers)


class NotFound(PipelineError):
    status_code = 404
    kind = "not_found"

    def __init__(self, message: str = "Not found", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers)


class TooManyRequests(PipelineError):
    status_code = 429
    kind = "too_many_requests"

    def __init__(self, message: str = "Too many requests, please try again later.",
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers)


class InternalError(PipelineError):
    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str = "Internal server error", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers)


class FieldError(dict):
    """One field-level failure: {"field": ..., "message": ...}."""

    def __init__(self, field: str, message: str):
        super().__init__(field=field, message=message)


class RequestValidationFailed(PipelineError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, errors: List[FieldError], headers: Optional[Dict[str, str]] = None):
        super().__init__("Validation failed", headers)
        self.errors = list(errors)

    def to_body(self) -> dict:
        return {"errors": [dict(e) for e in self.errors]}

    @classmethod
    def single(cls, field: str, message: str) -> "RequestValidationFailed":
        return cls([FieldError(field, message)])
