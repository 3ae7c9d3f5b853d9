"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; ``biztech.main`` renders them as ``ErrorResponse`` bodies
with the status code carried by the exception class.
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str, *, code: str | None = None, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or []


class ValidationError(DomainError):
    status_code = 422
    code = "validation_error"


class AuthenticationError(DomainError):
    status_code = 401
    code = "authentication_failed"


class EmailNotVerifiedError(AuthenticationError):
    # 403 so clients branch to the verification flow instead of purging their session
    status_code = 403
    code = "email_not_verified"


class AuthorizationError(DomainError):
    status_code = 403
    code = "forbidden"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"


class DuplicateEnquiryError(ConflictError):
    code = "duplicate_enquiry"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"


class UpstreamError(DomainError):
    status_code = 502
    code = "upstream_error"


class RateLimitedError(DomainError):
    status_code = 429
    code = "rate_limited"
