# File: rhodesign/core/errors.py

class SigningError(Exception):
    """Base class for recoverable signing failures surfaced to the HTTP layer."""

    status_code = 400
    code = "SIGNING_ERROR"
    message = "Signing request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class SessionNotFound(SigningError):
    status_code = 404
    code = "SESSION_NOT_FOUND"
    message = "Signing session not found"


class SessionExpired(SigningError):
    status_code = 410
    code = "SESSION_EXPIRED"
    message = "Signing session expired"


class SessionAlreadyCompleted(SigningError):
    status_code = 409
    code = "SESSION_ALREADY_COMPLETED"
    message = "Signing session already completed or cancelled"


class SignatureNotFound(SigningError):
    status_code = 404
    code = "SIGNATURE_NOT_FOUND"
    message = "Signature not found"


class InvalidSignatureData(SigningError):
    status_code = 400
    code = "SIGNATURE_REQUIRED"
    message = "Signature data must be a non-empty string"
