"""
Typed failures of the registration flow.

Every error carries a stable machine-readable code, the HTTP status the API
answers with, whether the whole signup may be retried, and a message that is
safe to show to end users.
"""

from typing import Dict, List, Optional


class RegistrationError(Exception):
    """Base class for every terminal failure of `RegistrationService.register`."""

    error_code = "REGISTRATION_FAILED"
    status_code = 500
    retryable = False
    default_message = "Registration failed. Please try again later."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> Dict:
        return {
            "success": False,
            "error_code": self.error_code,
            "error": self.message,
            "retryable": self.retryable,
        }


class InvalidSignup(RegistrationError):
    """Malformed input, detected before any side effect."""

    error_code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid signup data"

    def __init__(self, field_errors: Dict[str, List[str]], message: Optional[str] = None):
        self.field_errors = field_errors
        super().__init__(message)

    def to_response(self) -> Dict:
        body = super().to_response()
        body["details"] = self.field_errors
        return body


class IdentityConflict(RegistrationError):
    error_code = "IDENTITY_CONFLICT"
    status_code = 409
    default_message = "An account with this email already exists."


class JurisdictionAlreadyAdministered(RegistrationError):
    error_code = "JURISDICTION_ALREADY_ADMINISTERED"
    status_code = 409
    default_message = "This barangay already has an administrator."

    def __init__(self, jurisdiction_code: str, message: Optional[str] = None):
        self.jurisdiction_code = jurisdiction_code
        super().__init__(message)


class PropagationTimeout(RegistrationError):
    """The identity exists but did not become visible within the retry budget."""

    error_code = "PROPAGATION_TIMEOUT"
    status_code = 504
    retryable = True
    default_message = "Your account is still being set up. Please try again in a moment."

    def __init__(self, attempts: int, elapsed: float, message: Optional[str] = None):
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(message)


class DeadlineExceeded(RegistrationError):
    """
    The caller's deadline fired or the call was cancelled.
    The signup may still have completed; retrying is safe.
    """

    error_code = "DEADLINE_EXCEEDED"
    status_code = 504
    retryable = True
    default_message = "The request took too long. Please try again."

    def __init__(self, attempts: int = 0, elapsed: float = 0.0, message: Optional[str] = None):
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(message)


class StoreUnavailable(RegistrationError):
    """Transient failure of Supabase Auth or the profile database."""

    error_code = "STORE_UNAVAILABLE"
    status_code = 503
    retryable = True
    default_message = "The service is temporarily unavailable. Please try again."
