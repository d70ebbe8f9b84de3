"""
Custom Exceptions for the People Analysis API

Every failure of the extraction pipeline is raised as one of the typed
exceptions below. Callers branch on the exception class (or its ``kind``),
never on the message text.

Usage:
    from people_analysis_api.exceptions import MissingCredential

    if not api_key:
        raise MissingCredential()
"""

from typing import Optional, Any


class AnalysisError(Exception):
    """
    Base exception for all analysis errors.

    All pipeline exceptions inherit from this class, allowing
    catch-all handling when needed.
    """

    kind: str = "AnalysisError"

    def __init__(
        self,
        message: str = "Image analysis failed",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message

    @property
    def is_credential_error(self) -> bool:
        """True when the user can fix the failure by entering another key."""
        return False


class MissingCredential(AnalysisError):
    """Raised when an analysis is requested before an API key is supplied."""

    kind = "MissingCredential"

    def __init__(
        self,
        message: str = "API key is missing. Please provide a valid Gemini API key.",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)

    @property
    def is_credential_error(self) -> bool:
        return True


class AuthenticationRejected(AnalysisError):
    """Raised when Gemini reports the API key as invalid or unauthorised."""

    kind = "AuthenticationRejected"

    def __init__(
        self,
        message: str = "The API key was rejected by the model provider",
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)

    @property
    def is_credential_error(self) -> bool:
        return True


class MalformedResponse(AnalysisError):
    """Raised when the model returns no text or text that is not JSON."""

    kind = "MalformedResponse"

    def __init__(
        self,
        message: str = "The model returned an empty or unreadable response",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)


class ValidationFailure(AnalysisError):
    """Raised when a parsed response does not satisfy the people schema."""

    kind = "ValidationFailure"

    def __init__(
        self,
        message: str = "The model response failed validation",
        details: Optional[Any] = None,
    ):
        super().__init__(message, details)


class TransportFailure(AnalysisError):
    """Raised for network errors, timeouts, rate limits and other API errors."""

    kind = "TransportFailure"

    def __init__(
        self,
        message: str = "Could not reach the model provider",
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class InvalidImageError(ValueError):
    """Raised when an uploaded image is not a usable image payload."""


class SessionStateError(RuntimeError):
    """Raised when a session operation is not allowed in the current state."""


class UnknownPersonError(LookupError):
    """Raised when a highlight targets a person that is not in the current result."""

    def __init__(self, person_id: int):
        self.person_id = person_id
        super().__init__(f"Person {person_id} not found")
