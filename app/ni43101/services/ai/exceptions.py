"""
Shared exceptions for the extraction pipeline.

Every error carries the HTTP status and the message shown to the user, so
the API layer maps them without inspecting vendor error text.
"""


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    status_code = 500
    user_message = "Extraction failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class RateLimitedError(AIServiceError):
    """The AI provider is throttling requests."""

    status_code = 429
    user_message = "AI API rate limit reached. Please try again in a few minutes."


class ServiceOverloadedError(AIServiceError):
    """The AI provider is temporarily unavailable."""

    status_code = 503
    user_message = "AI API is temporarily overloaded. Please try again shortly."


class DocumentTooLargeError(AIServiceError):
    """The document exceeds the provider's page or size ceiling."""

    status_code = 413
    user_message = "PDF file is too large. Try a smaller file or a PDF with fewer pages."


class ExtractionTimeoutError(AIServiceError):
    """The provider did not answer within the allotted time."""

    status_code = 504
    user_message = "Request timed out. The PDF may be too complex. Try a smaller file."


class AIAuthenticationError(AIServiceError):
    """The provider rejected our credentials."""

    status_code = 500
    user_message = "API authentication error. Please contact support."


class MalformedReplyError(AIServiceError):
    """The model's reply could not be parsed as a JSON object."""

    user_message = "Invalid extraction response from AI"


class ExtractionValidationError(AIServiceError):
    """The parsed reply is missing sections or has mistyped fields."""

    user_message = "Invalid extraction response from AI"

    def __init__(self, message: str | None = None, missing_sections: list[str] | None = None):
        super().__init__(message)
        self.missing_sections = missing_sections or []


class PayloadValidationError(ValueError):
    """Raised when caller-supplied data fails validation."""

    status_code = 400
