"""Exception hierarchy for PediBrief."""

from typing import Optional, Sequence


class PediBriefError(Exception):
    """Base exception for all PediBrief errors."""


class ConfigurationError(PediBriefError):
    """Raised when a required credential or setting is missing."""


# =============================================================================
# Completion service
# =============================================================================

class CompletionError(PediBriefError):
    """Raised when the text-completion round trip fails."""


class CompletionTransportError(CompletionError):
    """The request never produced an HTTP response (DNS, refused, timeout)."""


class CompletionHTTPError(CompletionError):
    """The completion service answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Gemini API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class CompletionAPIError(CompletionError):
    """The HTTP call succeeded but the payload carries an `error` object."""


class CompletionTruncatedError(CompletionError):
    """Generation stopped at the output token limit."""

    def __init__(self, thinking_tokens: int = 0) -> None:
        super().__init__(
            "Response was truncated due to token limit. "
            f"The model used {thinking_tokens} thinking tokens. "
            "Please try again with a shorter discharge summary."
        )
        self.thinking_tokens = thinking_tokens


class CompletionExtractionError(CompletionError):
    """No generated text could be located in the response envelope."""

    def __init__(self, reason: str, attempted: Sequence[str] = ()) -> None:
        message = f"Could not extract response text: {reason}"
        if attempted:
            message += f" (tried: {', '.join(attempted)})"
        super().__init__(message)
        self.reason = reason
        self.attempted = list(attempted)


# =============================================================================
# JSON extraction
# =============================================================================

class JSONExtractionError(PediBriefError):
    """Model output could not be turned into a JSON object."""

    def __init__(self, message: str, preview: str = "") -> None:
        if preview:
            message = f"{message} Response preview: {preview}"
        super().__init__(message)
        self.preview = preview


class NoJSONFoundError(JSONExtractionError):
    """No opening brace in the model output."""


class IncompleteJSONError(JSONExtractionError):
    """The first object never closes."""


class InvalidJSONError(JSONExtractionError):
    """The balanced substring is not valid JSON."""

    def __init__(self, message: str, preview: str = "", reason: Optional[str] = None) -> None:
        super().__init__(message, preview)
        self.reason = reason


# =============================================================================
# Email
# =============================================================================

class EmailDeliveryError(PediBriefError):
    """Raised when the Gmail API rejects or fails to send a message."""
