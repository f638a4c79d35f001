"""Domain-specific exceptions for the daily research pipeline."""


class ResearchAutomationError(Exception):
    """Base exception for research automation errors.

    Carries a stable ``code`` for operators plus optional HTTP status and
    retry-after hints from upstream services.
    """

    code = "RESEARCH_AUTOMATION_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.code
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)


class ConfigurationError(ResearchAutomationError):
    """Raised when environment configuration is missing or invalid."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        super().__init__(message)


class UpstreamRequestError(ResearchAutomationError):
    """Raised when the model API request fails."""

    code = "UPSTREAM_REQUEST_ERROR"

    def __init__(self, reason: str, status_code: int | None = None, retry_after: float | None = None) -> None:
        self.reason = reason
        super().__init__(f"Model API request failed: {reason}", status_code=status_code, retry_after=retry_after)


class InvalidUpstreamResponseError(ResearchAutomationError):
    """Raised when the model API returns a response that fails structural checks."""

    code = "INVALID_UPSTREAM_RESPONSE"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid response from model API: {reason}")


class EmptyResponseError(ResearchAutomationError):
    """Raised when the model returns no text content."""

    code = "EMPTY_RESPONSE"

    def __init__(self) -> None:
        super().__init__("Empty response from model API")


class RenderingError(ResearchAutomationError):
    """Raised when every email renderer failed."""

    code = "RENDERING_ERROR"

    def __init__(self, attempted: list[str]) -> None:
        self.attempted = attempted
        super().__init__(f"All {len(attempted)} email renderers failed: {', '.join(attempted)}")


class EmailDeliveryError(ResearchAutomationError):
    """Base class for SMTP delivery failures."""

    code = "EMAIL_DELIVERY_ERROR"


class EmailAuthError(EmailDeliveryError):
    """Raised when the SMTP server rejects the credentials."""

    code = "EMAIL_AUTH_ERROR"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Email authentication failed. Check your email credentials.")


class EmailConnectionError(EmailDeliveryError):
    """Raised when the SMTP server cannot be reached."""

    code = "EMAIL_CONNECTION_ERROR"

    def __init__(self, host: str, port: int, detail: str = "") -> None:
        self.host = host
        self.port = port
        self.detail = detail
        super().__init__(f"Could not connect to email server {host}:{port}. Check your SMTP settings.")


class EmailTimeoutError(EmailDeliveryError):
    """Raised when the SMTP conversation times out."""

    code = "EMAIL_TIMEOUT_ERROR"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Email sending timed out after {timeout:g}s. The server may be experiencing issues.")


class EmailSendError(EmailDeliveryError):
    """Raised for any other SMTP failure."""

    code = "EMAIL_SEND_ERROR"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Email sending failed: {reason}")


class PartialDeliveryError(EmailDeliveryError):
    """Raised when some recipients were refused even though the send went through."""

    code = "EMAIL_DELIVERY_PARTIAL_FAILURE"

    def __init__(self, accepted: list[str], rejected: dict[str, str]) -> None:
        self.accepted = accepted
        self.rejected = rejected
        super().__init__(f"Email rejected for {len(rejected)} of {len(accepted) + len(rejected)} recipients")
