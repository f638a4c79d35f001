"""Tests for research automation exceptions."""

import pytest

from daily_research.exceptions import (
    ConfigurationError,
    EmailAuthError,
    EmailConnectionError,
    EmailDeliveryError,
    EmailSendError,
    EmailTimeoutError,
    EmptyResponseError,
    InvalidUpstreamResponseError,
    PartialDeliveryError,
    RenderingError,
    ResearchAutomationError,
    UpstreamRequestError,
)


class TestResearchAutomationError:
    """Tests for base ResearchAutomationError."""

    def test__base_error__is_exception(self) -> None:
        error = ResearchAutomationError("test message")
        assert isinstance(error, Exception)
        assert str(error) == "test message"
        assert error.code == "RESEARCH_AUTOMATION_ERROR"
        assert error.status_code is None
        assert error.retry_after is None

    def test__base_error__accepts_explicit_code(self) -> None:
        error = ResearchAutomationError("boom", code="CUSTOM", status_code=500, retry_after=3.0)
        assert error.code == "CUSTOM"
        assert error.status_code == 500
        assert error.retry_after == 3.0


class TestConfigurationError:
    def test__configuration_error__stores_problems(self) -> None:
        error = ConfigurationError("bad env", problems=["EMAIL_USER: missing"])
        assert error.problems == ["EMAIL_USER: missing"]
        assert error.code == "CONFIGURATION_ERROR"
        assert str(error) == "bad env"

    def test__configuration_error__defaults_to_empty_problems(self) -> None:
        assert ConfigurationError("bad env").problems == []


class TestUpstreamErrors:
    """Tests for model API errors."""

    def test__upstream_request_error__formats_message_and_hints(self) -> None:
        error = UpstreamRequestError("rate limited", status_code=429, retry_after=30.0)
        assert str(error) == "Model API request failed: rate limited"
        assert error.reason == "rate limited"
        assert error.status_code == 429
        assert error.retry_after == 30.0
        assert error.code == "UPSTREAM_REQUEST_ERROR"

    def test__invalid_upstream_response_error__formats_message(self) -> None:
        error = InvalidUpstreamResponseError("no content blocks")
        assert str(error) == "Invalid response from model API: no content blocks"
        assert error.code == "INVALID_UPSTREAM_RESPONSE"

    def test__empty_response_error__has_fixed_message(self) -> None:
        error = EmptyResponseError()
        assert str(error) == "Empty response from model API"
        assert error.code == "EMPTY_RESPONSE"


class TestRenderingError:
    def test__rendering_error__lists_attempted_renderers(self) -> None:
        error = RenderingError(["card", "basic"])
        assert error.attempted == ["card", "basic"]
        assert str(error) == "All 2 email renderers failed: card, basic"
        assert error.code == "RENDERING_ERROR"


class TestEmailErrors:
    """Tests for SMTP delivery errors."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (EmailAuthError("535 bad credentials"), "EMAIL_AUTH_ERROR"),
            (EmailConnectionError("smtp.example.com", 587), "EMAIL_CONNECTION_ERROR"),
            (EmailTimeoutError(30.0), "EMAIL_TIMEOUT_ERROR"),
            (EmailSendError("552 message too large"), "EMAIL_SEND_ERROR"),
            (PartialDeliveryError(["a@example.com"], {"b@example.com": "550 no such user"}), "EMAIL_DELIVERY_PARTIAL_FAILURE"),
        ],
    )
    def test__email_errors__carry_code_and_inherit_from_delivery_error(
        self, error: EmailDeliveryError, code: str
    ) -> None:
        assert error.code == code
        assert isinstance(error, EmailDeliveryError)
        assert isinstance(error, ResearchAutomationError)

    def test__email_connection_error__names_host_and_port(self) -> None:
        error = EmailConnectionError("smtp.example.com", 465, detail="refused")
        assert str(error) == "Could not connect to email server smtp.example.com:465. Check your SMTP settings."
        assert error.detail == "refused"

    def test__email_timeout_error__formats_seconds(self) -> None:
        assert str(EmailTimeoutError(30.0)) == (
            "Email sending timed out after 30s. The server may be experiencing issues."
        )

    def test__email_auth_error__keeps_detail_out_of_message(self) -> None:
        error = EmailAuthError("535 5.7.8 Username and Password not accepted")
        assert "535" not in str(error)
        assert error.detail.startswith("535")

    def test__partial_delivery_error__counts_recipients(self) -> None:
        error = PartialDeliveryError(
            ["a@example.com"], {"b@example.com": "550 no such user", "c@example.com": "550 no such user"}
        )
        assert str(error) == "Email rejected for 2 of 3 recipients"
        assert error.accepted == ["a@example.com"]
        assert set(error.rejected) == {"b@example.com", "c@example.com"}

    def test__email_errors__catchable_as_base(self) -> None:
        with pytest.raises(ResearchAutomationError):
            raise EmailSendError("boom")
