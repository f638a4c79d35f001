"""Environment configuration for the research automation.

Environment Variables:
    Model:
        ANTHROPIC_API_KEY: API key for the research model (required for live runs)
        RESEARCH_MODEL: Anthropic model name
        RESEARCH_TEST_MODE: Minimal prompt and small budgets ('1', 'true', 'yes', 'on')

    Email:
        EMAIL_USER: SMTP username, also the default sender
        EMAIL_PASS: SMTP password or app password
        EMAIL_HOST: SMTP host (default: smtp.gmail.com)
        EMAIL_PORT: SMTP port (default: 587; 465 uses implicit TLS)
        EMAIL_FROM: Sender address (default: EMAIL_USER)
        EMAIL_RECIPIENTS: Comma-separated recipient addresses
        SMTP_TIMEOUT: Socket timeout in seconds (default: 30)

    Scheduling:
        SCHEDULE: Comma-separated weekdays to run on, e.g. "mon,thu" (default: Monday-Friday)

    Runtime:
        ENVIRONMENT: development, staging or production (default: development)
"""

import os
import re
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from daily_research.agents import DEFAULT_MAX_SEARCHES, DEFAULT_RESEARCH_MODEL
from daily_research.delivery import SmtpSettings
from daily_research.demo import is_demo_mode_allowed
from daily_research.exceptions import ConfigurationError
from daily_research.requester import DEFAULT_MAX_TOKENS
from daily_research.topics import parse_schedule

EMAIL_PATTERN = re.compile(r"^[^@\s,]+@[^@\s,]+\.[^@\s,]+$")
TRUTHY = ("1", "true", "yes", "on")

TEST_MODE_MAX_SEARCHES = 2
TEST_MODE_MAX_TOKENS = 1500

ENV_FIELDS: dict[str, str] = {
    "anthropic_api_key": "ANTHROPIC_API_KEY",
    "research_model": "RESEARCH_MODEL",
    "test_mode": "RESEARCH_TEST_MODE",
    "email_user": "EMAIL_USER",
    "email_pass": "EMAIL_PASS",
    "email_host": "EMAIL_HOST",
    "email_port": "EMAIL_PORT",
    "email_from": "EMAIL_FROM",
    "email_recipients": "EMAIL_RECIPIENTS",
    "smtp_timeout": "SMTP_TIMEOUT",
    "schedule": "SCHEDULE",
    "environment": "ENVIRONMENT",
}


class Settings(BaseModel):
    """Validated runtime configuration."""

    model_config = ConfigDict(frozen=True)

    anthropic_api_key: str = ""
    research_model: str = DEFAULT_RESEARCH_MODEL
    test_mode: bool = False

    email_user: str = Field(min_length=1)
    email_pass: str = Field(min_length=1)
    email_host: str = Field(default="smtp.gmail.com", min_length=1)
    email_port: int = Field(default=587, ge=1, le=65535)
    email_from: str = ""
    email_recipients: tuple[str, ...] = Field(min_length=1)
    smtp_timeout: float = Field(default=30.0, gt=0)

    schedule: frozenset[int] | None = None
    environment: Literal["development", "staging", "production", "test"] = "development"

    @field_validator("test_mode", mode="before")
    @classmethod
    def _parse_flag(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY
        return value

    @field_validator("email_recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(address.strip() for address in value.split(",") if address.strip())
        return value

    @field_validator("email_recipients")
    @classmethod
    def _check_recipients(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        invalid = [address for address in value if not EMAIL_PATTERN.match(address)]
        if invalid:
            raise ValueError(f"invalid address(es): {', '.join(invalid)}")
        return value

    @field_validator("schedule", mode="before")
    @classmethod
    def _parse_schedule(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            try:
                return parse_schedule(value)
            except ConfigurationError as e:
                raise ValueError(e.message) from e
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_sender(self) -> "Settings":
        if not EMAIL_PATTERN.match(self.sender):
            raise ValueError(f"sender address '{self.sender}' is not a valid email address")
        return self

    @property
    def sender(self) -> str:
        return self.email_from or self.email_user

    @property
    def max_searches(self) -> int:
        return TEST_MODE_MAX_SEARCHES if self.test_mode else DEFAULT_MAX_SEARCHES

    @property
    def max_tokens(self) -> int:
        return TEST_MODE_MAX_TOKENS if self.test_mode else DEFAULT_MAX_TOKENS

    @property
    def demo_allowed(self) -> bool:
        return is_demo_mode_allowed(self.environment)

    def smtp_settings(self) -> SmtpSettings:
        return SmtpSettings(
            host=self.email_host,
            port=self.email_port,
            username=self.email_user,
            password=self.email_pass,
            timeout=self.smtp_timeout,
        )

    def require_api_key(self) -> str:
        """The model API key, or ConfigurationError when a live run has none."""
        if not self.anthropic_api_key.strip():
            raise ConfigurationError(
                "ANTHROPIC_API_KEY is required for research runs",
                problems=["ANTHROPIC_API_KEY: missing"],
            )
        return self.anthropic_api_key

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Unset and empty variables fall back to defaults.

        Raises:
            ConfigurationError: Listing every invalid or missing variable.
        """
        environ = os.environ if environ is None else environ
        values = {field: environ[name] for field, name in ENV_FIELDS.items() if environ.get(name, "").strip()}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            problems = []
            for error in e.errors():
                field = str(error["loc"][0]) if error["loc"] else ""
                problems.append(f"{ENV_FIELDS.get(field, field or 'configuration')}: {error['msg']}")
            raise ConfigurationError(
                "Invalid environment configuration. Check your .env file.", problems=problems
            ) from e
