"""Tests for daily research workflow orchestration."""

import json
from datetime import date, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from daily_research.config import Settings
from daily_research.demo import DEMO_RECORD, DemoResearchClient
from daily_research.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    PartialDeliveryError,
    UpstreamRequestError,
)
from daily_research.logging import clear_context_fields, current_run_context
from daily_research.models import (
    ContentSegment,
    EmailMessage,
    ExtractionStrategy,
    RawModelReply,
    RunSummary,
    TokenUsage,
)
from daily_research.prompts import TEST_PROMPT
from daily_research.workflow import run_daily_research

MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 25)
NOW = datetime(2026, 10, 19, 7, 0)

ENV = {
    "EMAIL_USER": "bot@example.com",
    "EMAIL_PASS": "app-pass",
    "EMAIL_RECIPIENTS": "a@example.com,b@example.com",
}

# --- Fixture Factories ---


def _settings(**overrides: str) -> Settings:
    env = dict(ENV)
    env.update(overrides)
    return Settings.from_env(env)


def _client(text: str) -> AsyncMock:
    client = AsyncMock()
    client.send.return_value = RawModelReply(
        segments=[
            ContentSegment(type="tool_use", tool_name="web_search", tool_input={"query": "q"}),
            ContentSegment(type="text", text=text),
        ],
        usage=TokenUsage(input_tokens=100, output_tokens=50, web_search_requests=1),
    )
    return client


def _dispatcher(accepted: list[str] | None = None) -> AsyncMock:
    dispatcher = AsyncMock()
    dispatcher.asend.return_value = accepted if accepted is not None else ["a@example.com", "b@example.com"]
    return dispatcher


def _fenced_demo_record() -> str:
    return f"```json\n{json.dumps(DEMO_RECORD)}\n```"


@pytest.fixture(autouse=True)
def _clear_context() -> None:
    clear_context_fields()
    yield
    clear_context_fields()


# --- Tests ---


@pytest.mark.asyncio
async def test__full_pipeline__sends_email_and_returns_summary() -> None:
    client = _client(_fenced_demo_record())
    dispatcher = _dispatcher()

    summary = await run_daily_research(_settings(), today=MONDAY, client=client, dispatcher=dispatcher, now=NOW)

    assert isinstance(summary, RunSummary)
    assert summary.topic_id == "ai-tools"
    assert summary.strategy is ExtractionStrategy.FENCE
    assert summary.findings_count == 3
    assert summary.sources_count == 2
    assert summary.recipients_count == 2
    assert summary.renderer == "card"
    assert summary.email_sent is True
    assert summary.usage.total == 150
    assert summary.duration_ms >= 0

    message: EmailMessage = dispatcher.asend.await_args.args[0]
    assert message.sender == "bot@example.com"
    assert message.recipients == ("a@example.com", "b@example.com")
    assert message.subject.startswith("Day 1 AI Dev Tools Update - AI Development Tools & LangChain Ecosystem")
    assert "LangGraph adds durable execution" in message.html
    assert "LangGraph adds durable execution" in message.text
    assert message.headers["X-Mailer"] == "AI Research Automation v1.0"


@pytest.mark.asyncio
async def test__full_pipeline__binds_run_context() -> None:
    await run_daily_research(
        _settings(), today=MONDAY, client=_client(_fenced_demo_record()), dispatcher=_dispatcher(), now=NOW
    )

    context = current_run_context()
    assert context["topic"] == "ai-tools"
    assert len(context["run_id"]) == 8


@pytest.mark.asyncio
async def test__unparseable_reply__still_sends_degraded_email() -> None:
    client = _client("Sorry, I could only find https://example.com/doc and https://example.com/tool")
    dispatcher = _dispatcher()

    summary = await run_daily_research(_settings(), today=MONDAY, client=client, dispatcher=dispatcher, now=NOW)

    assert summary is not None
    assert summary.strategy is ExtractionStrategy.DEGRADED
    assert summary.findings_count == 1
    assert summary.sources_count == 2
    dispatcher.asend.assert_awaited_once()


@pytest.mark.asyncio
async def test__not_scheduled__returns_none_without_calls() -> None:
    client = _client("unused")
    dispatcher = _dispatcher()

    summary = await run_daily_research(_settings(), today=SUNDAY, client=client, dispatcher=dispatcher)

    assert summary is None
    client.send.assert_not_awaited()
    dispatcher.asend.assert_not_awaited()


@pytest.mark.asyncio
async def test__schedule__skips_unscheduled_weekday() -> None:
    client = _client("unused")

    summary = await run_daily_research(_settings(SCHEDULE="thu"), today=MONDAY, client=client, dispatcher=_dispatcher())

    assert summary is None
    client.send.assert_not_awaited()


@pytest.mark.asyncio
async def test__day_override__bypasses_schedule() -> None:
    summary = await run_daily_research(
        _settings(SCHEDULE="thu"),
        day_override="fri",
        today=SUNDAY,
        client=_client(_fenced_demo_record()),
        dispatcher=_dispatcher(),
        now=NOW,
    )

    assert summary is not None
    assert summary.topic_id == "vscode-productivity"


@pytest.mark.asyncio
async def test__unknown_day_override__raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="saturday"):
        await run_daily_research(_settings(), day_override="saturday", client=_client("x"), dispatcher=_dispatcher())


@pytest.mark.asyncio
async def test__test_mode__sends_minimal_prompt() -> None:
    client = _client(_fenced_demo_record())

    await run_daily_research(
        _settings(RESEARCH_TEST_MODE="1"), today=MONDAY, client=client, dispatcher=_dispatcher(), now=NOW
    )

    client.send.assert_awaited_once_with(TEST_PROMPT)


@pytest.mark.asyncio
async def test__preview__writes_html_instead_of_sending(tmp_path: Path) -> None:
    dispatcher = _dispatcher()
    preview = tmp_path / "out" / "preview.html"

    summary = await run_daily_research(
        _settings(), today=MONDAY, client=DemoResearchClient(), dispatcher=dispatcher, preview_path=preview, now=NOW
    )

    assert summary is not None
    assert summary.email_sent is False
    assert summary.recipients_count == 0
    assert summary.preview_path == str(preview)
    assert "LangGraph adds durable execution" in preview.read_text(encoding="utf-8")
    dispatcher.asend.assert_not_awaited()


@pytest.mark.asyncio
async def test__research_failure__propagates_before_delivery() -> None:
    client = AsyncMock()
    client.send.side_effect = UpstreamRequestError("overloaded", status_code=529)
    dispatcher = _dispatcher()

    with pytest.raises(UpstreamRequestError) as exc_info:
        await run_daily_research(_settings(), today=MONDAY, client=client, dispatcher=dispatcher)

    assert exc_info.value.status_code == 529
    dispatcher.asend.assert_not_awaited()


@pytest.mark.asyncio
async def test__empty_reply__propagates() -> None:
    client = AsyncMock()
    client.send.side_effect = EmptyResponseError()

    with pytest.raises(EmptyResponseError):
        await run_daily_research(_settings(), today=MONDAY, client=client, dispatcher=_dispatcher())


@pytest.mark.asyncio
async def test__partial_delivery__propagates() -> None:
    dispatcher = AsyncMock()
    dispatcher.asend.side_effect = PartialDeliveryError(["a@example.com"], {"b@example.com": "550 no such user"})

    with pytest.raises(PartialDeliveryError):
        await run_daily_research(
            _settings(), today=MONDAY, client=_client(_fenced_demo_record()), dispatcher=dispatcher, now=NOW
        )


@pytest.mark.asyncio
async def test__missing_api_key__raises_before_any_request() -> None:
    with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
        await run_daily_research(_settings(), today=MONDAY, dispatcher=_dispatcher())


@pytest.mark.asyncio
async def test__live_client__is_built_with_configured_budgets() -> None:
    settings = _settings(ANTHROPIC_API_KEY="sk-ant-test", RESEARCH_TEST_MODE="1")
    agent = MagicMock()
    live_client = MagicMock()
    live_client.send = _client(_fenced_demo_record()).send

    with (
        patch("daily_research.workflow.get_research_agent", return_value=agent) as get_agent,
        patch("daily_research.workflow.PydanticAIResearchClient", return_value=live_client) as client_cls,
    ):
        await run_daily_research(settings, today=MONDAY, dispatcher=_dispatcher(), now=NOW)

    get_agent.assert_called_once_with("sk-ant-test", settings.research_model, 2)
    client_cls.assert_called_once_with(agent, max_tokens=1500)
