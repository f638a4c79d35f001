"""Daily research pipeline: topic, prompt, research, extraction, rendering, delivery."""

from datetime import date, datetime
from pathlib import Path
from time import perf_counter
from typing import Protocol
from uuid import uuid4

from daily_research.agents import get_research_agent
from daily_research.config import Settings
from daily_research.delivery import EmailDispatcher
from daily_research.exceptions import ConfigurationError
from daily_research.extraction import extract_research
from daily_research.logging import bind_run_context, get_logger
from daily_research.models import EmailMessage, RunSummary, Topic
from daily_research.prompts import build_research_prompt
from daily_research.rendering import build_email_message, render_email
from daily_research.requester import PydanticAIResearchClient, ResearchClient
from daily_research.topics import get_current_topic

log = get_logger("daily_research.workflow")


class Dispatcher(Protocol):
    async def asend(self, message: EmailMessage) -> list[str]: ...


def build_research_client(settings: Settings) -> PydanticAIResearchClient:
    """Live client with budgets taken from the settings."""
    agent = get_research_agent(settings.require_api_key(), settings.research_model, settings.max_searches)
    return PydanticAIResearchClient(agent, max_tokens=settings.max_tokens)


def resolve_topic(settings: Settings, day_override: str | None, today: date | None) -> Topic | None:
    """Topic for this run, or None when nothing is scheduled.

    Raises:
        ConfigurationError: If a day override does not name a weekday topic.
    """
    topic = get_current_topic(day_override, settings.schedule, today)
    if topic is None and day_override:
        raise ConfigurationError(f"No research topic found for day: {day_override}")
    return topic


async def run_daily_research(
    settings: Settings,
    *,
    day_override: str | None = None,
    today: date | None = None,
    client: ResearchClient | None = None,
    dispatcher: Dispatcher | None = None,
    preview_path: Path | None = None,
    now: datetime | None = None,
) -> RunSummary | None:
    """Execute one research run end to end.

    Args:
        settings: Validated configuration.
        day_override: Weekday abbreviation that bypasses the schedule.
        today: Date used for scheduling (defaults to today).
        client: Override the research client (demo mode, tests).
        dispatcher: Override the email dispatcher (tests).
        preview_path: Write the rendered HTML here instead of sending it.
        now: Generation timestamp for the email (defaults to now).

    Returns:
        RunSummary, or None when no research is scheduled.

    Raises:
        ConfigurationError: Bad day override or missing API key.
        UpstreamRequestError, InvalidUpstreamResponseError, EmptyResponseError: Research failed.
        RenderingError: Every renderer failed.
        EmailDeliveryError: Sending failed, including partial delivery.
    """
    topic = resolve_topic(settings, day_override, today)
    if topic is None:
        log.info("workflow.not_scheduled", schedule=sorted(settings.schedule or []))
        return None

    run_id = str(uuid4())[:8]
    bind_run_context(run_id=run_id, topic=topic.id)

    _client = client or build_research_client(settings)
    _dispatcher = dispatcher or EmailDispatcher(settings.smtp_settings())

    workflow_start = perf_counter()
    log.info(
        "workflow.started",
        topic_name=topic.name,
        focus_areas=", ".join(topic.focus_areas[:3]),
        test_mode=settings.test_mode,
    )

    # Phase 1: Research
    phase_start = perf_counter()
    prompt = build_research_prompt(topic, test_mode=settings.test_mode)
    reply = await _client.send(prompt)
    research_ms = int((perf_counter() - phase_start) * 1000)
    log.info(
        "workflow.research.completed",
        duration_ms=research_ms,
        input_tokens=reply.usage.input_tokens,
        output_tokens=reply.usage.output_tokens,
        web_searches=reply.usage.web_search_requests,
        content_length=len(reply.text),
    )

    # Phase 2: Extraction (never raises)
    extraction = extract_research(reply.text)
    record = extraction.record
    if extraction.degraded:
        log.warning("workflow.extraction.degraded", reason=extraction.reason)

    # Phase 3: Rendering
    generated_at = now or datetime.now()
    rendered = render_email(topic, record, generated_at)

    # Phase 4: Delivery
    email_sent = False
    recipients_count = 0
    if preview_path is not None:
        preview_path.parent.mkdir(parents=True, exist_ok=True)
        preview_path.write_text(rendered.html, encoding="utf-8")
        log.info("workflow.preview_saved", path=str(preview_path))
    else:
        message = build_email_message(topic, rendered, generated_at, settings.sender, settings.email_recipients)
        phase_start = perf_counter()
        accepted = await _dispatcher.asend(message)
        email_sent = True
        recipients_count = len(accepted)
        log.info(
            "workflow.delivery.completed",
            duration_ms=int((perf_counter() - phase_start) * 1000),
            recipients=recipients_count,
        )

    total_ms = int((perf_counter() - workflow_start) * 1000)
    summary = RunSummary(
        topic_id=topic.id,
        topic_name=topic.name,
        usage=reply.usage,
        strategy=extraction.strategy,
        findings_count=len(record.key_findings),
        sources_count=len(record.sources),
        recipients_count=recipients_count,
        renderer=rendered.renderer,
        email_sent=email_sent,
        preview_path=str(preview_path) if preview_path is not None else None,
        duration_ms=total_ms,
    )
    log.info(
        "workflow.completed",
        total_ms=total_ms,
        tokens=reply.usage.total,
        strategy=extraction.strategy.value,
        email_sent=email_sent,
    )
    return summary
