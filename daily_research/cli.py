"""Command-line entry point for the daily research run."""

import argparse
import asyncio
import os
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from daily_research.config import Settings
from daily_research.delivery import EmailDispatcher
from daily_research.demo import DemoResearchClient
from daily_research.exceptions import ConfigurationError, ResearchAutomationError
from daily_research.logging import LogFormat, clear_context_fields, configure_structlog, get_logger
from daily_research.topics import DAY_ABBREVIATIONS
from daily_research.workflow import run_daily_research

log = get_logger("daily_research.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daily-research",
        description="Research today's topic with web search and email the summary.",
    )
    parser.add_argument(
        "--day",
        choices=sorted(DAY_ABBREVIATIONS, key=lambda abbr: (DAY_ABBREVIATIONS[abbr], len(abbr))),
        type=str.lower,
        help="Research the topic for this weekday, ignoring the schedule (default: $DAY or today)",
    )
    parser.add_argument("--test-email", action="store_true", help="Send a configuration-test email and exit")
    parser.add_argument("--test-mode", action="store_true", help="Minimal prompt and small budgets")
    parser.add_argument("--demo", action="store_true", help="Use canned research instead of the model API")
    parser.add_argument("--preview", type=Path, metavar="PATH", help="Write the HTML email to PATH instead of sending")
    parser.add_argument(
        "--log-format",
        choices=[fmt.value for fmt in LogFormat],
        help="Log output format (default: $LOG_FORMAT or json)",
    )
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    if args.test_email:
        dispatcher = EmailDispatcher(settings.smtp_settings())
        recipient = settings.email_recipients[0]
        sent = await asyncio.to_thread(dispatcher.send_test_email, settings.sender, recipient)
        return 0 if sent else 1

    client = None
    if args.demo:
        if not settings.demo_allowed:
            raise ConfigurationError(
                f"Demo mode is not allowed in the '{settings.environment}' environment",
                problems=["ENVIRONMENT: demo mode requires development or staging"],
            )
        client = DemoResearchClient()

    summary = await run_daily_research(
        settings,
        day_override=args.day or os.environ.get("DAY") or None,
        client=client,
        preview_path=args.preview,
    )
    if summary is None:
        log.info("cli.skipped", reason="no research scheduled today")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run once and return the process exit code."""
    args = build_parser().parse_args(argv)
    load_dotenv()
    configure_structlog(args.log_format)
    clear_context_fields()

    try:
        settings = Settings.from_env()
        if args.test_mode:
            settings = settings.model_copy(update={"test_mode": True})
        return asyncio.run(_run(args, settings))
    except ConfigurationError as e:
        log.error("cli.configuration_invalid", error_code=e.code, error=e.message, problems=e.problems)
        return 1
    except ResearchAutomationError as e:
        log.error(
            "cli.failed",
            error_code=e.code,
            error=e.message,
            status_code=e.status_code,
            retry_after=e.retry_after,
        )
        return 1
    except Exception as e:
        log.exception("cli.unexpected_error", error_type=type(e).__name__)
        return 1
    finally:
        clear_context_fields()
