"""Research requests against the hosted model.

The pipeline depends only on the ``ResearchClient`` protocol, so the real
pydantic-ai client can be swapped for the demo client or a test stub.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import BuiltinToolCallPart, ModelMessage, ModelResponse, TextPart, ToolCallPart
from pydantic_ai.settings import ModelSettings

from daily_research.exceptions import (
    EmptyResponseError,
    InvalidUpstreamResponseError,
    ResearchAutomationError,
    UpstreamRequestError,
)
from daily_research.logging import get_logger
from daily_research.models import ContentSegment, RawModelReply, TokenUsage

log = get_logger("daily_research.requester")

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.1
WEB_SEARCH_TOOL_NAME = "web_search"


class ResearchClient(Protocol):
    """Anything that can turn a prompt into a raw model reply."""

    async def send(self, prompt: str) -> RawModelReply: ...


def _parse_retry_after(value: Any) -> float | None:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def retry_after_hint(exc: BaseException) -> float | None:
    """Retry-after seconds from an HTTP error body or the underlying response headers."""
    body = getattr(exc, "body", None)
    if isinstance(body, Mapping):
        for key in ("retry_after", "retry-after"):
            if key in body:
                return _parse_retry_after(body[key])

    cause: BaseException | None = exc
    while cause is not None:
        response = getattr(cause, "response", None)
        headers = getattr(response, "headers", None)
        if headers is not None and "retry-after" in headers:
            return _parse_retry_after(headers["retry-after"])
        cause = cause.__cause__
    return None


def segments_from_messages(messages: Iterable[ModelMessage]) -> list[ContentSegment]:
    """Flatten model responses into text and tool-use segments, in order."""
    segments: list[ContentSegment] = []
    for message in messages:
        if not isinstance(message, ModelResponse):
            continue
        for part in message.parts:
            if isinstance(part, TextPart):
                segments.append(ContentSegment(type="text", text=part.content))
            elif isinstance(part, (BuiltinToolCallPart, ToolCallPart)):
                segments.append(ContentSegment(type="tool_use", tool_name=part.tool_name, tool_input=part.args))
    return segments


class PydanticAIResearchClient:
    """Sends one research prompt through a pydantic-ai agent. No retries."""

    def __init__(
        self,
        agent: Agent[Any, str],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self.agent = agent
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def model_settings(self) -> ModelSettings:
        return ModelSettings(max_tokens=self.max_tokens, temperature=self.temperature)

    async def send(self, prompt: str) -> RawModelReply:
        """Run the agent once and return its reply.

        Raises:
            UpstreamRequestError: When the model API call fails.
            InvalidUpstreamResponseError: When the response cannot be interpreted.
            EmptyResponseError: When the reply carries no text.
        """
        log.info("requester.started", prompt_length=len(prompt), max_tokens=self.max_tokens)
        try:
            result = await self.agent.run(prompt, model_settings=self.model_settings)
        except ModelHTTPError as e:
            retry_after = retry_after_hint(e)
            log.error("requester.http_error", status_code=e.status_code, retry_after=retry_after, error=str(e))
            raise UpstreamRequestError(str(e), status_code=e.status_code, retry_after=retry_after) from e
        except UnexpectedModelBehavior as e:
            log.error("requester.invalid_response", error=str(e))
            raise InvalidUpstreamResponseError(str(e)) from e
        except ResearchAutomationError:
            raise
        except Exception as e:
            log.error("requester.failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamRequestError(f"{type(e).__name__}: {e}") from e

        segments = segments_from_messages(result.all_messages())
        run_usage = result.usage()
        usage = TokenUsage(
            input_tokens=run_usage.input_tokens or 0,
            output_tokens=run_usage.output_tokens or 0,
            web_search_requests=sum(1 for s in segments if s.type == "tool_use" and s.tool_name == WEB_SEARCH_TOOL_NAME),
        )
        reply = RawModelReply(segments=segments, usage=usage)

        log.info(
            "requester.completed",
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            web_searches=usage.web_search_requests,
            segments=len(segments),
        )
        if not reply.text.strip():
            raise EmptyResponseError()
        return reply
