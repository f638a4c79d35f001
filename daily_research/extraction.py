"""Turn free-form model replies into ResearchRecords.

The model is asked for a fenced JSON object but may wrap it in prose,
truncate it, or drift from the schema. Extraction tries, in order:

1. the first fenced block whose body starts with ``{``;
2. the slice from the first ``{`` to the last ``}`` of the whole reply.

The first candidate that parses as JSON decides the outcome: it either
validates as a ResearchRecord or the reply is treated as unusable. Unusable
replies become a degraded record built from the URLs found anywhere in the
text, so callers always get something they can render.
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from daily_research.logging import get_logger
from daily_research.models import (
    ExtractionResult,
    ExtractionStrategy,
    Finding,
    ResearchRecord,
    Resource,
    Source,
    is_http_url,
)

log = get_logger("daily_research.extraction")

FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
URL_PATTERN = re.compile(r"https?://[^\s<>\"'`()\[\]{}]+")
URL_TRAILING_PUNCTUATION = ".,;:!?*_~"

MAX_FALLBACK_RESOURCES = 3
MAX_FALLBACK_SOURCES = 5

DEGRADED_SUMMARY = (
    "Automatic parsing of the research response failed. "
    "The links below were recovered from the raw response; manual review is needed."
)
DEGRADED_FINDING_TITLE = "Research response could not be parsed"
DEGRADED_FINDING_DESCRIPTION = (
    "The model did not return the expected structured format. "
    "Review the recovered links and re-run the research if needed."
)


def find_fenced_candidate(text: str) -> str | None:
    """Body of the first fenced block that starts with a JSON object."""
    for match in FENCE_PATTERN.finditer(text):
        body = match.group(1).strip()
        if body.startswith("{"):
            return body
    return None


def find_boundary_candidate(text: str) -> str | None:
    """Slice from the first '{' to the last '}' inclusive."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def harvest_urls(text: str) -> list[str]:
    """Absolute http(s) URLs in order of appearance, duplicates kept."""
    urls = []
    for match in URL_PATTERN.finditer(text):
        url = match.group(0).rstrip(URL_TRAILING_PUNCTUATION)
        if is_http_url(url):
            urls.append(url)
    return urls


def _candidates(text: str) -> list[tuple[ExtractionStrategy, str]]:
    candidates = []
    fenced = find_fenced_candidate(text)
    if fenced is not None:
        candidates.append((ExtractionStrategy.FENCE, fenced))
    boundary = find_boundary_candidate(text)
    if boundary is not None and boundary != fenced:
        candidates.append((ExtractionStrategy.BOUNDARY, boundary))
    return candidates


def _summarize_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{exc.error_count()} schema error(s), first at {location}: {first['msg']}"


def build_degraded_record(raw_text: str) -> ResearchRecord:
    """Minimal record for a reply that could not be parsed.

    URLs are harvested from the whole reply, not just the JSON candidate.
    Resources take the first few URLs as found; sources are deduplicated.
    """
    urls = harvest_urls(raw_text)
    unique_urls = list(dict.fromkeys(urls))

    resources = [
        Resource(
            name=f"Reference link {index}",
            url=url,
            description="Link recovered from the unparsed research response",
            type="article",
        )
        for index, url in enumerate(urls[:MAX_FALLBACK_RESOURCES], start=1)
    ]
    sources = [
        Source(title=f"Source {index}", url=url, credibility="community", relevance="medium")
        for index, url in enumerate(unique_urls[:MAX_FALLBACK_SOURCES], start=1)
    ]

    return ResearchRecord(
        executive_summary=DEGRADED_SUMMARY,
        key_findings=[
            Finding(
                title=DEGRADED_FINDING_TITLE,
                description=DEGRADED_FINDING_DESCRIPTION,
                category="update",
                importance="medium",
                actionable=False,
            )
        ],
        recommended_resources=resources,
        code_examples=[],
        sources=sources,
    )


def extract_research(raw_text: str) -> ExtractionResult:
    """Extract a ResearchRecord from a raw model reply. Never raises."""
    reason = "no JSON object found"
    payload: Any = None
    strategy: ExtractionStrategy | None = None

    for candidate_strategy, candidate in _candidates(raw_text):
        try:
            payload = json.loads(candidate)
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, oversized integers and runaway nesting all count as unparseable
            error = e.msg if isinstance(e, json.JSONDecodeError) else str(e)
            reason = f"{candidate_strategy.value} candidate is not valid JSON: {error}"
            log.debug("extraction.candidate_rejected", strategy=candidate_strategy.value, error=error)
            continue
        strategy = candidate_strategy
        break

    if strategy is not None:
        if not isinstance(payload, dict):
            reason = f"{strategy.value} candidate is a JSON {type(payload).__name__}, not an object"
        else:
            try:
                record = ResearchRecord.model_validate(payload)
            except ValidationError as e:
                reason = _summarize_validation_error(e)
            else:
                log.info(
                    "extraction.succeeded",
                    strategy=strategy.value,
                    findings=len(record.key_findings),
                    resources=len(record.recommended_resources),
                    sources=len(record.sources),
                )
                return ExtractionResult(record=record, strategy=strategy)

    record = build_degraded_record(raw_text)
    log.warning(
        "extraction.degraded",
        reason=reason,
        recovered_sources=len(record.sources),
        text_length=len(raw_text),
    )
    return ExtractionResult(record=record, strategy=ExtractionStrategy.DEGRADED, reason=reason)


def extract_research_record(raw_text: str) -> ResearchRecord:
    """Like extract_research, for callers that only want the record."""
    return extract_research(raw_text).record
