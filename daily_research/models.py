"""Pydantic models for the daily research pipeline."""

from enum import Enum
from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, StrictBool, computed_field, field_validator

FindingCategory = Literal["tool", "framework", "technique", "update", "trend"]
Priority = Literal["high", "medium", "low"]
ResourceType = Literal["documentation", "tutorial", "tool", "article", "video", "repository"]
Credibility = Literal["official", "community", "blog", "news"]


def is_http_url(value: Any) -> bool:
    """True for absolute http(s) URLs with a host and no whitespace."""
    if not isinstance(value, str) or not value or any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def _drop_items_with_invalid_url(items: Any) -> Any:
    # Only mappings with a bad URL are dropped; anything else is left for
    # the item model to reject so structural problems still fail the record.
    if not isinstance(items, list):
        return items
    return [item for item in items if not (isinstance(item, dict) and not is_http_url(item.get("url")))]


class _RecordModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Finding(_RecordModel):
    """A notable development surfaced by the research."""

    title: str = Field(description="Short headline for the finding", examples=["LangGraph 0.3 released"])
    description: str = Field(description="What changed and why it matters")
    category: FindingCategory = Field(description="Kind of development", examples=["framework"])
    importance: Priority = Field(description="How much attention it deserves", examples=["high"])
    actionable: StrictBool = Field(description="Whether a reader can act on it today", examples=[True])


class Resource(_RecordModel):
    """A recommended link for further reading or tooling."""

    name: str = Field(description="Display name of the resource", examples=["LangGraph docs"])
    url: str = Field(description="Absolute http(s) URL", examples=["https://langchain-ai.github.io/langgraph/"])
    description: str = Field(description="Why the resource is worth a look")
    type: ResourceType = Field(description="Kind of resource", examples=["documentation"])


class CodeExample(_RecordModel):
    """A short snippet illustrating a finding."""

    title: str
    language: str = Field(examples=["python"])
    code: str
    description: str


class Source(_RecordModel):
    """A reference the research relied on."""

    title: str = Field(description="Title of the cited page")
    url: str = Field(description="Absolute http(s) URL")
    credibility: Credibility = Field(description="Kind of publisher", examples=["official"])
    relevance: Priority = Field(description="How closely it backs the findings", examples=["high"])


class ResearchRecord(_RecordModel):
    """Structured result of one research run, in the wire shape requested from the model."""

    executive_summary: str = Field(alias="executiveSummary", description="Two or three sentence overview")
    key_findings: list[Finding] = Field(alias="keyFindings", description="Ordered findings, most important first")
    recommended_resources: list[Resource] = Field(alias="recommendedResources")
    code_examples: list[CodeExample] = Field(default_factory=list, alias="codeExamples")
    sources: list[Source] = Field(description="Pages cited by the research")

    @field_validator("recommended_resources", "sources", mode="before")
    @classmethod
    def _filter_invalid_urls(cls, value: Any) -> Any:
        return _drop_items_with_invalid_url(value)

    def to_wire(self) -> dict[str, Any]:
        """Dump using the camelCase keys the model was asked to produce."""
        return self.model_dump(by_alias=True)


class ExtractionStrategy(str, Enum):
    """Which step of the extraction chain produced the record."""

    FENCE = "fence"
    BOUNDARY = "boundary"
    DEGRADED = "degraded"


class ExtractionResult(BaseModel):
    """A research record plus how it was obtained."""

    model_config = ConfigDict(frozen=True)

    record: ResearchRecord
    strategy: ExtractionStrategy
    reason: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def degraded(self) -> bool:
        return self.strategy is ExtractionStrategy.DEGRADED


class Topic(BaseModel):
    """A weekday-scheduled research subject."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, examples=["ai-tools"])
    name: str = Field(min_length=1, examples=["AI Development Tools & LangChain Ecosystem"])
    description: str
    focus_areas: tuple[str, ...] = Field(min_length=1)
    search_terms: tuple[str, ...] = Field(min_length=1)
    day_of_week: int = Field(ge=1, le=5, description="Monday = 1 through Friday = 5")


class ContentSegment(BaseModel):
    """One piece of the model reply: either text or a tool invocation."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text", "tool_use"]
    text: str = ""
    tool_name: str | None = None
    tool_input: dict[str, Any] | str | None = None


class TokenUsage(BaseModel):
    """Token counters reported for one model call."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    web_search_requests: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


class RawModelReply(BaseModel):
    """The upstream model's response, before any parsing."""

    model_config = ConfigDict(frozen=True)

    segments: list[ContentSegment] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @property
    def text(self) -> str:
        return "".join(segment.text for segment in self.segments if segment.type == "text")

    @property
    def tool_calls(self) -> list[ContentSegment]:
        return [segment for segment in self.segments if segment.type == "tool_use"]


class RenderedEmail(BaseModel):
    """HTML body, its plain-text derivation and the renderer that produced them."""

    model_config = ConfigDict(frozen=True)

    html: str
    text: str
    renderer: str


class EmailMessage(BaseModel):
    """A fully built email, ready for the dispatcher."""

    model_config = ConfigDict(frozen=True)

    sender: str = Field(min_length=3)
    recipients: tuple[str, ...] = Field(min_length=1)
    subject: str = Field(min_length=1)
    html: str
    text: str
    headers: dict[str, str] = Field(default_factory=dict)


class RunSummary(BaseModel):
    """What one pipeline run did, for the closing log line and for callers."""

    topic_id: str
    topic_name: str
    usage: TokenUsage
    strategy: ExtractionStrategy
    findings_count: int = Field(ge=0)
    sources_count: int = Field(ge=0)
    recipients_count: int = Field(ge=0)
    renderer: str
    email_sent: bool
    preview_path: str | None = None
    duration_ms: int = Field(ge=0)
