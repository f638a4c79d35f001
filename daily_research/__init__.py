"""Daily AI Research - web-search-grounded research emailed every weekday"""

__version__ = "0.1.0"

from daily_research.agents import (
    clear_agent_cache,
    create_research_agent,
    get_research_agent,
)
from daily_research.config import Settings
from daily_research.exceptions import (
    ConfigurationError,
    EmailDeliveryError,
    EmptyResponseError,
    InvalidUpstreamResponseError,
    RenderingError,
    ResearchAutomationError,
    UpstreamRequestError,
)
from daily_research.extraction import extract_research, extract_research_record
from daily_research.models import (
    ExtractionResult,
    ExtractionStrategy,
    RawModelReply,
    ResearchRecord,
    RunSummary,
    Topic,
)
from daily_research.topics import RESEARCH_TOPICS, get_current_topic
from daily_research.workflow import run_daily_research

__all__ = [
    # Models
    "Topic",
    "RawModelReply",
    "ResearchRecord",
    "ExtractionResult",
    "ExtractionStrategy",
    "RunSummary",
    # Topics
    "RESEARCH_TOPICS",
    "get_current_topic",
    # Agents
    "create_research_agent",
    "get_research_agent",
    "clear_agent_cache",
    # Extraction
    "extract_research",
    "extract_research_record",
    # Configuration
    "Settings",
    # Exceptions
    "ResearchAutomationError",
    "ConfigurationError",
    "UpstreamRequestError",
    "InvalidUpstreamResponseError",
    "EmptyResponseError",
    "RenderingError",
    "EmailDeliveryError",
    # Workflow
    "run_daily_research",
]
