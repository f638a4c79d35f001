"""PydanticAI agent for web-search-grounded research."""

import os
from functools import lru_cache
from typing import Any

from pydantic_ai import Agent, WebSearchTool
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.providers.anthropic import AnthropicProvider

DEFAULT_RESEARCH_MODEL = os.getenv("RESEARCH_MODEL", "claude-sonnet-4-20250514")
DEFAULT_MAX_SEARCHES = 10

RESEARCH_INSTRUCTIONS = """You are a research analyst for senior software engineers.
Use the web search tool to gather current, verifiable information before answering.
Your answer must:
- Cover only developments you confirmed through search
- Cite the exact URLs you found; never invent links
- Prefer official documentation, release notes and repositories
- Follow the requested output format exactly, with no extra commentary"""


def build_anthropic_model(api_key: str, model_name: str = DEFAULT_RESEARCH_MODEL) -> AnthropicModel:
    """Anthropic model bound to an explicit key, so nothing is read from the environment."""
    return AnthropicModel(model_name, provider=AnthropicProvider(api_key=api_key))


def create_research_agent(model: Any, *, max_searches: int = DEFAULT_MAX_SEARCHES) -> Agent[None, str]:
    """Uncached factory - use with TestModel or FunctionModel for tests."""
    return Agent(
        model,
        instructions=RESEARCH_INSTRUCTIONS,
        builtin_tools=[WebSearchTool(max_uses=max_searches)],
        output_type=str,
        instrument=True,
        name="research_agent",
    )


@lru_cache(maxsize=1)
def get_research_agent(
    api_key: str,
    model_name: str = DEFAULT_RESEARCH_MODEL,
    max_searches: int = DEFAULT_MAX_SEARCHES,
) -> Agent[None, str]:
    """Cached getter for production."""
    return create_research_agent(build_anthropic_model(api_key, model_name), max_searches=max_searches)


def clear_agent_cache() -> None:
    """Clear the research agent cache."""
    get_research_agent.cache_clear()
