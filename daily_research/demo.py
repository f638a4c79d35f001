"""Demo mode: a canned research reply for running the pipeline without API keys."""

import json
from functools import lru_cache

from daily_research.logging import get_logger
from daily_research.models import ContentSegment, RawModelReply, TokenUsage

log = get_logger("daily_research.demo")

DEMO_ENVIRONMENTS = ("development", "staging")

DEMO_RECORD = {
    "executiveSummary": (
        "Agent frameworks converged on durable execution and first-class tool protocols this cycle. "
        "LangGraph and the Model Context Protocol both shipped production-focused releases."
    ),
    "keyFindings": [
        {
            "title": "LangGraph adds durable execution",
            "description": "Graphs can now checkpoint and resume long-running agent runs across process restarts.",
            "category": "framework",
            "importance": "high",
            "actionable": True,
        },
        {
            "title": "MCP servers gain remote transport",
            "description": "Streamable HTTP transport lets MCP servers run as shared remote services.",
            "category": "update",
            "importance": "medium",
            "actionable": True,
        },
        {
            "title": "Evaluation moves into CI",
            "description": "Teams increasingly gate agent changes on offline evaluation suites run in CI.",
            "category": "trend",
            "importance": "low",
            "actionable": False,
        },
    ],
    "recommendedResources": [
        {
            "name": "LangGraph documentation",
            "url": "https://langchain-ai.github.io/langgraph/",
            "description": "Concepts and how-to guides for stateful agent graphs.",
            "type": "documentation",
        },
        {
            "name": "Model Context Protocol specification",
            "url": "https://modelcontextprotocol.io/specification",
            "description": "The current protocol specification, including transports.",
            "type": "documentation",
        },
        {
            "name": "MCP Python SDK",
            "url": "https://github.com/modelcontextprotocol/python-sdk",
            "description": "Reference SDK for building MCP servers and clients in Python.",
            "type": "repository",
        },
    ],
    "codeExamples": [
        {
            "title": "Checkpointed graph",
            "language": "python",
            "code": (
                "from langgraph.checkpoint.memory import MemorySaver\n"
                "graph = builder.compile(checkpointer=MemorySaver())\n"
                'graph.invoke(state, config={"configurable": {"thread_id": "run-1"}})'
            ),
            "description": "Compile a graph with a checkpointer so runs can resume by thread ID.",
        }
    ],
    "sources": [
        {
            "title": "LangGraph release notes",
            "url": "https://github.com/langchain-ai/langgraph/releases",
            "credibility": "official",
            "relevance": "high",
        },
        {
            "title": "Model Context Protocol changelog",
            "url": "https://modelcontextprotocol.io/specification/changelog",
            "credibility": "official",
            "relevance": "high",
        },
    ],
}


def is_demo_mode_allowed(environment: str) -> bool:
    """Demo mode is only allowed in development and staging environments."""
    return environment in DEMO_ENVIRONMENTS


@lru_cache(maxsize=1)
def get_demo_reply() -> RawModelReply:
    """Cached canned reply shaped like a real web-search-grounded answer."""
    body = json.dumps(DEMO_RECORD, indent=2)
    return RawModelReply(
        segments=[
            ContentSegment(type="tool_use", tool_name="web_search", tool_input={"query": "LangGraph release"}),
            ContentSegment(type="tool_use", tool_name="web_search", tool_input={"query": "MCP transport update"}),
            ContentSegment(type="text", text=f"Here is the research summary.\n\n```json\n{body}\n```\n"),
        ],
        usage=TokenUsage(input_tokens=1200, output_tokens=850, web_search_requests=2),
    )


class DemoResearchClient:
    """ResearchClient that never touches the network."""

    async def send(self, prompt: str) -> RawModelReply:
        log.info("demo.reply_served", prompt_length=len(prompt))
        return get_demo_reply()
