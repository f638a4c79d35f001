"""Prompt construction for the research model."""

from daily_research.models import Topic

MAX_FOCUS_AREAS = 4
MAX_SEARCH_TERMS = 5
RECENCY_WINDOW_DAYS = 60

RESPONSE_SCHEMA = """{
  "executiveSummary": "2-3 sentences on the most important developments",
  "keyFindings": [
    {
      "title": "string",
      "description": "string",
      "category": "tool" | "framework" | "technique" | "update" | "trend",
      "importance": "high" | "medium" | "low",
      "actionable": true | false
    }
  ],
  "recommendedResources": [
    {
      "name": "string",
      "url": "https://...",
      "description": "string",
      "type": "documentation" | "tutorial" | "tool" | "article" | "video" | "repository"
    }
  ],
  "codeExamples": [
    {
      "title": "string",
      "language": "string",
      "code": "string",
      "description": "string"
    }
  ],
  "sources": [
    {
      "title": "string",
      "url": "https://...",
      "credibility": "official" | "community" | "blog" | "news",
      "relevance": "high" | "medium" | "low"
    }
  ]
}"""

TEST_PROMPT = f"""Use web search once to find one recent update to the Python "requests" library.

Return ONLY a JSON object inside a ```json fenced code block, matching this shape:
{RESPONSE_SCHEMA}

Include exactly 1 finding, 1 resource, 0 code examples and 1 source. All URLs must be absolute https links."""


def build_research_prompt(topic: Topic, *, test_mode: bool = False) -> str:
    """Build the research instructions for ``topic``.

    In test mode a minimal fixed prompt is returned regardless of the topic,
    keeping the search budget and token spend as small as possible.
    """
    if test_mode:
        return TEST_PROMPT

    focus_areas = "\n".join(f"- {area}" for area in topic.focus_areas[:MAX_FOCUS_AREAS])
    search_terms = ", ".join(topic.search_terms[:MAX_SEARCH_TERMS])

    return f"""Use web search to investigate "{topic.name}" and produce a structured research summary.

RESEARCH FOCUS:
{topic.description}

KEY AREAS TO EXPLORE:
{focus_areas}

SEARCH TERMS TO PRIORITIZE:
{search_terms}

REQUIREMENTS:
1. Use web search; only report developments from the last {RECENCY_WINDOW_DAYS} days
2. Prefer production-ready or stable-beta tools and official announcements
3. Every URL must be an absolute https link you actually found while searching
4. Include 3-5 key findings, 3-6 recommended resources and 0-2 short code examples

OUTPUT FORMAT:
Return ONLY a JSON object wrapped in a fenced code block tagged json (```json ... ```).
Do not add any text before or after the code block. The object must match this shape exactly:
{RESPONSE_SCHEMA}"""
