"""HTML email rendering for research records.

Renderers are tried in order and the first one that succeeds wins. The card
renderer builds the email from small component functions; the basic renderer
is a single flat template kept as a fallback.
"""

import re
from collections.abc import Sequence
from datetime import datetime
from html import escape
from typing import Protocol

from bs4 import BeautifulSoup

from daily_research.exceptions import RenderingError
from daily_research.logging import get_logger
from daily_research.models import (
    CodeExample,
    EmailMessage,
    Finding,
    RenderedEmail,
    ResearchRecord,
    Resource,
    Source,
    Topic,
    is_http_url,
)

log = get_logger("daily_research.rendering")

BRAND = "AI Dev Tools Research"
MAILER_HEADERS = {"X-Mailer": "AI Research Automation v1.0", "X-Priority": "3"}
FONT_STACK = "-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Helvetica,Arial,sans-serif"
CODE_LANGUAGES = ("typescript", "javascript", "python", "json", "bash", "tsx", "jsx")
FALLBACK_BADGE_COLOR = "#6b7280"

PRIORITY_COLORS = {"high": "#dc2626", "medium": "#ea580c", "low": "#16a34a"}
RESOURCE_TYPE_COLORS = {
    "documentation": "#1e40af",
    "tutorial": "#7c2d12",
    "tool": "#059669",
    "article": "#7c3aed",
    "video": "#dc2626",
    "repository": "#1f2937",
}
CREDIBILITY_COLORS = {"official": "#059669", "community": "#0891b2", "blog": "#7c3aed", "news": "#dc2626"}
RELEVANCE_COLORS = {"high": "#059669", "medium": "#ea580c", "low": "#6b7280"}


def format_long_date(moment: datetime) -> str:
    """'Monday, 19 October 2026'."""
    return f"{moment:%A}, {moment.day} {moment:%B %Y}"


def format_short_date(moment: datetime) -> str:
    """'Mon 19 Oct'."""
    return f"{moment:%a} {moment.day} {moment:%b}"


def safe_href(url: str) -> str:
    """Escaped link target; anything that is not a validated http(s) URL becomes '#'."""
    return escape(url, quote=True) if is_http_url(url) else "#"


class EmailRenderer(Protocol):
    name: str

    def render(self, topic: Topic, record: ResearchRecord, generated_at: datetime) -> str: ...


# ============================================================================
# Card renderer (primary)
# ============================================================================


def _badge(label: str, color: str, size: int = 10) -> str:
    return (
        f'<span style="display:inline-block;background-color:{color};color:#ffffff;font-size:{size}px;'
        f'font-weight:600;padding:2px 6px;border-radius:4px;margin-right:6px;">{escape(label)}</span>'
    )


def _section(title: str, body: str) -> str:
    return f"""
      <tr><td style="padding:24px 32px;">
        <h2 style="color:#1e293b;font-size:20px;font-weight:600;margin:0 0 16px 0;">{escape(title)}</h2>
        {body}
      </td></tr>
      <tr><td><hr style="border:none;border-top:1px solid #e2e8f0;margin:0;"></td></tr>"""


def _empty_note(message: str) -> str:
    return f'<p style="color:#6b7280;font-size:14px;font-style:italic;margin:0;">{escape(message)}</p>'


def _render_header(topic: Topic, generated_at: datetime) -> str:
    return f"""
      <tr><td style="background-color:#1e293b;border-radius:8px 8px 0 0;padding:32px;text-align:center;">
        <h1 style="color:#ffffff;font-size:28px;font-weight:600;margin:0 0 8px 0;">{escape(BRAND)}</h1>
        <p style="color:#cbd5e1;font-size:16px;margin:0;">{escape(topic.name)} &bull; {escape(format_long_date(generated_at))}</p>
      </td></tr>"""


def _render_finding_card(finding: Finding) -> str:
    actionable = _badge("Actionable", "#10b981") if finding.actionable else ""
    return f"""
        <div style="background-color:#f8fafc;border:1px solid #e2e8f0;border-radius:6px;margin-bottom:16px;padding:16px;">
          <h3 style="color:#1e293b;font-size:16px;font-weight:600;margin:0 0 8px 0;">{escape(finding.title)}
            {_badge(finding.importance.upper(), PRIORITY_COLORS.get(finding.importance, FALLBACK_BADGE_COLOR))}</h3>
          <p style="color:#4b5563;font-size:14px;line-height:1.5;margin:0 0 8px 0;">{escape(finding.description)}</p>
          <div>{_badge(finding.category, "#3b82f6")}{actionable}</div>
        </div>"""


def _render_code_example(example: CodeExample) -> str:
    language = example.language.lower() if example.language.lower() in CODE_LANGUAGES else "typescript"
    return f"""
        <div style="margin-bottom:24px;">
          <h3 style="color:#1e293b;font-size:16px;font-weight:600;margin:0 0 8px 0;">{escape(example.title)}</h3>
          <p style="color:#4b5563;font-size:14px;margin:0 0 12px 0;">{escape(example.description)}</p>
          <div style="background-color:#1e293b;border-radius:6px;overflow:hidden;">
            <div style="background-color:#334155;color:#cbd5e1;font-size:12px;font-weight:500;padding:8px 12px;">{escape(language)}</div>
            <pre style="color:#f8f8f2;font-family:'Fira Code',Menlo,monospace;font-size:13px;margin:0;padding:12px;white-space:pre-wrap;"><code>{escape(example.code)}</code></pre>
          </div>
        </div>"""


def _render_resource(resource: Resource) -> str:
    color = RESOURCE_TYPE_COLORS.get(resource.type, FALLBACK_BADGE_COLOR)
    return f"""
        <div style="border-bottom:1px solid #e2e8f0;margin-bottom:16px;padding-bottom:16px;">
          <a href="{safe_href(resource.url)}" style="color:#3b82f6;font-size:16px;font-weight:500;text-decoration:none;">{escape(resource.name)} &rarr;</a>
          {_badge(resource.type, color)}
          <p style="color:#4b5563;font-size:14px;line-height:1.5;margin:8px 0 0 0;">{escape(resource.description)}</p>
        </div>"""


def _render_source(source: Source) -> str:
    credibility = _badge(source.credibility, CREDIBILITY_COLORS.get(source.credibility, FALLBACK_BADGE_COLOR), size=9)
    relevance = _badge(
        f"{source.relevance} relevance", RELEVANCE_COLORS.get(source.relevance, FALLBACK_BADGE_COLOR), size=9
    )
    return f"""
        <div style="border-bottom:1px solid #f1f5f9;margin-bottom:12px;padding-bottom:12px;">
          <a href="{safe_href(source.url)}" style="color:#3b82f6;display:block;font-size:14px;font-weight:500;margin-bottom:4px;text-decoration:none;">{escape(source.title)}</a>
          <div>{credibility}{relevance}</div>
        </div>"""


def _render_footer(topic: Topic) -> str:
    return f"""
      <tr><td style="background-color:#f8fafc;border-radius:0 0 8px 8px;padding:24px 32px;text-align:center;">
        <p style="color:#6b7280;font-size:12px;margin:0;">Generated by AI Research Automation &bull; Focus areas: {escape(", ".join(topic.focus_areas))}</p>
      </td></tr>"""


class CardEmailRenderer:
    """Email built from card components with per-value badge colors."""

    name = "card"

    def render(self, topic: Topic, record: ResearchRecord, generated_at: datetime) -> str:
        findings = "".join(_render_finding_card(f) for f in record.key_findings) or _empty_note("No findings reported.")
        resources = "".join(_render_resource(r) for r in record.recommended_resources) or _empty_note(
            "No resources recommended."
        )
        sources = "".join(_render_source(s) for s in record.sources) or _empty_note("No sources cited.")
        code = "".join(_render_code_example(e) for e in record.code_examples) or _empty_note(
            "No code examples provided."
        )

        sections = [
            _section("Executive Summary", f'<p style="color:#374151;font-size:16px;line-height:1.6;margin:0;">{escape(record.executive_summary)}</p>'),
            _section("Key Findings", findings),
            _section("Code Examples", code),
            _section("Recommended Resources", resources),
            _section("Sources & References", sources),
        ]

        preview = record.executive_summary[:100]
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(BRAND)} - {escape(topic.name)}</title>
</head>
<body style="background-color:#f8fafc;font-family:{FONT_STACK};margin:0 auto;padding:20px 0;">
  <div style="display:none;max-height:0;overflow:hidden;">{escape(topic.name)} - {escape(preview)}...</div>
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#ffffff;border:1px solid #e2e8f0;border-radius:8px;margin:0 auto;max-width:600px;">
    {_render_header(topic, generated_at)}
    {"".join(sections)}
    {_render_footer(topic)}
  </table>
</body>
</html>"""


# ============================================================================
# Basic renderer (fallback)
# ============================================================================


class BasicEmailRenderer:
    """Flat template with minimal styling."""

    name = "basic"

    def render(self, topic: Topic, record: ResearchRecord, generated_at: datetime) -> str:
        findings = "".join(
            f"<div><h3>{escape(f.title)} <small>[{escape(f.importance.upper())}]</small></h3>"
            f"<p>{escape(f.description)}</p></div>"
            for f in record.key_findings
        )
        resources = "".join(
            f'<li><a href="{safe_href(r.url)}">{escape(r.name)}</a> - {escape(r.description)}</li>'
            for r in record.recommended_resources
        )
        sources = "".join(f'<li><a href="{safe_href(s.url)}">{escape(s.title)}</a></li>' for s in record.sources)
        code = "".join(
            f"<h3>{escape(e.title)}</h3><p>{escape(e.description)}</p><pre><code>{escape(e.code)}</code></pre>"
            for e in record.code_examples
        )

        return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{escape(BRAND)} - {escape(topic.name)}</title>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: #1e293b; color: white; padding: 24px; text-align: center; border-radius: 8px; }}
    h2 {{ color: #1e40af; border-bottom: 2px solid #e5e7eb; padding-bottom: 8px; }}
    a {{ color: #2563eb; text-decoration: none; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{escape(BRAND)}</h1>
      <p>{escape(topic.name)} &bull; {escape(format_long_date(generated_at))}</p>
    </div>
    <h2>Executive Summary</h2>
    <p>{escape(record.executive_summary)}</p>
    <h2>Key Findings</h2>
    {findings}
    <h2>Code Examples</h2>
    {code}
    <h2>Recommended Resources</h2>
    <ul>{resources}</ul>
    <h2>Sources</h2>
    <ul>{sources}</ul>
  </div>
</body>
</html>"""


DEFAULT_RENDERERS: tuple[EmailRenderer, ...] = (CardEmailRenderer(), BasicEmailRenderer())


# ============================================================================
# Public API
# ============================================================================


def html_to_text(html: str) -> str:
    """Plain-text version of an HTML email: no tags, entities decoded."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["head", "style", "script", "title"]):
        element.decompose()
    text = soup.get_text(separator="\n")
    lines = [re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines()]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def render_email(
    topic: Topic,
    record: ResearchRecord,
    generated_at: datetime,
    renderers: Sequence[EmailRenderer] = DEFAULT_RENDERERS,
) -> RenderedEmail:
    """Render with the first renderer that does not raise.

    Raises:
        RenderingError: If every renderer failed.
    """
    attempted: list[str] = []
    for renderer in renderers:
        attempted.append(renderer.name)
        try:
            html = renderer.render(topic, record, generated_at)
        except Exception as e:
            log.warning("rendering.renderer_failed", renderer=renderer.name, error=str(e), error_type=type(e).__name__)
            continue
        log.info("rendering.completed", renderer=renderer.name, html_length=len(html))
        return RenderedEmail(html=html, text=html_to_text(html), renderer=renderer.name)

    raise RenderingError(attempted)


def build_subject(topic: Topic, generated_at: datetime) -> str:
    """'Day 1 AI Dev Tools Update - <topic> - Mon 19 Oct' (Sunday is day 0)."""
    day_number = generated_at.isoweekday() % 7
    return f"Day {day_number} AI Dev Tools Update - {topic.name} - {format_short_date(generated_at)}"


def build_email_message(
    topic: Topic,
    rendered: RenderedEmail,
    generated_at: datetime,
    sender: str,
    recipients: Sequence[str],
) -> EmailMessage:
    return EmailMessage(
        sender=sender,
        recipients=tuple(recipients),
        subject=build_subject(topic, generated_at),
        html=rendered.html,
        text=rendered.text,
        headers=dict(MAILER_HEADERS),
    )
