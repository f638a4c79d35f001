"""Tests for HTML email rendering and the plain-text derivation."""

import re
from datetime import datetime

import pytest

from daily_research.exceptions import RenderingError
from daily_research.models import CodeExample, Finding, ResearchRecord, Resource, Source, Topic
from daily_research.rendering import (
    MAILER_HEADERS,
    BasicEmailRenderer,
    CardEmailRenderer,
    build_email_message,
    build_subject,
    format_long_date,
    html_to_text,
    render_email,
    safe_href,
)
from daily_research.topics import get_topic_by_day

TOPIC = get_topic_by_day(1)
MONDAY_MORNING = datetime(2026, 10, 19, 9, 30)


def _record(**overrides) -> ResearchRecord:
    data = {
        "executive_summary": "Widgets are everywhere & growing.",
        "key_findings": [
            Finding(title="Widget", description="Widget 2.0 shipped", category="tool", importance="high", actionable=True),
            Finding(title="Gizmo <beta>", description="Gizmo preview", category="trend", importance="low", actionable=False),
        ],
        "recommended_resources": [
            Resource(name="Widget docs", url="https://widget.dev/docs", description="Docs", type="documentation"),
            Resource(name="Gizmo repo", url="https://github.com/gizmo/gizmo", description="Code", type="repository"),
        ],
        "code_examples": [
            CodeExample(title="Hello widget", language="Python", code="if a < b:\n    print('hi')", description="Demo")
        ],
        "sources": [
            Source(title="Widget blog", url="https://widget.dev/blog", credibility="official", relevance="high")
        ],
    }
    data.update(overrides)
    return ResearchRecord(**data)


def _empty_record() -> ResearchRecord:
    return ResearchRecord(executive_summary="Nothing new.", key_findings=[], recommended_resources=[], sources=[])


class _FailingRenderer:
    name = "broken"

    def render(self, topic: Topic, record: ResearchRecord, generated_at: datetime) -> str:
        raise RuntimeError("template exploded")


class TestRenderers:
    @pytest.mark.parametrize("renderer", [CardEmailRenderer(), BasicEmailRenderer()])
    def test__stripped_html__contains_every_finding_title_and_resource_name(self, renderer) -> None:
        record = _record()
        text = html_to_text(renderer.render(TOPIC, record, MONDAY_MORNING))
        for finding in record.key_findings:
            assert finding.title in text
        for resource in record.recommended_resources:
            assert resource.name in text

    @pytest.mark.parametrize("renderer", [CardEmailRenderer(), BasicEmailRenderer()])
    def test__empty_lists__render_section_headers_without_items(self, renderer) -> None:
        html = renderer.render(TOPIC, _empty_record(), MONDAY_MORNING)
        assert "Key Findings" in html
        assert "Recommended Resources" in html
        assert "Sources" in html
        assert "Code Examples" in html
        assert "<a href" not in html

    def test__card_renderer__shows_empty_notes(self) -> None:
        text = html_to_text(CardEmailRenderer().render(TOPIC, _empty_record(), MONDAY_MORNING))
        assert "No findings reported." in text
        assert "No resources recommended." in text
        assert "No sources cited." in text
        assert "No code examples provided." in text

    def test__card_renderer__escapes_model_text(self) -> None:
        html = CardEmailRenderer().render(TOPIC, _record(), MONDAY_MORNING)
        assert "Gizmo &lt;beta&gt;" in html
        assert "Gizmo <beta>" not in html
        assert "if a &lt; b:" in html
        assert "&amp; growing" in html

    def test__card_renderer__includes_header_badges_and_code(self) -> None:
        html = CardEmailRenderer().render(TOPIC, _record(), MONDAY_MORNING)
        assert "Monday, 19 October 2026" in html
        assert ">HIGH</span>" in html
        assert ">Actionable</span>" in html
        assert ">python</div>" in html
        assert 'href="https://widget.dev/docs"' in html
        assert "Code Examples" in html

    def test__unknown_code_language__falls_back_to_typescript_label(self) -> None:
        example = CodeExample(title="Rust", language="rust", code="fn main() {}", description="d")
        html = CardEmailRenderer().render(TOPIC, _record(code_examples=[example]), MONDAY_MORNING)
        assert ">typescript</div>" in html


class TestWidgetScenario:
    def test__widget_finding__appears_in_element_and_plain_text(self) -> None:
        record = _record(
            key_findings=[
                Finding(title="Widget", description="d", category="tool", importance="medium", actionable=False)
            ],
            code_examples=[],
        )
        rendered = render_email(TOPIC, record, MONDAY_MORNING)

        assert re.search(r">\s*Widget\b", rendered.html)
        assert "Widget" in rendered.text
        assert "<" not in rendered.text


class TestRenderEmail:
    def test__render_email__uses_first_renderer(self) -> None:
        rendered = render_email(TOPIC, _record(), MONDAY_MORNING)
        assert rendered.renderer == "card"
        assert rendered.html.startswith("<!DOCTYPE html>")

    def test__render_email__falls_back_to_next_renderer(self) -> None:
        rendered = render_email(TOPIC, _record(), MONDAY_MORNING, renderers=[_FailingRenderer(), BasicEmailRenderer()])
        assert rendered.renderer == "basic"
        assert "Widget" in rendered.text

    def test__render_email__raises_when_all_renderers_fail(self) -> None:
        with pytest.raises(RenderingError) as exc_info:
            render_email(TOPIC, _record(), MONDAY_MORNING, renderers=[_FailingRenderer(), _FailingRenderer()])
        assert exc_info.value.attempted == ["broken", "broken"]


class TestHelpers:
    def test__html_to_text__drops_head_and_collapses_blank_lines(self) -> None:
        html = "<html><head><title>T</title><style>p {color: red}</style></head><body><p>A</p>\n\n\n\n<p>B &amp; C</p></body></html>"
        assert html_to_text(html) == "A\n\nB & C"

    def test__html_to_text__empty_input(self) -> None:
        assert html_to_text("") == ""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/a?b=1&c=2", "https://example.com/a?b=1&amp;c=2"),
            ("javascript:alert(1)", "#"),
            ("example.com", "#"),
        ],
    )
    def test__safe_href__only_passes_http_urls(self, url: str, expected: str) -> None:
        assert safe_href(url) == expected

    def test__format_long_date__spells_out_weekday_and_month(self) -> None:
        assert format_long_date(MONDAY_MORNING) == "Monday, 19 October 2026"

    @pytest.mark.parametrize(
        "moment,day_number",
        [(MONDAY_MORNING, 1), (datetime(2026, 10, 23), 5), (datetime(2026, 10, 25), 0)],
    )
    def test__build_subject__numbers_days_from_sunday(self, moment: datetime, day_number: int) -> None:
        subject = build_subject(TOPIC, moment)
        assert subject.startswith(f"Day {day_number} AI Dev Tools Update - {TOPIC.name} - ")

    def test__build_subject__ends_with_short_date(self) -> None:
        assert build_subject(TOPIC, MONDAY_MORNING).endswith(" - Mon 19 Oct")

    def test__build_email_message__carries_mailer_headers(self) -> None:
        rendered = render_email(TOPIC, _record(), MONDAY_MORNING)
        message = build_email_message(TOPIC, rendered, MONDAY_MORNING, "bot@example.com", ["a@example.com"])
        assert message.headers == MAILER_HEADERS
        assert message.recipients == ("a@example.com",)
        assert message.text == rendered.text
        assert message.subject == build_subject(TOPIC, MONDAY_MORNING)
