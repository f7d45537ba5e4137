"""Markdown rendering for question text and options shown in the browser client.

The client typesets any LaTeX itself with MathJax, so only markdown is
converted here and ``$...$`` spans pass through untouched. Raw HTML in
instructor-authored text is escaped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts instructor markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line, such as an answer option, without a wrapping paragraph."""

        return self._markdown.renderInline((markdown_text or "").strip())


# Shared across request threads; rendering does not mutate the parser
renderer = MarkdownRenderer()
