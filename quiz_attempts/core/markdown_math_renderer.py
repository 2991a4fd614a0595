"""Markdown rendering for learner-facing question content.

Prompts and descriptions are authored as markdown with inline ``$...$``
LaTeX. Only the markdown is converted here; math stays as text and is
typeset by MathJax in the learner's browser, so stored quizzes are not tied
to a math engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str:
        """Render a markdown string into an HTML fragment; empty input renders as ''."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (such as option text) without a wrapping paragraph."""
        return self._markdown.renderInline(markdown_text.strip())


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = MarkdownMathRenderer()
