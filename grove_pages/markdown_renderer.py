"""Markdown-to-HTML conversion for markdown content files.

Markdown content files carry YAML front matter between ``---`` lines followed
by a markdown body. The body is converted here, with fenced code highlighted
by Pygments, and stored on the content entry under ``html/content`` so
templates can emit it without escaping.

Examples
--------
>>> meta, body = split_front_matter("---\\ntitle: About\\n---\\n# Hi\\n")
>>> meta
'title: About\\n'
>>> MarkdownRenderer().render(body)
'<h1>Hi</h1>'
"""

from __future__ import annotations

import re
from html import escape

from markdown import Markdown
from pygments.formatters.html import HtmlFormatter

FRONT_MATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)
CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+#.-]+)?[^\n]*\n(.*?)```", re.DOTALL)
FENCE_LABEL_PATTERN = re.compile(
    r"^([`~]{3,})([A-Za-z0-9_+#.-]+)?(,[^\r\n]+)$", re.MULTILINE
)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')

MARKDOWN_EXTENSIONS = ("fenced_code", "codehilite", "tables", "sane_lists")


def split_front_matter(text: str) -> tuple[str, str]:
    """Split ``text`` into its front matter and body.

    Returns an empty front matter string when the text does not open with a
    ``---`` line.
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if match is None:
        return "", text
    return match.group(1), text[match.end() :]


class MarkdownRenderer:
    """Render markdown bodies with Pygments-highlighted code blocks."""

    def __init__(self, pygments_style: str = "default") -> None:
        """Initialize the renderer.

        Parameters
        ----------
        pygments_style : str, optional
            Pygments style passed to the ``codehilite`` extension.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def render(self, text: str) -> str:
        """Convert ``text`` to HTML; blank input yields an empty string."""
        normalized = self._strip_fence_labels(text)
        if not normalized.strip():
            return ""
        md = Markdown(
            extensions=list(MARKDOWN_EXTENSIONS),
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        return self._tag_code_languages(md.convert(normalized), normalized)

    @staticmethod
    def _tag_code_languages(html: str, source: str) -> str:
        """Add ``data-language`` to each highlighted block, in source order."""
        languages = [match.group(1) or "text" for match in CODE_BLOCK_PATTERN.finditer(source)]
        if not languages:
            return html
        remaining = iter(languages)

        def _repl(_match: re.Match[str]) -> str:
            lang = escape(next(remaining, "text"), quote=True)
            return f'<div class="codehilite" data-language="{lang}">'

        return CODEHILITE_OPEN_TAG.sub(_repl, html, len(languages))

    @staticmethod
    def _strip_fence_labels(text: str) -> str:
        """Drop ``,extra`` labels after a fence language (```python,ignore)."""
        return FENCE_LABEL_PATTERN.sub(
            lambda match: f"{match.group(1)}{match.group(2) or ''}", text
        )


__all__ = ["MarkdownRenderer", "split_front_matter"]
