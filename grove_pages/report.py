"""Human-readable build reports: console lines and an HTML summary page."""

from __future__ import annotations

import datetime as dt
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import REPORT_FILENAME
from .diagnostics import BuildWarning, WarningCollector, WarningKind

if typ.TYPE_CHECKING:
    from .models import BuildResult

_KIND_LABELS: dict[WarningKind, str] = {
    WarningKind.MISSING_KEY: "missing key",
    WarningKind.MISSING_PATH: "missing path",
    WarningKind.MISSING_CONFIG_KEY: "missing site parameter",
    WarningKind.MISSING_COLLECTION_KEY: "missing collection",
    WarningKind.UNSUPPORTED_EACH_SOURCE: "cannot iterate",
    WarningKind.INVALID_ORDER_BY: "invalid order_by",
    WarningKind.INVALID_COMPARISON: "invalid comparison",
    WarningKind.MISSING_PAGE_CONTENT: "missing content for render",
    WarningKind.MISSING_RENDER_TEMPLATE: "missing render template",
    WarningKind.INVALID_RENDER_SPEC: "invalid render spec",
    WarningKind.WITH_DATA_NOT_FOUND: "missing with data",
    WarningKind.MISSING_INCLUDE_TEMPLATE: "missing include template",
    WarningKind.CIRCULAR_TEMPLATE: "circular template",
    WarningKind.MISSING_BODY: "missing body",
    WarningKind.INVALID_TRANSLATION_KEY: "invalid translation key",
    WarningKind.MISSING_TRANSLATION: "missing translation",
    WarningKind.INVALID_INTERPOLATION: "invalid interpolation",
    WarningKind.MISSING_INTERPOLATION: "missing interpolation",
    WarningKind.UNKNOWN_DIRECTIVE: "unknown directive",
    WarningKind.MISSING_TEMPLATE: "missing page template",
    WarningKind.MISSING_CONTENT: "missing page content",
    WarningKind.MISSING_PAGE_LANGUAGE: "missing page language",
    WarningKind.DUPLICATE_SECTION: "duplicate section",
    WarningKind.ORPHAN_CONTENT: "orphan content",
    WarningKind.BROKEN_LINK: "broken link",
    WarningKind.AMBIGUOUS_LINK: "ambiguous link",
}


def format_warning(warning: BuildWarning) -> str:
    """Return one console line for ``warning``.

    Examples
    --------
    >>> from grove_pages.diagnostics import BuildWarning, WarningKind
    >>> format_warning(
    ...     BuildWarning(WarningKind.BROKEN_LINK, "No page x.", page="home", lang="en")
    ... )
    'warning: broken link [home/en]: No page x.'
    """
    label = _KIND_LABELS.get(warning.kind, warning.kind.value)
    where = "/".join(part for part in (warning.page, warning.lang) if part)
    location = f" [{where}]" if where else ""
    line = f"warning: {label}{location}: {warning.message}"
    if warning.render_stack:
        line += f" (at {warning.location})"
    return line


class BuildReportWriter:
    """Render the HTML build report from a :class:`BuildResult`."""

    def __init__(self, *, templates_dir: Path | None = None) -> None:
        """Initialize the Jinja environment for the report template."""
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("build_report.jinja")

    def render(self, result: BuildResult) -> str:
        """Return the report HTML for ``result``."""
        grouped = WarningCollector(result.warnings).by_kind()
        context = {
            "result": result,
            "groups": [
                {"kind": kind.value, "label": _KIND_LABELS.get(kind, kind.value), "warnings": items}
                for kind, items in grouped.items()
            ],
            "generated_at": dt.datetime.now(dt.UTC),
        }
        html = self.template.render(**context)
        if not html.endswith("\n"):
            html += "\n"
        return html

    def write(self, result: BuildResult, output_dir: Path) -> Path:
        """Write the report into ``output_dir`` and return its path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / REPORT_FILENAME
        path.write_text(self.render(result), encoding="utf-8")
        return path


__all__ = ["BuildReportWriter", "format_warning"]
