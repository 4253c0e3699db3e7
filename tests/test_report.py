"""Tests for console warning lines and the HTML build report."""

from __future__ import annotations

import typing as typ

from bs4 import BeautifulSoup

from grove_pages.diagnostics import BuildWarning, RenderFrame, WarningKind
from grove_pages.models import BuildResult, PageSpec
from grove_pages.report import BuildReportWriter, format_warning

if typ.TYPE_CHECKING:
    from pathlib import Path


def _result() -> BuildResult:
    warnings = (
        BuildWarning(
            WarningKind.MISSING_KEY,
            "Key 'author' not found in data.",
            directive="get",
            key="author",
            template="post",
            page="blog.first",
            lang="en",
            render_stack=(RenderFrame("page", "blog.first"), RenderFrame("template", "post")),
        ),
        BuildWarning(WarningKind.ORPHAN_CONTENT, "Content 'draft' is unreachable.", key="draft"),
        BuildWarning(WarningKind.MISSING_KEY, "Key 'date' not found in data.", page="home"),
    )
    pages = (
        PageSpec("home", "en", "/", "", "Home", None),
        PageSpec("blog.first", "en", "/blog/first", "blog/first", "First <post>", None),
    )
    return BuildResult(
        pages=pages,
        warnings=warnings,
        visited=("home", "blog.first", "base"),
        pages_to_render=("home", "blog.first"),
        orphan_content=("draft",),
        timings={"discover": 0.001, "render": 0.25, "orphans": 0.0, "resolve": 0.01},
    )


def test_format_warning_includes_page_and_location() -> None:
    """Console lines name the kind, the page, and where it happened."""
    line = format_warning(_result().warnings[0])

    assert line.startswith("warning: missing key [blog.first/en]: Key 'author'")
    assert "(at " in line
    assert "post" in line


def test_format_warning_without_page() -> None:
    """Build-level warnings have no location suffix."""
    line = format_warning(_result().warnings[1])

    assert line == "warning: orphan content: Content 'draft' is unreachable."


def test_report_groups_warnings_by_kind() -> None:
    """Warnings are grouped in first-seen kind order with counts."""
    html = BuildReportWriter().render(_result())
    soup = BeautifulSoup(html, "html.parser")

    groups = soup.select("#warnings article.warning-group")
    assert [group["data-kind"] for group in groups] == ["missing-key", "orphan-content"]
    assert len(groups[0].select("li")) == 2
    assert soup.select_one(".page-count").get_text() == "2"
    assert soup.select_one(".warning-count").get_text() == "3"
    assert soup.select_one(".visited-count").get_text() == "3"


def test_report_lists_pages_orphans_and_timings() -> None:
    """Pages, orphans, and step timings each get a section."""
    soup = BeautifulSoup(BuildReportWriter().render(_result()), "html.parser")

    rows = soup.select("#pages tr.page")
    assert [row.find_all("td")[2].get_text() for row in rows] == ["/", "/blog/first"]
    assert rows[1].find_all("td")[3].get_text() == "First <post>"
    assert [li.get_text() for li in soup.select("#orphans li.orphan")] == ["draft"]
    steps = [row["data-step"] for row in soup.select("#timings tr.timing")]
    assert steps == ["discover", "render", "orphans", "resolve"]


def test_report_without_warnings(tmp_path: Path) -> None:
    """A clean build says so and the file is written to the output directory."""
    result = BuildResult(pages=(), warnings=(), visited=(), pages_to_render=())

    path = BuildReportWriter().write(result, tmp_path / "dist")

    soup = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
    assert path.name == "_report.html"
    assert soup.select_one("p.no-warnings") is not None
    assert soup.select_one("#orphans") is None
