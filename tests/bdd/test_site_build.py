"""Behaviour tests for building the sample site end to end.

The scenarios in ``site_build.feature`` load the shared sample site, build it
with the library API, write the output, and inspect the generated HTML with
BeautifulSoup.

Usage
-----
Run ``pytest tests/bdd/test_site_build.py -v`` after installing the test
extra (``pip install -e .[test]``). Everything runs against a temporary
directory, so no external services are required.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from pytest_bdd import given, scenarios, then, when

from grove_pages.builder import build_site
from grove_pages.config import load_site_config
from grove_pages.diagnostics import WarningKind
from grove_pages.output import write_site
from grove_pages.sources import load_sources

if typ.TYPE_CHECKING:
    from grove_pages.models import BuildResult

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "site_build.feature"
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


def _page_soup(scenario_state: dict[str, object], relative: str) -> BeautifulSoup:
    output_dir = typ.cast("Path", scenario_state["output_dir"])
    html = (output_dir / relative).read_text(encoding="utf-8")
    return BeautifulSoup(html, "html.parser")


@given("the sample site")
def given_sample_site(sample_site: Path, scenario_state: dict[str, object]) -> None:
    """Record the sample site's configuration path."""
    scenario_state["config_path"] = sample_site


@given("the about page links to a missing page")
def given_broken_link(scenario_state: dict[str, object]) -> None:
    """Add a link to a content key that exists nowhere to the page template."""
    config_path = typ.cast("Path", scenario_state["config_path"])
    template = config_path.parent / "templates" / "page.yaml"
    template.write_text(
        template.read_text(encoding="utf-8") + '- - p.related\n  - ["@link", ghost]\n',
        encoding="utf-8",
    )


@when("I build the site")
def when_build(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Build the site and write it to a fresh output directory."""
    config = load_site_config(typ.cast("Path", scenario_state["config_path"]))
    result = build_site(config, load_sources(config))
    output_dir = tmp_path / "public"
    scenario_state["result"] = result
    scenario_state["output_dir"] = output_dir
    scenario_state["written"] = write_site(result, config, output_dir=output_dir)


@then("every reachable page is written")
def then_pages_written(scenario_state: dict[str, object]) -> None:
    """Verify one HTML file exists per page and language."""
    output_dir = typ.cast("Path", scenario_state["output_dir"])
    written = typ.cast("list[Path]", scenario_state["written"])
    pages = sorted(
        path.relative_to(output_dir).as_posix()
        for path in written
        if path.suffix == ".html"
    )
    assert pages == [
        "about.html",
        "blog/first.html",
        "blog/second.html",
        "index.html",
        "no/about.html",
        "no/index.html",
    ], f"unexpected pages written: {pages!r}"


@then("the home page links the blog posts newest first")
def then_home_links_posts(scenario_state: dict[str, object]) -> None:
    """Verify the post list on the home page is ordered by date, descending."""
    soup = _page_soup(scenario_state, "index.html")
    links = [(a["href"], a.get_text()) for a in soup.select("ul.posts a")]
    assert links == [
        ("/blog/second", "Second post"),
        ("/blog/first", "First post"),
    ], f"unexpected post links {links!r}"
    assert soup.find("h1").get_text() == "Welcome to Grove Test"


@then("no warnings are reported")
def then_no_warnings(scenario_state: dict[str, object]) -> None:
    """Verify the build produced no warnings."""
    result = typ.cast("BuildResult", scenario_state["result"])
    assert result.warnings == (), [warning.message for warning in result.warnings]


@then("the about page contains a broken link")
def then_about_has_broken_link(scenario_state: dict[str, object]) -> None:
    """Verify the unresolved link falls back to the broken-link fragment."""
    soup = _page_soup(scenario_state, "about.html")
    anchor = soup.select_one("p.related a")
    assert anchor is not None, "expected the related link on the about page"
    assert anchor["href"] == "#broken-link/ghost"
    assert anchor.get_text() == "ghost"


@then("a broken link warning is reported")
def then_broken_link_warning(scenario_state: dict[str, object]) -> None:
    """Verify the build reported the broken link for the English about page."""
    result = typ.cast("BuildResult", scenario_state["result"])
    broken = [
        (warning.page, warning.lang)
        for warning in result.warnings
        if warning.kind is WarningKind.BROKEN_LINK
    ]
    assert ("about", "en") in broken, f"expected a broken link on about/en, got {broken!r}"
