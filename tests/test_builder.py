"""Tests for the two-phase site build."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import pytest
from bs4 import BeautifulSoup

from grove_pages.builder import SiteBuilder, build_site
from grove_pages.config import load_site_config
from grove_pages.context import Section
from grove_pages.diagnostics import BuildError, WarningKind
from grove_pages.html_writer import render_html
from grove_pages.nodes import parse_template
from grove_pages.resolver import RegistryFrozenError
from grove_pages.sources import SiteSources, load_sources

if typ.TYPE_CHECKING:
    from pathlib import Path

    from grove_pages.config import SiteConfig
    from grove_pages.models import BuildResult

WRAPPER = ["html", {"lang": ["@get", "lang"]}, ["body", ["@body"]]]


def _sources(
    templates: dict[str, object],
    content: dict[str, dict[str, dict[str, typ.Any]]],
    strings: dict[str, dict[str, typ.Any]] | None = None,
) -> SiteSources:
    return SiteSources(
        templates={"base": parse_template(WRAPPER)}
        | {name: parse_template(raw) for name, raw in templates.items()},
        content=content,
        strings=strings or {},
    )


def _kinds(result: BuildResult) -> list[WarningKind]:
    return [warning.kind for warning in result.warnings]


def _soup(result: BuildResult, key: str, lang: str = "en") -> BeautifulSoup:
    page = result.page(key, lang)
    assert page is not None, f"page {key!r} ({lang}) was not built"
    return BeautifulSoup(render_html(page.tree), "html.parser")


@pytest.fixture
def about_only(site_config: SiteConfig) -> SiteConfig:
    """Return a config whose only render root is ``about``."""
    return dc.replace(site_config, render_roots=("about",), index="home")


def test_single_root_builds_one_page_per_language(about_only: SiteConfig) -> None:
    """A lone root with content in two languages yields exactly two pages."""
    sources = _sources(
        {"about": ["h1", ["@get", "title"]]},
        {
            "en": {"about": {"slug": "about", "title": "About"}},
            "no": {"about": {"slug": "about", "title": "Om oss"}},
        },
    )

    result = build_site(about_only, sources)

    assert [(page.content_key, page.lang, page.path) for page in result.pages] == [
        ("about", "en", "/about"),
        ("about", "no", "/no/about"),
    ]
    assert result.warnings == ()
    assert _soup(result, "about", "no").html["lang"] == "no"
    assert _soup(result, "about", "no").h1.get_text() == "Om oss"


def test_missing_wrapper_is_fatal(about_only: SiteConfig) -> None:
    """The wrapper template must exist."""
    sources = _sources({}, {"en": {}})
    sources.templates.pop("base")

    with pytest.raises(BuildError, match="base"):
        build_site(about_only, sources)


def test_pages_without_slug_or_title_abort(about_only: SiteConfig) -> None:
    """Every invalid page is listed on the error."""
    sources = _sources(
        {"about": ["p", "x"]},
        {
            "en": {"about": {"slug": "about"}},
            "no": {"about": {"title": "Om"}},
        },
    )

    with pytest.raises(BuildError) as excinfo:
        build_site(about_only, sources)

    invalid = {(page.lang, page.missing_fields) for page in excinfo.value.invalid_pages}
    assert invalid == {("en", ("title",)), ("no", ("slug",))}


def test_index_page_needs_no_slug(site_config: SiteConfig) -> None:
    """The index page is served at the root without a slug."""
    sources = _sources({"home": ["p", "hi"]}, {"en": {"home": {"title": "Home"}}})

    result = build_site(site_config, sources)

    assert [page.path for page in result.pages] == ["/"]


def test_missing_template_and_content_warn(site_config: SiteConfig) -> None:
    """Pages without a template or without content are skipped with warnings."""
    config = dc.replace(site_config, render_roots=("home", "ghost"))
    sources = _sources(
        {},
        {"en": {"home": {"title": "Home", "template": "nope"}}},
    )

    result = build_site(config, sources)

    assert result.pages == ()
    assert _kinds(result) == [WarningKind.MISSING_TEMPLATE, WarningKind.MISSING_CONTENT]


def test_missing_language_is_opt_in(about_only: SiteConfig) -> None:
    """Absent translations are only reported when asked for."""
    sources = _sources(
        {"about": ["p", "x"]}, {"en": {"about": {"slug": "about", "title": "About"}}}
    )

    quiet = build_site(about_only, sources)
    loud = build_site(dc.replace(about_only, warn_on_missing_language=True), sources)

    assert quiet.warnings == ()
    assert [(w.kind, w.lang) for w in loud.warnings] == [
        (WarningKind.MISSING_PAGE_LANGUAGE, "no")
    ]


def test_orphan_content_is_reported(about_only: SiteConfig) -> None:
    """Content no root reaches is listed and warned about."""
    sources = _sources(
        {"about": ["p", "x"]},
        {
            "en": {
                "about": {"slug": "about", "title": "About"},
                "draft": {"slug": "draft", "title": "Draft"},
            }
        },
    )

    result = build_site(about_only, sources)

    assert result.orphan_content == ("draft",)
    assert _kinds(result) == [WarningKind.ORPHAN_CONTENT]


def test_include_loop_is_a_warning_not_a_crash(about_only: SiteConfig) -> None:
    """A page whose templates include each other still builds."""
    sources = _sources(
        {
            "about": ["main", ["@include", "ping"]],
            "ping": ["div.ping", ["@include", "pong"]],
            "pong": ["div.pong", ["@include", "ping"]],
        },
        {"en": {"about": {"slug": "about", "title": "About"}}},
    )

    result = build_site(about_only, sources)

    assert _kinds(result) == [WarningKind.CIRCULAR_TEMPLATE]
    soup = _soup(result, "about")
    assert soup.select_one("div.ping div.pong span.missing-content") is not None


def test_dynamic_links_join_the_build(about_only: SiteConfig) -> None:
    """Targets computed at render time are rendered and resolved."""
    sources = _sources(
        {
            "about": [
                "ul",
                [
                    "@each",
                    "@all",
                    "where",
                    {"kind": "post"},
                    ["li", ["@link", ["@get", "content_key"]]],
                ],
            ],
            "post": ["p", ["@get", "title"]],
        },
        {
            "en": {
                "about": {"slug": "about", "title": "About"},
                "news": {
                    "slug": "news",
                    "title": "News",
                    "kind": "post",
                    "template": "post",
                },
            }
        },
    )

    result = build_site(about_only, sources)

    assert "news" in result.pages_to_render
    assert result.orphan_content == ()
    anchor = _soup(result, "about").find("a")
    assert anchor["href"] == "/news"
    assert anchor.get_text() == "News"


def test_render_sections_are_registered(site_config: SiteConfig) -> None:
    """Rendered sections carry their id and are registered for their page."""
    sources = _sources(
        {
            "home": [
                "main",
                ["@render", {"data": "team", "template": "card", "section_id": "team"}],
            ],
            "card": ["div.card", ["@get", "title"]],
        },
        {"en": {"home": {"title": "Home"}, "team": {"title": "The team"}}},
    )
    builder = SiteBuilder(site_config, sources)

    result = builder.build()

    assert _soup(result, "home").find("div", class_="card")["id"] == "team"
    assert builder.sections.get("team") == Section("team", "home")
    assert result.warnings == ()


def test_linked_section_with_page_content_resolves_as_page(site_config: SiteConfig) -> None:
    """Linking a rendered key discovers it as a page, which wins over the section."""
    config = dc.replace(site_config, render_roots=("home", "about"))
    sources = _sources(
        {
            "home": [
                "main",
                ["@render", {"data": "team", "template": "card", "section_id": "team"}],
            ],
            "about": ["p", ["@link", "team"]],
            "card": ["div.card", ["@get", "title"]],
        },
        {
            "en": {
                "home": {"title": "Home"},
                "about": {"slug": "about", "title": "About"},
                "team": {"slug": "team", "title": "The team", "template": "card"},
            }
        },
    )

    result = build_site(config, sources)

    anchor = _soup(result, "about").find("a")
    assert (anchor["href"], anchor.get_text()) == ("/team", "The team")
    assert _kinds(result) == [WarningKind.AMBIGUOUS_LINK]


def test_conflicting_sections_warn(site_config: SiteConfig) -> None:
    """A second, different section for one key is reported."""
    config = dc.replace(site_config, render_roots=("home", "about"))
    sources = _sources(
        {
            "home": [
                "main",
                ["@render", {"data": "team", "template": "card", "section_id": "team"}],
            ],
            "about": [
                "main",
                ["@render", {"data": "team", "template": "card", "section_id": "crew"}],
            ],
            "card": ["div", ["@get", "title"]],
        },
        {
            "en": {
                "home": {"title": "Home"},
                "about": {"slug": "about", "title": "About"},
                "team": {"title": "The team"},
            }
        },
    )

    builder = SiteBuilder(config, sources)
    result = builder.build()

    assert _kinds(result) == [WarningKind.DUPLICATE_SECTION]
    assert builder.sections.get("team").section_id == "team"


def test_broken_links_are_warnings_on_the_page(site_config: SiteConfig) -> None:
    """Broken links do not stop the build."""
    sources = _sources(
        {"home": ["p", ["@link", "ghost"], ["@link", "ghost"]]},
        {"en": {"home": {"title": "Home"}}},
    )

    result = build_site(site_config, sources)

    page = result.page("home", "en")
    assert [w.kind for w in page.warnings] == [WarningKind.BROKEN_LINK]
    assert _soup(result, "home").a["href"] == "#broken-link/ghost"


def test_timings_and_frozen_registries(site_config: SiteConfig) -> None:
    """Each step is timed and the registries are frozen afterwards."""
    sources = _sources({"home": ["p", "hi"]}, {"en": {"home": {"title": "Home"}}})
    builder = SiteBuilder(site_config, sources)

    result = builder.build()

    assert list(result.timings) == ["discover", "render", "orphans", "resolve"]
    assert all(value >= 0 for value in result.timings.values())
    with pytest.raises(RegistryFrozenError):
        builder.pages.register(result.pages[0])


def test_sample_site_builds_cleanly(sample_site: Path) -> None:
    """The shared sample site renders every page without warnings."""
    config = load_site_config(sample_site)

    result = build_site(config, load_sources(config))

    assert result.warnings == (), [str(w) for w in result.warnings]
    assert [page.path for page in result.pages] == [
        "/",
        "/no/",
        "/about",
        "/no/about",
        "/blog/second",
        "/blog/first",
    ]
    home = _soup(result, "home")
    assert home.h1.get_text() == "Welcome to Grove Test"
    posts = [(a["href"], a.get_text()) for a in home.select("ul.posts a")]
    assert posts == [("/blog/second", "Second post"), ("/blog/first", "First post")]
    up = _soup(result, "about", "no").select_one("a.up")
    assert (up["href"], up.get_text()) == ("/no/", "Hjem")
