"""Shared fixtures for grove tests.

``sample_site`` writes a small two-language site to a temporary directory:
an index page, an about page in English (markdown) and Norwegian (YAML), and
two English blog posts that are only reachable through a link computed at
render time. The site builds without warnings.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path
from textwrap import dedent

import pytest

from grove_pages.config import LanguageConfig, SiteConfig

SITE_FILES: dict[str, str] = {
    "site.yaml": """
        wrapper: base
        index: home
        render_roots: [home]
        languages:
          en: {default: true, label: English}
          "no": {label: Norsk}
        output_dir: dist
        build_constants:
          site_name: Grove Test
        params:
          social:
            github: https://github.com/example
    """,
    "templates/base.yaml": """
        - html
        - {lang: ["@get", lang]}
        - - head
          - - title
            - ["@get", title]
        - - body
          - - nav
            - ["@link", home]
            - ["@link", about]
          - ["@body"]
          - - footer
            - ["@site-config", social, github]
    """,
    "templates/home.yaml": """
        - main
        - - h1
          - ["@t", welcome, {name: ["@get", site_name]}]
        - - ul.posts
          - - "@each"
            - "@all"
            - where
            - {kind: post}
            - order-by
            - [date, desc]
            - - li
              - ["@link", ["@get", content_key]]
    """,
    "templates/page.yaml": """
        - article
        - - h1
          - ["@get", title]
        - ["@get", html/content, ""]
        - - "@link"
          - {nav: parent}
          - - a.up
            - {href: ["@get", link/href]}
            - ["@get", link/title]
    """,
    "content/en/home.yaml": """
        title: Home
    """,
    "content/no/home.yaml": """
        title: Hjem
    """,
    "content/en/about.md": """
        ---
        slug: about
        title: About
        template: page
        ---
        # About us

        We build things.
    """,
    "content/no/about.yaml": """
        slug: about
        title: Om oss
        template: page
    """,
    "content/en/blog/first.md": """
        ---
        slug: blog/first
        title: First post
        template: page
        kind: post
        date: "2025-08-01"
        ---
        Hello.
    """,
    "content/en/blog/second.md": """
        ---
        slug: blog/second
        title: Second post
        template: page
        kind: post
        date: "2025-08-02"
        ---
        ```python
        print("hi")
        ```
    """,
    "content/strings.en.yaml": """
        welcome: "Welcome to {{name}}"
    """,
    "content/strings.no.yaml": """
        welcome: "Velkommen til {{name}}"
    """,
}


def write_site_files(root: Path, files: dict[str, str]) -> None:
    """Write ``files`` (relative path to dedented text) below ``root``."""
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(text).lstrip("\n"), encoding="utf-8")


@pytest.fixture
def sample_site(tmp_path: Path) -> Path:
    """Write the sample site and return the path to its ``site.yaml``."""
    root = tmp_path / "site"
    write_site_files(root, SITE_FILES)
    return root / "site.yaml"


@pytest.fixture
def site_config() -> SiteConfig:
    """Return an in-memory two-language config rooted at ``home``."""
    return SiteConfig(
        wrapper="base",
        languages={
            "en": LanguageConfig("en", default=True, label="English"),
            "no": LanguageConfig("no", label="Norsk"),
        },
        render_roots=("home",),
        index="home",
        build_constants={"site_name": "Grove Test"},
        params={"social": {"github": "https://github.com/example"}},
    )


@pytest.fixture
def write_files() -> typ.Callable[[Path, dict[str, str]], None]:
    """Return the helper that writes dedented files below a directory."""
    return write_site_files
