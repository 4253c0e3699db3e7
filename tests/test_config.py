"""Tests for site configuration loading."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest

from grove_pages.config import SiteConfigError, build_site_config, load_site_config

if typ.TYPE_CHECKING:
    from pathlib import Path


def test_load_site_config_reads_sample(sample_site: Path) -> None:
    """The sample configuration loads with resolved paths and defaults."""
    config = load_site_config(sample_site)

    assert config.wrapper == "base"
    assert list(config.languages) == ["en", "no"]
    assert config.default_lang == "en"
    assert config.language_label("no") == "Norsk"
    assert config.render_roots == ("home",)
    assert config.index_page == "home"
    assert config.root_dir == sample_site.parent.resolve()
    assert config.output_dir == sample_site.parent.resolve() / "dist"
    assert config.page_url_strategy == "default"
    assert config.output_path_strategy == "flat"
    assert config.params["social"]["github"] == "https://github.com/example"


def test_build_constants_include_current_year(tmp_path: Path) -> None:
    """``current_year`` is always present and configured constants are merged."""
    config = build_site_config(
        {
            "wrapper": "base",
            "languages": ["en"],
            "render_roots": "home",
            "build_constants": {"site_name": "Grove"},
        },
        root_dir=tmp_path,
    )

    assert config.build_constants == {
        "current_year": str(dt.datetime.now(dt.UTC).year),
        "site_name": "Grove",
    }


def test_index_falls_back_to_render_root(tmp_path: Path) -> None:
    """Without an index key the first render root is the index page."""
    config = build_site_config(
        {"wrapper": "base", "languages": ["en", "no"], "render_roots": ["a", "b", "a"]},
        root_dir=tmp_path,
    )

    assert config.render_roots == ("a", "b")
    assert config.index_page == "a"
    assert config.default_lang == "en"


def test_index_alone_seeds_render_roots(tmp_path: Path) -> None:
    """An index page is enough to start discovery."""
    config = build_site_config(
        {"wrapper": "base", "languages": ["en"], "index": "home"}, root_dir=tmp_path
    )

    assert config.render_roots == ("home",)


def test_missing_config_file(tmp_path: Path) -> None:
    """A missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError, match=r"site\.yaml"):
        load_site_config(tmp_path / "site.yaml")


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"languages": ["en"], "render_roots": ["home"]}, "wrapper"),
        ({"wrapper": "base", "render_roots": ["home"]}, "languages"),
        ({"wrapper": "base", "languages": ["en"]}, "render roots"),
        (
            {
                "wrapper": "base",
                "languages": {"en": {"default": True}, "no": {"default": True}},
                "render_roots": ["home"],
            },
            "default language",
        ),
        (
            {
                "wrapper": "base",
                "languages": ["en"],
                "render_roots": ["home"],
                "page_url_strategy": "bogus",
            },
            "bogus",
        ),
        (
            {
                "wrapper": "base",
                "languages": ["en"],
                "render_roots": ["home"],
                "params": ["not", "a", "mapping"],
            },
            "params",
        ),
    ],
)
def test_invalid_configs_are_rejected(
    tmp_path: Path, raw: dict[str, object], message: str
) -> None:
    """Each invalid configuration names the offending setting."""
    with pytest.raises(SiteConfigError, match=message):
        build_site_config(raw, root_dir=tmp_path)


def test_absolute_output_dir_is_kept(tmp_path: Path) -> None:
    """Absolute output directories are not moved under the site root."""
    target = tmp_path / "public"

    config = build_site_config(
        {
            "wrapper": "base",
            "languages": ["en"],
            "render_roots": ["home"],
            "output_dir": str(target),
            "output_path_strategy": "nested",
        },
        root_dir=tmp_path / "site",
    )

    assert config.output_dir == target
    assert config.output_path_strategy == "nested"
