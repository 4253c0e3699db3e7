"""Load site configuration YAML into typed dataclasses."""

from __future__ import annotations

import datetime as dt
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from grove_pages import strategies

from .helpers import _build_languages, _mapping, _normalize_keys, _optional_str
from .models import SiteConfig, SiteConfigError

DEFAULT_OUTPUT_DIR = "dist"


def load_site_config(path: Path) -> SiteConfig:
    """Load the YAML configuration describing the site and its languages.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML site configuration (for example,
        ``site.yaml``). Templates and content are expected beside it.

    Returns
    -------
    SiteConfig
        Parsed configuration with render roots, languages, strategies, and an
        absolute output directory.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    SiteConfigError
        If required fields are missing or invalid (no wrapper, no languages,
        no render roots, unknown strategy names).
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from grove_pages.config import load_site_config
    >>> config = load_site_config(Path("site/site.yaml"))  # doctest: +SKIP
    >>> config.default_lang  # doctest: +SKIP
    'en'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):  # pragma: no cover - config error guard
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    return build_site_config(raw, root_dir=path.resolve().parent)


def build_site_config(raw: typ.Mapping[str, typ.Any], *, root_dir: Path) -> SiteConfig:
    """Build a :class:`SiteConfig` from an already parsed mapping."""
    wrapper = _optional_str(raw.get("wrapper"))
    if not wrapper:
        msg = "Site configuration must name a 'wrapper' template."
        raise SiteConfigError(msg)

    languages = _build_languages(raw.get("languages"))
    index = _optional_str(raw.get("index"))
    render_roots = _normalize_keys(raw.get("render_roots"), field="render_roots")
    if not render_roots and index:
        render_roots = (index,)
    if not render_roots:
        msg = "No render roots defined in site configuration."
        raise SiteConfigError(msg)

    page_url_strategy = str(raw.get("page_url_strategy", "default"))
    output_path_strategy = str(raw.get("output_path_strategy", "flat"))
    strategies.resolve_page_url_strategy(page_url_strategy)
    strategies.resolve_output_path_strategy(output_path_strategy)

    output_dir = Path(raw.get("output_dir", DEFAULT_OUTPUT_DIR))
    if not output_dir.is_absolute():
        output_dir = root_dir / output_dir

    build_constants = {"current_year": str(dt.datetime.now(dt.UTC).year)}
    build_constants.update(_mapping(raw.get("build_constants"), field="build_constants"))

    return SiteConfig(
        wrapper=wrapper,
        languages=languages,
        render_roots=render_roots,
        index=index,
        build_constants=build_constants,
        params=_mapping(raw.get("params"), field="params"),
        page_url_strategy=page_url_strategy,
        output_path_strategy=output_path_strategy,
        output_dir=output_dir,
        root_dir=root_dir,
        warn_on_missing_language=bool(raw.get("warn_on_missing_language", False)),
    )


__all__ = ["build_site_config", "load_site_config"]
