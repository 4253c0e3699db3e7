"""Load templates, content, and translation strings from a site directory.

Layout, relative to the directory holding ``site.yaml``::

    templates/<name>.yaml            parsed into template trees
    templates/<dir>/<name>.yaml      named "<dir>.<name>"
    content/<lang>/<key>.yaml        one content entry per file
    content/<lang>/<dir>/<key>.md    key "<dir>.<key>"; front matter + markdown
    content/strings.<lang>.yaml      translation strings for <lang>

Every document is read with ``ruamel.yaml``'s safe loader (YAML 1.2).
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from ._constants import HIERARCHY_SEPARATOR
from .markdown_renderer import MarkdownRenderer, split_front_matter
from .nodes import parse_template

if typ.TYPE_CHECKING:
    from .config import SiteConfig

TEMPLATE_SUFFIXES = (".yaml", ".yml")
CONTENT_SUFFIXES = (".yaml", ".yml", ".md")
MARKDOWN_HTML_KEY = "html/content"
STRINGS_PREFIX = "strings."


class SourceError(ValueError):
    """Raised when a template or content file cannot be used."""


@dc.dataclass(slots=True)
class SiteSources:
    """Fully materialized inputs for one build.

    Attributes
    ----------
    templates : dict[str, Any]
        Parsed template trees keyed by name.
    content : dict[str, dict[str, dict[str, Any]]]
        Content entries keyed by language, then content key.
    strings : dict[str, dict[str, Any]]
        Translation strings keyed by language.
    """

    templates: dict[str, typ.Any] = dc.field(default_factory=dict)
    content: dict[str, dict[str, dict[str, typ.Any]]] = dc.field(default_factory=dict)
    strings: dict[str, dict[str, typ.Any]] = dc.field(default_factory=dict)


def _yaml() -> YAML:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader


def _key_for(path: Path, base: Path) -> str:
    """Return the dotted key for ``base/a/b.md`` (``a.b``)."""
    relative = path.relative_to(base).with_suffix("")
    return HIERARCHY_SEPARATOR.join(relative.parts)


def _files(base: Path, suffixes: cabc.Collection[str]) -> list[Path]:
    if not base.is_dir():
        return []
    return sorted(path for path in base.rglob("*") if path.is_file() and path.suffix in suffixes)


def _as_mapping(loaded: object, path: Path) -> dict[str, typ.Any]:
    if loaded is None:
        return {}
    if not isinstance(loaded, cabc.Mapping):
        msg = f"'{path}' must contain a mapping."
        raise SourceError(msg)
    return {str(key): value for key, value in loaded.items()}


def load_templates(directory: Path) -> dict[str, typ.Any]:
    """Parse every template file below ``directory``."""
    loader = _yaml()
    templates: dict[str, typ.Any] = {}
    for path in _files(directory, TEMPLATE_SUFFIXES):
        with path.open("r", encoding="utf-8") as handle:
            templates[_key_for(path, directory)] = parse_template(loader.load(handle))
    return templates


def load_content_entry(
    path: Path, *, renderer: MarkdownRenderer | None = None
) -> dict[str, typ.Any]:
    """Read one YAML or markdown content file into a content entry."""
    text = path.read_text(encoding="utf-8")
    if path.suffix != ".md":
        return _as_mapping(_yaml().load(text), path)
    front_matter, body = split_front_matter(text)
    entry = _as_mapping(_yaml().load(front_matter) if front_matter else None, path)
    entry[MARKDOWN_HTML_KEY] = (renderer or MarkdownRenderer()).render(body)
    return entry


def load_content(
    directory: Path, *, renderer: MarkdownRenderer | None = None
) -> dict[str, dict[str, typ.Any]]:
    """Read every content file of one language directory.

    Raises
    ------
    SourceError
        If two files map to the same content key or a file is not a mapping.
    """
    renderer = renderer or MarkdownRenderer()
    entries: dict[str, dict[str, typ.Any]] = {}
    for path in _files(directory, CONTENT_SUFFIXES):
        key = _key_for(path, directory)
        if key in entries:
            msg = f"Content key '{key}' is defined twice in '{directory}'."
            raise SourceError(msg)
        entries[key] = load_content_entry(path, renderer=renderer)
    return entries


def load_strings(path: Path) -> dict[str, typ.Any]:
    """Read a translation strings file; a missing file yields no strings."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return _as_mapping(_yaml().load(handle), path)


def load_sources(
    site_config: SiteConfig, *, renderer: MarkdownRenderer | None = None
) -> SiteSources:
    """Load everything a build needs from ``site_config.root_dir``.

    Parameters
    ----------
    site_config : SiteConfig
        Configuration whose ``root_dir`` holds ``templates/`` and ``content/``.
    renderer : MarkdownRenderer, optional
        Renderer for markdown bodies; a default one is created when omitted.

    Returns
    -------
    SiteSources
        Templates, content per configured language, and strings.
    """
    root = site_config.root_dir
    content_dir = root / "content"
    renderer = renderer or MarkdownRenderer()
    sources = SiteSources(templates=load_templates(root / "templates"))
    for lang in site_config.languages:
        sources.content[lang] = load_content(content_dir / lang, renderer=renderer)
        sources.strings[lang] = load_strings(content_dir / f"{STRINGS_PREFIX}{lang}.yaml")
    return sources


__all__ = [
    "MARKDOWN_HTML_KEY",
    "SiteSources",
    "SourceError",
    "load_content",
    "load_content_entry",
    "load_sources",
    "load_strings",
    "load_templates",
]
