"""Typed dataclasses describing grove site configuration structures."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path


class SiteConfigError(ValueError):
    """Raised when the site configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class LanguageConfig:
    """A configured output language."""

    code: str
    default: bool = False
    label: str | None = None


@dc.dataclass(slots=True)
class SiteConfig:
    """A fully resolved site definition sourced from YAML config.

    Attributes
    ----------
    wrapper : str
        Template every page is wrapped in; required.
    languages : dict[str, LanguageConfig]
        Output languages keyed by code, in configuration order.
    render_roots : tuple[str, ...]
        Content keys that seed page discovery.
    index : str | None
        Content key served at ``/``; defaults to the first render root.
    build_constants : dict[str, Any]
        Values merged under every page's and component's data.
    params : dict[str, Any]
        Free-form settings readable through the ``site-config`` directive.
    page_url_strategy : str
        Name of the registered page URL strategy.
    output_path_strategy : str
        Name of the registered output path strategy.
    output_dir : Path
        Directory that receives rendered HTML.
    root_dir : Path
        Directory holding ``templates/`` and ``content/``.
    warn_on_missing_language : bool
        Emit ``missing-page-language`` when a page lacks a configured language.
    """

    wrapper: str
    languages: dict[str, LanguageConfig]
    render_roots: tuple[str, ...] = ()
    index: str | None = None
    build_constants: dict[str, typ.Any] = dc.field(default_factory=dict)
    params: dict[str, typ.Any] = dc.field(default_factory=dict)
    page_url_strategy: str = "default"
    output_path_strategy: str = "flat"
    output_dir: Path = Path("dist")
    root_dir: Path = Path()
    warn_on_missing_language: bool = False

    @property
    def default_lang(self) -> str:
        """Return the language flagged as default, or the first configured one."""
        for code, language in self.languages.items():
            if language.default:
                return code
        if not self.languages:  # pragma: no cover - loader guards this
            msg = "No languages configured."
            raise SiteConfigError(msg)
        return next(iter(self.languages))

    @property
    def index_page(self) -> str | None:
        """Return the content key rendered at the site root."""
        if self.index:
            return self.index
        return self.render_roots[0] if self.render_roots else None

    def language_label(self, code: str) -> str:
        """Return the display label for ``code``, falling back to the code."""
        language = self.languages.get(code)
        if language is not None and language.label:
            return language.label
        return code


__all__ = ["LanguageConfig", "SiteConfig", "SiteConfigError"]
