"""Named strategies for page URLs and output file paths.

A page URL strategy turns a page's slug and language into the URL other pages
link to; an output path strategy turns that URL into a file path below the
output directory. Both come as a small set of named built-ins, and callers can
register their own under a new name before loading the site configuration.

Examples
--------
>>> from grove_pages.config import LanguageConfig, SiteConfig
>>> site = SiteConfig(
...     wrapper="base",
...     languages={"en": LanguageConfig("en", default=True), "no": LanguageConfig("no")},
... )
>>> page_url = resolve_page_url_strategy("default")
>>> page_url(slug="about", lang="no", site_config=site)
'/no/about'
>>> resolve_output_path_strategy("nested")(path="/no/about", page=None, lang="no")
'no/about/index.html'
"""

from __future__ import annotations

import typing as typ

from .config.models import SiteConfigError

if typ.TYPE_CHECKING:
    from .config.models import SiteConfig


class PageUrlStrategy(typ.Protocol):
    """Compute the public URL of a page."""

    def __call__(self, *, slug: str, lang: str, site_config: SiteConfig) -> str:
        """Return the URL for ``slug`` in ``lang``; an empty slug is the index."""
        ...


class OutputPathStrategy(typ.Protocol):
    """Compute the output file path of a rendered page."""

    def __call__(self, *, path: str, page: object, lang: str) -> str:
        """Return a path relative to the output directory."""
        ...


def _lang_prefix(lang: str, site_config: SiteConfig) -> str:
    if lang == site_config.default_lang:
        return ""
    return f"/{lang}"


def default_page_url(*, slug: str, lang: str, site_config: SiteConfig) -> str:
    """Return ``/slug`` with a ``/<lang>`` prefix outside the default language."""
    prefix = _lang_prefix(lang, site_config)
    if not slug:
        return f"{prefix}/"
    return f"{prefix}/{slug}"


def with_extension_page_url(*, slug: str, lang: str, site_config: SiteConfig) -> str:
    """Return ``/slug.html`` (``/index.html`` for the index), language-prefixed."""
    prefix = _lang_prefix(lang, site_config)
    if not slug:
        return f"{prefix}/index.html"
    return f"{prefix}/{slug}.html"


def flat_output_path(*, path: str, page: object, lang: str) -> str:  # noqa: ARG001
    """Map ``/about`` to ``about.html`` and ``/no/`` to ``no/index.html``."""
    relative = path.lstrip("/")
    if not relative or relative.endswith("/"):
        return f"{relative}index.html"
    if relative.endswith(".html"):
        return relative
    return f"{relative}.html"


def nested_output_path(*, path: str, page: object, lang: str) -> str:  # noqa: ARG001
    """Map ``/about`` to ``about/index.html`` so URLs stay extensionless."""
    relative = path.strip("/")
    if not relative:
        return "index.html"
    if relative.endswith(".html"):
        return relative
    return f"{relative}/index.html"


PAGE_URL_STRATEGIES: dict[str, PageUrlStrategy] = {
    "default": default_page_url,
    "with-extension": with_extension_page_url,
}
OUTPUT_PATH_STRATEGIES: dict[str, OutputPathStrategy] = {
    "flat": flat_output_path,
    "nested": nested_output_path,
}


def register_page_url_strategy(name: str, strategy: PageUrlStrategy) -> None:
    """Make ``strategy`` available to configs under ``name``."""
    PAGE_URL_STRATEGIES[name] = strategy


def register_output_path_strategy(name: str, strategy: OutputPathStrategy) -> None:
    """Make ``strategy`` available to configs under ``name``."""
    OUTPUT_PATH_STRATEGIES[name] = strategy


def resolve_page_url_strategy(name: str) -> PageUrlStrategy:
    """Return the page URL strategy registered as ``name``.

    Raises
    ------
    SiteConfigError
        If no strategy is registered under ``name``.
    """
    try:
        return PAGE_URL_STRATEGIES[name]
    except KeyError as exc:
        available = ", ".join(sorted(PAGE_URL_STRATEGIES))
        msg = f"Unknown page URL strategy '{name}'. Known strategies: {available}"
        raise SiteConfigError(msg) from exc


def resolve_output_path_strategy(name: str) -> OutputPathStrategy:
    """Return the output path strategy registered as ``name``.

    Raises
    ------
    SiteConfigError
        If no strategy is registered under ``name``.
    """
    try:
        return OUTPUT_PATH_STRATEGIES[name]
    except KeyError as exc:
        available = ", ".join(sorted(OUTPUT_PATH_STRATEGIES))
        msg = f"Unknown output path strategy '{name}'. Known strategies: {available}"
        raise SiteConfigError(msg) from exc


__all__ = [
    "OUTPUT_PATH_STRATEGIES",
    "PAGE_URL_STRATEGIES",
    "OutputPathStrategy",
    "PageUrlStrategy",
    "default_page_url",
    "flat_output_path",
    "nested_output_path",
    "register_output_path_strategy",
    "register_page_url_strategy",
    "resolve_output_path_strategy",
    "resolve_page_url_strategy",
    "with_extension_page_url",
]
