"""Dataclasses shared by the builder, the resolver, and the output writers."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    from .diagnostics import BuildWarning


@dc.dataclass(frozen=True, slots=True)
class PageSpec:
    """One rendered page in one language.

    Attributes
    ----------
    content_key : str
        Key of the content the page renders.
    lang : str
        Language code.
    path : str
        Public URL computed by the page URL strategy.
    slug : str
        Slug from the content (empty for the index page).
    title : str
        Title from the content.
    tree : Any
        Rendered node tree; link placeholders remain until links are resolved.
    template : str
        Template the page content was rendered with.
    warnings : tuple[BuildWarning, ...]
        Warnings raised while rendering and resolving this page.
    """

    content_key: str
    lang: str
    path: str
    slug: str
    title: str
    tree: typ.Any
    template: str = ""
    warnings: tuple[BuildWarning, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class BuildResult:
    """Everything a build produced, ready for writing and reporting."""

    pages: tuple[PageSpec, ...]
    warnings: tuple[BuildWarning, ...]
    visited: tuple[str, ...]
    pages_to_render: tuple[str, ...]
    orphan_content: tuple[str, ...] = ()
    timings: dict[str, float] = dc.field(default_factory=dict)

    def page(self, content_key: str, lang: str) -> PageSpec | None:
        """Return the page for ``content_key`` in ``lang``, if one was built."""
        for page in self.pages:
            if page.content_key == content_key and page.lang == lang:
                return page
        return None


__all__ = ["BuildResult", "PageSpec"]
