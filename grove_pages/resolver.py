"""Page and section registries and the link resolver that reads them.

Rendering a page leaves :class:`~grove_pages.nodes.LinkPlaceholder` nodes
wherever a ``link`` directive needs a URL or title, because the set of pages
and their URLs is only settled once every page has been rendered. The builder
fills the registries while rendering, freezes them, and only then hands each
page to :class:`LinkResolver`, which swaps every placeholder for its final
text.

Resolution order for a target key in a target language:

1. a registered page in that language gives its URL and title;
2. otherwise a registered section gives ``#id`` on its own page, or
   ``<parent url>#id`` from anywhere else;
3. otherwise the link is broken and resolves to ``#broken-link/<key>``.

A key registered as both a page and a section resolves as the page and is
reported once as ``ambiguous-link``.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ._constants import BROKEN_LINK_HREF, HIERARCHY_SEPARATOR
from .diagnostics import BuildWarning, WarningKind
from .nodes import Element, Fragment, LinkPlaceholder, LinkTarget, NavTarget, PlaceholderKind

if typ.TYPE_CHECKING:
    from .config import SiteConfig
    from .context import Section
    from .models import PageSpec


class RegistryFrozenError(RuntimeError):
    """Raised when a frozen registry is written to, or read before freezing."""


class PageRegistry:
    """Write-once registry of rendered pages keyed by content key and language."""

    def __init__(self) -> None:
        self._pages: dict[tuple[str, str], PageSpec] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Return True once the registry no longer accepts pages."""
        return self._frozen

    def freeze(self) -> None:
        """Stop accepting pages."""
        self._frozen = True

    def register(self, page: PageSpec) -> bool:
        """Record ``page``; return False if its key and language are taken.

        Raises
        ------
        RegistryFrozenError
            If the registry has been frozen.
        """
        if self._frozen:
            msg = f"Cannot register page '{page.content_key}' after freezing."
            raise RegistryFrozenError(msg)
        slot = (page.content_key, page.lang)
        if slot in self._pages:
            return False
        self._pages[slot] = page
        return True

    def get(self, content_key: str, lang: str) -> PageSpec | None:
        """Return the page for ``content_key`` in ``lang``."""
        return self._pages.get((content_key, lang))

    def __contains__(self, slot: object) -> bool:
        return slot in self._pages

    def __iter__(self) -> cabc.Iterator[PageSpec]:
        return iter(tuple(self._pages.values()))

    def __len__(self) -> int:
        return len(self._pages)


class SectionRegistry:
    """Write-once registry of sections keyed by the rendered content key."""

    def __init__(self) -> None:
        self._sections: dict[str, Section] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Return True once the registry no longer accepts sections."""
        return self._frozen

    def freeze(self) -> None:
        """Stop accepting sections."""
        self._frozen = True

    def register(self, content_key: str, section: Section) -> bool:
        """Record ``section``; return False if ``content_key`` already has one.

        Raises
        ------
        RegistryFrozenError
            If the registry has been frozen.
        """
        if self._frozen:
            msg = f"Cannot register section '{content_key}' after freezing."
            raise RegistryFrozenError(msg)
        if content_key in self._sections:
            return False
        self._sections[content_key] = section
        return True

    def get(self, content_key: str) -> Section | None:
        """Return the section registered for ``content_key``."""
        return self._sections.get(content_key)

    def __contains__(self, content_key: object) -> bool:
        return content_key in self._sections

    def __len__(self) -> int:
        return len(self._sections)


@dc.dataclass(frozen=True, slots=True)
class ResolvedLink:
    """Final values for one link target."""

    href: str
    title: str
    warnings: tuple[tuple[WarningKind, str, str], ...] = ()


class LinkResolver:
    """Resolve link placeholders against frozen registries."""

    def __init__(
        self,
        pages: PageRegistry,
        sections: SectionRegistry,
        site_config: SiteConfig,
        *,
        content: cabc.Mapping[str, cabc.Mapping[str, cabc.Mapping[str, typ.Any]]]
        | None = None,
    ) -> None:
        """Bind the resolver to registries that are already frozen.

        Parameters
        ----------
        pages : PageRegistry
            Every page rendered in Phase 1.
        sections : SectionRegistry
            Every section registered in Phase 1.
        site_config : SiteConfig
            Supplies the index page and language labels.
        content : Mapping, optional
            Content store used for section titles.

        Raises
        ------
        RegistryFrozenError
            If either registry is still accepting entries.
        """
        if not (pages.frozen and sections.frozen):
            msg = "Links can only be resolved once both registries are frozen."
            raise RegistryFrozenError(msg)
        self.pages = pages
        self.sections = sections
        self.site_config = site_config
        self.content = content or {}

    def nav_key(self, nav: NavTarget, page_key: str, lang: str) -> str | None:
        """Return the content key a ``nav`` link from ``page_key`` points at.

        ``parent`` drops trailing ``.``-separated segments until a registered
        page is found and ends at the index page; ``root`` is the index page.
        """
        index = self.site_config.index_page
        if nav is NavTarget.ROOT:
            return index
        segments = page_key.split(HIERARCHY_SEPARATOR)
        while len(segments) > 1:
            segments.pop()
            candidate = HIERARCHY_SEPARATOR.join(segments)
            if self.pages.get(candidate, lang) is not None:
                return candidate
        return index

    def _section_title(self, content_key: str, lang: str) -> str:
        entry = self.content.get(lang, {}).get(content_key, {})
        title = entry.get("title")
        return str(title) if title else content_key

    def resolve(self, target: LinkTarget, *, page_key: str, lang: str) -> ResolvedLink:
        """Resolve ``target`` as seen from ``page_key`` rendered in ``lang``."""
        target_lang = target.lang or lang
        label: str | None = None
        if target.nav is not None:
            key = self.nav_key(target.nav, page_key, target_lang)
        elif target.content_key is None:
            key = page_key
            label = self.site_config.language_label(target_lang)
        else:
            key = target.content_key
        if key is None:
            fallback = target.describe()
            return ResolvedLink(
                href=BROKEN_LINK_HREF.format(key=fallback),
                title=fallback,
                warnings=((WarningKind.BROKEN_LINK, fallback, "No index page to link to."),),
            )

        page = self.pages.get(key, target_lang)
        section = self.sections.get(key)
        warnings: list[tuple[WarningKind, str, str]] = []
        if page is not None:
            if section is not None:
                warnings.append(
                    (
                        WarningKind.AMBIGUOUS_LINK,
                        key,
                        f"'{key}' is both a page and a section; linking the page.",
                    )
                )
            return ResolvedLink(
                href=page.path, title=label or page.title or key, warnings=tuple(warnings)
            )
        if section is not None:
            parent_key = section.parent_content_key
            anchor = f"#{section.section_id}"
            title = label or self._section_title(key, target_lang)
            if parent_key == page_key and target_lang == lang:
                return ResolvedLink(href=anchor, title=title)
            parent = self.pages.get(parent_key, target_lang) if parent_key else None
            if parent is not None:
                return ResolvedLink(href=f"{parent.path}{anchor}", title=title)
            return ResolvedLink(
                href=BROKEN_LINK_HREF.format(key=key),
                title=title,
                warnings=(
                    (
                        WarningKind.BROKEN_LINK,
                        key,
                        f"Section '{key}' lives on '{parent_key}', which has no "
                        f"'{target_lang}' page.",
                    ),
                ),
            )
        return ResolvedLink(
            href=BROKEN_LINK_HREF.format(key=key),
            title=label or key,
            warnings=(
                (
                    WarningKind.BROKEN_LINK,
                    key,
                    f"No page or section '{key}' in '{target_lang}'.",
                ),
            ),
        )

    def resolve_page(self, page: PageSpec) -> tuple[typ.Any, list[BuildWarning]]:
        """Return ``page.tree`` with placeholders replaced, plus new warnings.

        Each distinct target and warning kind is reported once per page.
        """
        seen: set[tuple[WarningKind, str]] = set()
        warnings: list[BuildWarning] = []

        def _resolve(placeholder: LinkPlaceholder) -> str:
            resolved = self.resolve(
                placeholder.target, page_key=page.content_key, lang=page.lang
            )
            for kind, key, message in resolved.warnings:
                if (kind, key) in seen:
                    continue
                seen.add((kind, key))
                warnings.append(
                    BuildWarning(
                        kind=kind,
                        message=message,
                        directive="link",
                        key=key,
                        page=page.content_key,
                        lang=page.lang,
                        details={"href": resolved.href},
                    )
                )
            if placeholder.kind is PlaceholderKind.HREF:
                return resolved.href
            return resolved.title

        return replace_placeholders(page.tree, _resolve), warnings


def replace_placeholders(
    node: object, resolve: cabc.Callable[[LinkPlaceholder], typ.Any]
) -> typ.Any:  # noqa: ANN401
    """Return ``node`` with every placeholder replaced by ``resolve(placeholder)``."""
    match node:
        case LinkPlaceholder():
            return resolve(node)
        case Element(tag=tag, attrs=attrs, children=children):
            return Element(
                tag,
                {name: replace_placeholders(value, resolve) for name, value in attrs.items()},
                tuple(replace_placeholders(child, resolve) for child in children),
            )
        case Fragment(children=children):
            return Fragment(tuple(replace_placeholders(child, resolve) for child in children))
        case cabc.Mapping():
            return {key: replace_placeholders(value, resolve) for key, value in node.items()}
        case list():
            return [replace_placeholders(item, resolve) for item in node]
        case tuple():
            return tuple(replace_placeholders(item, resolve) for item in node)
        case _:
            return node


__all__ = [
    "LinkResolver",
    "PageRegistry",
    "RegistryFrozenError",
    "ResolvedLink",
    "SectionRegistry",
    "replace_placeholders",
]
