"""Build a site: discover pages, render them, then resolve their links.

:class:`SiteBuilder` runs the build in fixed steps, timing each one:

``discover``
    Walk the content graph from the render roots and the wrapper.
``render``
    Phase 1. Render every page in every language it has content for, wrap it
    in the wrapper template, and register it. Link targets computed at render
    time are fed back into discovery until no new page appears.
``orphans``
    Report content that no render root reaches.
``resolve``
    Phase 2. Freeze the registries and replace every link placeholder.

Missing wrappers and pages without a slug or title abort the build with
:class:`~grove_pages.diagnostics.BuildError`; everything else is a warning.

Examples
--------
>>> from grove_pages.builder import SiteBuilder
>>> result = SiteBuilder(site_config, sources).build()  # doctest: +SKIP
>>> [page.path for page in result.pages]  # doctest: +SKIP
['/', '/about', '/no/', '/no/about']
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import time
import typing as typ

from .context import EvaluationSink, RenderContext
from .diagnostics import (
    BuildError,
    BuildWarning,
    InvalidPage,
    RenderFrame,
    WarningCollector,
    WarningKind,
)
from .discovery import ContentGraph
from .evaluator import evaluate
from .models import BuildResult, PageSpec
from .resolver import LinkResolver, PageRegistry, SectionRegistry
from .strategies import resolve_page_url_strategy

if typ.TYPE_CHECKING:
    from .config import SiteConfig
    from .sources import SiteSources

REQUIRED_PAGE_FIELDS = ("slug", "title")


def _page_warning(
    kind: WarningKind, message: str, *, key: str, lang: str | None = None
) -> BuildWarning:
    return BuildWarning(kind=kind, message=message, key=key, page=key, lang=lang)


def _has_text(value: object) -> bool:
    return value is not None and str(value).strip() != ""


class SiteBuilder:
    """Turn loaded sources into resolved pages for one site configuration."""

    def __init__(self, site_config: SiteConfig, sources: SiteSources) -> None:
        self.site_config = site_config
        self.sources = sources
        self.warnings = WarningCollector()
        self.pages = PageRegistry()
        self.sections = SectionRegistry()
        self.timings: dict[str, float] = {}
        self._page_url = resolve_page_url_strategy(site_config.page_url_strategy)
        self._invalid: list[InvalidPage] = []
        self._rendered: list[PageSpec] = []

    def build(self) -> BuildResult:
        """Run every build step and return the resolved pages.

        Returns
        -------
        BuildResult
            Pages in render order, all warnings, discovery results, orphaned
            content keys, and per-step timings in seconds.

        Raises
        ------
        BuildError
            If the wrapper template is missing or any page lacks a slug or a
            title in a language it has content for.
        """
        wrapper = self.site_config.wrapper
        if wrapper not in self.sources.templates:
            msg = f"Wrapper template '{wrapper}' not found."
            raise BuildError(msg)

        graph = ContentGraph(
            self.sources.templates, self.sources.content, wrapper=wrapper
        )
        with self._timed("discover"):
            discovered = graph.discover(self.site_config.render_roots)

        with self._timed("render"):
            pending = list(discovered.pages_to_render)
            while pending:
                references: list[str] = []
                for key in pending:
                    references.extend(self._render_all_languages(key))
                pending = graph.extend(references)

        if self._invalid:
            count = len(self._invalid)
            msg = f"{count} page(s) are missing a slug or title."
            raise BuildError(msg, invalid_pages=self._invalid)

        discovered = graph.result
        with self._timed("orphans"):
            orphans = self._find_orphans(discovered.visited)

        with self._timed("resolve"):
            pages = self._resolve_links()

        return BuildResult(
            pages=tuple(pages),
            warnings=self.warnings.snapshot(),
            visited=discovered.visited,
            pages_to_render=discovered.pages_to_render,
            orphan_content=orphans,
            timings=dict(self.timings),
        )

    def _timed(self, step: str) -> _StepTimer:
        return _StepTimer(self.timings, step)

    def _content_languages(self, key: str) -> list[str]:
        content = self.sources.content
        return [lang for lang in self.site_config.languages if key in content.get(lang, {})]

    def _render_all_languages(self, key: str) -> list[str]:
        """Render ``key`` in every language it has content for.

        Returns the link targets recorded while rendering.
        """
        langs = self._content_languages(key)
        if not langs:
            self.warnings.warn(
                _page_warning(
                    WarningKind.MISSING_CONTENT,
                    f"No content for page '{key}' in any language.",
                    key=key,
                )
            )
            return []
        if self.site_config.warn_on_missing_language:
            for lang in self.site_config.languages:
                if lang not in langs:
                    self.warnings.warn(
                        _page_warning(
                            WarningKind.MISSING_PAGE_LANGUAGE,
                            f"Page '{key}' has no '{lang}' content.",
                            key=key,
                            lang=lang,
                        )
                    )
        references: list[str] = []
        for lang in langs:
            references.extend(self._render_page(key, lang))
        return references

    def _missing_fields(self, key: str, entry: cabc.Mapping[str, typ.Any]) -> tuple[str, ...]:
        missing = [field for field in REQUIRED_PAGE_FIELDS if not _has_text(entry.get(field))]
        if key == self.site_config.index_page and "slug" in missing:
            missing.remove("slug")
        return tuple(missing)

    def _render_page(self, key: str, lang: str) -> list[str]:
        entry = self.sources.content[lang][key]
        template_value = entry.get("template")
        template_name = template_value if isinstance(template_value, str) else key
        template = self.sources.templates.get(template_name)
        if template is None:
            self.warnings.warn(
                _page_warning(
                    WarningKind.MISSING_TEMPLATE,
                    f"Template '{template_name}' for page '{key}' not found.",
                    key=key,
                    lang=lang,
                )
            )
            return []
        missing = self._missing_fields(key, entry)
        if missing:
            self._invalid.append(InvalidPage(content_key=key, lang=lang, missing_fields=missing))
            return []

        sink = EvaluationSink()
        constants = self.site_config.build_constants
        context = RenderContext(
            data={**constants, **entry, "lang": lang},
            lang=lang,
            strings=self.sources.strings.get(lang, {}),
            content_data=self.sources.content.get(lang, {}),
            templates=self.sources.templates,
            site_config=self.site_config,
            build_constants=constants,
            page_key=key,
            content_key=key,
            render_stack=(RenderFrame("page", key),),
            sink=sink,
        )
        body = evaluate(template, context.push("template", template_name))
        wrapper = self.site_config.wrapper
        tree = evaluate(
            self.sources.templates[wrapper], context.push("wrapper", wrapper, body=body)
        )

        slug = "" if key == self.site_config.index_page else str(entry["slug"]).strip("/")
        page = PageSpec(
            content_key=key,
            lang=lang,
            path=self._page_url(slug=slug, lang=lang, site_config=self.site_config),
            slug=slug,
            title=str(entry["title"]),
            tree=tree,
            template=template_name,
            warnings=sink.warnings.snapshot(),
        )
        self.pages.register(page)
        self._rendered.append(page)
        self._merge(sink, key=key, lang=lang)
        return list(sink.references)

    def _merge(self, sink: EvaluationSink, *, key: str, lang: str) -> None:
        """Fold one page's accumulator into the build."""
        self.warnings.extend(sink.warnings)
        for content_key, section in sink.sections:
            if self.sections.register(content_key, section):
                continue
            existing = self.sections.get(content_key)
            if existing == section:
                continue
            self.warnings.warn(
                BuildWarning(
                    kind=WarningKind.DUPLICATE_SECTION,
                    message=f"Section '{content_key}' is already registered.",
                    key=content_key,
                    page=key,
                    lang=lang,
                    details={"section_id": section.section_id},
                )
            )

    def _find_orphans(self, visited: cabc.Collection[str]) -> tuple[str, ...]:
        orphans: list[str] = []
        for entries in self.sources.content.values():
            for key in entries:
                if key not in visited and key not in orphans:
                    orphans.append(key)
        for key in orphans:
            self.warnings.warn(
                _page_warning(
                    WarningKind.ORPHAN_CONTENT,
                    f"Content '{key}' is not reachable from any render root.",
                    key=key,
                )
            )
        return tuple(orphans)

    def _resolve_links(self) -> list[PageSpec]:
        self.pages.freeze()
        self.sections.freeze()
        resolver = LinkResolver(
            self.pages,
            self.sections,
            self.site_config,
            content=self.sources.content,
        )
        resolved: list[PageSpec] = []
        for page in self._rendered:
            tree, warnings = resolver.resolve_page(page)
            self.warnings.extend(warnings)
            resolved.append(
                dc.replace(page, tree=tree, warnings=(*page.warnings, *warnings))
            )
        return resolved


class _StepTimer:
    """Context manager recording the wall time of one build step."""

    def __init__(self, timings: dict[str, float], step: str) -> None:
        self._timings = timings
        self._step = step
        self._start = 0.0

    def __enter__(self) -> _StepTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._timings[self._step] = time.perf_counter() - self._start


def build_site(site_config: SiteConfig, sources: SiteSources) -> BuildResult:
    """Build ``sources`` with ``site_config``; see :class:`SiteBuilder`."""
    return SiteBuilder(site_config, sources).build()


__all__ = ["REQUIRED_PAGE_FIELDS", "SiteBuilder", "build_site"]
