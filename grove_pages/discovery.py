"""Discover which content keys are reachable and which become pages.

Discovery runs over an explicit worklist seeded with the render roots and the
wrapper template. Every visited key has its templates scanned (once per
template) for literal ``link``, ``include`` and ``render`` references:

- link targets become pages and are visited,
- include and render targets are visited but do not become pages.

Targets that exist neither as a template nor as content in any language are
skipped here and reported later as broken links or render errors.

Examples
--------
>>> from grove_pages.nodes import parse_template
>>> templates = {
...     "home": parse_template(["main", ["@link", "about"]]),
...     "about": parse_template(["p", "About"]),
...     "base": parse_template(["html", ["@body"]]),
... }
>>> graph = ContentGraph(templates, {}, wrapper="base")
>>> result = graph.discover(["home"])
>>> result.pages_to_render
('home', 'about')
>>> sorted(result.visited)
['about', 'base', 'home']
"""

from __future__ import annotations

import collections
import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ._constants import CONTENT_KEY_FIELD
from .nodes import Directive, DirectiveKind, walk

ContentStore = cabc.Mapping[str, cabc.Mapping[str, cabc.Mapping[str, typ.Any]]]


@dc.dataclass(frozen=True, slots=True)
class TemplateReferences:
    """Literal references found in one template."""

    links: tuple[str, ...] = ()
    includes: tuple[str, ...] = ()
    renders: tuple[str, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Keys reached from the render roots, in discovery order."""

    visited: tuple[str, ...]
    pages_to_render: tuple[str, ...]


def _append(keys: list[str], key: object) -> None:
    if isinstance(key, str) and key and key not in keys:
        keys.append(key)


def scan_references(template: object) -> TemplateReferences:
    """Collect the literal link, include, and render targets of ``template``."""
    links: list[str] = []
    includes: list[str] = []
    renders: list[str] = []
    for node in walk(template):
        if not isinstance(node, Directive) or not node.args:
            continue
        spec = node.args[0]
        match node.kind:
            case DirectiveKind.LINK:
                if isinstance(spec, cabc.Mapping):
                    if spec.get("nav") is None:
                        _append(links, spec.get(CONTENT_KEY_FIELD))
                else:
                    _append(links, spec)
            case DirectiveKind.INCLUDE:
                _append(includes, spec)
            case DirectiveKind.RENDER:
                if isinstance(spec, cabc.Mapping):
                    _append(renders, spec.get("data"))
                    _append(renders, spec.get("template"))
                else:
                    _append(renders, spec)
            case _:
                pass
    return TemplateReferences(tuple(links), tuple(includes), tuple(renders))


class ContentGraph:
    """Worklist-driven reachability over templates and content."""

    def __init__(
        self,
        templates: cabc.Mapping[str, typ.Any],
        content: ContentStore,
        *,
        wrapper: str | None = None,
    ) -> None:
        """Prepare discovery over the loaded sources.

        Parameters
        ----------
        templates : Mapping[str, Any]
            Parsed templates keyed by name.
        content : Mapping[str, Mapping[str, Mapping[str, Any]]]
            Content entries keyed by language, then content key.
        wrapper : str, optional
            Template every page is wrapped in; visited but never a page.
        """
        self.templates = templates
        self.content = content
        self.wrapper = wrapper
        self._cache: dict[str, TemplateReferences] = {}
        self._visited: dict[str, None] = {}
        self._pages: dict[str, None] = {}
        self._worklist: collections.deque[str] = collections.deque()

    @property
    def result(self) -> DiscoveryResult:
        """Return the visited keys and pages found so far."""
        return DiscoveryResult(
            visited=tuple(self._visited), pages_to_render=tuple(self._pages)
        )

    def exists(self, key: str) -> bool:
        """Return True when ``key`` names a template or content in any language."""
        if key in self.templates:
            return True
        return any(key in entries for entries in self.content.values())

    def references(self, template_name: str) -> TemplateReferences:
        """Return the cached references of ``template_name``."""
        cached = self._cache.get(template_name)
        if cached is None:
            cached = scan_references(self.templates.get(template_name))
            self._cache[template_name] = cached
        return cached

    def templates_for(self, key: str) -> list[str]:
        """Return the templates used by ``key``: its own and its content's."""
        names: list[str] = []
        if key in self.templates:
            names.append(key)
        for entries in self.content.values():
            entry = entries.get(key)
            template = entry.get("template") if entry is not None else None
            if isinstance(template, str) and template in self.templates:
                _append(names, template)
        return names

    def discover(self, roots: cabc.Iterable[str]) -> DiscoveryResult:
        """Run discovery from ``roots`` and the wrapper until the worklist drains."""
        for root in roots:
            self._add_page(root)
        if self.wrapper is not None:
            self._worklist.append(self.wrapper)
        self._drain()
        return self.result

    def extend(self, keys: cabc.Iterable[str]) -> list[str]:
        """Add link targets found while rendering and return the new pages.

        Targets that do not exist, that are already pages, or that name the
        wrapper are ignored.
        """
        before = len(self._pages)
        for key in keys:
            if key != self.wrapper and key not in self._pages and self.exists(key):
                self._add_page(key)
        self._drain()
        return list(self._pages)[before:]

    def _add_page(self, key: str) -> None:
        self._pages[key] = None
        self._worklist.append(key)

    def _drain(self) -> None:
        while self._worklist:
            key = self._worklist.popleft()
            if key in self._visited:
                continue
            self._visited[key] = None
            for name in self.templates_for(key):
                refs = self.references(name)
                for target in refs.links:
                    if target == self.wrapper or not self.exists(target):
                        continue
                    if target not in self._pages:
                        self._pages[target] = None
                    self._worklist.append(target)
                for target in refs.includes:
                    if target in self.templates:
                        self._worklist.append(target)
                for target in refs.renders:
                    if self.exists(target):
                        self._worklist.append(target)


__all__ = [
    "ContentGraph",
    "DiscoveryResult",
    "TemplateReferences",
    "scan_references",
]
