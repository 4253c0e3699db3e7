"""Typed build warnings, the warning collector, and the fatal build error.

Warnings are values, never exceptions: directive evaluation, page rendering,
and link resolution all append :class:`BuildWarning` records to a collector
and keep going. :class:`BuildError` is reserved for conditions that make a
coherent site impossible (a missing wrapper template, pages without a slug or
title) and is raised before any output is written.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import typing as typ


class WarningKind(enum.StrEnum):
    """Closed taxonomy of non-fatal build diagnostics."""

    MISSING_KEY = "missing-key"
    MISSING_PATH = "missing-path"
    MISSING_CONFIG_KEY = "missing-config-key"
    MISSING_COLLECTION_KEY = "missing-collection-key"
    UNSUPPORTED_EACH_SOURCE = "unsupported-each-source"
    INVALID_ORDER_BY = "invalid-order-by"
    INVALID_COMPARISON = "invalid-comparison"
    MISSING_PAGE_CONTENT = "missing-page-content"
    MISSING_RENDER_TEMPLATE = "missing-render-template"
    INVALID_RENDER_SPEC = "invalid-render-spec"
    WITH_DATA_NOT_FOUND = "with-data-not-found"
    MISSING_INCLUDE_TEMPLATE = "missing-include-template"
    CIRCULAR_TEMPLATE = "circular-template"
    MISSING_BODY = "missing-body"
    INVALID_TRANSLATION_KEY = "invalid-translation-key"
    MISSING_TRANSLATION = "missing-translation"
    INVALID_INTERPOLATION = "invalid-interpolation"
    MISSING_INTERPOLATION = "missing-interpolation"
    UNKNOWN_DIRECTIVE = "unknown-directive"
    MISSING_TEMPLATE = "missing-template"
    MISSING_CONTENT = "missing-content"
    MISSING_PAGE_LANGUAGE = "missing-page-language"
    DUPLICATE_SECTION = "duplicate-section"
    ORPHAN_CONTENT = "orphan-content"
    BROKEN_LINK = "broken-link"
    AMBIGUOUS_LINK = "ambiguous-link"


@dc.dataclass(frozen=True, slots=True)
class RenderFrame:
    """One entry of the render stack: what was being rendered, and by name."""

    kind: str
    name: str
    content_key: str | None = dc.field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"


@dc.dataclass(frozen=True, slots=True)
class BuildWarning:
    """A non-fatal diagnostic with enough context to act on.

    Attributes
    ----------
    kind : WarningKind
        Tag identifying the problem.
    message : str
        Human-readable summary.
    directive : str | None
        Directive that produced the warning, when evaluation did.
    key : str | None
        Data key, content key, template name, or link target involved.
    template : str | None
        Innermost template on the render stack.
    page : str | None
        Content key of the page being rendered.
    lang : str | None
        Language of the page being rendered.
    render_stack : tuple[RenderFrame, ...]
        Frames from the page down to the failing directive.
    details : Mapping[str, Any]
        Kind-specific extras (paths, specs, values).
    """

    kind: WarningKind
    message: str
    directive: str | None = None
    key: str | None = None
    template: str | None = None
    page: str | None = None
    lang: str | None = None
    render_stack: tuple[RenderFrame, ...] = ()
    details: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)

    @property
    def location(self) -> str:
        """Return the render stack as ``page:about > template:page``."""
        return " > ".join(str(frame) for frame in self.render_stack)


class WarningCollector:
    """Append-only accumulator of build warnings."""

    def __init__(self, warnings: cabc.Iterable[BuildWarning] = ()) -> None:
        self._warnings: list[BuildWarning] = list(warnings)

    def warn(self, warning: BuildWarning) -> None:
        """Record a single warning."""
        self._warnings.append(warning)

    def extend(self, warnings: cabc.Iterable[BuildWarning]) -> None:
        """Record several warnings, preserving their order."""
        self._warnings.extend(warnings)

    def by_kind(self) -> dict[WarningKind, list[BuildWarning]]:
        """Group warnings by kind in first-seen order."""
        grouped: dict[WarningKind, list[BuildWarning]] = {}
        for warning in self._warnings:
            grouped.setdefault(warning.kind, []).append(warning)
        return grouped

    def of_kind(self, kind: WarningKind) -> list[BuildWarning]:
        """Return the warnings tagged with ``kind``."""
        return [warning for warning in self._warnings if warning.kind is kind]

    def snapshot(self) -> tuple[BuildWarning, ...]:
        """Return an immutable copy of the recorded warnings."""
        return tuple(self._warnings)

    def __iter__(self) -> cabc.Iterator[BuildWarning]:
        return iter(tuple(self._warnings))

    def __len__(self) -> int:
        return len(self._warnings)

    def __bool__(self) -> bool:
        return bool(self._warnings)


@dc.dataclass(frozen=True, slots=True)
class InvalidPage:
    """A page that failed directive-independent validation."""

    content_key: str
    lang: str
    missing_fields: tuple[str, ...]

    def __str__(self) -> str:
        fields = ", ".join(self.missing_fields)
        return f"{self.content_key} ({self.lang}) [missing {fields}]"


class BuildError(RuntimeError):
    """Raised when the build cannot produce a coherent site."""

    def __init__(
        self, message: str, *, invalid_pages: cabc.Sequence[InvalidPage] = ()
    ) -> None:
        super().__init__(message)
        self.invalid_pages = tuple(invalid_pages)


__all__ = [
    "BuildError",
    "BuildWarning",
    "InvalidPage",
    "RenderFrame",
    "WarningCollector",
    "WarningKind",
]
