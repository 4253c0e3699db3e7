"""Render context and the per-page side channel used during evaluation.

Every directive is evaluated against an immutable :class:`RenderContext`.
Scoped changes (``with``, ``each`` iterations, ``include`` and ``render``
frames) derive a new context with :func:`dataclasses.replace`; nothing is
mutated in place except the :class:`EvaluationSink`, which collects the
warnings, references, and sections produced while one page is rendered and is
merged into the build once the page finishes.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from .diagnostics import BuildWarning, RenderFrame, WarningCollector, WarningKind

if typ.TYPE_CHECKING:
    from .config import SiteConfig

TEMPLATE_FRAME_KINDS = frozenset({"template", "wrapper", "include", "render"})


@dc.dataclass(frozen=True, slots=True)
class Section:
    """A linkable region of a page created by ``render`` with a section id."""

    section_id: str
    parent_content_key: str | None


@dc.dataclass(slots=True)
class EvaluationSink:
    """Mutable accumulator for everything a page evaluation reports.

    Attributes
    ----------
    warnings : WarningCollector
        Warnings raised while the page was evaluated.
    references : list[str]
        Content keys reached through ``link`` directives, in first-seen order.
    sections : list[tuple[str, Section]]
        Sections registered by ``render``, keyed by the rendered content key.
    """

    warnings: WarningCollector = dc.field(default_factory=WarningCollector)
    references: list[str] = dc.field(default_factory=list)
    sections: list[tuple[str, Section]] = dc.field(default_factory=list)

    def warn(self, warning: BuildWarning) -> None:
        """Record ``warning``."""
        self.warnings.warn(warning)

    def add_reference(self, content_key: str) -> None:
        """Record a link target, ignoring repeats."""
        if content_key not in self.references:
            self.references.append(content_key)

    def add_section(self, content_key: str, section: Section) -> None:
        """Record a section created for ``content_key``."""
        self.sections.append((content_key, section))


@dc.dataclass(frozen=True, slots=True)
class RenderContext:
    """Everything a directive can read while it is evaluated.

    Attributes
    ----------
    data : Mapping[str, Any]
        Values visible to ``get``, ``each``, ``with`` and friends.
    lang : str
        Language being rendered.
    strings : Mapping[str, Any]
        Translation strings for ``lang``.
    content_data : Mapping[str, Mapping[str, Any]]
        All content entries for ``lang`` keyed by content key.
    templates : Mapping[str, Any]
        Parsed templates keyed by name.
    site_config : SiteConfig | None
        Site configuration, read by ``site-config``.
    build_constants : Mapping[str, Any]
        Values merged under the data of every rendered content entry.
    page_key : str | None
        Content key of the page being rendered.
    content_key : str | None
        Content key whose data is currently in scope.
    render_stack : tuple[RenderFrame, ...]
        Frames from the page down to the current directive.
    body : Any
        Rendered page tree exposed to the wrapper through ``body``.
    sink : EvaluationSink
        Side channel for warnings, references, and sections.
    """

    data: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    lang: str = "en"
    strings: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    content_data: cabc.Mapping[str, cabc.Mapping[str, typ.Any]] = dc.field(
        default_factory=dict
    )
    templates: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    site_config: SiteConfig | None = None
    build_constants: cabc.Mapping[str, typ.Any] = dc.field(default_factory=dict)
    page_key: str | None = None
    content_key: str | None = None
    render_stack: tuple[RenderFrame, ...] = ()
    body: typ.Any = None
    sink: EvaluationSink = dc.field(default_factory=EvaluationSink)

    @property
    def current_template(self) -> str | None:
        """Return the innermost template on the render stack."""
        for frame in reversed(self.render_stack):
            if frame.kind in TEMPLATE_FRAME_KINDS:
                return frame.name
        return None

    def with_data(self, data: cabc.Mapping[str, typ.Any]) -> RenderContext:
        """Return a copy of the context that sees ``data``."""
        return dc.replace(self, data=data)

    def merged(self, extra: cabc.Mapping[str, typ.Any]) -> RenderContext:
        """Return a copy whose data is the current data overlaid with ``extra``."""
        return dc.replace(self, data={**self.data, **extra})

    def push(self, kind: str, name: str, **changes: typ.Any) -> RenderContext:  # noqa: ANN401
        """Return a copy with a new render frame and any other field changes."""
        frame = RenderFrame(
            kind=kind, name=name, content_key=changes.get("content_key", self.content_key)
        )
        return dc.replace(self, render_stack=(*self.render_stack, frame), **changes)

    def is_rendering(self, template: str, content_key: str | None) -> bool:
        """Return True when ``template`` is already on the stack for ``content_key``.

        Entering it again with the same content would never terminate.
        """
        return any(
            frame.kind in TEMPLATE_FRAME_KINDS
            and frame.name == template
            and frame.content_key == content_key
            for frame in self.render_stack
        )

    def warn(
        self,
        kind: WarningKind,
        message: str,
        *,
        directive: str | None = None,
        key: object = None,
        details: cabc.Mapping[str, typ.Any] | None = None,
    ) -> BuildWarning:
        """Record a warning located at the current render position."""
        warning = BuildWarning(
            kind=kind,
            message=message,
            directive=directive,
            key=None if key is None else str(key),
            template=self.current_template,
            page=self.page_key,
            lang=self.lang,
            render_stack=self.render_stack,
            details=dict(details or {}),
        )
        self.sink.warn(warning)
        return warning

    def add_reference(self, content_key: str) -> None:
        """Record a content key reached by a link."""
        self.sink.add_reference(content_key)

    def add_section(self, content_key: str, section_id: str) -> None:
        """Record a section of the current page for ``content_key``."""
        self.sink.add_section(
            content_key,
            Section(section_id=section_id, parent_content_key=self.page_key),
        )


__all__ = ["EvaluationSink", "RenderContext", "Section"]
