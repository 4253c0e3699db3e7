"""Typed nodes for template trees and rendered page trees.

Templates arrive as hiccup-style nested lists (usually straight out of YAML)
and are parsed once into the immutable node variants defined here. The same
variants, plus :class:`RawHtml` and :class:`LinkPlaceholder`, make up the
rendered trees that the evaluator produces and the resolver rewrites.

Raw syntax
----------
- ``["div.card#main", {"lang": "en"}, "text", ...]`` is a markup element; the
  optional mapping after the tag holds attributes and the ``.class``/``#id``
  shorthand is expanded into them.
- ``["@get", "title"]`` is a directive; arguments that carry data (keys,
  paths, specs, option values) are parsed in *data mode*, where plain lists
  stay lists and only ``@``-headed lists become directives.
- ``[["h1", "a"], ["p", "b"]]`` (a list whose head is not a string) is a
  fragment of sibling nodes.
- The bare string ``"@all"`` in data mode is the all-content marker.

Examples
--------
>>> parse_template(["p.lede", "Hello"])
Element(tag='p', attrs={'class': 'lede'}, children=('Hello',))
>>> parse_template(["@get", "title"])
Directive(name='get', args=('title',))
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import re
import typing as typ

from ._constants import ALL_CONTENT_MARKER, DIRECTIVE_PREFIX


class DirectiveKind(enum.StrEnum):
    """Closed set of directives understood by the evaluator."""

    GET = "get"
    GET_IN = "get-in"
    IF = "if"
    EACH = "each"
    LINK = "link"
    RENDER = "render"
    WITH = "with"
    INCLUDE = "include"
    BODY = "body"
    T = "t"
    SITE_CONFIG = "site-config"


class PlaceholderKind(enum.StrEnum):
    """Which part of a link a placeholder stands for."""

    HREF = "href"
    TITLE = "title"


class NavTarget(enum.StrEnum):
    """Relative navigation targets understood by ``link``."""

    PARENT = "parent"
    ROOT = "root"


class Marker(enum.Enum):
    """Special values recognized in data mode."""

    ALL_CONTENT = ALL_CONTENT_MARKER


ALL_CONTENT = Marker.ALL_CONTENT

COMPARISON_OPERATORS = frozenset({"=", "!=", "<", ">", "<=", ">="})
EACH_OPTIONS = frozenset({"where", "order-by", "limit", "group-by"})
EACH_OPTION_ALIASES = {"order_by": "order-by", "group_by": "group-by"}


@dc.dataclass(frozen=True, slots=True)
class Element:
    """A markup element with evaluated-or-not attributes and children."""

    tag: str
    attrs: dict[str, typ.Any] = dc.field(default_factory=dict)
    children: tuple[typ.Any, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class Directive:
    """A directive node.

    ``args`` holds the parsed arguments in source order. ``each`` is the one
    exception: its arguments are normalized to
    ``(source, options_mapping, *templates)`` at parse time.
    """

    name: str
    args: tuple[typ.Any, ...] = ()

    @property
    def kind(self) -> DirectiveKind | None:
        """Return the directive kind, or ``None`` for unknown names."""
        try:
            return DirectiveKind(self.name)
        except ValueError:
            return None

    def describe(self) -> str:
        """Return a short textual form used by inline markers."""
        parts = [f"{DIRECTIVE_PREFIX}{self.name}"]
        parts.extend(_describe_arg(arg) for arg in self.args[:2])
        if len(self.args) > 2:  # noqa: PLR2004
            parts.append("...")
        return "[" + " ".join(parts) + "]"


@dc.dataclass(frozen=True, slots=True)
class Comparison:
    """A comparison form used as an ``if`` condition."""

    op: str
    left: typ.Any
    right: typ.Any


@dc.dataclass(frozen=True, slots=True)
class Fragment:
    """A sequence of sibling nodes that is spliced into its parent."""

    children: tuple[typ.Any, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class RawHtml:
    """Markup that the serializer emits without escaping."""

    html: str


@dc.dataclass(frozen=True, slots=True)
class LinkTarget:
    """What a link points at: a content key, a nav target, or a language."""

    content_key: str | None = None
    nav: NavTarget | None = None
    lang: str | None = None

    def describe(self) -> str:
        """Return the textual form used for fallbacks and warnings."""
        if self.nav is not None:
            return f"nav:{self.nav}"
        if self.content_key is not None:
            return self.content_key
        return f"lang:{self.lang}"


@dc.dataclass(frozen=True, slots=True)
class LinkPlaceholder:
    """Deferred link value, resolved once every page is known."""

    kind: PlaceholderKind
    target: LinkTarget


_TAG_PATTERN = re.compile(r"([.#])([^.#]+)")


def _describe_arg(arg: object) -> str:
    if isinstance(arg, Directive):
        return arg.describe()
    if isinstance(arg, Marker):
        return arg.value
    return str(arg)


def is_directive_head(value: object) -> bool:
    """Return True when ``value`` names a directive in raw syntax."""
    return (
        isinstance(value, str)
        and value.startswith(DIRECTIVE_PREFIX)
        and len(value) > len(DIRECTIVE_PREFIX)
    )


def parse_template(raw: object) -> typ.Any:  # noqa: ANN401 - nodes are open-ended
    """Parse raw template syntax in template mode.

    Parameters
    ----------
    raw : object
        Nested lists, mappings, and scalars, or already parsed nodes.

    Returns
    -------
    Any
        The typed node tree. Scalars are returned unchanged.
    """
    match raw:
        case Element() | Directive() | Fragment() | RawHtml() | LinkPlaceholder():
            return raw
        case str() | int() | float() | bool() | None:
            return raw
        case cabc.Mapping():
            return {key: parse_data(value) for key, value in raw.items()}
        case list() | tuple():
            return _parse_sequence(list(raw))
        case _:
            return raw


def parse_data(raw: object) -> typ.Any:  # noqa: ANN401 - nodes are open-ended
    """Parse raw syntax in data mode, where plain lists stay lists."""
    match raw:
        case str() if raw == ALL_CONTENT_MARKER:
            return ALL_CONTENT
        case cabc.Mapping():
            return {key: parse_data(value) for key, value in raw.items()}
        case list() | tuple():
            items = list(raw)
            if items and is_directive_head(items[0]):
                return _parse_directive(items[0], items[1:])
            return [parse_data(item) for item in items]
        case _:
            return raw


def _parse_sequence(items: list[typ.Any]) -> typ.Any:  # noqa: ANN401
    if not items:
        return Fragment()
    head = items[0]
    if is_directive_head(head):
        return _parse_directive(head, items[1:])
    if isinstance(head, str):
        return _parse_element(head, items[1:])
    return Fragment(_parse_children(items))


def _parse_children(items: cabc.Iterable[object]) -> tuple[typ.Any, ...]:
    children = (parse_template(item) for item in items)
    return tuple(child for child in children if child is not None)


def _parse_element(tag_spec: str, rest: list[typ.Any]) -> Element:
    attrs: dict[str, typ.Any] = {}
    if rest and isinstance(rest[0], cabc.Mapping):
        attrs = {key: parse_data(value) for key, value in rest[0].items()}
        rest = rest[1:]
    tag, shorthand = _split_tag(tag_spec)
    if shorthand.get("class"):
        extra = attrs.get("class")
        attrs["class"] = f"{shorthand['class']} {extra}" if extra else shorthand["class"]
    if shorthand.get("id") and "id" not in attrs:
        attrs["id"] = shorthand["id"]
    return Element(tag=tag, attrs=attrs, children=_parse_children(rest))


def _split_tag(tag_spec: str) -> tuple[str, dict[str, str]]:
    """Split ``div.a.b#x`` into ``("div", {"class": "a b", "id": "x"})``."""
    first = min(
        (idx for idx in (tag_spec.find("."), tag_spec.find("#")) if idx > 0),
        default=len(tag_spec),
    )
    tag = tag_spec[:first]
    classes: list[str] = []
    element_id = ""
    for marker, value in _TAG_PATTERN.findall(tag_spec[first:]):
        if marker == ".":
            classes.append(value)
        else:
            element_id = value
    shorthand: dict[str, str] = {}
    if classes:
        shorthand["class"] = " ".join(classes)
    if element_id:
        shorthand["id"] = element_id
    return tag, shorthand


def split_each_args(
    raw_args: list[typ.Any],
) -> tuple[list[tuple[str, typ.Any]], list[typ.Any]]:
    """Split the arguments after an ``each`` source into options and templates.

    An option is one of ``where``, ``order-by``, ``limit`` or ``group-by``
    followed by its value. ``order_by`` and ``group_by`` are accepted and
    returned under the hyphenated name. The first argument that is not an
    option name starts the template forms.
    """
    options: list[tuple[str, typ.Any]] = []
    index = 0
    while (
        index + 1 < len(raw_args)
        and isinstance(raw_args[index], str)
        and EACH_OPTION_ALIASES.get(raw_args[index], raw_args[index]) in EACH_OPTIONS
    ):
        name = EACH_OPTION_ALIASES.get(raw_args[index], raw_args[index])
        options.append((name, raw_args[index + 1]))
        index += 2
    return options, raw_args[index:]


def _parse_directive(head: str, raw_args: list[typ.Any]) -> Directive:
    name = head[len(DIRECTIVE_PREFIX) :]
    try:
        kind = DirectiveKind(name)
    except ValueError:
        return Directive(name, tuple(parse_data(arg) for arg in raw_args))

    match kind:
        case DirectiveKind.EACH:
            source = parse_data(raw_args[0]) if raw_args else None
            options, templates = split_each_args(raw_args[1:])
            parsed_options = {key: parse_data(value) for key, value in options}
            return Directive(
                name, (source, parsed_options, *_parse_children(templates))
            )
        case DirectiveKind.IF:
            args = [_parse_condition(raw_args[0])] if raw_args else []
            args.extend(parse_template(branch) for branch in raw_args[1:3])
            return Directive(name, tuple(args))
        case DirectiveKind.GET | DirectiveKind.GET_IN:
            args = [parse_data(arg) for arg in raw_args[:1]]
            args.extend(parse_template(arg) for arg in raw_args[1:2])
            return Directive(name, tuple(args))
        case DirectiveKind.LINK | DirectiveKind.WITH:
            args = [parse_data(arg) for arg in raw_args[:1]]
            args.extend(_parse_children(raw_args[1:]))
            return Directive(name, tuple(args))
        case _:
            return Directive(name, tuple(parse_data(arg) for arg in raw_args))


def _parse_condition(raw: object) -> typ.Any:  # noqa: ANN401
    if (
        isinstance(raw, list | tuple)
        and len(raw) == 3  # noqa: PLR2004
        and isinstance(raw[0], str)
        and raw[0] in COMPARISON_OPERATORS
    ):
        return Comparison(raw[0], parse_data(raw[1]), parse_data(raw[2]))
    return parse_data(raw)


def walk(node: object) -> cabc.Iterator[typ.Any]:
    """Yield ``node`` and every node nested inside it, depth first."""
    stack: list[object] = [node]
    while stack:
        current = stack.pop()
        yield current
        match current:
            case Element(attrs=attrs, children=children):
                stack.extend(reversed(children))
                stack.extend(reversed(list(attrs.values())))
            case Directive(args=args) | Fragment(children=args):
                stack.extend(reversed(args))
            case Comparison(left=left, right=right):
                stack.extend((right, left))
            case cabc.Mapping():
                stack.extend(reversed(list(current.values())))
            case list() | tuple():
                stack.extend(reversed(current))
            case _:
                pass


__all__ = [
    "ALL_CONTENT",
    "COMPARISON_OPERATORS",
    "EACH_OPTIONS",
    "EACH_OPTION_ALIASES",
    "Comparison",
    "Directive",
    "DirectiveKind",
    "Element",
    "Fragment",
    "LinkPlaceholder",
    "LinkTarget",
    "Marker",
    "NavTarget",
    "PlaceholderKind",
    "RawHtml",
    "is_directive_head",
    "parse_data",
    "parse_template",
    "split_each_args",
    "walk",
]
