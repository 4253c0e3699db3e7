"""Tree-walking evaluator for template directives.

:func:`evaluate` walks a parsed template and replaces every directive with the
nodes it stands for. Markup elements and fragments are rebuilt around their
evaluated attributes and children, so a tree without directives evaluates to
an equal tree. Directive problems never raise: each one records a
:class:`~grove_pages.diagnostics.BuildWarning` through the context and leaves a
visible marker in the output instead.

Examples
--------
>>> from grove_pages.context import RenderContext
>>> from grove_pages.nodes import parse_template
>>> tree = parse_template(["h1", ["@get", "title"]])
>>> evaluate(tree, RenderContext(data={"title": "About"}))
Element(tag='h1', attrs={}, children=('About',))
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import operator
import re
import typing as typ

from ._constants import (
    CONTENT_KEY_FIELD,
    EACH_GROUP_ITEMS,
    EACH_GROUP_KEY,
    EACH_INDEX,
    EACH_VALUE,
    HIERARCHY_SEPARATOR,
    LINK_HREF,
    LINK_TITLE,
    MISSING_TRANSLATION_TEMPLATE,
    RAW_HTML_NAMESPACE,
)
from .diagnostics import WarningKind
from .nodes import (
    Comparison,
    Directive,
    DirectiveKind,
    Element,
    Fragment,
    LinkPlaceholder,
    LinkTarget,
    Marker,
    NavTarget,
    PlaceholderKind,
    RawHtml,
)
from .query import Group, field_value, map_rows, select

if typ.TYPE_CHECKING:
    from .context import RenderContext

Handler = cabc.Callable[[Directive, "RenderContext"], typ.Any]
Path = tuple[str | int, ...]

INTERPOLATION_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")
ORDERING_OPERATORS: dict[str, cabc.Callable[[typ.Any, typ.Any], typ.Any]] = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


def missing_marker(text: str) -> Element:
    """Return the inline marker left where a value could not be produced."""
    return Element("span", {"class": "missing-content"}, (text,))


def render_error(kind: WarningKind, text: str) -> Element:
    """Return the block marker left where a ``render`` directive failed."""
    return Element("div", {"class": "render-error", "data-error": kind.value}, (text,))


def is_truthy(value: object) -> bool:
    """Return the truthiness used by ``if``: only ``None`` and ``False`` are false."""
    return value is not None and value is not False


def evaluate(node: object, context: RenderContext) -> typ.Any:  # noqa: ANN401
    """Evaluate ``node`` against ``context``.

    Parameters
    ----------
    node : object
        A parsed template node, a data value, or a scalar.
    context : RenderContext
        Data, language, stores, and the side channel for this evaluation.

    Returns
    -------
    Any
        The evaluated node. Directives may evaluate to ``None`` (nothing) or
        to a :class:`~grove_pages.nodes.Fragment` that parents splice.
    """
    match node:
        case Directive():
            return _evaluate_directive(node, context)
        case Element(tag=tag, attrs=attrs, children=children):
            evaluated = {name: evaluate(value, context) for name, value in attrs.items()}
            return Element(tag, evaluated, evaluate_children(children, context))
        case Fragment(children=children):
            return Fragment(evaluate_children(children, context))
        case Comparison():
            return _compare(node, context)
        case cabc.Mapping():
            return {key: evaluate(value, context) for key, value in node.items()}
        case list():
            return [evaluate(item, context) for item in node]
        case _:
            return node


def evaluate_children(
    children: cabc.Iterable[object], context: RenderContext
) -> tuple[typ.Any, ...]:
    """Evaluate sibling nodes, dropping ``None`` and splicing fragments."""
    results: list[typ.Any] = []
    for child in children:
        value = evaluate(child, context)
        match value:
            case None:
                continue
            case Fragment(children=nested):
                results.extend(nested)
            case _:
                results.append(value)
    return tuple(results)


def _evaluate_directive(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    kind = directive.kind
    if kind is None:
        context.warn(
            WarningKind.UNKNOWN_DIRECTIVE,
            f"Unknown directive '{directive.name}'.",
            directive=directive.name,
        )
        return missing_marker(directive.describe())
    return HANDLERS[kind](directive, context)


def _lookup(data: object, key: object) -> typ.Any:  # noqa: ANN401
    if not isinstance(data, cabc.Mapping) or not isinstance(key, cabc.Hashable):
        return None
    return data.get(key)


def _as_path(value: object) -> Path | None:
    match value:
        case str():
            return (value,)
        case list() | tuple() if all(
            isinstance(part, str | int) and not isinstance(part, bool) for part in value
        ):
            return tuple(value)
        case _:
            return None


def _describe_path(path: cabc.Iterable[object]) -> str:
    return HIERARCHY_SEPARATOR.join(str(part) for part in path)


def _raw_html(key: object, value: object) -> typ.Any:  # noqa: ANN401
    if (
        isinstance(key, str)
        and key.startswith(RAW_HTML_NAMESPACE)
        and isinstance(value, str)
    ):
        return RawHtml(value)
    return value


def _peek(node: object, context: RenderContext) -> typ.Any:  # noqa: ANN401
    """Evaluate ``node``, reading a default-less ``get``/``get-in`` silently.

    Conditions and collection sources treat a missing key as ``None`` rather
    than as an error, so they skip the warning and marker.
    """
    if isinstance(node, Directive) and len(node.args) == 1:
        if node.kind is DirectiveKind.GET:
            key = evaluate(node.args[0], context)
            return _raw_html(key, _lookup(context.data, key))
        if node.kind is DirectiveKind.GET_IN:
            path = _as_path(evaluate(node.args[0], context))
            return None if path is None else field_value(context.data, path)
    return evaluate(node, context)


def _get(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    key = evaluate(args[0], context) if args else None
    value = _lookup(context.data, key)
    if value is not None:
        return _raw_html(key, value)
    if len(args) > 1:
        return evaluate(args[1], context)
    context.warn(
        WarningKind.MISSING_KEY,
        f"Key '{key}' not found in data.",
        directive=directive.name,
        key=key,
    )
    return missing_marker(f"[{key}]")


def _get_in(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    raw_path = evaluate(args[0], context) if args else None
    path = _as_path(raw_path)
    value = None if path is None else field_value(context.data, path)
    if value is not None:
        return _raw_html(path[-1] if path else None, value)
    if len(args) > 1:
        return evaluate(args[1], context)
    label = _describe_path(path) if path is not None else str(raw_path)
    context.warn(
        WarningKind.MISSING_PATH,
        f"Path '{label}' not found in data.",
        directive=directive.name,
        key=label,
        details={"path": list(path or ())},
    )
    return missing_marker(f"[{label}]")


def _compare(comparison: Comparison, context: RenderContext) -> bool:
    left = _peek(comparison.left, context)
    right = _peek(comparison.right, context)
    match comparison.op:
        case "=":
            return left == right
        case "!=":
            return left != right
        case op:
            try:
                return bool(ORDERING_OPERATORS[op](left, right))
            except (TypeError, KeyError):
                context.warn(
                    WarningKind.INVALID_COMPARISON,
                    f"Cannot compare {left!r} {op} {right!r}.",
                    directive=DirectiveKind.IF.value,
                    details={"op": op, "left": repr(left), "right": repr(right)},
                )
                return False


def _if(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    condition = args[0] if args else None
    if isinstance(condition, str) and condition:
        # A bare key names a data field.
        value = _lookup(context.data, condition)
    else:
        value = _peek(condition, context)
    branch = 1 if is_truthy(value) else 2
    if len(args) > branch:
        return evaluate(args[branch], context)
    return None


def _each_source(
    source: object, directive: Directive, context: RenderContext
) -> typ.Any:  # noqa: ANN401
    match source:
        case Marker.ALL_CONTENT:
            return [
                {**entry, CONTENT_KEY_FIELD: key}
                for key, entry in context.content_data.items()
            ]
        case str():
            value = _lookup(context.data, source)
            label = source
        case Directive():
            value = _peek(source, context)
            label = source.describe()
        case _:
            return evaluate(source, context)
    if value is None:
        context.warn(
            WarningKind.MISSING_COLLECTION_KEY,
            f"Collection '{label}' not found in data.",
            directive=directive.name,
            key=label,
        )
    return value


def _bindings(item: object, index: int) -> dict[str, typ.Any]:
    match item:
        case Group(key=key, items=items):
            return {EACH_GROUP_KEY: key, EACH_GROUP_ITEMS: list(items), EACH_INDEX: index}
        case cabc.Mapping():
            return {EACH_VALUE: item, **item, EACH_INDEX: index}
        case _:
            return {EACH_VALUE: item, EACH_INDEX: index}


def _each(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    source = args[0] if args else None
    raw_options = args[1] if len(args) > 1 and isinstance(args[1], cabc.Mapping) else {}
    templates = args[2:]

    collection = _each_source(source, directive, context)
    if collection is None:
        return None
    match collection:
        case cabc.Mapping():
            rows = map_rows(collection)
            is_map = True
        case list() | tuple():
            rows = list(collection)
            is_map = False
        case _:
            context.warn(
                WarningKind.UNSUPPORTED_EACH_SOURCE,
                f"Cannot iterate over {type(collection).__name__}.",
                directive=directive.name,
                key=source if isinstance(source, str) else None,
            )
            return None

    options = {name: evaluate(value, context) for name, value in raw_options.items()}
    where = options.get("where")
    limit = options.get("limit")
    order_by = options.get("order-by")

    def _invalid_order(message: str) -> None:
        context.warn(
            WarningKind.INVALID_ORDER_BY,
            message,
            directive=directive.name,
            details={"order_by": repr(order_by)},
        )

    selected = select(
        rows,
        where=where if isinstance(where, cabc.Mapping) and not is_map else None,
        order_by=order_by,
        limit=limit if isinstance(limit, int) and not isinstance(limit, bool) else None,
        group_by=options.get("group-by"),
        on_invalid_order=_invalid_order,
    )

    results: list[typ.Any] = []
    for index, item in enumerate(selected):
        scoped = context.merged(_bindings(item, index))
        results.extend(evaluate_children(templates, scoped))
    return Fragment(tuple(results))


def _nav_target(value: object) -> NavTarget | None:
    try:
        return NavTarget(value)
    except ValueError:
        return None


def _link_target(spec: object, context: RenderContext) -> LinkTarget:
    match spec:
        case str() if spec:
            return LinkTarget(content_key=spec, lang=context.lang)
        case cabc.Mapping():
            key = spec.get(CONTENT_KEY_FIELD)
            nav = _nav_target(spec.get("nav"))
            lang = spec.get("lang")
            if key is None and nav is None:
                if lang and "nav" not in spec:
                    return LinkTarget(lang=str(lang))
                return LinkTarget(content_key=str(dict(spec)), lang=context.lang)
            return LinkTarget(
                content_key=None if key is None else str(key),
                nav=nav,
                lang=str(lang) if lang else context.lang,
            )
        case _:
            return LinkTarget(content_key=str(spec), lang=context.lang)


def _link(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    spec = evaluate(args[0], context) if args else None
    target = _link_target(spec, context)
    if target.content_key is not None and target.nav is None:
        context.add_reference(target.content_key)
    href = LinkPlaceholder(PlaceholderKind.HREF, target)
    title = LinkPlaceholder(PlaceholderKind.TITLE, target)
    body = args[1:]
    if not body:
        return Element("a", {"href": href}, (title,))
    scoped = context.merged({LINK_HREF: href, LINK_TITLE: title})
    return Fragment(evaluate_children(body, scoped))


def _render_spec(spec: object) -> tuple[str | None, str | None, str | None] | None:
    match spec:
        case str() if spec:
            return spec, None, None
        case cabc.Mapping():
            data_key = spec.get("data")
            template = spec.get("template")
            section_id = spec.get("section_id")
            if data_key is None and template is None:
                return None
            fields = (data_key, template, section_id)
            if not all(value is None or (isinstance(value, str) and value) for value in fields):
                return None
            return data_key, template, section_id
        case _:
            return None


def _with_section_id(result: object, section_id: str) -> Element:
    if isinstance(result, Fragment) and len(result.children) == 1:
        result = result.children[0]
    if isinstance(result, Element):
        return dc.replace(result, attrs={**result.attrs, "id": section_id})
    match result:
        case Fragment(children=children):
            pass
        case None:
            children = ()
        case _:
            children = (result,)
    return Element("div", {"id": section_id}, children)


def _render_failure(
    context: RenderContext,
    kind: WarningKind,
    message: str,
    *,
    key: object = None,
    details: cabc.Mapping[str, typ.Any] | None = None,
) -> Element:
    context.warn(
        kind, message, directive=DirectiveKind.RENDER.value, key=key, details=details
    )
    return render_error(kind, message)


def _render(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    spec = evaluate(directive.args[0], context) if directive.args else None
    parsed = _render_spec(spec)
    if parsed is None:
        return _render_failure(
            context,
            WarningKind.INVALID_RENDER_SPEC,
            f"Cannot render {spec!r}.",
            details={"spec": repr(spec)},
        )
    data_key, template_name, section_id = parsed
    content = context.content_data.get(data_key) if data_key is not None else None
    if template_name is None:
        content_template = content.get("template") if content is not None else None
        template_name = content_template if isinstance(content_template, str) else data_key
    template = context.templates.get(template_name) if template_name else None
    if template is None:
        return _render_failure(
            context,
            WarningKind.MISSING_RENDER_TEMPLATE,
            f"Template '{template_name}' not found.",
            key=template_name,
        )
    if data_key is not None and content is None:
        return _render_failure(
            context,
            WarningKind.MISSING_PAGE_CONTENT,
            f"No '{context.lang}' content for '{data_key}'.",
            key=data_key,
        )

    content_key = data_key or context.content_key
    if context.is_rendering(template_name, content_key):
        return _render_failure(
            context,
            WarningKind.CIRCULAR_TEMPLATE,
            f"Template '{template_name}' renders itself.",
            key=template_name,
            details={"content_key": content_key},
        )

    base = content if content is not None else context.data
    data = {**context.build_constants, **base, "lang": context.lang}
    scoped = context.push(
        "render",
        template_name,
        data=data,
        content_key=content_key,
    )
    result = evaluate(template, scoped)
    if section_id:
        context.add_section(data_key or template_name, section_id)
        return _with_section_id(result, section_id)
    return result


def _with(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    spec = args[0] if args else None
    value = _lookup(context.data, spec) if isinstance(spec, str) else _peek(spec, context)
    scoped = context
    if value is None:
        label = spec.describe() if isinstance(spec, Directive) else spec
        context.warn(
            WarningKind.WITH_DATA_NOT_FOUND,
            f"No data found for '{label}'.",
            directive=directive.name,
            key=label,
        )
    elif isinstance(value, cabc.Mapping):
        scoped = context.merged(value)
    return Fragment(evaluate_children(args[1:], scoped))


def _include(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    name = evaluate(args[0], context) if args else None
    template = context.templates.get(name) if isinstance(name, str) else None
    if template is None:
        context.warn(
            WarningKind.MISSING_INCLUDE_TEMPLATE,
            f"Include template '{name}' not found.",
            directive=directive.name,
            key=name,
        )
        return missing_marker(f"[include {name}]")
    if context.is_rendering(name, context.content_key):
        context.warn(
            WarningKind.CIRCULAR_TEMPLATE,
            f"Template '{name}' includes itself.",
            directive=directive.name,
            key=name,
            details={"stack": " > ".join(str(frame) for frame in context.render_stack)},
        )
        return missing_marker(f"[include {name}]")
    override = evaluate(args[1], context) if len(args) > 1 else None
    data = {**context.data, **override} if isinstance(override, cabc.Mapping) else context.data
    return evaluate(template, context.push("include", name, data=data))


def _body(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    if context.body is None:
        context.warn(
            WarningKind.MISSING_BODY,
            "No body available to this template.",
            directive=directive.name,
        )
        return None
    return context.body


def _interpolate(
    text: str,
    values: cabc.Mapping[str, typ.Any],
    context: RenderContext,
    key: str,
) -> str:
    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = values.get(name)
        if value is None:
            context.warn(
                WarningKind.MISSING_INTERPOLATION,
                f"No value for '{{{{{name}}}}}' in translation '{key}'.",
                directive=DirectiveKind.T.value,
                key=key,
                details={"name": name},
            )
            return match.group(0)
        if isinstance(value, bool) or not isinstance(value, str | int | float):
            context.warn(
                WarningKind.INVALID_INTERPOLATION,
                f"Cannot interpolate {type(value).__name__} into '{key}'.",
                directive=DirectiveKind.T.value,
                key=key,
                details={"name": name},
            )
            return match.group(0)
        return str(value)

    return INTERPOLATION_PATTERN.sub(_replace, text)


def _translate(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    args = directive.args
    raw_key = evaluate(args[0], context) if args else None
    extras = [evaluate(arg, context) for arg in args[1:3]]
    values = next((extra for extra in extras if isinstance(extra, cabc.Mapping)), {})
    default = next((extra for extra in extras if isinstance(extra, str)), None)

    match raw_key:
        case str() if raw_key:
            label = raw_key
            value = context.strings.get(raw_key)
            if value is None and HIERARCHY_SEPARATOR in raw_key:
                value = field_value(context.strings, tuple(raw_key.split(HIERARCHY_SEPARATOR)))
        case list() | tuple() if raw_key and _as_path(raw_key) is not None:
            label = _describe_path(raw_key)
            value = field_value(context.strings, tuple(raw_key))
        case _:
            context.warn(
                WarningKind.INVALID_TRANSLATION_KEY,
                f"Translation key must be a string or a list, got {raw_key!r}.",
                directive=directive.name,
                key=raw_key,
            )
            return MISSING_TRANSLATION_TEMPLATE.format(key=raw_key)

    if isinstance(value, str):
        return _interpolate(value, values, context, label)
    if default is not None:
        return _interpolate(default, values, context, label)
    context.warn(
        WarningKind.MISSING_TRANSLATION,
        f"No '{context.lang}' translation for '{label}'.",
        directive=directive.name,
        key=label,
    )
    return MISSING_TRANSLATION_TEMPLATE.format(key=label)


def _site_config(directive: Directive, context: RenderContext) -> typ.Any:  # noqa: ANN401
    segments = [evaluate(arg, context) for arg in directive.args]
    if len(segments) == 1 and isinstance(segments[0], list | tuple):
        segments = list(segments[0])
    path = _as_path(segments)
    params = context.site_config.params if context.site_config is not None else {}
    value = field_value(params, path) if path else None
    if value is None:
        label = _describe_path(segments)
        context.warn(
            WarningKind.MISSING_CONFIG_KEY,
            f"Site parameter '{label}' not found.",
            directive=directive.name,
            key=label,
        )
        return missing_marker(f"[{label}]")
    return value


HANDLERS: dict[DirectiveKind, Handler] = {
    DirectiveKind.GET: _get,
    DirectiveKind.GET_IN: _get_in,
    DirectiveKind.IF: _if,
    DirectiveKind.EACH: _each,
    DirectiveKind.LINK: _link,
    DirectiveKind.RENDER: _render,
    DirectiveKind.WITH: _with,
    DirectiveKind.INCLUDE: _include,
    DirectiveKind.BODY: _body,
    DirectiveKind.T: _translate,
    DirectiveKind.SITE_CONFIG: _site_config,
}


__all__ = [
    "HANDLERS",
    "evaluate",
    "evaluate_children",
    "is_truthy",
    "missing_marker",
    "render_error",
]
