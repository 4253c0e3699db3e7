"""Serialize rendered node trees to HTML text."""

from __future__ import annotations

import collections.abc as cabc
from html import escape

from .nodes import Element, Fragment, LinkPlaceholder, RawHtml

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)
DOCTYPE = "<!DOCTYPE html>"


def _text(value: object) -> str:
    """Return the plain text of an attribute value."""
    match value:
        case RawHtml(html=html):
            return html
        case Element(children=children) | Fragment(children=children):
            return "".join(_text(child) for child in children)
        case list() | tuple():
            return " ".join(_text(item) for item in value)
        case LinkPlaceholder(target=target):
            return target.describe()
        case _:
            return str(value)


def _attributes(attrs: cabc.Mapping[str, object]) -> str:
    parts: list[str] = []
    for name, value in attrs.items():
        if value is None or value is False:
            continue
        if value is True:
            parts.append(f" {name}")
            continue
        parts.append(f' {name}="{escape(_text(value), quote=True)}"')
    return "".join(parts)


def _write(node: object, out: list[str]) -> None:
    match node:
        case None:
            return
        case bool():
            out.append("true" if node else "false")
        case RawHtml(html=html):
            out.append(html)
        case Element(tag=tag, attrs=attrs, children=children):
            out.append(f"<{tag}{_attributes(attrs)}>")
            if tag in VOID_ELEMENTS:
                return
            for child in children:
                _write(child, out)
            out.append(f"</{tag}>")
        case Fragment(children=children) | (list() | tuple() as children):
            for child in children:
                _write(child, out)
        case LinkPlaceholder(target=target):
            out.append(escape(target.describe()))
        case _:
            out.append(escape(str(node), quote=False))


def render_html(tree: object) -> str:
    """Return the HTML for ``tree``.

    An ``html`` root element is preceded by the HTML5 doctype.

    Examples
    --------
    >>> from grove_pages.nodes import parse_template
    >>> render_html(parse_template(["p.note", "a < b", ["br"]]))
    '<p class="note">a &lt; b<br></p>'
    """
    out: list[str] = []
    if isinstance(tree, Element) and tree.tag == "html":
        out.append(DOCTYPE)
    _write(tree, out)
    return "".join(out)


__all__ = ["VOID_ELEMENTS", "render_html"]
