"""Filtering, ordering, grouping, and limiting for the ``each`` directive.

The engine works on *rows*: mappings for sequences of records, and
``{each/key, each/value, ...fields}`` mappings for the entries of a map.
Plain scalars in a sequence are kept as they are; their fields read as
``None``.

Examples
--------
>>> rows = [{"n": 2}, {"n": 1}, {"n": 3}]
>>> [row["n"] for row in select(rows, order_by=["n", "desc"], limit=2)]
[3, 2]
>>> [group.key for group in select(rows, group_by="n")]
[2, 1, 3]
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import functools
import numbers
import typing as typ

from ._constants import EACH_GROUP_KEY, EACH_KEY, EACH_VALUE

SORT_DIRECTIONS = {"asc": False, "desc": True}

Field = str | tuple[str | int, ...]


class InvalidOrderBy(ValueError):  # noqa: N818 - reported as a warning, not raised to callers
    """Raised internally when an ``order_by`` spec cannot be understood."""


@dc.dataclass(frozen=True, slots=True)
class SortTier:
    """One level of a multi-key sort."""

    field: Field
    descending: bool = False


@dc.dataclass(frozen=True, slots=True)
class Group:
    """Members sharing one ``group_by`` value, in first-appearance order."""

    key: typ.Any
    items: tuple[typ.Any, ...]


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def compare_values(left: object, right: object) -> int:
    """Compare two arbitrary values with a total order.

    ``None`` sorts first, numbers compare numerically, values of the same type
    compare natively, and anything else falls back to comparing the type name
    and then the text form.
    """
    if left is None or right is None:
        return (left is not None) - (right is not None)
    if _is_number(left) and _is_number(right):
        return (left > right) - (left < right)  # type: ignore[operator]
    if type(left) is type(right):
        try:
            return (left > right) - (left < right)  # type: ignore[operator]
        except TypeError:
            pass
    left_key = (type(left).__name__, str(left))
    right_key = (type(right).__name__, str(right))
    return (left_key > right_key) - (left_key < right_key)


sort_key = functools.cmp_to_key(compare_values)


def field_value(item: object, field: Field) -> typ.Any:  # noqa: ANN401
    """Read ``field`` (a key or a path) from ``item``; missing reads as ``None``."""
    path: tuple[str | int, ...] = (field,) if isinstance(field, str) else field
    current: typ.Any = item
    for segment in path:
        match current:
            case cabc.Mapping():
                current = current.get(segment)  # type: ignore[call-overload]
            case list() | tuple() if isinstance(segment, int) and not isinstance(
                segment, bool
            ):
                current = current[segment] if 0 <= segment < len(current) else None
            case _:
                return None
        if current is None:
            return None
    return current


def map_rows(mapping: cabc.Mapping[typ.Any, typ.Any]) -> list[dict[str, typ.Any]]:
    """Turn map entries into rows exposing ``each/key`` and ``each/value``."""
    rows: list[dict[str, typ.Any]] = []
    for key, value in mapping.items():
        row: dict[str, typ.Any] = dict(value) if isinstance(value, cabc.Mapping) else {}
        row[EACH_KEY] = key
        row[EACH_VALUE] = value
        rows.append(row)
    return rows


def _parse_field(raw: object) -> Field:
    match raw:
        case str() if raw:
            return raw
        case list() | tuple() if raw and all(
            isinstance(part, str | int) and not isinstance(part, bool) for part in raw
        ):
            return tuple(raw)
        case _:
            msg = f"Cannot sort by field {raw!r}."
            raise InvalidOrderBy(msg)


def _parse_tier(raw: object) -> SortTier:
    match raw:
        case str():
            return SortTier(_parse_field(raw))
        case [field]:
            return SortTier(_parse_field(field))
        case [field, str() as direction] if direction in SORT_DIRECTIONS:
            return SortTier(_parse_field(field), SORT_DIRECTIONS[direction])
        case _:
            msg = f"Cannot read sort tier {raw!r}."
            raise InvalidOrderBy(msg)


def parse_order_by(spec: object) -> tuple[SortTier, ...]:
    """Normalize an ``order_by`` spec into sort tiers.

    Accepted forms are ``"field"``, ``["field", "desc"]``, a list of such
    pairs, and a flat alternating list such as
    ``["date", "desc", "title", "asc"]``.

    Raises
    ------
    InvalidOrderBy
        If ``spec`` matches none of the accepted forms.
    """
    match spec:
        case str():
            return (_parse_tier(spec),)
        case list() | tuple() if not spec:
            msg = "Empty order_by spec."
            raise InvalidOrderBy(msg)
        case [_, str() as direction] if direction in SORT_DIRECTIONS:
            return (_parse_tier(list(spec)),)
        case list() | tuple() if all(isinstance(tier, list | tuple) for tier in spec):
            return tuple(_parse_tier(list(tier)) for tier in spec)
        case list() | tuple() if len(spec) % 2 == 0:
            pairs = [list(spec[idx : idx + 2]) for idx in range(0, len(spec), 2)]
            return tuple(_parse_tier(pair) for pair in pairs)
        case _:
            msg = f"Cannot read order_by spec {spec!r}."
            raise InvalidOrderBy(msg)


def sort_rows(
    rows: cabc.Iterable[typ.Any], tiers: cabc.Sequence[SortTier]
) -> list[typ.Any]:
    """Stable multi-key sort; the first tier is the most significant."""
    ordered = list(rows)
    for tier in reversed(tiers):
        ordered.sort(
            key=lambda row, field=tier.field: sort_key(field_value(row, field)),
            reverse=tier.descending,
        )
    return ordered


def filter_rows(
    rows: cabc.Iterable[typ.Any], where: cabc.Mapping[str, typ.Any]
) -> list[typ.Any]:
    """Keep mapping rows whose fields equal every value in ``where``."""
    return [
        row
        for row in rows
        if isinstance(row, cabc.Mapping)
        and all(row.get(field) == expected for field, expected in where.items())
    ]


def _group_token(value: object) -> object:
    try:
        hash(value)
    except TypeError:
        return (type(value).__name__, repr(value))
    return (type(value).__name__, value)


def group_rows(rows: cabc.Iterable[typ.Any], field: Field) -> list[Group]:
    """Group rows by ``field`` keeping first-appearance order of groups and members."""
    order: list[object] = []
    keys: dict[object, typ.Any] = {}
    members: dict[object, list[typ.Any]] = {}
    for row in rows:
        value = field_value(row, field)
        token = _group_token(value)
        if token not in members:
            order.append(token)
            keys[token] = value
            members[token] = []
        members[token].append(row)
    return [Group(key=keys[token], items=tuple(members[token])) for token in order]


def _limit(rows: list[typ.Any], limit: int | None) -> list[typ.Any]:
    if limit is None:
        return rows
    return rows[: max(limit, 0)]


def select(
    rows: cabc.Sequence[typ.Any],
    *,
    where: cabc.Mapping[str, typ.Any] | None = None,
    order_by: object = None,
    limit: int | None = None,
    group_by: object = None,
    on_invalid_order: cabc.Callable[[str], None] | None = None,
) -> list[typ.Any]:
    """Run a query over ``rows``.

    Parameters
    ----------
    rows : Sequence[Any]
        Records (or map rows from :func:`map_rows`) in source order.
    where : Mapping[str, Any], optional
        Field equality filter with AND semantics.
    order_by : object, optional
        Sort spec understood by :func:`parse_order_by`.
    limit : int, optional
        Maximum number of results, or of members per group when grouping.
    group_by : object, optional
        Field or path whose value groups the rows; anything else is ignored.
    on_invalid_order : Callable[[str], None], optional
        Called with a message when ``order_by`` cannot be understood; the rows
        are then left unsorted.

    Returns
    -------
    list[Any]
        Matching rows, or :class:`Group` values when ``group_by`` is set.
    """
    selected = list(rows)
    if where:
        selected = filter_rows(selected, where)

    tiers: tuple[SortTier, ...] = ()
    if order_by is not None:
        try:
            tiers = parse_order_by(order_by)
        except InvalidOrderBy as exc:
            if on_invalid_order is not None:
                on_invalid_order(str(exc))

    group_field: Field | None = None
    if group_by is not None:
        try:
            group_field = _parse_field(group_by)
        except InvalidOrderBy:
            group_field = None
    if group_field is None:
        return _limit(sort_rows(selected, tiers), limit)

    group_tiers = [tier for tier in tiers if tier.field == EACH_GROUP_KEY]
    member_tiers = [tier for tier in tiers if tier.field != EACH_GROUP_KEY]
    groups = group_rows(selected, group_field)
    for tier in reversed(group_tiers):
        groups.sort(key=lambda group: sort_key(group.key), reverse=tier.descending)
    return [
        Group(key=group.key, items=tuple(_limit(sort_rows(group.items, member_tiers), limit)))
        for group in groups
    ]


__all__ = [
    "Group",
    "InvalidOrderBy",
    "SortTier",
    "compare_values",
    "field_value",
    "filter_rows",
    "group_rows",
    "map_rows",
    "parse_order_by",
    "select",
    "sort_rows",
]
