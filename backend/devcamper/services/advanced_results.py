"""
DevCamper Backend — Advanced Results (Query Builder & Paginator)
=================================================================

What:  Turns raw query-string parameters into a filtered, projected, sorted
       and paginated read against any collection, and returns the page plus
       its pagination descriptor.
Who:   Used by every list endpoint (bootcamps, courses). There is exactly one
       implementation; resources only choose the collection and the relation
       to include.
How:   The collection is anything that satisfies the `Collection` protocol
       (`find` + `count_documents`). `SqlCollection` is the production
       implementation; tests use an in-memory one.

Query-string grammar:
    select=name,description           → projection (identity `id` always kept)
    select=name,courses               → relation attached only when selected
    sort=name,-average_cost           → ascending / descending by field
    page=2&limit=25                   → pagination (defaults 1 and 100)
    careers=Business                  → equality filter
    average_cost[lte]=10000           → {"average_cost": {"$lte": "10000"}}
    careers[in]=UI/UX,Business        → {"careers": {"$in": "UI/UX,Business"}}

Pipeline:
    1. strip control params   2. nest + rewrite operators   3. find(filter)
    4. select                 5. sort (default -created_at) 6. page/limit
    7. count matching set     8. skip/limit                 9. populate

Consistency:
    The count and the page are two sequential reads with no snapshot; under
    concurrent writes `total` and the page may disagree (best-effort paging).
"""

import logging
import re
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from devcamper.exceptions import ValidationError
from devcamper.schemas.common import AdvancedResults, PageLink, Pagination

logger = logging.getLogger(__name__)

RESERVED_PARAMS = ("select", "sort", "page", "limit")
FILTER_OPERATORS = ("gt", "gte", "lt", "lte", "in")
OPERATOR_PREFIX = "$"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100
DEFAULT_SORT = ("-created_at",)

# Largest offset or row count a BIGINT OFFSET/LIMIT clause can carry
MAX_ROW_INDEX = 2**63 - 1

# field, then zero or more [segment] groups: price, price[gte], a[b][c]
_PARAM_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_PARAM_SEGMENT = re.compile(r"\[([^\[\]]*)\]")

FilterExpression = Dict[str, Any]
RawParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


@dataclass(frozen=True)
class Include:
    """A relation to attach to each record, optionally projected."""
    relation: str
    fields: Optional[Tuple[str, ...]] = None


class Queryable(Protocol):
    """Chainable read returned by `Collection.find`."""

    def select(self, fields: Sequence[str]) -> "Queryable": ...

    def sort(self, fields: Sequence[str]) -> "Queryable": ...

    def skip(self, count: int) -> "Queryable": ...

    def limit(self, count: int) -> "Queryable": ...

    def populate(self, include: Include) -> "Queryable": ...

    async def all(self) -> List[Dict[str, Any]]: ...


class Collection(Protocol):
    """Capability the paginator needs from a store."""

    def find(self, filter_expr: Optional[FilterExpression] = None) -> Queryable: ...

    async def count_documents(self, filter_expr: Optional[FilterExpression] = None) -> int: ...


# ══════════════════════════════════════════════════════════════════════════
# Parameter Parsing
# ══════════════════════════════════════════════════════════════════════════

def _iter_params(params: RawParams) -> Iterator[Tuple[str, Any]]:
    """Yield (key, value) pairs, expanding repeated keys."""
    if hasattr(params, "multi_items"):
        # starlette.datastructures.QueryParams
        yield from params.multi_items()
        return
    items = params.items() if isinstance(params, Mapping) else params
    for key, value in items:
        if isinstance(value, (list, tuple)):
            for item in value:
                yield key, item
        else:
            yield key, value


def _base_name(key: str) -> str:
    return key.split("[", 1)[0]


def _control_value(params: RawParams, name: str) -> Optional[str]:
    """Last value given for a control parameter, or None."""
    value = None
    for key, item in _iter_params(params):
        if key == name:
            value = item
    return value


def strip_control_params(params: RawParams) -> List[Tuple[str, Any]]:
    """Step 1: drop select/sort/page/limit from the filter set."""
    return [
        (key, value)
        for key, value in _iter_params(params)
        if _base_name(key) not in RESERVED_PARAMS
    ]


def nest_params(pairs: Iterable[Tuple[str, Any]]) -> FilterExpression:
    """
    Turn bracketed keys into nested dicts.

        [("price[gte]", "100"), ("price[lt]", "500")]
            → {"price": {"gte": "100", "lt": "500"}}
        [("careers", "UI/UX"), ("careers", "Business")]
            → {"careers": ["UI/UX", "Business"]}
        [("careers[]", "UI/UX")]
            → {"careers": ["UI/UX"]}

    Raises:
        ValidationError: the key is not `field` / `field[...]`, or the same
            field is used both as a plain value and as an operator object.
    """
    expression: FilterExpression = {}
    for key, value in pairs:
        match = _PARAM_KEY.match(key)
        if not match:
            raise ValidationError(message=f"Malformed filter parameter '{key}'", field=key)

        path = [match.group(1)] + _PARAM_SEGMENT.findall(match.group(2))
        append = path[-1] == ""
        if append:
            path = path[:-1]
        if "" in path:
            raise ValidationError(message=f"Malformed filter parameter '{key}'", field=key)

        node = expression
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ValidationError(
                    message=f"Conflicting filter values for '{path[0]}'", field=path[0]
                )
            node = child

        leaf = path[-1]
        existing = node.get(leaf)
        if isinstance(existing, dict):
            raise ValidationError(
                message=f"Conflicting filter values for '{path[0]}'", field=path[0]
            )
        if existing is None:
            node[leaf] = [value] if append else value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            node[leaf] = [existing, value]
    return expression


def _rewrite_condition(condition: Any) -> Any:
    if not isinstance(condition, dict):
        return condition
    return {
        (OPERATOR_PREFIX + key if key in FILTER_OPERATORS else key): _rewrite_condition(value)
        for key, value in condition.items()
    }


def rewrite_operators(expression: FilterExpression) -> FilterExpression:
    """
    Step 2: prefix whole-token operator keys with `$`.

    Only keys below a field are operator positions; field names and values
    are never touched, so `price_in_usd` or a value of "in" stay as they are.
    """
    return {field: _rewrite_condition(condition) for field, condition in expression.items()}


def build_filter(params: RawParams) -> FilterExpression:
    """Steps 1-2: raw query params → store filter expression."""
    return rewrite_operators(nest_params(strip_control_params(params)))


def parse_field_list(value: Optional[str]) -> List[str]:
    """`"name, description,"` → `["name", "description"]`."""
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def parse_positive_int(value: Any, default: int, maximum: int = MAX_ROW_INDEX) -> int:
    """
    Parse a positive integer written in ASCII digits, at most `maximum`.

    Anything else (signs, underscores, other digit scripts, zero, overflow)
    falls back to `default`.
    """
    if value is None:
        return default
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()):
        return default
    number = int(text)
    return number if 0 < number <= maximum else default


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    """Derive the next/prev descriptor from page, limit and the matching total."""
    start_index = (page - 1) * limit
    end_index = page * limit
    pagination = Pagination()
    if end_index < total:
        pagination.next = PageLink(page=page + 1, limit=limit)
    if start_index > 0:
        pagination.prev = PageLink(page=page - 1, limit=limit)
    return pagination


# ══════════════════════════════════════════════════════════════════════════
# Advanced Results
# ══════════════════════════════════════════════════════════════════════════

async def advanced_results(
    collection: Collection,
    params: RawParams,
    populate: Optional[Union[Include, str]] = None,
) -> AdvancedResults:
    """
    Run a filtered/projected/sorted/paginated read against `collection`.

    Args:
        collection: Store accessor implementing `find` and `count_documents`.
        params: Raw query parameters (Starlette QueryParams, a mapping, or
                key/value pairs).
        populate: Relation to attach to every record.

    Returns:
        AdvancedResults with `count` = records in this page.

    Raises:
        ValidationError: Malformed filter, unknown field or operator (→ 400).
        DatabaseError: Store failure, raised by the collection (→ 500).
    """
    filter_expr = build_filter(params)
    logger.debug("Advanced results filter: %s", filter_expr)

    query = collection.find(filter_expr)

    fields = parse_field_list(_control_value(params, "select"))
    if fields:
        query = query.select(fields)

    sort_fields = parse_field_list(_control_value(params, "sort"))
    query = query.sort(sort_fields or list(DEFAULT_SORT))

    limit = parse_positive_int(_control_value(params, "limit"), DEFAULT_LIMIT)
    # page * limit must still fit the store's offset range
    page = parse_positive_int(
        _control_value(params, "page"), DEFAULT_PAGE, maximum=MAX_ROW_INDEX // limit
    )
    start_index = (page - 1) * limit

    total = await collection.count_documents(filter_expr)

    query = query.skip(start_index).limit(limit)

    if populate:
        include = Include(populate) if isinstance(populate, str) else populate
        # Under a projection a relation is attached only when it is selected
        if not fields or include.relation in fields:
            query = query.populate(include)

    records = await query.all()

    return AdvancedResults(
        success=True,
        count=len(records),
        pagination=build_pagination(page, limit, total),
        data=records,
    )
