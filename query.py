"""
Filtering, sorting, field selection and pagination for list endpoints.

Query string parameters are translated into a ``QueryDescriptor``::

    GET /api/v1/bootcamps?averageCost[lte]=1000&careers[in]=Business,UI/UX
                         &select=name,careers&sort=-averageRating&page=2&limit=10

* ``field=value`` filters on equality
* ``field[op]=value`` with ``op`` in gt, gte, lt, lte, in uses the MongoDB
  comparison operator; ``in`` takes a comma separated list
* ``select`` restricts the returned fields
* ``sort`` orders by the listed fields, ``-`` prefix for descending
* ``page`` / ``limit`` pick a one-indexed page window

Only fields in a resource's allow-list may be filtered on; each allow-list
entry maps the field to the caster applied to its values.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel
from pymongo.collection import Collection

import config
from database import sanitize
from errors import QueryError

RESERVED_PARAMS = ("select", "sort", "limit", "page")
OPERATORS = ("gt", "gte", "lt", "lte", "in")
DEFAULT_SORT = [("createdAt", -1)]
# Largest value MongoDB accepts for skip and limit (signed 64-bit)
MAX_INT64 = 2 ** 63 - 1

_KEY_RE = re.compile(r"^([A-Za-z_][\w.]*)(?:\[(\w+)\])?$")
_SPLIT_RE = re.compile(r"[,\s]+")


def boolean(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValueError(f"{value!r} is not a boolean")


class QueryDescriptor(BaseModel):
    filter: Dict[str, Any] = {}
    projection: Optional[List[str]] = None
    sort: List[Tuple[str, int]] = list(DEFAULT_SORT)
    page: int = config.DEFAULT_PAGE
    limit: int = config.DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return min((self.page - 1) * self.limit, MAX_INT64)


def _cast(field: str, caster: Callable[[str], Any], value: str) -> Any:
    try:
        return caster(value)
    except (TypeError, ValueError):
        raise QueryError(f"Invalid value {value!r} for field {field}")


def _positive_int(value: Optional[str], default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    if parsed < 1:
        return default
    return min(parsed, MAX_INT64)


def _split(value: Optional[str]) -> List[str]:
    return [part for part in _SPLIT_RE.split(value or "") if part]


def build_filter(params: Iterable[Tuple[str, str]], fields: Dict[str, Callable[[str], Any]]) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    for key, value in params:
        if key in RESERVED_PARAMS:
            continue
        match = _KEY_RE.match(key)
        if not match:
            raise QueryError(f"Malformed query parameter {key!r}")
        field, op = match.groups()
        if field not in fields:
            raise QueryError(f"Filtering on {field} is not allowed")
        caster = fields[field]

        if op is None:
            if field in query:
                raise QueryError(f"Conflicting filters for {field}")
            query[field] = _cast(field, caster, value)
            continue

        predicate = query.setdefault(field, {})
        if not isinstance(predicate, dict):
            raise QueryError(f"Conflicting filters for {field}")
        if op == "in":
            predicate["$in"] = [_cast(field, caster, v) for v in value.split(",") if v != ""]
        elif op in OPERATORS:
            predicate["$" + op] = _cast(field, caster, value)
        else:
            # Not an operator: kept as a literal sub-key of the field.
            predicate[op] = _cast(field, caster, value)
    return query


def build_sort(value: Optional[str]) -> List[Tuple[str, int]]:
    order = []
    for name in _split(value):
        if name.startswith("-"):
            if len(name) > 1:
                order.append((name[1:], -1))
        else:
            order.append((name, 1))
    return order or list(DEFAULT_SORT)


def build_query(params: Iterable[Tuple[str, str]], fields: Dict[str, Callable[[str], Any]]) -> QueryDescriptor:
    """Translate query string pairs into a QueryDescriptor.

    Raises QueryError for fields outside ``fields``, malformed keys and values
    that do not cast.
    """
    params = list(params)
    reserved = {k: v for k, v in params if k in RESERVED_PARAMS}
    select = _split(reserved.get("select"))
    return QueryDescriptor(
        filter=build_filter(params, fields),
        projection=select or None,
        sort=build_sort(reserved.get("sort")),
        page=_positive_int(reserved.get("page"), config.DEFAULT_PAGE),
        limit=_positive_int(reserved.get("limit"), config.DEFAULT_LIMIT),
    )


def paginate(page: int, limit: int, total: int) -> Dict[str, Dict[str, int]]:
    start_index = (page - 1) * limit
    end_index = page * limit
    pagination: Dict[str, Dict[str, int]] = {}
    if end_index < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start_index > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination


def advanced_results(
    collection: Collection,
    descriptor: QueryDescriptor,
    base_filter: Optional[Dict[str, Any]] = None,
    populate: Optional[Callable[[List[Dict]], List[Dict]]] = None,
) -> Dict[str, Any]:
    """Run a descriptor against a collection and wrap the page in the response envelope."""
    q = {**descriptor.filter, **(base_filter or {})}
    total = collection.count_documents(q)
    cursor = (
        collection.find(q, descriptor.projection)
        .sort(descriptor.sort)
        .skip(descriptor.skip)
        .limit(descriptor.limit)
    )
    results = [sanitize(d) for d in cursor]
    if populate:
        results = populate(results)
    return {
        "success": True,
        "count": len(results),
        "pagination": paginate(descriptor.page, descriptor.limit, total),
        "data": results,
    }
