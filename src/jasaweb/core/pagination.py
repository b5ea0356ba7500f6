"""
Pagination, sorting, search and filter parsing shared by every listing.

Listings read `page`, `limit`, `sortBy`, `sortOrder`, `search` and the
configured filter fields from the query string. Bad values are rejected
with ValidationError rather than silently corrected.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from ..config import get_settings
from .exceptions import ValidationError

DEFAULT_FILTER_FIELDS = ("status", "category", "role", "type")

# Largest row offset a query may skip; beyond this the database integer overflows
MAX_OFFSET = 2**31 - 1

LIKE_ESCAPE = "\\"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class QueryConfig:
    """Per-listing limits and the sort/filter fields it accepts."""

    default_limit: int = 10
    max_limit: int = 100
    allowed_sort_fields: Tuple[str, ...] = ("created_at",)
    default_sort_by: str = "created_at"
    default_sort_order: str = "desc"
    filter_fields: Tuple[str, ...] = DEFAULT_FILTER_FIELDS

    @classmethod
    def from_settings(cls, **overrides: Any) -> "QueryConfig":
        pagination = get_settings().pagination
        values: Dict[str, Any] = {
            "default_limit": pagination.default_limit,
            "max_limit": pagination.max_limit,
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class PaginationParams:
    page: int
    limit: int
    skip: int


@dataclass(frozen=True)
class SortParams:
    sort_by: str
    sort_order: str

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"


@dataclass(frozen=True)
class QueryDescriptor:
    pagination: PaginationParams
    sort: SortParams
    search: Optional[str] = None
    filters: Dict[str, str] = field(default_factory=dict)


def _parse_positive_int(params: Mapping[str, Any], name: str, default: int) -> int:
    raw = params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", details={name: raw})


def parse_pagination(params: Mapping[str, Any], config: QueryConfig) -> PaginationParams:
    """
    Validate page/limit from query parameters.

    Missing values take defaults (page 1, config.default_limit). Raises
    ValidationError for non-integers, page < 1, limit < 1, limit above
    config.max_limit, or a page whose offset exceeds MAX_OFFSET.
    """
    page = _parse_positive_int(params, "page", 1)
    limit = _parse_positive_int(params, "limit", config.default_limit)

    if page < 1:
        raise ValidationError("Page must be greater than 0", details={"page": page})

    if limit < 1 or limit > config.max_limit:
        raise ValidationError(
            f"Limit must be between 1 and {config.max_limit}",
            details={"limit": limit, "max_limit": config.max_limit},
        )

    skip = (page - 1) * limit
    if skip > MAX_OFFSET:
        raise ValidationError(
            "Page is out of range",
            details={"page": page, "limit": limit, "max_offset": MAX_OFFSET},
        )

    return PaginationParams(page=page, limit=limit, skip=skip)


def _normalize_field(name: str) -> str:
    """createdAt -> created_at; snake_case passes through."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def parse_sort(params: Mapping[str, Any], config: QueryConfig) -> SortParams:
    raw_sort_by = params.get("sortBy") or params.get("sort_by")
    sort_by = _normalize_field(raw_sort_by) if raw_sort_by else config.default_sort_by

    if sort_by not in config.allowed_sort_fields:
        raise ValidationError(
            f"Cannot sort by '{raw_sort_by}'",
            details={"allowed": list(config.allowed_sort_fields)},
        )

    sort_order = str(params.get("sortOrder") or params.get("sort_order") or "").lower()
    if sort_order not in ("asc", "desc"):
        sort_order = config.default_sort_order

    return SortParams(sort_by=sort_by, sort_order=sort_order)


def parse_query(params: Mapping[str, Any], config: QueryConfig) -> QueryDescriptor:
    search = params.get("search")
    search = search.strip() if isinstance(search, str) else None

    filters = {
        name: str(params[name])
        for name in config.filter_fields
        if params.get(name) not in (None, "")
    }

    return QueryDescriptor(
        pagination=parse_pagination(params, config),
        sort=parse_sort(params, config),
        search=search or None,
        filters=filters,
    )


def contains_pattern(search: str) -> str:
    """LIKE pattern matching search as a literal substring: '50%' -> '%50\\%%'."""
    escaped = (
        search.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def build_search_condition(
    model: Any, search: Optional[str], fields: Sequence[str]
) -> Optional[ColumnElement]:
    """Case-insensitive substring match on any of fields, or None."""
    if not search or not fields:
        return None
    pattern = contains_pattern(search)
    return or_(*(getattr(model, name).ilike(pattern, escape=LIKE_ESCAPE) for name in fields))


def create_metadata(total: int, params: PaginationParams) -> Dict[str, Any]:
    total_pages = math.ceil(total / params.limit) if params.limit else 0
    return {
        "total": total,
        "page": params.page,
        "limit": params.limit,
        "totalPages": total_pages,
        "hasNext": params.page < total_pages,
        "hasPrev": params.page > 1,
    }


def create_response(
    data: List[Any], total: int, params: PaginationParams, base_url: Optional[str] = None
) -> Dict[str, Any]:
    """{data, pagination}, plus navigation links when base_url is given."""
    pagination = create_metadata(total, params)
    response: Dict[str, Any] = {"data": data, "pagination": pagination}
    if base_url is not None:
        response["links"] = get_links(base_url, params, pagination["totalPages"])
    return response


def get_links(base_url: str, params: PaginationParams, total_pages: int) -> Dict[str, str]:
    links: Dict[str, str] = {}
    if params.page > 1:
        links["first"] = f"{base_url}?page=1&limit={params.limit}"
        links["prev"] = f"{base_url}?page={params.page - 1}&limit={params.limit}"
    if params.page < total_pages:
        links["next"] = f"{base_url}?page={params.page + 1}&limit={params.limit}"
        links["last"] = f"{base_url}?page={total_pages}&limit={params.limit}"
    return links
