"""
Generic CRUD over one table.

Subclasses declare the model, searchable columns, sortable columns and
filterable columns; listing, lookup and writes are shared.
"""

import re
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.pagination import QueryConfig, QueryDescriptor, build_search_condition
from ..db import Base

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

_SLUG_INVALID = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACES = re.compile(r"\s+")
_SLUG_DASHES = re.compile(r"-+")


def slugify(title: str) -> str:
    """'Tentang Kami!' -> 'tentang-kami'"""
    slug = _SLUG_INVALID.sub("", title.lower())
    slug = _SLUG_SPACES.sub("-", slug.strip())
    return _SLUG_DASHES.sub("-", slug)


class BaseCrudService(Generic[ModelT]):
    model: Type[ModelT]
    entity_name = "Resource"
    search_fields: Tuple[str, ...] = ()
    sort_fields: Tuple[str, ...] = ("created_at",)
    default_sort_by = "created_at"
    # column name -> accepted values (empty tuple accepts anything)
    filter_fields: Dict[str, Tuple[str, ...]] = {}

    def __init__(self, session: Session) -> None:
        self.session = session

    def query_config(self, **overrides: Any) -> QueryConfig:
        values: Dict[str, Any] = {
            "allowed_sort_fields": self.sort_fields,
            "default_sort_by": self.default_sort_by,
            "filter_fields": tuple(self.filter_fields),
        }
        values.update(overrides)
        return QueryConfig.from_settings(**values)

    def base_query(self) -> Select:
        return select(self.model)

    def apply_filters(self, stmt: Select, query: QueryDescriptor) -> Select:
        condition = build_search_condition(self.model, query.search, self.search_fields)
        if condition is not None:
            stmt = stmt.where(condition)

        for name, value in query.filters.items():
            allowed = self.filter_fields.get(name)
            if allowed is None:
                continue
            if allowed and value not in allowed:
                raise ValidationError(
                    f"Invalid {name} filter '{value}'",
                    details={"allowed": list(allowed)},
                )
            stmt = stmt.where(getattr(self.model, name) == value)

        return stmt

    def paginate(self, stmt: Select, query: QueryDescriptor) -> Tuple[List[Any], int]:
        """Run a filtered statement for one page; returns (rows, total)."""
        total = self.session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0

        column = self.sort_expression(query.sort.sort_by)
        order = column.desc() if query.sort.descending else column.asc()
        page = stmt.order_by(order).offset(query.pagination.skip).limit(query.pagination.limit)

        return list(self.session.scalars(page).unique()), total

    def sort_expression(self, name: str) -> Any:
        return getattr(self.model, name)

    def list(self, query: QueryDescriptor) -> Tuple[List[ModelT], int]:
        return self.paginate(self.apply_filters(self.base_query(), query), query)

    def find(self, entity_id: str) -> Optional[ModelT]:
        return self.session.get(self.model, entity_id)

    def get(self, entity_id: str) -> ModelT:
        entity = self.find(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def create(self, data: Dict[str, Any]) -> ModelT:
        entity = self.model(**data)
        self.session.add(entity)
        self._commit()
        logger.info(f"{self.entity_name} created", id=entity.id)
        return entity

    def update(self, entity_id: str, data: Dict[str, Any]) -> ModelT:
        entity = self.get(entity_id)
        for key, value in data.items():
            setattr(entity, key, value)
        self._commit()
        logger.info(f"{self.entity_name} updated", id=entity_id, fields=sorted(data))
        return entity

    def delete(self, entity_id: str) -> None:
        entity = self.get(entity_id)
        self.session.delete(entity)
        self._commit()
        logger.info(f"{self.entity_name} deleted", id=entity_id)

    def ensure_unique(self, column: str, value: Any, exclude_id: Optional[str] = None) -> None:
        stmt = select(self.model.id).where(getattr(self.model, column) == value)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        if self.session.scalar(stmt) is not None:
            raise ConflictError(
                f"{self.entity_name} with this {column} already exists",
                details={column: value},
            )

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"{self.entity_name} write rejected", error=str(e.orig))
            raise ConflictError(f"{self.entity_name} conflicts with existing data")


def snapshot(entity: Any, fields: Sequence[str]) -> Dict[str, Any]:
    """Plain dict of selected attributes, for audit old/new values."""
    values: Dict[str, Any] = {}
    for name in fields:
        value = getattr(entity, name, None)
        values[name] = value.isoformat() if hasattr(value, "isoformat") else value
    return values
