"""
DevCamper Backend — SQL Collection Accessor
============================================

What:  Implements the `Collection` / `Queryable` protocols of
       advanced_results on top of an async SQLAlchemy session and one ORM
       model.
How:   `find()` compiles the `$`-operator filter expression into SQLAlchemy
       clauses; the returned `SqlQuery` accumulates projection, ordering,
       offset/limit and eager-loaded relations, and only touches the
       database in `all()`.

Filter translation:
    {"name": "Devworks"}                       → name = 'Devworks'
    {"name": ["A", "B"]}                       → name IN ('A', 'B')
    {"average_cost": {"$gte": "100"}}          → average_cost >= 100.0
    {"average_cost": {"$in": "100,200"}}       → average_cost IN (100.0, 200.0)
    {"careers": "Business"}                    → careers @> ARRAY['Business']
    {"careers": {"$in": "UI/UX,Business"}}     → careers && ARRAY['UI/UX', 'Business']

    Values arrive as strings and are coerced to the column's Python type;
    a value that does not coerce is a client error, not a server error.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import asc, desc, func, inspect as sa_inspect, select
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from devcamper.database import Base
from devcamper.exceptions import DatabaseError, ValidationError
from devcamper.services.advanced_results import FilterExpression, Include

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

_TRUE_VALUES = {"1", "true", "yes", "y"}
_FALSE_VALUES = {"0", "false", "no", "n"}

_COMPARISONS = {
    "$gt": lambda column, value: column > value,
    "$gte": lambda column, value: column >= value,
    "$lt": lambda column, value: column < value,
    "$lte": lambda column, value: column <= value,
}


# ══════════════════════════════════════════════════════════════════════════
# Field Resolution & Value Coercion
# ══════════════════════════════════════════════════════════════════════════

def _column_property(model: Type[Base], field: str, purpose: str):
    mapper = sa_inspect(model)
    if field not in mapper.column_attrs:
        raise ValidationError(message=f"Unknown {purpose} field '{field}'", field=field)
    return mapper.column_attrs[field]


def _is_array(model: Type[Base], field: str) -> bool:
    column = sa_inspect(model).column_attrs[field].columns[0]
    return isinstance(column.type, ARRAY)


def coerce_value(model: Type[Base], field: str, raw: Any) -> Any:
    """
    Convert a query-string value to the Python type of `model.field`.

    Raises:
        ValidationError: The value is structured (nested brackets) or does
            not parse as the column type.
    """
    if isinstance(raw, (dict, list, tuple)):
        raise ValidationError(message=f"Malformed filter value for '{field}'", field=field)

    column_type = sa_inspect(model).column_attrs[field].columns[0].type
    if isinstance(column_type, ARRAY):
        column_type = column_type.item_type
    try:
        python_type = column_type.python_type
    except NotImplementedError:
        return raw

    if isinstance(raw, python_type) and python_type is not str:
        return raw
    text = str(raw).strip()
    try:
        if python_type is bool:
            if text.lower() in _TRUE_VALUES:
                return True
            if text.lower() in _FALSE_VALUES:
                return False
            raise ValueError(text)
        if python_type is int:
            return int(text)
        if python_type is float:
            return float(text)
        if python_type is Decimal:
            return Decimal(text)
        if python_type is datetime:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        if python_type is date:
            return date.fromisoformat(text)
        if python_type is uuid.UUID:
            return uuid.UUID(text)
    except (ValueError, InvalidOperation):
        raise ValidationError(
            message=f"Invalid value '{raw}' for filter field '{field}'",
            field=field,
        )
    return raw


def _split_list(raw: Any) -> List[Any]:
    if isinstance(raw, (list, tuple)):
        values: List[Any] = []
        for item in raw:
            values.extend(_split_list(item))
        return values
    if isinstance(raw, str):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return [raw]


def compile_filter(model: Type[Base], filter_expr: Optional[FilterExpression]) -> List[ColumnElement]:
    """
    Translate a `$`-operator filter expression into SQLAlchemy clauses.

    Raises:
        ValidationError: Unknown field, unsupported operator, or a value that
            cannot be coerced (→ 400).
    """
    clauses: List[ColumnElement] = []
    for field, condition in (filter_expr or {}).items():
        _column_property(model, field, "filter")
        attribute = getattr(model, field)
        is_array = _is_array(model, field)

        if not isinstance(condition, dict):
            if isinstance(condition, (list, tuple)):
                values = [coerce_value(model, field, item) for item in condition]
                clauses.append(attribute.overlap(values) if is_array else attribute.in_(values))
            else:
                value = coerce_value(model, field, condition)
                clauses.append(attribute.contains([value]) if is_array else attribute == value)
            continue

        for operator, raw in condition.items():
            if operator == "$in":
                values = [coerce_value(model, field, item) for item in _split_list(raw)]
                clauses.append(attribute.overlap(values) if is_array else attribute.in_(values))
            elif operator in _COMPARISONS and not is_array:
                clauses.append(_COMPARISONS[operator](attribute, coerce_value(model, field, raw)))
            else:
                raise ValidationError(
                    message=f"Unsupported filter operator '{operator}' on field '{field}'",
                    field=field,
                )
    return clauses


# ══════════════════════════════════════════════════════════════════════════
# Serialization
# ══════════════════════════════════════════════════════════════════════════

def serialize_record(
    record: Base,
    fields: Optional[Sequence[str]] = None,
    includes: Sequence[Include] = (),
) -> Dict[str, Any]:
    """
    Convert an ORM instance into a plain dict.

    Only `id` plus `fields` are read when a projection is given, so columns
    deferred by `load_only` are never lazy-loaded outside the greenlet.
    """
    mapper = sa_inspect(type(record))
    data: Dict[str, Any] = {}
    for attr in mapper.column_attrs:
        if fields is None or attr.key == "id" or attr.key in fields:
            data[attr.key] = getattr(record, attr.key)
    for include in includes:
        related = getattr(record, include.relation)
        if related is None:
            data[include.relation] = None
        elif isinstance(related, list):
            data[include.relation] = [serialize_record(item, include.fields) for item in related]
        else:
            data[include.relation] = serialize_record(related, include.fields)
    return data


# ══════════════════════════════════════════════════════════════════════════
# Query & Collection
# ══════════════════════════════════════════════════════════════════════════

class SqlQuery(Generic[ModelT]):
    """Chainable read over one model; executes on `all()`."""

    def __init__(self, session: AsyncSession, model: Type[ModelT], clauses: List[ColumnElement]):
        self.session = session
        self.model = model
        self.clauses = clauses
        self._fields: Optional[List[str]] = None
        self._order: List[Tuple[str, bool]] = []
        self._offset = 0
        self._limit: Optional[int] = None
        self._includes: List[Include] = []

    def select(self, fields: Sequence[str]) -> "SqlQuery[ModelT]":
        """Project to `fields`; relation names are accepted and gate `populate`."""
        relationships = sa_inspect(self.model).relationships
        for field in fields:
            if field not in relationships:
                _column_property(self.model, field, "select")
        self._fields = list(fields)
        return self

    def sort(self, fields: Sequence[str]) -> "SqlQuery[ModelT]":
        order = []
        for spec in fields:
            descending = spec.startswith("-")
            field = spec.lstrip("-+")
            _column_property(self.model, field, "sort")
            order.append((field, descending))
        self._order = order
        return self

    def skip(self, count: int) -> "SqlQuery[ModelT]":
        self._offset = count
        return self

    def limit(self, count: int) -> "SqlQuery[ModelT]":
        self._limit = count
        return self

    def populate(self, include: Include) -> "SqlQuery[ModelT]":
        relationships = sa_inspect(self.model).relationships
        if include.relation not in relationships:
            raise ValidationError(
                message=f"Unknown relation '{include.relation}'", field=include.relation
            )
        target = relationships[include.relation].mapper.class_
        for field in include.fields or ():
            _column_property(target, field, "select")
        self._includes.append(include)
        return self

    def _load_columns(self) -> List[str]:
        """Columns to load under a projection: id, selected fields, relation keys."""
        mapper = sa_inspect(self.model)
        relationships = mapper.relationships
        keys = ["id"] + [
            field for field in self._fields or [] if field != "id" and field not in relationships
        ]
        for include in self._includes:
            for column in relationships[include.relation].local_columns:
                key = mapper.get_property_by_column(column).key
                if key not in keys:
                    keys.append(key)
        return keys

    def statement(self) -> Select:
        """Build the SELECT without executing it."""
        stmt = select(self.model)
        if self.clauses:
            stmt = stmt.where(*self.clauses)

        if self._fields is not None:
            stmt = stmt.options(
                load_only(*[getattr(self.model, key) for key in self._load_columns()])
            )
        for include in self._includes:
            loader = selectinload(getattr(self.model, include.relation))
            if include.fields:
                target = sa_inspect(self.model).relationships[include.relation].mapper.class_
                loader = loader.load_only(*[getattr(target, field) for field in include.fields])
            stmt = stmt.options(loader)

        if self._order:
            order_by = [
                desc(getattr(self.model, field)) if descending else asc(getattr(self.model, field))
                for field, descending in self._order
            ]
            # Unique tiebreaker keeps pages stable when sort values repeat
            if "id" not in [field for field, _ in self._order]:
                order_by.append(asc(self.model.id))
            stmt = stmt.order_by(*order_by)
        if self._offset:
            stmt = stmt.offset(self._offset)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    async def all(self) -> List[Dict[str, Any]]:
        try:
            result = await self.session.execute(self.statement())
            records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Query on %s failed: %s", self.model.__tablename__, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve records. Please try again.",
                context={"table": self.model.__tablename__, "error_type": type(e).__name__},
            )
        return [serialize_record(record, self._fields, self._includes) for record in records]


class SqlCollection(Generic[ModelT]):
    """
    Collection accessor for one ORM model.

    Example:
        bootcamps = SqlCollection(db, Bootcamp)
        page = await advanced_results(bootcamps, request.query_params, populate="courses")
    """

    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        self.session = session
        self.model = model

    def find(self, filter_expr: Optional[FilterExpression] = None) -> SqlQuery[ModelT]:
        return SqlQuery(self.session, self.model, compile_filter(self.model, filter_expr))

    def count_statement(self, filter_expr: Optional[FilterExpression] = None) -> Select:
        stmt = select(func.count()).select_from(self.model)
        clauses = compile_filter(self.model, filter_expr)
        if clauses:
            stmt = stmt.where(*clauses)
        return stmt

    async def count_documents(self, filter_expr: Optional[FilterExpression] = None) -> int:
        stmt = self.count_statement(filter_expr)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Count on %s failed: %s", self.model.__tablename__, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not count records. Please try again.",
                context={"table": self.model.__tablename__, "error_type": type(e).__name__},
            )
        return result.scalar() or 0


# ══════════════════════════════════════════════════════════════════════════
# Write Helpers
# ══════════════════════════════════════════════════════════════════════════

def apply_changes(record: Base, changes: Dict[str, Any], required: Iterable[str] = ()) -> List[str]:
    """
    Copy a partial update onto `record`.

    A field in `required` sent as explicit null is rejected instead of
    reaching a NOT NULL column. Returns the keys that changed.
    """
    required = set(required)
    changed = []
    for field, value in changes.items():
        if value is None and field in required:
            raise ValidationError(message=f"Field '{field}' can not be null", field=field)
        if getattr(record, field) != value:
            setattr(record, field, value)
            changed.append(field)
    return changed


async def flush_changes(session: AsyncSession, table: str) -> None:
    """
    Flush pending writes, translating constraint violations.

    Raises:
        ValidationError: A unique constraint was violated (→ 400).
        DatabaseError: Any other driver failure (→ 500).
    """
    try:
        await session.flush()
    except IntegrityError as e:
        logger.warning("Integrity violation on %s: %s", table, str(e.orig))
        raise ValidationError(
            message="Duplicate field value entered",
            context={"table": table},
        )
    except SQLAlchemyError as e:
        logger.error("Write to %s failed: %s", table, str(e), exc_info=True)
        raise DatabaseError(
            message="Could not save changes. Please try again.",
            context={"table": table, "error_type": type(e).__name__},
        )
