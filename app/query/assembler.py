"""
Query assembly: apply a resolved QueryPlan to a SQLAlchemy Select.

The steps run in a fixed order because later ones depend on earlier ones:
selects and joins must exist before where/order-by reference joined
columns, and the offset is a multiple of the limit.

1. selected columns for each include (resource policy)
2. joins for each include (resource policy)
3. like clauses, then match clauses
4. order-bys in plan order
5. limit
6. offset

All filter values are bound parameters; none are rendered into SQL text.
Like clauses compare case-insensitively (ILIKE on PostgreSQL, lower() LIKE
lower() elsewhere).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from sqlalchemy import BigInteger, Integer, Select, SmallInteger, asc, desc, false, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.sql.expression import ColumnElement

from app.query.catalogue import ClauseKind, QueryCatalogue, SortDirection, SortSpec
from app.query.planner import QueryPlan

# Like clause whose value is split into one predicate per word
KEYWORDS_CLAUSE = "keywords"

# Characters in like values that separate words
_LIKE_SEPARATORS = ("+", ",")

# Match values are coerced to these column types; other types bind as strings
_COERCIBLE_TYPES = (int, float, Decimal)

# Subclasses before Integer; first isinstance match wins
_INTEGER_WIDTHS = ((SmallInteger, 16), (BigInteger, 64), (Integer, 32))


class ResourcePolicy(Protocol):
    """What a given include means for one resource, and how its rows are shaped."""

    def add_selects(self, stmt: Select, includes: frozenset[str]) -> Select:
        """Add the resource's columns plus the columns each include brings."""
        ...

    def add_joins(self, stmt: Select, includes: frozenset[str]) -> Select:
        """Join the tables each include needs; must match the aliases from add_selects."""
        ...

    def filter(self, rows: Sequence[RowMapping]) -> list[dict[str, Any]]:
        """Map result rows to response records."""
        ...


def like_terms(name: str, value: str) -> list[str]:
    """
    Patterns a like clause contributes.

    "+" and "," become spaces. The keywords clause yields one pattern per
    word (all must match); any other clause yields a single pattern.
    """
    term = value
    for separator in _LIKE_SEPARATORS:
        term = term.replace(separator, " ")

    if name == KEYWORDS_CLAUSE:
        return [f"%{keyword}%" for keyword in term.split()]
    return [f"%{term}%"]


def fits_column(column: ColumnElement[Any], value: int) -> bool:
    """Whether an integer is within the range of the column's integer type."""
    for sql_type, bits in _INTEGER_WIDTHS:
        if isinstance(column.type, sql_type):
            return -(2 ** (bits - 1)) <= value < 2 ** (bits - 1)
    return True


def _coerce_match_value(column: ColumnElement[Any], value: str) -> Any:
    """
    Convert a match value to the column's numeric type.

    Returns None when the value cannot be converted or falls outside the
    column's integer range, meaning no row can match.
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if not issubclass(python_type, _COERCIBLE_TYPES) or issubclass(python_type, bool):
        return value

    try:
        coerced = python_type(value.strip())
    except (ValueError, InvalidOperation):
        return None

    if isinstance(coerced, int) and not fits_column(column, coerced):
        return None
    return coerced


class QueryAssembler:
    """Applies plans for one catalogue, delegating include handling to a policy."""

    def __init__(self, catalogue: QueryCatalogue, policy: ResourcePolicy) -> None:
        self.catalogue = catalogue
        self.policy = policy

    def assemble(self, plan: QueryPlan) -> Select:
        stmt = select().select_from(self.catalogue.table)

        stmt = self.policy.add_selects(stmt, plan.includes)
        stmt = self.policy.add_joins(stmt, plan.includes)
        stmt = self.add_where_clauses(stmt, plan.clauses)
        stmt = self.add_order_bys(stmt, plan.sorts)
        stmt = self.add_limit(stmt, plan.limit)
        stmt = self.add_offset(stmt, plan.limit, plan.offset_multiplier)

        return stmt

    def add_where_clauses(
        self, stmt: Select, clauses: Mapping[ClauseKind, Mapping[str, str]]
    ) -> Select:
        if ClauseKind.LIKE in clauses:
            stmt = self.parse_like_clauses(stmt, clauses[ClauseKind.LIKE])
        if ClauseKind.MATCH in clauses:
            stmt = self.parse_match_clauses(stmt, clauses[ClauseKind.MATCH])
        return stmt

    def parse_match_clauses(self, stmt: Select, clauses: Mapping[str, str]) -> Select:
        for name, value in clauses.items():
            column = self.catalogue.column(name)
            coerced = _coerce_match_value(column, value)
            if coerced is None:
                stmt = stmt.where(false())
                continue
            stmt = stmt.where(column == coerced)
        return stmt

    def parse_like_clauses(self, stmt: Select, clauses: Mapping[str, str]) -> Select:
        for name, value in clauses.items():
            column = self.catalogue.column(name)
            for pattern in like_terms(name, value):
                stmt = stmt.where(column.ilike(pattern))
        return stmt

    def add_order_bys(self, stmt: Select, sorts: Mapping[str, SortSpec]) -> Select:
        for spec in sorts.values():
            column = self.catalogue.column(spec.column)
            order = asc if spec.direction is SortDirection.ASC else desc
            stmt = stmt.order_by(order(column))
        return stmt

    def add_limit(self, stmt: Select, limit: int) -> Select:
        if not self.catalogue.has_max_records:
            return stmt
        return stmt.limit(limit)

    def add_offset(self, stmt: Select, limit: int, offset_multiplier: int) -> Select:
        if not self.catalogue.has_max_records:
            return stmt
        return stmt.offset(limit * offset_multiplier)
