"""
Quotes query catalogue and resource policy.

Declares what callers of GET /quotes may ask for:

- ?include=quotee,category joins the quotee / category and nests them in
  each record
- ?id=, ?quotee_id=, ?category_id= exact matches
- ?keywords=, ?content=, ?quotee_name=, ?category_name= substring matches
- ?sortby=newest,oldest,quotee_asc,quotee_desc,category_asc,category_desc
- ?limit= and ?page=

Filtering or sorting on a quotee/category name joins that table even when
it was not included explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select
from sqlalchemy.engine import RowMapping
from sqlalchemy.sql.expression import ColumnElement, Label

from app.core.config import Settings, settings
from app.db.models import Category, Quote, Quotee
from app.query import ClauseKind, QueryBuilderService, QueryCatalogue

RESOURCE = "quotes"


@dataclass(frozen=True, eq=False)
class JoinedInclude:
    """An include that joins one table and selects labelled columns from it."""

    target: Any
    onclause: ColumnElement[bool]
    columns: tuple[Label[Any], ...]
    # Label of the column holding the joined row's primary key in quotes
    foreign_key: str

    def nest(self, row: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        The joined object for one row, or None when the row lacks its columns.

        Each selected column appears under its own name in the joined table
        (Quotee.name labelled quotee_name nests as "name").
        """
        if not all(column.key in row for column in self.columns):
            return None
        nested = {"id": row[self.foreign_key]}
        for column in self.columns:
            nested[column.element.key] = row[column.key]
        return nested


QUOTE_INCLUDES: dict[str, JoinedInclude] = {
    "quotee": JoinedInclude(
        target=Quotee,
        onclause=Quote.quotee_id == Quotee.id,
        columns=(Quotee.name.label("quotee_name"),),
        foreign_key="quotee_id",
    ),
    "category": JoinedInclude(
        target=Category,
        onclause=Quote.category_id == Category.id,
        columns=(Category.name.label("category_name"),),
        foreign_key="category_id",
    ),
}

QUOTE_COLUMNS: dict[str, ColumnElement[Any]] = {
    "id": Quote.id,
    "quotee": Quote.quotee_id,
    "category": Quote.category_id,
    "keywords": Quote.keywords,
    "content": Quote.quote_content,
    "created_at": Quote.created_at,
    "quotee_name": Quotee.name,
    "category_name": Category.name,
}

QUOTE_CLAUSES: dict[ClauseKind, dict[str, str]] = {
    ClauseKind.MATCH: {
        "id": "id",
        "quotee": "quotee_id",
        "category": "category_id",
    },
    ClauseKind.LIKE: {
        "keywords": "keywords",
        "content": "content",
        "quotee_name": "quotee_name",
        "category_name": "category_name",
    },
}

QUOTE_SORTS: dict[str, str] = {
    "newest": "created_at desc",
    "oldest": "created_at asc",
    "quotee_asc": "quotee_name asc",
    "quotee_desc": "quotee_name desc",
    "category_asc": "category_name asc",
    "category_desc": "category_name desc",
}

QUOTE_REQUIRED_INCLUDES: dict[str, set[str]] = {
    "quotee": {"quotee_name", "quotee_asc", "quotee_desc"},
    "category": {"category_name", "category_asc", "category_desc"},
}

# Columns of the quotes table every record carries
_QUOTE_FIELDS = tuple(column.key for column in Quote.__table__.columns)


class QuoteResourcePolicy:
    """Selects, joins and row mapping for quotes."""

    def __init__(self, includes: dict[str, JoinedInclude]) -> None:
        self.includes = includes

    def _selected(self, includes: frozenset[str]) -> list[tuple[str, JoinedInclude]]:
        # Catalogue order keeps generated SQL stable across requests
        return [(name, include) for name, include in self.includes.items() if name in includes]

    def add_selects(self, stmt: Select, includes: frozenset[str]) -> Select:
        stmt = stmt.add_columns(*Quote.__table__.columns)
        for _name, include in self._selected(includes):
            stmt = stmt.add_columns(*include.columns)
        return stmt

    def add_joins(self, stmt: Select, includes: frozenset[str]) -> Select:
        for _name, include in self._selected(includes):
            stmt = stmt.join(include.target, include.onclause)
        return stmt

    def filter(self, rows: Sequence[RowMapping]) -> list[dict[str, Any]]:
        records = []
        for row in rows:
            record = {field: row[field] for field in _QUOTE_FIELDS}
            for name, include in self.includes.items():
                nested = include.nest(row)
                if nested is not None:
                    record[name] = nested
            records.append(record)
        return records


def build_quote_catalogue(app_settings: Settings) -> QueryCatalogue:
    return QueryCatalogue(
        table=Quote.__table__,
        columns=QUOTE_COLUMNS,
        supported_includes=QUOTE_INCLUDES,
        clause_properties=QUOTE_CLAUSES,
        sorting_fields=QUOTE_SORTS,
        required_includes=QUOTE_REQUIRED_INCLUDES,
        default_record_limit=app_settings.query_default_record_limit,
        max_records=app_settings.query_max_records,
        has_max_records=app_settings.query_has_max_records,
    )


_quote_query_service: QueryBuilderService | None = None


def get_quote_query_service() -> QueryBuilderService:
    """Get or create the shared quotes query builder."""
    global _quote_query_service
    if _quote_query_service is not None:
        return _quote_query_service

    _quote_query_service = QueryBuilderService(
        RESOURCE,
        build_quote_catalogue(settings),
        QuoteResourcePolicy(QUOTE_INCLUDES),
    )
    return _quote_query_service
