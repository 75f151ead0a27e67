"""Shared catalogue builders for query builder tests."""

from __future__ import annotations

from app.db.models import Quote
from app.query import QueryCatalogue
from app.services.quote_query import (
    QUOTE_CLAUSES,
    QUOTE_COLUMNS,
    QUOTE_INCLUDES,
    QUOTE_REQUIRED_INCLUDES,
    QUOTE_SORTS,
)


def make_catalogue(**overrides) -> QueryCatalogue:
    """Quotes catalogue with fixed limits (25 default, 200 max); overrides win."""
    options = {
        "table": Quote.__table__,
        "columns": QUOTE_COLUMNS,
        "supported_includes": QUOTE_INCLUDES,
        "clause_properties": QUOTE_CLAUSES,
        "sorting_fields": QUOTE_SORTS,
        "required_includes": QUOTE_REQUIRED_INCLUDES,
        "default_record_limit": 25,
        "max_records": 200,
    }
    options.update(overrides)
    return QueryCatalogue(**options)
