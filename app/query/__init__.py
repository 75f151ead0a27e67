"""
Query builder: translate untyped request parameters into a SQLAlchemy query.

- catalogue.py: static per-resource configuration
- params.py: parameter normalization
- planner.py: includes, where-clauses, sorts and pagination
- resolver.py: includes implied by filters and sorts
- assembler.py: applying a plan to a Select
- service.py: the composed pipeline
"""

from app.query.assembler import KEYWORDS_CLAUSE, QueryAssembler, ResourcePolicy, fits_column
from app.query.catalogue import ClauseKind, QueryCatalogue, SortDirection, SortSpec
from app.query.params import normalize_parameters, parameters_from_items
from app.query.planner import QueryPlan, plan_query
from app.query.resolver import add_missing_includes, resolve_plan
from app.query.service import QueryBuilderService

__all__ = [
    "KEYWORDS_CLAUSE",
    "ClauseKind",
    "QueryAssembler",
    "QueryBuilderService",
    "QueryCatalogue",
    "QueryPlan",
    "ResourcePolicy",
    "SortDirection",
    "SortSpec",
    "add_missing_includes",
    "fits_column",
    "normalize_parameters",
    "parameters_from_items",
    "plan_query",
    "resolve_plan",
]
