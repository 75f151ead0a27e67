"""
Clause planning: turn normalized request parameters into a QueryPlan.

Each derivation is a pure function of the catalogue and the parameters.
Unknown includes, clauses and sort tokens are dropped and invalid
pagination values fall back to defaults; nothing here raises on client
input.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.query.catalogue import ClauseKind, QueryCatalogue, SortSpec
from app.query.params import ParamValue, last_value

INCLUDE_PARAM = "include"
SORT_PARAM = "sortby"
LIMIT_PARAM = "limit"
PAGE_PARAM = "page"

# Largest OFFSET that binds as a signed 64-bit integer
MAX_SQL_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class QueryPlan:
    """
    Request-scoped description of the query to assemble.

    sorts preserves catalogue order, which is the order order-bys are
    applied in.
    """

    includes: frozenset[str]
    clauses: Mapping[ClauseKind, Mapping[str, str]]
    sorts: Mapping[str, SortSpec]
    limit: int
    offset_multiplier: int

    @property
    def offset(self) -> int:
        return self.limit * self.offset_multiplier

    def operation_tokens(self) -> frozenset[str]:
        """Clause names and sort tokens this plan uses."""
        tokens = set(self.sorts)
        for clauses in self.clauses.values():
            tokens.update(clauses)
        return frozenset(tokens)


def _parse_number(value: str | None) -> float | None:
    """Parse a numeric string; None for anything non-numeric or non-finite."""
    if value is None or "_" in value:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def get_includes(catalogue: QueryCatalogue, parameters: Mapping[str, ParamValue]) -> frozenset[str]:
    """Requested includes (?include=a,b) that the catalogue supports."""
    raw = last_value(parameters.get(INCLUDE_PARAM))
    if raw is None:
        return frozenset()

    requested = set(raw.split(","))
    return frozenset(name for name in catalogue.supported_includes if name in requested)


def get_where_clauses(
    catalogue: QueryCatalogue, parameters: Mapping[str, ParamValue]
) -> dict[ClauseKind, dict[str, str]]:
    """Where-clauses grouped by kind, for every catalogue parameter present."""
    clauses: dict[ClauseKind, dict[str, str]] = {}

    for kind, clause_array in catalogue.clause_properties.items():
        for clause_name, parameter_key in clause_array.items():
            if parameter_key not in parameters:
                continue
            value = last_value(parameters[parameter_key])
            if value is None:
                continue
            clauses.setdefault(kind, {})[clause_name] = value

    return clauses


def get_sorting(
    catalogue: QueryCatalogue, parameters: Mapping[str, ParamValue]
) -> dict[str, SortSpec]:
    """
    Requested sort tokens (?sortby=a,b) mapped to their SortSpec.

    Order follows the catalogue, not the request string.
    """
    raw = last_value(parameters.get(SORT_PARAM))
    if raw is None:
        return {}

    requested = set(raw.split(","))
    return {
        token: spec for token, spec in catalogue.sorting_fields.items() if token in requested
    }


def get_limit(catalogue: QueryCatalogue, parameters: Mapping[str, ParamValue]) -> int:
    """
    Record limit from ?limit=.

    Fractions truncate. Missing, non-numeric, below one or above
    max_records all give the default.
    """
    number = _parse_number(last_value(parameters.get(LIMIT_PARAM)))
    if number is None or number > catalogue.max_records:
        return catalogue.default_record_limit

    limit = math.trunc(number)
    if limit < 1:
        return catalogue.default_record_limit
    return limit


def get_offset_multiplier(parameters: Mapping[str, ParamValue]) -> int:
    """Zero-based page index from the one-based ?page=, clamped at 0."""
    number = _parse_number(last_value(parameters.get(PAGE_PARAM)))
    if number is None:
        return 0

    page = math.floor(number) - 1
    return page if page > 0 else 0


def plan_query(catalogue: QueryCatalogue, parameters: Mapping[str, ParamValue]) -> QueryPlan:
    """
    Derive the unresolved plan for normalized parameters.

    Includes implied by filters or sorts are not added here; see
    app.query.resolver. Pages past MAX_SQL_OFFSET are pinned to it, which
    reads as an empty page.
    """
    clauses = get_where_clauses(catalogue, parameters)
    limit = get_limit(catalogue, parameters)
    return QueryPlan(
        includes=get_includes(catalogue, parameters),
        clauses=MappingProxyType(
            {kind: MappingProxyType(values) for kind, values in clauses.items()}
        ),
        sorts=MappingProxyType(get_sorting(catalogue, parameters)),
        limit=limit,
        offset_multiplier=min(get_offset_multiplier(parameters), MAX_SQL_OFFSET // limit),
    )
