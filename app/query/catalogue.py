"""
Static query catalogues.

A catalogue declares everything a resource lets callers ask for through
query parameters:

- which includes exist (extra columns/joins, described by an opaque
  descriptor the resource policy understands)
- which request parameters become where-clauses, per clause kind
- which sort tokens are accepted and what column/direction they mean
- which includes are implied when a filter or sort touches joined data
- which column every clause name and sort column refers to

Catalogues are built once when a service is wired and never mutated, so a
single instance is shared by every request.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from sqlalchemy.sql.expression import ColumnElement, FromClause

from app.core.errors import ConfigurationError


class ClauseKind(str, Enum):
    """Kinds of where-clause a request parameter can produce."""

    MATCH = "matchClauses"
    LIKE = "likeClauses"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class SortSpec:
    """A concrete order-by: a catalogue column name and a direction."""

    column: str
    direction: SortDirection

    @classmethod
    def parse(cls, spec: str | tuple[str, str] | SortSpec) -> SortSpec:
        """
        Build a SortSpec from "column direction" or a (column, direction) pair.

        Raises:
            ConfigurationError: If the spec is not exactly a column and a
                direction, or the direction is not asc/desc
        """
        if isinstance(spec, SortSpec):
            return spec

        parts = spec.split() if isinstance(spec, str) else list(spec)
        if len(parts) != 2:
            raise ConfigurationError(
                "Sort field must be a column and a direction",
                details={"sort_field": str(spec)},
            )

        column, direction = parts
        try:
            return cls(column=column, direction=SortDirection(direction.lower()))
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported sort direction '{direction}'",
                details={"sort_field": str(spec)},
            ) from e


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class QueryCatalogue:
    """
    Read-only configuration for one resource's query builder.

    Attributes:
        table: Table (or other FROM clause) every query starts from
        columns: Clause names and sort columns mapped to column expressions
        supported_includes: Include name -> descriptor for the resource policy
        clause_properties: Clause kind -> {clause name: request parameter key}
        sorting_fields: Sort token -> SortSpec ("column direction" accepted)
        required_includes: Include name -> clause names / sort tokens that imply it
        default_record_limit: Limit used when ?limit= is absent or invalid
        max_records: Largest ?limit= honoured
        has_max_records: When False, queries are neither limited nor offset
    """

    table: FromClause
    columns: Mapping[str, ColumnElement[Any]]
    supported_includes: Mapping[str, Any] = field(default_factory=dict)
    clause_properties: Mapping[ClauseKind, Mapping[str, str]] = field(default_factory=dict)
    sorting_fields: Mapping[str, SortSpec] = field(default_factory=dict)
    required_includes: Mapping[str, frozenset[str]] = field(default_factory=dict)
    default_record_limit: int = 25
    max_records: int = 200
    has_max_records: bool = True

    def __post_init__(self) -> None:
        # Normalize and freeze every mapping; dataclass is frozen so go
        # through object.__setattr__.
        clause_properties = {
            ClauseKind(kind): _freeze(clauses) for kind, clauses in self.clause_properties.items()
        }
        sorting_fields = {
            token: SortSpec.parse(spec) for token, spec in self.sorting_fields.items()
        }
        required_includes = {
            include: frozenset(tokens) for include, tokens in self.required_includes.items()
        }

        object.__setattr__(self, "columns", _freeze(self.columns))
        object.__setattr__(self, "supported_includes", _freeze(self.supported_includes))
        object.__setattr__(self, "clause_properties", _freeze(clause_properties))
        object.__setattr__(self, "sorting_fields", _freeze(sorting_fields))
        object.__setattr__(self, "required_includes", _freeze(required_includes))

        self._validate()

    def _validate(self) -> None:
        """Reject inconsistent catalogues at construction time."""
        if self.default_record_limit < 1 or self.max_records < 1:
            raise ConfigurationError(
                "Record limits must be positive",
                details={
                    "default_record_limit": self.default_record_limit,
                    "max_records": self.max_records,
                },
            )
        if self.default_record_limit > self.max_records:
            raise ConfigurationError(
                "Default record limit exceeds max records",
                details={
                    "default_record_limit": self.default_record_limit,
                    "max_records": self.max_records,
                },
            )

        unknown_includes = sorted(set(self.required_includes) - set(self.supported_includes))
        if unknown_includes:
            raise ConfigurationError(
                "Required includes reference unsupported includes",
                details={"includes": unknown_includes},
            )

        for kind, clauses in self.clause_properties.items():
            for name, parameter_key in clauses.items():
                if parameter_key != parameter_key.lower():
                    raise ConfigurationError(
                        "Clause parameter keys must be lower-case",
                        details={"clause_kind": kind.value, "parameter": parameter_key},
                    )
                self._require_column(name)

        for spec in self.sorting_fields.values():
            self._require_column(spec.column)

    def _require_column(self, name: str) -> None:
        if name not in self.columns:
            raise ConfigurationError(
                f"No column declared for '{name}'",
                details={"column": name},
            )

    def column(self, name: str) -> ColumnElement[Any]:
        """Column expression for a clause name or sort column."""
        return self.columns[name]

    def clauses(self, kind: ClauseKind) -> Mapping[str, str]:
        return self.clause_properties.get(kind, MappingProxyType({}))

    def includes_required_by(self, tokens: Iterable[str]) -> frozenset[str]:
        """Includes implied by any of the given clause names or sort tokens."""
        wanted = set(tokens)
        return frozenset(
            include
            for include, required_by in self.required_includes.items()
            if required_by & wanted
        )
