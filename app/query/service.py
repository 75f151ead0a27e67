"""
Query builder service.

Composes the pipeline for one resource:

    raw parameters -> normalize -> plan -> resolve includes -> assemble

The service holds only the immutable catalogue and a stateless resource
policy, so one instance is safely shared across concurrent requests.
Executing the assembled query is left to the caller (see app.repos).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select
from sqlalchemy.engine import RowMapping

from app.core.observability import metrics
from app.query.assembler import QueryAssembler, ResourcePolicy
from app.query.catalogue import QueryCatalogue
from app.query.params import ParamValue, normalize_parameters
from app.query.planner import QueryPlan, plan_query
from app.query.resolver import resolve_plan

logger = logging.getLogger(__name__)


class QueryBuilderService:
    """Builds filtered, sorted, paginated, joined queries for one resource."""

    def __init__(self, resource: str, catalogue: QueryCatalogue, policy: ResourcePolicy) -> None:
        self.resource = resource
        self.catalogue = catalogue
        self.policy = policy
        self._assembler = QueryAssembler(catalogue, policy)

    def plan(self, parameters: Mapping[str, ParamValue]) -> QueryPlan:
        """Normalize parameters and return the resolved plan."""
        normalized = normalize_parameters(parameters)
        requested = plan_query(self.catalogue, normalized)
        plan = resolve_plan(self.catalogue, requested)

        for include in sorted(plan.includes):
            source = "requested" if include in requested.includes else "required"
            metrics.query_includes_total.labels(
                resource=self.resource, include=include, source=source
            ).inc()

        logger.debug(
            "Planned %s query",
            self.resource,
            extra={
                "resource": self.resource,
                "includes": sorted(plan.includes),
                "required_includes": sorted(plan.includes - requested.includes),
                "clauses": {kind.value: dict(values) for kind, values in plan.clauses.items()},
                "sorts": list(plan.sorts),
                "limit": plan.limit,
                "offset": plan.offset,
            },
        )
        return plan

    def build_query(self, parameters: Mapping[str, ParamValue]) -> Select:
        """Assemble an executable Select for the request parameters."""
        stmt = self._assembler.assemble(self.plan(parameters))
        metrics.query_builds_total.labels(resource=self.resource).inc()
        return stmt

    def filter(self, rows: Sequence[RowMapping]) -> list[dict[str, Any]]:
        """Map executed rows to response records."""
        return self.policy.filter(rows)
