"""
Include dependency resolution.

Filtering or sorting on a column that only exists through a join needs
that join, whether or not the caller asked for it with ?include=.
"""

from __future__ import annotations

import dataclasses

from app.query.catalogue import QueryCatalogue
from app.query.planner import QueryPlan


def add_missing_includes(catalogue: QueryCatalogue, plan: QueryPlan) -> frozenset[str]:
    """
    Includes of the plan plus every include its clauses or sorts require.

    Resolution is a single pass over the required-includes catalogue:
    an include added here does not trigger further includes of its own.
    Adding an include that is already present is a no-op.
    """
    return plan.includes | catalogue.includes_required_by(plan.operation_tokens())


def resolve_plan(catalogue: QueryCatalogue, plan: QueryPlan) -> QueryPlan:
    """Return the plan with required includes added."""
    includes = add_missing_includes(catalogue, plan)
    if includes == plan.includes:
        return plan
    return dataclasses.replace(plan, includes=includes)
