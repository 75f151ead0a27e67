"""Request parameter normalization for the query builder."""

from collections.abc import Iterable, Mapping, Sequence

ParamValue = str | Sequence[str]


def normalize_parameters(parameters: Mapping[str, ParamValue]) -> dict[str, ParamValue]:
    """
    Return a copy of the parameters with every key lower-cased.

    Values pass through untouched. When two keys collide after
    lower-casing (``Limit`` and ``limit``) the one iterated last wins.
    """
    normalized: dict[str, ParamValue] = {}
    for key, value in parameters.items():
        normalized[key.lower()] = value
    return normalized


def parameters_from_items(items: Iterable[tuple[str, str]]) -> dict[str, ParamValue]:
    """
    Collapse (key, value) pairs into a parameter mapping.

    Keys seen once map to their string value; repeated keys
    (``?include=a&include=b``) map to the list of values in request order.
    Intended for ``request.query_params.multi_items()``.
    """
    parameters: dict[str, ParamValue] = {}
    for key, value in items:
        if key not in parameters:
            parameters[key] = value
            continue
        existing = parameters[key]
        if isinstance(existing, str):
            parameters[key] = [existing, value]
        else:
            parameters[key] = [*existing, value]
    return parameters


def last_value(value: ParamValue | None) -> str | None:
    """Scalar view of a parameter: repeated parameters use their last value."""
    if value is None or isinstance(value, str):
        return value
    if not value:
        return None
    return value[-1]
