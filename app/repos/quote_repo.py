"""
Repository functions for Quote entities.

Reads go through the quotes query builder so that list and show honour
the same include/filter/sort/pagination parameters. Writes use the ORM
directly.
"""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, ValidationError
from app.core.observability import metrics
from app.db.models import Category, Quote, Quotee
from app.query import QueryBuilderService, fits_column
from app.query.params import ParamValue
from app.query.planner import LIMIT_PARAM, PAGE_PARAM
from app.services.quote_query import RESOURCE, get_quote_query_service

QUOTE_NOT_FOUND = "Quote not found"

logger = logging.getLogger(__name__)


async def list_quotes(
    db: AsyncSession,
    parameters: Mapping[str, ParamValue],
    *,
    service: QueryBuilderService | None = None,
) -> list[dict[str, Any]]:
    """List quotes matching the request parameters.

    Args:
        db: Database session
        parameters: Raw request parameters (include, sortby, page, limit, filters)
        service: Query builder to use (defaults to the shared quotes builder)

    Returns:
        Quote records, with quotee/category nested when included
    """
    service = service or get_quote_query_service()
    stmt = service.build_query(parameters)

    result = await db.execute(stmt)
    rows = result.mappings().all()

    metrics.query_rows_returned.labels(resource=RESOURCE).observe(len(rows))
    return service.filter(rows)


async def get_quote(
    db: AsyncSession,
    quote_id: int,
    parameters: Mapping[str, ParamValue] | None = None,
    *,
    service: QueryBuilderService | None = None,
) -> dict[str, Any]:
    """Get a single quote record, honouring ?include=.

    Raises:
        NotFoundError: If no quote has this ID
    """
    # Only ?include= and friends apply to a single record; never paginate it away
    scoped = {
        key: value
        for key, value in (parameters or {}).items()
        if key.lower() not in (LIMIT_PARAM, PAGE_PARAM)
    }
    scoped["id"] = str(quote_id)
    quotes = await list_quotes(db, scoped, service=service)
    if not quotes:
        raise NotFoundError(QUOTE_NOT_FOUND, details={"quote_id": quote_id})
    return quotes[0]


async def _check_references(db: AsyncSession, *, quotee_id: int, category_id: int) -> None:
    """Reject quotee/category IDs that do not exist."""
    errors: dict[str, list[str]] = {}
    if not fits_column(Quotee.id, quotee_id) or await db.get(Quotee, quotee_id) is None:
        errors["quotee_id"] = ["The selected quotee id is invalid."]
    if not fits_column(Category.id, category_id) or await db.get(Category, category_id) is None:
        errors["category_id"] = ["The selected category id is invalid."]
    if errors:
        raise ValidationError("Quote validation failed", details=errors)


async def _get_quote_entity(db: AsyncSession, quote_id: int) -> Quote:
    quote = await db.get(Quote, quote_id) if fits_column(Quote.id, quote_id) else None
    if quote is None:
        raise NotFoundError(QUOTE_NOT_FOUND, details={"quote_id": quote_id})
    return quote


async def create_quote(
    db: AsyncSession,
    *,
    quote_content: str,
    quotee_id: int,
    category_id: int,
    keywords: str | None = None,
    actor: str = "",
) -> Quote:
    await _check_references(db, quotee_id=quotee_id, category_id=category_id)

    quote = Quote(
        quote_content=quote_content,
        quotee_id=quotee_id,
        category_id=category_id,
        keywords=keywords,
    )

    try:
        db.add(quote)
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError("Quote creation failed", details={"error": str(e.orig)})

    logger.info("Created quote %s", quote.id, extra={"actor": actor})
    return quote


async def update_quote(
    db: AsyncSession,
    quote_id: int,
    *,
    quote_content: str,
    quotee_id: int,
    category_id: int,
    keywords: str | None = None,
    actor: str = "",
) -> Quote:
    """Replace every editable field of a quote.

    Raises:
        NotFoundError: If no quote has this ID
        ValidationError: If quotee_id or category_id do not exist
    """
    quote = await _get_quote_entity(db, quote_id)
    await _check_references(db, quotee_id=quotee_id, category_id=category_id)

    quote.quote_content = quote_content
    quote.quotee_id = quotee_id
    quote.category_id = category_id
    quote.keywords = keywords

    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError("Quote update failed", details={"error": str(e.orig)})

    await db.refresh(quote)
    logger.info("Updated quote %s", quote.id, extra={"actor": actor})
    return quote


async def delete_quote(db: AsyncSession, quote_id: int, *, actor: str = "") -> None:
    quote = await _get_quote_entity(db, quote_id)
    await db.delete(quote)
    await db.flush()
    logger.info("Deleted quote %s", quote_id, extra={"actor": actor})
