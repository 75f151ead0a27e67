from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, status

from app.api.schemas.quote import (
    QuoteCreate,
    QuoteDeletedResponse,
    QuoteResponse,
    QuoteUpdate,
)
from app.core.dependencies import AsyncDbSession, CurrentUser
from app.core.errors import NotFoundError
from app.core.security import get_user_id
from app.query import parameters_from_items
from app.repos.quote_repo import (
    create_quote,
    delete_quote,
    list_quotes,
    update_quote,
)
from app.repos.quote_repo import (
    get_quote as repo_get_quote,
)

NO_QUOTES_FOUND = "No Quotes found with the given criteria"

router = APIRouter(tags=["quotes"])


@router.get("/quotes")
async def get_quotes(request: Request, db: AsyncDbSession) -> list[dict[str, Any]]:
    """
    List quotes.

    Query parameters:
    - `include`: comma-separated `quotee`, `category`
    - `sortby`: comma-separated `newest`, `oldest`, `quotee_asc`, `quotee_desc`,
      `category_asc`, `category_desc`
    - `quotee_id`, `category_id`, `id`: exact matches
    - `keywords`, `content`, `quotee_name`, `category_name`: substring matches
    - `limit`, `page`: pagination

    Unknown parameters are ignored.
    """
    parameters = parameters_from_items(request.query_params.multi_items())
    quotes = await list_quotes(db, parameters)
    if not quotes:
        raise NotFoundError(NO_QUOTES_FOUND)
    return quotes


@router.get("/quotes/{quote_id}")
async def get_quote(quote_id: int, request: Request, db: AsyncDbSession) -> dict[str, Any]:
    """Get a specific quote by ID. Honours `include`."""
    parameters = parameters_from_items(request.query_params.multi_items())
    return await repo_get_quote(db, quote_id, parameters)


@router.post("/quotes", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def post_quote(payload: QuoteCreate, db: AsyncDbSession, user: CurrentUser):
    """
    Create a quote.

    Requires a bearer token.
    """
    created = await create_quote(
        db,
        quote_content=payload.quote_content,
        quotee_id=payload.quotee_id,
        category_id=payload.category_id,
        keywords=payload.keywords,
        actor=get_user_id(user),
    )
    await db.commit()
    return created


@router.put("/quotes/{quote_id}", response_model=QuoteResponse)
async def put_quote(quote_id: int, payload: QuoteUpdate, db: AsyncDbSession, user: CurrentUser):
    """
    Replace a quote.

    Requires a bearer token.
    """
    updated = await update_quote(
        db,
        quote_id,
        quote_content=payload.quote_content,
        quotee_id=payload.quotee_id,
        category_id=payload.category_id,
        keywords=payload.keywords,
        actor=get_user_id(user),
    )
    await db.commit()
    return updated


@router.delete("/quotes/{quote_id}", response_model=QuoteDeletedResponse)
async def remove_quote(quote_id: int, db: AsyncDbSession, user: CurrentUser):
    """
    Delete a quote.

    Requires a bearer token.
    """
    await delete_quote(db, quote_id, actor=get_user_id(user))
    await db.commit()
    return QuoteDeletedResponse()
