"""Pydantic request/response schemas for the Quotes API."""

from app.api.schemas.quote import (
    QuoteCreate,
    QuoteDeletedResponse,
    QuoteResponse,
    QuoteUpdate,
)

__all__ = [
    "QuoteCreate",
    "QuoteDeletedResponse",
    "QuoteResponse",
    "QuoteUpdate",
]
