from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuoteBase(BaseModel):
    quote_content: str = Field(min_length=1)
    quotee_id: int = Field(gt=0)
    category_id: int = Field(gt=0)
    keywords: str | None = None

    @field_validator("quote_content")
    @classmethod
    def validate_quote_content(cls, v: str) -> str:
        """Reject content that is only whitespace."""
        if not v.strip():
            raise ValueError("quote_content cannot be blank")
        return v


class QuoteCreate(QuoteBase):
    pass


class QuoteUpdate(QuoteBase):
    """Full replacement of a quote; every required field must be sent again."""

    pass


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quote_content: str
    quotee_id: int
    category_id: int
    keywords: str | None = None
    created_at: datetime
    updated_at: datetime


class QuoteDeletedResponse(BaseModel):
    message: str = "Record successfully deleted"
