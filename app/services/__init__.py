"""
Services package for the Quotes API.

Wires resource catalogues and policies into query builder services.
"""

from app.services.quote_query import get_quote_query_service

__all__ = ["get_quote_query_service"]
