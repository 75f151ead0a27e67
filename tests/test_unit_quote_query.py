"""Unit tests for the quotes resource policy and service wiring."""

import logging
from datetime import UTC, datetime

from app.core.config import Settings
from app.db.models import Quote, Quotee
from app.query import ClauseKind, QueryBuilderService
from app.services.quote_query import (
    QUOTE_INCLUDES,
    JoinedInclude,
    QuoteResourcePolicy,
    build_quote_catalogue,
    get_quote_query_service,
)

CREATED = datetime(2024, 1, 1, tzinfo=UTC)


def _row(**extra):
    row = {
        "id": 1,
        "quote_content": "Hello",
        "quotee_id": 3,
        "category_id": 4,
        "keywords": "greeting",
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    row.update(extra)
    return row


class TestQuoteResourcePolicyFilter:
    def test_plain_rows_map_to_quote_fields(self):
        records = QuoteResourcePolicy(QUOTE_INCLUDES).filter([_row()])
        assert records == [_row()]

    def test_included_quotee_is_nested(self):
        records = QuoteResourcePolicy(QUOTE_INCLUDES).filter([_row(quotee_name="Ada")])
        assert records[0]["quotee"] == {"id": 3, "name": "Ada"}
        assert "quotee_name" not in records[0]
        assert "category" not in records[0]

    def test_both_includes_are_nested(self):
        records = QuoteResourcePolicy(QUOTE_INCLUDES).filter(
            [_row(quotee_name="Ada", category_name="Computing")]
        )
        assert records[0]["quotee"] == {"id": 3, "name": "Ada"}
        assert records[0]["category"] == {"id": 4, "name": "Computing"}

    def test_empty_rows(self):
        assert QuoteResourcePolicy(QUOTE_INCLUDES).filter([]) == []

    def test_nesting_follows_include_labels(self):
        author = JoinedInclude(
            target=Quotee,
            onclause=Quote.quotee_id == Quotee.id,
            columns=(Quotee.name.label("author"),),
            foreign_key="quotee_id",
        )
        policy = QuoteResourcePolicy({"quotee": author})

        records = policy.filter([_row(author="Ada"), _row()])

        assert records[0]["quotee"] == {"id": 3, "name": "Ada"}
        assert "quotee" not in records[1]


class TestBuildQuoteCatalogue:
    def test_limits_come_from_settings(self):
        app_settings = Settings(
            database_url_app="sqlite+aiosqlite://",
            query_default_record_limit=10,
            query_max_records=50,
            query_has_max_records=False,
        )
        catalogue = build_quote_catalogue(app_settings)

        assert catalogue.default_record_limit == 10
        assert catalogue.max_records == 50
        assert catalogue.has_max_records is False

    def test_shared_service_is_a_singleton(self):
        service = get_quote_query_service()
        assert isinstance(service, QueryBuilderService)
        assert service.resource == "quotes"
        assert get_quote_query_service() is service


class TestQuoteServicePlan:
    def test_plan_normalizes_keys_and_promotes_joins(self):
        plan = get_quote_query_service().plan(
            {"SortBy": "quotee_desc,newest", "Quotee_Name": "Ada", "PAGE": "3", "limit": "10"}
        )

        assert plan.includes == frozenset({"quotee"})
        assert plan.clauses == {ClauseKind.LIKE: {"quotee_name": "Ada"}}
        # catalogue order: newest is declared before quotee_desc
        assert list(plan.sorts) == ["newest", "quotee_desc"]
        assert (plan.limit, plan.offset) == (10, 20)

    def test_plan_logs_resolved_includes(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="app.query.service"):
            get_quote_query_service().plan({"include": "category", "sortby": "quotee_asc"})

        record = next(r for r in caplog.records if r.name == "app.query.service")
        assert record.includes == ["category", "quotee"]
        assert record.required_includes == ["quotee"]
