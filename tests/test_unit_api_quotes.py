"""
Integration tests for the Quotes API endpoints.

Tests cover:
- GET /quotes with include, filters, sorting and pagination
- GET /quotes/{quote_id}
- POST/PUT/DELETE /quotes with authentication
- Error bodies for 400/401/404
"""

import pytest


class TestListQuotesEndpoint:
    @pytest.mark.anyio
    async def test_should_list_quotes(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes")

        assert response.status_code == 200
        assert len(response.json()) == 3

    @pytest.mark.anyio
    async def test_should_nest_includes(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes?include=quotee&sortby=oldest")

        assert response.status_code == 200
        first = response.json()[0]
        assert first["quotee"]["name"] == "Ada Lovelace"
        assert "category" not in first

    @pytest.mark.anyio
    async def test_should_filter_by_quotee(self, client, seeded_quotes):
        alan = seeded_quotes["quotees"]["alan"]
        response = await client.get(f"/api/v1/quotes?quotee_id={alan.id}")

        assert response.status_code == 200
        assert {q["quotee_id"] for q in response.json()} == {alan.id}

    @pytest.mark.anyio
    async def test_should_accept_upper_case_parameter_names(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes?SORTBY=newest&LIMIT=1")

        assert response.status_code == 200
        assert [q["quote_content"] for q in response.json()] == ["Numbers are the heart of it"]

    @pytest.mark.anyio
    async def test_should_ignore_unknown_parameters(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes?include=secrets&sortby=random&foo=bar")

        assert response.status_code == 200
        assert len(response.json()) == 3

    @pytest.mark.anyio
    async def test_should_return_404_when_nothing_matches(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes?content=no-such-text")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "NotFoundError"
        assert body["message"] == "No Quotes found with the given criteria"

    @pytest.mark.anyio
    async def test_should_return_404_for_empty_table(self, client):
        response = await client.get("/api/v1/quotes")
        assert response.status_code == 404


class TestGetQuoteEndpoint:
    @pytest.mark.anyio
    async def test_should_get_single_quote(self, client, seeded_quotes):
        q2 = seeded_quotes["quotes"][1]
        response = await client.get(f"/api/v1/quotes/{q2.id}?include=category")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == q2.id
        assert body["category"]["name"] == "Computing"

    @pytest.mark.anyio
    async def test_should_return_404_for_missing_quote(self, client, seeded_quotes):
        response = await client.get("/api/v1/quotes/999")

        assert response.status_code == 404
        assert response.json()["message"] == "Quote not found"

    @pytest.mark.anyio
    async def test_should_return_400_for_non_integer_id(self, client):
        response = await client.get("/api/v1/quotes/abc")

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"


class TestWriteEndpoints:
    @pytest.mark.anyio
    async def test_should_require_authentication(self, client, seeded_quotes):
        payload = {"quote_content": "x", "quotee_id": 1, "category_id": 1}

        assert (await client.post("/api/v1/quotes", json=payload)).status_code == 401
        assert (await client.put("/api/v1/quotes/1", json=payload)).status_code == 401
        assert (await client.delete("/api/v1/quotes/1")).status_code == 401

    @pytest.mark.anyio
    async def test_should_create_quote(self, authenticated_client, seeded_quotes):
        ada = seeded_quotes["quotees"]["ada"]
        maths = seeded_quotes["categories"]["maths"]
        payload = {
            "quote_content": "Imagination is the discovering faculty",
            "quotee_id": ada.id,
            "category_id": maths.id,
            "keywords": "imagination",
        }

        response = await authenticated_client.post("/api/v1/quotes", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["quote_content"] == payload["quote_content"]
        assert body["quotee_id"] == ada.id
        assert "id" in body and "created_at" in body

    @pytest.mark.anyio
    async def test_should_reject_invalid_body(self, authenticated_client, seeded_quotes):
        response = await authenticated_client.post(
            "/api/v1/quotes", json={"quote_content": "   ", "quotee_id": 0}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.anyio
    async def test_should_reject_unknown_references(self, authenticated_client, seeded_quotes):
        payload = {"quote_content": "x", "quotee_id": 999, "category_id": 999}

        response = await authenticated_client.post("/api/v1/quotes", json=payload)

        assert response.status_code == 400
        assert response.json()["details"]["quotee_id"] == ["The selected quotee id is invalid."]

    @pytest.mark.anyio
    async def test_should_update_quote(self, authenticated_client, seeded_quotes):
        q1 = seeded_quotes["quotes"][0]
        payload = {
            "quote_content": "Updated content",
            "quotee_id": q1.quotee_id,
            "category_id": q1.category_id,
        }

        response = await authenticated_client.put(f"/api/v1/quotes/{q1.id}", json=payload)

        assert response.status_code == 200
        assert response.json()["quote_content"] == "Updated content"

    @pytest.mark.anyio
    async def test_should_404_when_updating_missing_quote(
        self, authenticated_client, seeded_quotes
    ):
        payload = {"quote_content": "x", "quotee_id": 1, "category_id": 1}
        response = await authenticated_client.put("/api/v1/quotes/999", json=payload)
        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_should_delete_quote(self, authenticated_client, seeded_quotes):
        q1 = seeded_quotes["quotes"][0]

        response = await authenticated_client.delete(f"/api/v1/quotes/{q1.id}")

        assert response.status_code == 200
        assert response.json() == {"message": "Record successfully deleted"}
        assert (await authenticated_client.get(f"/api/v1/quotes/{q1.id}")).status_code == 404
