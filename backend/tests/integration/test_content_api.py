"""
Integration tests for the metered content generation endpoint.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from infrastructure.database.models import GenerationLog, User

pytestmark = pytest.mark.asyncio

GENERATE_URL = "/api/v1/content/generate"


def generate_body(content_type: str = "instagram") -> dict:
    return {
        "content_type": content_type,
        "niche_profile": {
            "name": "Home baking",
            "target_audience": "Busy parents",
            "content_goal": "Grow followers",
            "tone_of_voice": "Friendly",
            "keywords": "sourdough, weekend",
        },
        "input_data": {"topic": "Easy weekend sourdough"},
    }


class TestAuthentication:
    async def test_missing_user_header_is_unauthorized(self, async_client: AsyncClient):
        response = await async_client.post(GENERATE_URL, json=generate_body())
        assert response.status_code == 401

    async def test_first_request_provisions_free_account(
        self, async_client: AsyncClient, db_session, content_gateway
    ):
        response = await async_client.post(
            GENERATE_URL,
            json=generate_body(),
            headers={"X-User-Id": "brand-new", "X-User-Email": "new@example.com"},
        )

        assert response.status_code == 200
        assert response.json()["entitlement"] == {"granted": True, "remaining": 2, "plan": "free"}

        account = await db_session.get(User, "brand-new", populate_existing=True)
        assert account.subscription_plan == "free"
        assert account.email == "new@example.com"


class TestFreeAllowance:
    async def test_three_generations_then_payment_required(
        self, async_client: AsyncClient, auth_headers, free_account, content_gateway
    ):
        remaining = []
        for _ in range(3):
            response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)
            assert response.status_code == 200
            remaining.append(response.json()["entitlement"]["remaining"])
        assert remaining == [2, 1, 0]

        response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)

        assert response.status_code == 402
        body = response.json()
        assert body["code"] == "credits_exhausted"
        assert body["plan"] == "free"
        assert body["credits_remaining"] == 0
        assert len(content_gateway.calls) == 3

    async def test_response_carries_generated_content(
        self, async_client: AsyncClient, auth_headers, free_account, content_gateway
    ):
        response = await async_client.post(
            GENERATE_URL, json=generate_body("product"), headers=auth_headers
        )

        data = response.json()
        assert data["content"] == "Generated product copy"
        assert data["content_type"] == "product"
        assert data["ai_model"] == "fake-model"
        assert content_gateway.calls[0].niche_profile.keywords == ["sourdough", "weekend"]

    async def test_invalid_content_type_is_not_charged(
        self, async_client: AsyncClient, auth_headers, free_account, db_session
    ):
        response = await async_client.post(
            GENERATE_URL, json=generate_body("newsletter"), headers=auth_headers
        )

        assert response.status_code == 422
        await db_session.refresh(free_account)
        assert free_account.credits_remaining == 3


class TestPremium:
    async def test_premium_is_never_blocked(
        self, async_client: AsyncClient, auth_headers, premium_account, db_session
    ):
        for _ in range(5):
            response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)
            assert response.status_code == 200
            assert response.json()["entitlement"] == {
                "granted": True,
                "remaining": None,
                "plan": "premium",
            }

        await db_session.refresh(premium_account)
        assert premium_account.credits_remaining is None


class TestGenerationFailure:
    async def test_failed_generation_keeps_charge_and_is_logged(
        self, async_client: AsyncClient, auth_headers, free_account, content_gateway, db_session
    ):
        content_gateway.fail_with = RuntimeError("upstream timeout")

        response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)

        assert response.status_code == 502
        await db_session.refresh(free_account)
        assert free_account.credits_remaining == 2

        result = await db_session.execute(
            select(GenerationLog).where(GenerationLog.user_id == free_account.id)
        )
        log = result.scalar_one()
        assert log.status == "failed"
        assert log.cost_credits == 1
        assert log.error_message == "upstream timeout"


class TestRateLimiting:
    async def test_generate_is_rate_limited_per_account(
        self, async_client: AsyncClient, auth_headers, premium_account
    ):
        for _ in range(10):
            response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)
            assert response.status_code == 200

        response = await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)
        assert response.status_code == 429

    async def test_limit_is_not_shared_between_accounts(
        self, async_client: AsyncClient, auth_headers, premium_account
    ):
        for _ in range(10):
            await async_client.post(GENERATE_URL, json=generate_body(), headers=auth_headers)

        response = await async_client.post(
            GENERATE_URL,
            json=generate_body(),
            headers={"X-User-Id": "someone-else"},
        )
        assert response.status_code == 200
