"""
Tests for the Advertly FastAPI application - routes, error mapping and
rate limiting.

Services are injected through app.dependency_overrides; OpenAI is mocked
at the SDK client. No network access.

Run with: pytest tests/api/test_app.py -v
"""

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from advertly.api.app import app, get_strategy_dependencies
from advertly.api.progress_stream import CompleteRecord, SSEDecoder
from advertly.core.config import Config
from advertly.pipelines.strategy_generation import StrategyDependencies
from advertly.services.ads_library_service import FacebookAdsLibraryService
from advertly.services.generation_client import GenerationClient
from advertly.services.rate_limiter import RateLimiter

FIXED_NOW = datetime(2025, 1, 18, 12, 0, tzinfo=timezone.utc)
OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
ANSWERS = {"companyName": "Acme", "whatYouSell": "roofing", "priceRange": "50k_200k"}
MARKET_ANALYSIS = {"competitors": [], "recommendedAdApproach": "Lead with references"}
AD_CAMPAIGN = {"adVariants": [{"name": "Ad 1", "headline": "Roofs that last"}]}


def _completion(payload):
    message = MagicMock()
    message.content = json.dumps(payload)
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _quota_error():
    return openai.RateLimitError(
        "quota",
        response=httpx.Response(429, request=OPENAI_REQUEST),
        body={"code": "insufficient_quota"},
    )


def _make_deps(side_effect):
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(side_effect=side_effect)
    return StrategyDependencies(
        ads_library=FacebookAdsLibraryService(access_token=""),
        generation=GenerationClient(client=openai_client, max_attempts=1, retry_delay_ms=0, sleep=AsyncMock()),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture(autouse=True)
def fresh_limiters():
    """Each test starts with empty rate limit windows."""
    app.state.strategy_limiter = RateLimiter(3, 300, storage="memory://", name="strategy")
    app.state.ai_limiter = RateLimiter(5, 60, storage="memory://", name="ai")
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def _override(deps):
    app.dependency_overrides[get_strategy_dependencies] = lambda: deps


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health(self, client):
        _override(_make_deps([]))
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["services"]["facebook_ads_library"] == "not_configured"
        assert "openai" in body["services"]


# ---------------------------------------------------------------------------
# Strategy generation
# ---------------------------------------------------------------------------

class TestGenerateStrategy:
    def test_unary_success(self, client):
        _override(_make_deps([_completion(MARKET_ANALYSIS), _completion(AD_CAMPAIGN)]))

        response = client.post(
            "/api/strategies/generate",
            json={"onboardingData": ANSWERS, "profileId": "p-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["profileId"] == "p-1"
        assert body["competitorAnalysis"]["dataSource"] == "ai_only"
        assert body["adCampaign"]["adVariants"][0]["headline"] == "Roofs that last"
        assert body["profile"]["priceRange"]["min"] == 50000
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "2"

    def test_unary_stage_failure_is_502(self, client):
        _override(_make_deps(_quota_error()))

        response = client.post("/api/strategies/generate", json={"onboardingData": ANSWERS})

        assert response.status_code == 502
        body = response.json()
        assert body["cause"] == "market_analysis_failed"
        assert body["category"] == "configuration"
        assert body["message"]

    def test_unary_timeout_is_504(self, client):
        async def slow(**kwargs):
            await asyncio.sleep(10)

        _override(_make_deps(slow))

        with patch.object(Config, "STRATEGY_TIMEOUT_SECONDS", 0.05):
            response = client.post("/api/strategies/generate", json={"onboardingData": ANSWERS})

        assert response.status_code == 504
        assert response.json()["cause"] == "timeout"

    def test_missing_onboarding_data_is_422(self, client):
        _override(_make_deps([]))
        response = client.post("/api/strategies/generate", json={})
        assert response.status_code == 422

    def test_stream(self, client):
        _override(_make_deps([_completion(MARKET_ANALYSIS), _completion(AD_CAMPAIGN)]))

        response = client.post("/api/strategies/generate-stream", json={"onboardingData": ANSWERS})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["Cache-Control"] == "no-cache"

        records = SSEDecoder().feed(response.text)
        assert [r.progress for r in records[:-1]] == [0, 15, 40, 75, 100]
        assert isinstance(records[-1], CompleteRecord)

    def test_stream_failure_is_error_record(self, client):
        _override(_make_deps(_quota_error()))

        response = client.post("/api/strategies/generate-stream", json={"onboardingData": ANSWERS})

        assert response.status_code == 200
        records = SSEDecoder().feed(response.text)
        assert records[-1].type == "error"
        assert records[-1].cause == "market_analysis_failed"


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

class TestRateLimiting:
    def test_fourth_strategy_request_rejected(self, client):
        _override(_make_deps([_quota_error()] * 3))

        statuses = [
            client.post("/api/strategies/generate", json={"onboardingData": ANSWERS}).status_code
            for _ in range(3)
        ]
        rejected = client.post("/api/strategies/generate", json={"onboardingData": ANSWERS})

        assert statuses == [502, 502, 502]
        assert rejected.status_code == 429
        body = rejected.json()
        assert body["error"] == "Rate limit exceeded"
        assert 1 <= body["retryAfter"] <= 300
        assert rejected.headers["Retry-After"] == str(body["retryAfter"])
        assert rejected.headers["X-RateLimit-Remaining"] == "0"

    def test_stream_and_unary_share_one_window(self, client):
        _override(_make_deps([_quota_error()] * 3))

        streamed = client.post("/api/strategies/generate-stream", json={"onboardingData": ANSWERS})
        statuses = [
            client.post("/api/strategies/generate", json={"onboardingData": ANSWERS}).status_code
            for _ in range(2)
        ]
        rejected_stream = client.post("/api/strategies/generate-stream", json={"onboardingData": ANSWERS})
        rejected_unary = client.post("/api/strategies/generate", json={"onboardingData": ANSWERS})

        assert streamed.status_code == 200
        assert statuses == [502, 502]
        assert rejected_stream.status_code == 429
        assert rejected_unary.status_code == 429

    def test_identity_from_user_header(self, client):
        _override(_make_deps([]))

        for _ in range(5):
            assert client.get("/api/facebook-ads/status", headers={"X-User-Id": "u-1"}).status_code == 200

        assert client.get("/api/facebook-ads/status", headers={"X-User-Id": "u-1"}).status_code == 429
        assert client.get("/api/facebook-ads/status", headers={"X-User-Id": "u-2"}).status_code == 200

    def test_limiters_are_independent(self, client):
        _override(_make_deps([]))

        for _ in range(5):
            client.get("/api/facebook-ads/status")

        assert client.get("/health").status_code == 200
        assert client.get("/api/facebook-ads/status").status_code == 429


# ---------------------------------------------------------------------------
# Facebook Ads Library and single-stage AI routes
# ---------------------------------------------------------------------------

class TestAdsLibraryRoutes:
    def test_status_unconfigured(self, client):
        _override(_make_deps([]))

        body = client.get("/api/facebook-ads/status").json()

        assert body["configured"] is False
        assert body["valid"] is False

    def test_competitors_unconfigured_is_503(self, client):
        _override(_make_deps([]))

        response = client.post("/api/facebook-ads/competitors", json={"onboardingData": ANSWERS})

        assert response.status_code == 503

    def test_search_returns_ads(self, client):
        def handler(request):
            return httpx.Response(200, json={"data": [{"id": "1", "page_name": "Roof Pro"}]})

        deps = _make_deps([])
        deps.ads_library = FacebookAdsLibraryService(
            access_token="fb-token",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        _override(deps)

        response = client.post("/api/facebook-ads/search", json={"searchTerms": "roofing"})

        assert response.status_code == 200
        assert response.json()["total"] == 1


class TestAIRoutes:
    def test_generate_icp(self, client):
        _override(_make_deps([_completion({"demographics": {"age": "35-55"}})]))

        response = client.post("/api/ai/generate-icp", json={"onboardingData": ANSWERS})

        assert response.status_code == 200
        assert response.json()["icp"]["demographics"]["age"] == "35-55"

    def test_generate_ads(self, client):
        _override(_make_deps([_completion({"ads": [{"headline": "A"}, {"headline": "B"}]})]))

        response = client.post(
            "/api/ai/generate-ads",
            json={"onboardingData": ANSWERS, "offer": "Free survey"},
        )

        assert response.status_code == 200
        assert len(response.json()["ads"]) == 2

    def test_generate_landing_page(self, client):
        deps = _make_deps([_completion({"sections": [{"type": "hero"}, {"type": "faq"}]})])
        _override(deps)

        response = client.post(
            "/api/ai/generate-landing-page",
            json={"onboardingData": ANSWERS, "offer": "Free survey", "keyMessages": ["Local crews"]},
        )

        assert response.status_code == 200
        assert [s["type"] for s in response.json()["landingPage"]] == ["hero", "faq"]
        user_message = deps.generation._client.chat.completions.create.await_args.kwargs["messages"][1]["content"]
        assert "Irresistible Offer: Free survey" in user_message
        assert "Key Messages: Local crews" in user_message

    def test_analyze_market(self, client):
        _override(_make_deps([_completion(MARKET_ANALYSIS)]))

        response = client.post("/api/ai/analyze-market", json={"onboardingData": ANSWERS})

        assert response.status_code == 200
        assert response.json()["analysis"]["recommendedAdApproach"] == "Lead with references"

    def test_ai_routes_share_ai_limiter(self, client):
        _override(_make_deps([_completion(MARKET_ANALYSIS)] * 5))

        statuses = [
            client.post("/api/ai/analyze-market", json={"onboardingData": ANSWERS}).status_code
            for _ in range(5)
        ]

        assert statuses == [200] * 5
        assert client.post("/api/ai/analyze-market", json={"onboardingData": ANSWERS}).status_code == 429

    def test_generation_auth_failure_is_502(self, client):
        _override(_make_deps(_quota_error()))

        response = client.post("/api/ai/generate-icp", json={"onboardingData": ANSWERS})

        assert response.status_code == 502
        assert response.json()["category"] == "configuration"
