"""
Tests for the strategy generation pipeline - node behaviour and full runs.

OpenAI is mocked at the SDK client, the Ads Library through
httpx.MockTransport or an unconfigured service. No network access.

Run with: pytest tests/pipelines/strategy_generation/test_pipeline.py -v
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from advertly.core.errors import (
    CAMPAIGN_GENERATION_FAILED,
    MARKET_ANALYSIS_FAILED,
    OnboardingValidationError,
    ParseError,
    PipelineStageError,
)
from advertly.pipelines.strategy_generation import (
    StrategyDependencies,
    StrategyGenerationState,
    progress_plan,
    run_strategy_generation,
)
from advertly.pipelines.strategy_generation.nodes.analyze_market import (
    AnalyzeMarketNode,
    build_competitor_analysis,
)
from advertly.pipelines.strategy_generation.nodes.fetch_competitor_ads import FetchCompetitorAdsNode
from advertly.pipelines.strategy_generation.nodes.generate_campaign import GenerateCampaignNode
from advertly.pipelines.strategy_generation.nodes.transform_profile import TransformProfileNode
from advertly.services.ads_library_service import FacebookAdsLibraryService
from advertly.services.generation_client import GenerationClient
from advertly.services.models import (
    DATA_SOURCE_ADS_LIBRARY,
    DATA_SOURCE_AI_ONLY,
    AdsLibraryStatus,
    CompetitorAd,
    CompetitorAdsResult,
    Insight,
)
from advertly.services.profile_transformer import transform_onboarding_to_profile

FIXED_NOW = datetime(2025, 1, 18, 12, 0, tzinfo=timezone.utc)
OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

ACME_ANSWERS = {
    "companyName": "Acme",
    "whatYouSell": "roofing",
    "customerType": "b2c_private",
    "priceRange": "50k_200k",
    "cta": "request_consultation",
}

MARKET_ANALYSIS = {
    "competitors": [{"name": "Roof Pro", "strengths": ["price"]}],
    "marketInsights": {"averagePrice": "120,000"},
    "opportunities": ["No one offers a fixed timeline"],
    "threats": [],
    "recommendedAdApproach": "Lead with references",
    "dataSource": "facebook_ads_library + ai",
}

AD_CAMPAIGN = {
    "campaignStrategy": {"objective": "leads", "targetAudience": "homeowners"},
    "adVariants": [
        {"name": "Ad 1", "type": "static", "headline": "Roofs that last", "primaryText": "..."},
        {"name": "Ad 2", "type": "video", "hook": "Leaking roof?", "script": "..."},
    ],
    "landingPageStructure": {"headline": "Your roof, on time"},
}


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
        "You exceeded your current quota",
        response=httpx.Response(429, request=OPENAI_REQUEST),
        body={"code": "insufficient_quota"},
    )


def _make_generation(*results):
    """GenerationClient whose OpenAI calls return (or raise) results in order."""
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(side_effect=[
        r if isinstance(r, Exception) else _completion(r) for r in results
    ])
    return GenerationClient(client=openai_client, max_attempts=3, retry_delay_ms=0, sleep=AsyncMock())


def _make_deps(generation, ads_library=None):
    return StrategyDependencies(
        ads_library=ads_library or FacebookAdsLibraryService(access_token=""),
        generation=generation,
        clock=lambda: FIXED_NOW,
    )


def _make_state(**overrides):
    defaults = {"onboarding_data": dict(ACME_ANSWERS)}
    defaults.update(overrides)
    return StrategyGenerationState(**defaults)


def _make_ctx(state):
    """Create a mock GraphRunContext with the given state."""
    ctx = MagicMock()
    ctx.state = state
    ctx.deps = MagicMock()
    ctx.deps.on_progress = None
    ctx.deps.ads_library = AsyncMock()
    ctx.deps.generation = AsyncMock()
    return ctx


def _competitor_ads(count=12):
    ads = [CompetitorAd(id=str(i), page_id=f"p{i}", page_name=f"Roofer {i}", body="Great roofs") for i in range(count)]
    return CompetitorAdsResult(
        competitor_ads=ads,
        insights=[Insight(type="competition_level", count=count)],
    )


# ---------------------------------------------------------------------------
# Progress plan
# ---------------------------------------------------------------------------

class TestProgressPlan:
    def test_five_steps_in_order(self):
        plan = progress_plan()
        assert [p["step"] for p in plan] == [1, 2, 3, 4, 5]
        assert [p["progress"] for p in plan] == [0, 15, 40, 75, 100]
        assert plan[-1]["message"] == "Strategy ready"


# ---------------------------------------------------------------------------
# Individual nodes
# ---------------------------------------------------------------------------

class TestTransformProfileNode:
    @pytest.mark.asyncio
    async def test_sets_profile_and_reports_progress(self):
        state = _make_state()
        ctx = _make_ctx(state)

        next_node = await TransformProfileNode().run(ctx)

        assert isinstance(next_node, FetchCompetitorAdsNode)
        assert state.profile.company_name == "Acme"
        assert [e.progress for e in state.progress_events] == [0]

    @pytest.mark.asyncio
    async def test_keeps_existing_profile(self):
        existing = transform_onboarding_to_profile({"companyName": "Original"})
        state = _make_state(profile=existing)

        await TransformProfileNode().run(_make_ctx(state))

        assert state.profile is existing

    @pytest.mark.asyncio
    async def test_invalid_answers_fail_run(self):
        state = _make_state(onboarding_data="not an object")

        with pytest.raises(OnboardingValidationError):
            await TransformProfileNode().run(_make_ctx(state))

        assert state.current_step == "failed"
        assert state.error_step == "transforming"


class TestFetchCompetitorAdsNode:
    @pytest.mark.asyncio
    async def test_unavailable_library_skips_search(self):
        state = _make_state(profile=transform_onboarding_to_profile(ACME_ANSWERS))
        ctx = _make_ctx(state)
        ctx.deps.ads_library.check_availability.return_value = AdsLibraryStatus(
            configured=False, valid=False, message="FB_ACCESS_TOKEN is not configured"
        )

        next_node = await FetchCompetitorAdsNode().run(ctx)

        assert isinstance(next_node, AnalyzeMarketNode)
        assert state.ads_data is None
        ctx.deps.ads_library.fetch_competitor_ads.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_search_failure_is_absorbed(self):
        state = _make_state(profile=transform_onboarding_to_profile(ACME_ANSWERS))
        ctx = _make_ctx(state)
        ctx.deps.ads_library.check_availability.return_value = AdsLibraryStatus(
            configured=True, valid=True, message="ok"
        )
        ctx.deps.ads_library.fetch_competitor_ads.side_effect = RuntimeError("boom")

        next_node = await FetchCompetitorAdsNode().run(ctx)

        assert isinstance(next_node, AnalyzeMarketNode)
        assert state.ads_data is None
        assert state.error is None


class TestAnalyzeMarketNode:
    def test_ai_only_without_ads(self):
        analysis = build_competitor_analysis(dict(MARKET_ANALYSIS), None)
        assert analysis.data_source == DATA_SOURCE_AI_ONLY
        assert analysis.real_ads_from_library == []
        assert analysis.recommended_ad_approach == "Lead with references"

    def test_empty_competitor_list_is_ai_only(self):
        analysis = build_competitor_analysis(dict(MARKET_ANALYSIS), CompetitorAdsResult())
        assert analysis.data_source == DATA_SOURCE_AI_ONLY

    def test_real_ads_attached_and_capped(self):
        analysis = build_competitor_analysis(dict(MARKET_ANALYSIS), _competitor_ads(12))
        assert analysis.data_source == DATA_SOURCE_ADS_LIBRARY
        assert len(analysis.real_ads_from_library) == 10
        assert analysis.insights[0].type == "competition_level"

    def test_non_object_is_parse_error(self):
        with pytest.raises(ParseError):
            build_competitor_analysis(["not", "an", "object"], None)

    @pytest.mark.asyncio
    async def test_upstream_failure_becomes_stage_error(self):
        from advertly.core.errors import UpstreamRateLimited

        state = _make_state(profile=transform_onboarding_to_profile(ACME_ANSWERS))
        ctx = _make_ctx(state)
        ctx.deps.generation.generate.side_effect = UpstreamRateLimited("quota", code="insufficient_quota")

        with pytest.raises(PipelineStageError) as exc_info:
            await AnalyzeMarketNode().run(ctx)

        assert exc_info.value.cause == MARKET_ANALYSIS_FAILED
        assert exc_info.value.category == "configuration"
        assert state.current_step == "failed"
        assert state.competitor_analysis is None


class TestGenerateCampaignNode:
    @pytest.mark.asyncio
    async def test_prompt_includes_analysis(self):
        state = _make_state(
            profile=transform_onboarding_to_profile(ACME_ANSWERS),
            competitor_analysis=build_competitor_analysis(dict(MARKET_ANALYSIS), None),
        )
        ctx = _make_ctx(state)
        ctx.deps.generation.generate.return_value = AD_CAMPAIGN

        await GenerateCampaignNode().run(ctx)

        prompt = ctx.deps.generation.generate.await_args.args[0]
        assert "Lead with references" in prompt.user
        assert len(state.ad_campaign.ad_variants) == 2

    @pytest.mark.asyncio
    async def test_parse_failure_is_transient_stage_error(self):
        state = _make_state(
            profile=transform_onboarding_to_profile(ACME_ANSWERS),
            competitor_analysis=build_competitor_analysis(dict(MARKET_ANALYSIS), None),
        )
        ctx = _make_ctx(state)
        ctx.deps.generation.generate.side_effect = ParseError("bad json")

        with pytest.raises(PipelineStageError) as exc_info:
            await GenerateCampaignNode().run(ctx)

        assert exc_info.value.cause == CAMPAIGN_GENERATION_FAILED
        assert exc_info.value.category == "transient"


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------

class TestRunStrategyGeneration:
    @pytest.mark.asyncio
    async def test_ai_only_run(self):
        events = []
        deps = _make_deps(_make_generation(MARKET_ANALYSIS, AD_CAMPAIGN))

        strategy = await run_strategy_generation(
            ACME_ANSWERS, deps, on_progress=events.append, profile_id="p-1"
        )

        assert strategy.profile_id == "p-1"
        assert strategy.profile.price_range.min == 50000
        assert strategy.competitor_analysis.data_source == DATA_SOURCE_AI_ONLY
        assert strategy.real_ads_data is None
        assert len(strategy.ad_campaign.ad_variants) == 2
        assert strategy.generated_at == FIXED_NOW

        progress = [e.progress for e in events]
        assert progress == [0, 15, 40, 75, 100]
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_model_cannot_claim_library_data(self):
        """dataSource in the model output is ignored when no ads were found."""
        deps = _make_deps(_make_generation(MARKET_ANALYSIS, AD_CAMPAIGN))

        strategy = await run_strategy_generation(ACME_ANSWERS, deps)

        assert strategy.competitor_analysis.data_source == DATA_SOURCE_AI_ONLY

    @pytest.mark.asyncio
    async def test_run_with_library_ads(self):
        def handler(request):
            if request.url.params.get("search_terms") == "test":
                return httpx.Response(200, json={"data": []})
            return httpx.Response(200, json={"data": [{
                "id": "ad-1",
                "page_id": "roofpro",
                "page_name": "Roof Pro",
                "ad_creative_bodies": ["Roofs in 2 weeks"],
                "publisher_platforms": ["facebook"],
            }]})

        ads_library = FacebookAdsLibraryService(
            access_token="fb-token",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        generation = _make_generation(MARKET_ANALYSIS, AD_CAMPAIGN)
        deps = _make_deps(generation, ads_library)

        strategy = await run_strategy_generation(ACME_ANSWERS, deps)

        assert strategy.competitor_analysis.data_source == DATA_SOURCE_ADS_LIBRARY
        assert [ad.id for ad in strategy.competitor_analysis.real_ads_from_library] == ["ad-1"]
        assert strategy.real_ads_data.competitor_ads[0].page_name == "Roof Pro"

        market_prompt = generation._client.chat.completions.create.await_args_list[0].kwargs
        assert "Roofs in 2 weeks" in market_prompt["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_quota_failure_stops_at_market_analysis(self):
        events = []
        generation = _make_generation(_quota_error())
        deps = _make_deps(generation)

        with pytest.raises(PipelineStageError) as exc_info:
            await run_strategy_generation(ACME_ANSWERS, deps, on_progress=events.append)

        assert exc_info.value.cause == MARKET_ANALYSIS_FAILED
        assert exc_info.value.category == "configuration"
        assert [e.progress for e in events] == [0, 15, 40]
        assert generation._client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_progress_callback_not_shared_between_runs(self):
        first, second = [], []
        deps = _make_deps(_make_generation(MARKET_ANALYSIS, AD_CAMPAIGN, MARKET_ANALYSIS, AD_CAMPAIGN))

        await run_strategy_generation(ACME_ANSWERS, deps, on_progress=first.append)
        await run_strategy_generation(ACME_ANSWERS, deps, on_progress=second.append)

        assert len(first) == 5
        assert len(second) == 5
        assert deps.on_progress is None
