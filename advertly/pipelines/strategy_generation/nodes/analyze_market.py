"""
AnalyzeMarketNode - Step 3: AI competitor and market analysis.

Real ads (if any were found) are folded into the prompt and attached to the
analysis afterwards. ``data_source`` records which of the two happened.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from pydantic import ValidationError
from pydantic_graph import BaseNode, GraphRunContext

from ....core.errors import (
    MARKET_ANALYSIS_FAILED,
    ParseError,
    PipelineStageError,
    UpstreamError,
)
from ....services.models import (
    DATA_SOURCE_ADS_LIBRARY,
    DATA_SOURCE_AI_ONLY,
    CompetitorAdsResult,
    CompetitorAnalysis,
)
from ....services.strategy_prompts import market_analysis_prompt
from ...metadata import NodeMetadata
from ..dependencies import StrategyDependencies
from ..progress import report_progress
from ..state import StrategyGenerationState
from .generate_campaign import GenerateCampaignNode

logger = logging.getLogger(__name__)

MAX_REAL_ADS = 10

# Keys owned by the pipeline, never taken from model output
_PROVENANCE_KEYS = ("dataSource", "realAdsFromLibrary", "insights")


def build_competitor_analysis(
    raw: Any,
    ads_data: Optional[CompetitorAdsResult],
) -> CompetitorAnalysis:
    """
    Validate model output and attach real ads data.

    Args:
        raw: Parsed JSON from the market analysis call
        ads_data: Ads Library result, None when unavailable

    Returns:
        CompetitorAnalysis with data_source set from actual data availability
    """
    if not isinstance(raw, dict):
        raise ParseError(f"Expected a JSON object for the market analysis, got {type(raw).__name__}")

    payload = {k: v for k, v in raw.items() if k not in _PROVENANCE_KEYS}
    try:
        analysis = CompetitorAnalysis.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"Market analysis did not match the expected shape: {e}") from e

    if ads_data is not None and ads_data.competitor_ads:
        analysis.real_ads_from_library = ads_data.competitor_ads[:MAX_REAL_ADS]
        analysis.insights = list(ads_data.insights)
        analysis.data_source = DATA_SOURCE_ADS_LIBRARY
    else:
        analysis.data_source = DATA_SOURCE_AI_ONLY

    return analysis


@dataclass
class AnalyzeMarketNode(BaseNode[StrategyGenerationState]):
    """
    Step 3: Analyze competitors and the market.

    Uses GenerationClient (retries are internal to the client).
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["profile", "ads_data"],
        outputs=["competitor_analysis"],
        services=["generation.generate"],
        llm="OpenAI",
        step=3,
        progress=40,
        message="Analyzing competitors and market...",
    )

    async def run(
        self,
        ctx: GraphRunContext[StrategyGenerationState, StrategyDependencies]
    ) -> GenerateCampaignNode:
        logger.info("Step 3: Analyzing competitors and market")
        ctx.state.current_step = "analyzing_market"
        await report_progress(ctx, self)

        try:
            raw = await ctx.deps.generation.generate(
                market_analysis_prompt(ctx.state.profile, ctx.state.ads_data)
            )
            ctx.state.competitor_analysis = build_competitor_analysis(raw, ctx.state.ads_data)
        except UpstreamError as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "analyzing_market"
            ctx.state.current_step = "failed"
            logger.error(f"Market analysis failed: {e}")
            raise PipelineStageError(MARKET_ANALYSIS_FAILED, e) from e

        logger.info(
            f"Market analysis complete: {len(ctx.state.competitor_analysis.competitors)} competitors, "
            f"data source {ctx.state.competitor_analysis.data_source}"
        )
        return GenerateCampaignNode()
