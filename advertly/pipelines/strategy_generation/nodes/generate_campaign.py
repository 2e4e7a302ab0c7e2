"""
GenerateCampaignNode - Step 4: generate the ad campaign.

Feeds the profile and the finished competitor analysis to the copywriter
prompt. Any failure aborts the run with cause campaign_generation_failed.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from pydantic import ValidationError
from pydantic_graph import BaseNode, GraphRunContext

from ....core.errors import (
    CAMPAIGN_GENERATION_FAILED,
    ParseError,
    PipelineStageError,
    UpstreamError,
)
from ....services.models import AdCampaign
from ....services.strategy_prompts import ad_campaign_prompt
from ...metadata import NodeMetadata
from ..dependencies import StrategyDependencies
from ..progress import report_progress
from ..state import StrategyGenerationState
from .aggregate_results import AggregateResultsNode

logger = logging.getLogger(__name__)


def build_ad_campaign(raw: Any) -> AdCampaign:
    """Validate the model output as an AdCampaign."""
    if not isinstance(raw, dict):
        raise ParseError(f"Expected a JSON object for the ad campaign, got {type(raw).__name__}")
    try:
        return AdCampaign.model_validate(raw)
    except ValidationError as e:
        raise ParseError(f"Ad campaign did not match the expected shape: {e}") from e


@dataclass
class GenerateCampaignNode(BaseNode[StrategyGenerationState]):
    """
    Step 4: Generate campaign strategy, ad variants and landing page.

    Uses GenerationClient (retries are internal to the client).
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["profile", "competitor_analysis"],
        outputs=["ad_campaign"],
        services=["generation.generate"],
        llm="OpenAI",
        step=4,
        progress=75,
        message="Generating ad campaign...",
    )

    async def run(
        self,
        ctx: GraphRunContext[StrategyGenerationState, StrategyDependencies]
    ) -> AggregateResultsNode:
        logger.info("Step 4: Generating ad campaign")
        ctx.state.current_step = "generating_campaign"
        await report_progress(ctx, self)

        analysis = ctx.state.competitor_analysis.model_dump(by_alias=True, mode="json")

        try:
            raw = await ctx.deps.generation.generate(
                ad_campaign_prompt(ctx.state.profile, analysis)
            )
            ctx.state.ad_campaign = build_ad_campaign(raw)
        except UpstreamError as e:
            ctx.state.error = str(e)
            ctx.state.error_step = "generating_campaign"
            ctx.state.current_step = "failed"
            logger.error(f"Campaign generation failed: {e}")
            raise PipelineStageError(CAMPAIGN_GENERATION_FAILED, e) from e

        logger.info(f"Generated {len(ctx.state.ad_campaign.ad_variants)} ad variants")
        return AggregateResultsNode()
