"""
FetchCompetitorAdsNode - Step 2: best-effort Facebook Ads Library research.

Never fails the run. Missing credentials, a failed availability check or a failed
search all leave ``ads_data`` as None and the run continues AI-only.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ...metadata import NodeMetadata
from ..dependencies import StrategyDependencies
from ..progress import report_progress
from ..state import StrategyGenerationState
from .analyze_market import AnalyzeMarketNode

logger = logging.getLogger(__name__)


@dataclass
class FetchCompetitorAdsNode(BaseNode[StrategyGenerationState]):
    """
    Step 2: Check the Ads Library, then fetch own and competitor ads.
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["profile"],
        outputs=["ads_library_status", "ads_data"],
        services=["ads_library.check_availability", "ads_library.fetch_competitor_ads"],
        step=2,
        progress=15,
        message="Searching Facebook Ads Library...",
    )

    async def run(
        self,
        ctx: GraphRunContext[StrategyGenerationState, StrategyDependencies]
    ) -> AnalyzeMarketNode:
        logger.info("Step 2: Fetching competitor ads")
        ctx.state.current_step = "fetching_competitor_data"
        await report_progress(ctx, self)

        try:
            status = await ctx.deps.ads_library.check_availability()
            ctx.state.ads_library_status = status

            if not status.valid:
                logger.info(f"Ads Library unavailable ({status.message}), continuing with AI-only analysis")
                return AnalyzeMarketNode()

            ctx.state.ads_data = await ctx.deps.ads_library.fetch_competitor_ads(ctx.state.profile)
            logger.info(f"Found {len(ctx.state.ads_data.competitor_ads)} competitor ads")

        except Exception as e:
            ctx.state.ads_data = None
            logger.warning(f"Ads Library research failed, continuing with AI-only analysis: {e}")

        return AnalyzeMarketNode()
