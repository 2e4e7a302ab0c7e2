"""
AggregateResultsNode - Step 5: assemble the Strategy.

Pure assembly of the outputs of the previous nodes. Cannot fail.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, End, GraphRunContext

from ....services.models import Strategy
from ...metadata import NodeMetadata
from ..dependencies import StrategyDependencies
from ..progress import report_progress
from ..state import StrategyGenerationState

logger = logging.getLogger(__name__)


@dataclass
class AggregateResultsNode(BaseNode[StrategyGenerationState]):
    """Step 5: Combine profile, analysis and campaign into a Strategy."""

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["profile_id", "profile", "competitor_analysis", "ad_campaign", "ads_data"],
        outputs=["current_step"],
        step=5,
        progress=100,
        message="Strategy ready",
    )

    async def run(
        self,
        ctx: GraphRunContext[StrategyGenerationState, StrategyDependencies]
    ) -> End[Strategy]:
        logger.info("Step 5: Aggregating strategy")
        ctx.state.current_step = "aggregating"
        await report_progress(ctx, self)

        strategy = Strategy(
            profile_id=ctx.state.profile_id,
            profile=ctx.state.profile,
            competitor_analysis=ctx.state.competitor_analysis,
            ad_campaign=ctx.state.ad_campaign,
            real_ads_data=ctx.state.ads_data,
            generated_at=ctx.deps.clock(),
        )

        ctx.state.current_step = "done"
        logger.info(
            f"Strategy complete: {len(strategy.ad_campaign.ad_variants)} ad variants, "
            f"data source {strategy.competitor_analysis.data_source}"
        )
        return End(strategy)
