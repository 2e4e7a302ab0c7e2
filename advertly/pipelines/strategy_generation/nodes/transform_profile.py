"""
TransformProfileNode - Step 1: onboarding answers to BusinessProfile.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, GraphRunContext

from ....core.errors import OnboardingValidationError
from ....services.profile_transformer import transform_onboarding_to_profile
from ...metadata import NodeMetadata
from ..dependencies import StrategyDependencies
from ..progress import report_progress
from ..state import StrategyGenerationState
from .fetch_competitor_ads import FetchCompetitorAdsNode

logger = logging.getLogger(__name__)


@dataclass
class TransformProfileNode(BaseNode[StrategyGenerationState]):
    """Step 1: Derive the BusinessProfile. Runs once per pipeline run."""

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["onboarding_data"],
        outputs=["profile"],
        services=["profile_transformer.transform_onboarding_to_profile"],
        step=1,
        progress=0,
        message="Analyzing your business profile...",
    )

    async def run(
        self,
        ctx: GraphRunContext[StrategyGenerationState, StrategyDependencies]
    ) -> FetchCompetitorAdsNode:
        logger.info("Step 1: Transforming onboarding answers")
        ctx.state.current_step = "transforming"
        await report_progress(ctx, self)

        if ctx.state.profile is None:
            try:
                ctx.state.profile = transform_onboarding_to_profile(ctx.state.onboarding_data)
            except OnboardingValidationError as e:
                ctx.state.error = str(e)
                ctx.state.error_step = "transforming"
                ctx.state.current_step = "failed"
                logger.error(f"Profile transformation failed: {e}")
                raise

        logger.info(f"Profile ready for {ctx.state.profile.company_name or 'unnamed company'}")
        return FetchCompetitorAdsNode()
