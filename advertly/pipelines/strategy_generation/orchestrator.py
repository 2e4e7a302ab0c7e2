"""
Strategy Generation Orchestrator - Graph definition and entry point.

Pipeline: TransformProfile → FetchCompetitorAds → AnalyzeMarket → GenerateCampaign → AggregateResults

run_strategy_generation() is the single entry point for every transport
(SSE stream, unary HTTP, CLI). Transports differ only in what they do with
the progress callback.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic_graph import Graph

from ...services.models import ProgressEvent, Strategy
from ..metadata import get_progress_plan
from .dependencies import StrategyDependencies
from .nodes.aggregate_results import AggregateResultsNode
from .nodes.analyze_market import AnalyzeMarketNode
from .nodes.fetch_competitor_ads import FetchCompetitorAdsNode
from .nodes.generate_campaign import GenerateCampaignNode
from .nodes.transform_profile import TransformProfileNode
from .state import StrategyGenerationState

logger = logging.getLogger(__name__)

# ============================================================================
# Graph Definition
# ============================================================================

PIPELINE_NODES = (
    TransformProfileNode,
    FetchCompetitorAdsNode,
    AnalyzeMarketNode,
    GenerateCampaignNode,
    AggregateResultsNode,
)

strategy_generation_graph = Graph(
    nodes=PIPELINE_NODES,
    name="strategy_generation"
)


def progress_plan() -> List[Dict[str, Any]]:
    """Progress events emitted by a successful run, in order."""
    return get_progress_plan(list(PIPELINE_NODES))


# ============================================================================
# Convenience Function
# ============================================================================

async def run_strategy_generation(
    onboarding_data: Mapping[str, Any],
    deps: StrategyDependencies,
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    profile_id: Optional[str] = None,
) -> Strategy:
    """
    Run the strategy generation pipeline.

    Args:
        onboarding_data: Raw onboarding answers
        deps: Shared StrategyDependencies
        on_progress: Called synchronously with each ProgressEvent
        profile_id: Optional id of the stored business profile

    Returns:
        Strategy built from both AI stages

    Raises:
        PipelineStageError: A generation stage failed (cause tag + category)
        OnboardingValidationError: onboarding_data is not an object

    Example:
        >>> strategy = await run_strategy_generation(
        ...     {"companyName": "Acme", "whatYouSell": "roofing", "priceRange": "50k_200k"},
        ...     StrategyDependencies.create(),
        ...     on_progress=lambda e: print(e.progress, e.message),
        ... )
        >>> strategy.competitor_analysis.data_source
        'ai_only'
    """
    state = StrategyGenerationState(
        onboarding_data=onboarding_data,
        profile_id=profile_id,
    )

    logger.info(f"Starting strategy generation (profile_id={profile_id})")

    result = await strategy_generation_graph.run(
        TransformProfileNode(),
        state=state,
        deps=deps.for_run(on_progress),
    )

    return result.output
