"""
Strategy generation pipeline.

Turns onboarding answers into a Strategy: profile transformation,
best-effort competitor ads research, market analysis, campaign generation.
"""

from .state import StrategyGenerationState
from .dependencies import StrategyDependencies
from .orchestrator import (
    PIPELINE_NODES,
    progress_plan,
    run_strategy_generation,
    strategy_generation_graph,
)

__all__ = [
    'StrategyGenerationState',
    'StrategyDependencies',
    'PIPELINE_NODES',
    'progress_plan',
    'run_strategy_generation',
    'strategy_generation_graph',
]
