"""
Pydantic Graph Pipelines for Advertly.

This package contains state-driven workflows using pydantic-graph:
- strategy_generation: Transform onboarding, research competitor ads,
  analyze the market, generate the ad campaign
"""

from .metadata import NodeMetadata, get_node_metadata, get_progress_plan
from .strategy_generation import (
    StrategyGenerationState,
    StrategyDependencies,
    run_strategy_generation,
    strategy_generation_graph,
)

__all__ = [
    'NodeMetadata',
    'get_node_metadata',
    'get_progress_plan',
    'StrategyGenerationState',
    'StrategyDependencies',
    'run_strategy_generation',
    'strategy_generation_graph',
]
