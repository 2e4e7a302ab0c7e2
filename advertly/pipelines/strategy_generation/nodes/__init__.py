"""Strategy generation pipeline nodes, in execution order."""

from .transform_profile import TransformProfileNode
from .fetch_competitor_ads import FetchCompetitorAdsNode
from .analyze_market import AnalyzeMarketNode
from .generate_campaign import GenerateCampaignNode
from .aggregate_results import AggregateResultsNode

__all__ = [
    'TransformProfileNode',
    'FetchCompetitorAdsNode',
    'AnalyzeMarketNode',
    'GenerateCampaignNode',
    'AggregateResultsNode',
]
