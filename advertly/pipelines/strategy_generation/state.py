"""
Strategy Generation Pipeline State - dataclass passed through all pipeline nodes.

Lifecycle:
    idle -> transforming -> fetching_competitor_data -> analyzing_market
         -> generating_campaign -> aggregating -> done
    Any non-terminal step can end in "failed".
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...services.models import (
    AdCampaign,
    AdsLibraryStatus,
    BusinessProfile,
    CompetitorAdsResult,
    CompetitorAnalysis,
    ProgressEvent,
)


@dataclass
class StrategyGenerationState:
    """
    State passed through all strategy generation nodes.

    Each node reads what it needs and writes its outputs. The profile is
    written once by TransformProfileNode and never replaced.
    """

    # === REQUIRED INPUT ===
    onboarding_data: Dict[str, Any]

    # === CONFIGURATION ===
    profile_id: Optional[str] = None

    # === POPULATED BY NODES ===

    # TransformProfileNode
    profile: Optional[BusinessProfile] = None

    # FetchCompetitorAdsNode (None when the Ads Library was unavailable)
    ads_library_status: Optional[AdsLibraryStatus] = None
    ads_data: Optional[CompetitorAdsResult] = None

    # AnalyzeMarketNode
    competitor_analysis: Optional[CompetitorAnalysis] = None

    # GenerateCampaignNode
    ad_campaign: Optional[AdCampaign] = None

    # === TRACKING ===
    current_step: str = "idle"
    progress_events: List[ProgressEvent] = field(default_factory=list)
    error: Optional[str] = None
    error_step: Optional[str] = None
