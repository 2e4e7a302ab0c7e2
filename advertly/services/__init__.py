"""
Services layer for Advertly.

Provides clean separation between external data access
(FacebookAdsLibraryService), AI operations (GenerationClient,
CopywritingService) and request admission (RateLimiter).
"""

from .models import (
    PriceRange,
    BusinessProfile,
    CompetitorAd,
    Insight,
    CompetitorAdsResult,
    AdsLibraryStatus,
    CompetitorAnalysis,
    AdVariant,
    CampaignStrategy,
    AdCampaign,
    Strategy,
    ProgressEvent,
)
from .profile_transformer import transform_onboarding_to_profile
from .ads_library_service import FacebookAdsLibraryService, derive_insights
from .generation_client import GenerationClient, PromptSpec
from .copywriting_service import CopywritingService
from .rate_limiter import RateLimiter, Admission

__all__ = [
    'PriceRange',
    'BusinessProfile',
    'CompetitorAd',
    'Insight',
    'CompetitorAdsResult',
    'AdsLibraryStatus',
    'CompetitorAnalysis',
    'AdVariant',
    'CampaignStrategy',
    'AdCampaign',
    'Strategy',
    'ProgressEvent',
    'transform_onboarding_to_profile',
    'FacebookAdsLibraryService',
    'derive_insights',
    'GenerationClient',
    'PromptSpec',
    'CopywritingService',
    'RateLimiter',
    'Admission',
]
