"""
Pydantic models for Advertly services.

These models provide validated data structures for:
- Normalized onboarding data (BusinessProfile, PriceRange)
- Facebook Ads Library data (CompetitorAd, Insight, CompetitorAdsResult, AdsLibraryStatus)
- AI generation output (CompetitorAnalysis, AdCampaign, AdVariant)
- The aggregated result of a pipeline run (Strategy) and its progress (ProgressEvent)

Field names are snake_case in Python and camelCase on the wire. Always dump
with ``by_alias=True`` when producing JSON for clients.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DATA_SOURCE_AI_ONLY = "ai_only"
DATA_SOURCE_ADS_LIBRARY = "facebook_ads_library + ai"


class CamelModel(BaseModel):
    """Base model that speaks camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Business Profile
# ============================================================================

class PriceRange(CamelModel):
    """Typical deal size for the business."""

    min: int = Field(0, description="Lower bound of a typical order")
    max: int = Field(0, description="Upper bound of a typical order")
    label: str = Field(..., description="Human-readable range used in prompts")


class BusinessProfile(CamelModel):
    """
    Normalized business profile derived from onboarding answers.

    Every field holds a human-readable label rather than the form's enum value,
    so prompt templates never see the intake vocabulary.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    company_name: str = Field("", description="Company name as entered by the user")
    product_description: str = Field("", description="What the business sells")
    customer_type: str = Field("", description="B2C / B2B / mixed")
    price_range: PriceRange = Field(..., description="Typical deal size")
    decision_time: str = Field("", description="How long customers take to decide")
    main_fear: str = Field("", description="Customer's main objection")
    lead_quality_preference: str = Field("", description="Lead quality vs volume preference")
    first_step: str = Field("", description="Low-commitment first step offered to leads")
    usp: str = Field("", description="Unique selling proposition")
    guarantee: str = Field("", description="Guarantee offered to customers")
    cta: str = Field("", description="Preferred call to action")


# ============================================================================
# Facebook Ads Library
# ============================================================================

class CompetitorAd(CamelModel):
    """Ad returned by the Facebook Ads Library, flattened for prompts and UI."""

    id: str = Field(..., description="Ad archive ID")
    page_id: Optional[str] = Field(None, description="Advertiser page ID")
    page_name: str = Field("", description="Advertiser page name")
    headline: str = Field("", description="First link title")
    body: str = Field("", description="First creative body")
    description: str = Field("", description="First link description")
    link_caption: str = Field("", description="First link caption")
    snapshot_url: Optional[str] = Field(None, description="Ad Library snapshot URL")
    platforms: List[str] = Field(default_factory=list, description="Publisher platforms")
    is_active: bool = Field(True, description="True when the ad has no stop date")
    start_date: Optional[str] = Field(None, description="Delivery start time")
    stop_date: Optional[str] = Field(None, description="Delivery stop time")
    estimated_audience: Optional[Dict[str, Any]] = Field(None, description="Estimated audience size bounds")
    impressions: Optional[Dict[str, Any]] = Field(None, description="Impression bounds")
    spend: Optional[Dict[str, Any]] = Field(None, description="Spend bounds")
    currency: Optional[str] = Field(None, description="Currency of spend")
    languages: List[str] = Field(default_factory=list, description="Ad languages")


class Insight(CamelModel):
    """Aggregated observation about competitor ads."""

    type: Literal["no_data", "platforms", "headlines", "competition_level", "copy_length"]
    title: Optional[str] = None
    message: Optional[str] = None
    data: Optional[Any] = None
    examples: Optional[List[str]] = None
    count: Optional[int] = None
    average_length: Optional[int] = None


class CompetitorAdsResult(CamelModel):
    """Competitor ads search result for one business profile."""

    own_ads: List[CompetitorAd] = Field(default_factory=list)
    competitor_ads: List[CompetitorAd] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)


class AdsLibraryStatus(CamelModel):
    """Result of probing the Facebook Ads Library credentials."""

    configured: bool
    valid: bool
    message: str
    error_code: Optional[Any] = None


# ============================================================================
# AI Generation Output
# ============================================================================

class CompetitorAnalysis(CamelModel):
    """
    Market and competitor analysis produced by the market analysis stage.

    Unknown keys returned by the model are kept as extra fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    competitors: List[Dict[str, Any]] = Field(default_factory=list)
    market_insights: Dict[str, Any] = Field(default_factory=dict)
    opportunities: List[Any] = Field(default_factory=list)
    threats: List[Any] = Field(default_factory=list)
    recommended_ad_approach: str = ""
    insights: List[Insight] = Field(default_factory=list)
    real_ads_from_library: List[CompetitorAd] = Field(default_factory=list)
    data_source: Literal["ai_only", "facebook_ads_library + ai"] = DATA_SOURCE_AI_ONLY


class AdVariant(CamelModel):
    """One ad creative. Static ads use primary_text, video ads use hook and script."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str = ""
    type: str = Field("static", description="static | video")
    angle: str = ""
    headline: str = ""
    primary_text: str = ""
    hook: str = ""
    script: str = ""
    cta: str = ""
    visual_description: str = ""
    target_emotion: str = ""


class CampaignStrategy(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    objective: str = ""
    target_audience: str = ""
    funnel_stage: str = ""
    budget_split: Dict[str, Any] = Field(default_factory=dict)
    recommended_channels: List[str] = Field(default_factory=list)


class AdCampaign(CamelModel):
    """Ad campaign produced by the campaign generation stage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    campaign_strategy: CampaignStrategy = Field(default_factory=CampaignStrategy)
    ad_variants: List[AdVariant] = Field(default_factory=list)
    landing_page_structure: Dict[str, Any] = Field(default_factory=dict)
    expected_results: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Pipeline Output
# ============================================================================

class Strategy(CamelModel):
    """Complete marketing strategy, built only after both AI stages succeed."""

    profile_id: Optional[str] = None
    profile: BusinessProfile
    competitor_analysis: CompetitorAnalysis
    ad_campaign: AdCampaign
    real_ads_data: Optional[CompetitorAdsResult] = None
    generated_at: datetime


class ProgressEvent(CamelModel):
    """Pipeline progress notification. Never persisted."""

    step: int = Field(..., ge=1)
    progress: int = Field(..., ge=0, le=100)
    message: str
