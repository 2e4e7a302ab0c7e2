"""
API Request/Response Models for the Advertly FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

EXAMPLE_ONBOARDING = {
    "companyName": "Acme Roofing",
    "whatYouSell": "roofing",
    "customerType": "b2c_private",
    "priceRange": "50k_200k",
    "decisionTime": "weeks",
    "mainFear": "result_quality",
    "leadQualityVsVolume": "quality_over_quantity",
    "firstStep": "assessment",
    "usp": "references",
    "guarantee": "timeline",
    "cta": "request_consultation",
}


# ============================================================================
# Strategy Generation Models
# ============================================================================

class StrategyRequest(BaseModel):
    """Request model for strategy generation (streamed and unary)."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "onboardingData": EXAMPLE_ONBOARDING,
                "profileId": "6650c1d2e4b0a1b2c3d4e5f6",
            }
        },
    )

    onboarding_data: Dict[str, Any] = Field(
        ...,
        alias="onboardingData",
        description="Raw onboarding answers"
    )
    profile_id: Optional[str] = Field(
        None,
        alias="profileId",
        description="Id of the stored business profile, echoed in the result"
    )


class OnboardingRequest(BaseModel):
    """Request model for single-stage routes that only need onboarding answers."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"onboardingData": EXAMPLE_ONBOARDING}},
    )

    onboarding_data: Dict[str, Any] = Field(..., alias="onboardingData")
    offer: Optional[str] = Field(
        None,
        description="Offer to feature in ad variants (defaults to the profile's first step)"
    )


class LandingPageRequest(OnboardingRequest):
    """Request model for landing page generation."""

    key_messages: List[str] = Field(
        default_factory=list,
        alias="keyMessages",
        description="Messages the page must carry (defaults to the USP and guarantee)"
    )


class AdsSearchRequest(BaseModel):
    """Request model for a raw Facebook Ads Library search."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {"searchTerms": "roofing", "country": "CZ", "limit": 25}
        },
    )

    search_terms: str = Field(..., alias="searchTerms", min_length=1)
    country: Optional[str] = Field(None, description="ISO country code (default: configured country)")
    active_status: str = Field("ACTIVE", alias="activeStatus", description="ACTIVE, INACTIVE or ALL")
    limit: Optional[int] = Field(None, ge=1, le=1000)


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)
    services: Dict[str, str] = Field(
        default_factory=dict,
        description="Configuration status of external services"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "timestamp": "2025-01-18T12:00:00Z",
                "services": {
                    "openai": "configured",
                    "facebook_ads_library": "not_configured"
                }
            }
        }


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    cause: Optional[str] = Field(None, description="Failure cause tag (e.g. market_analysis_failed)")
    category: Optional[str] = Field(
        None,
        description="transient (try again), configuration (fix setup) or timeout"
    )
    timestamp: datetime = Field(default_factory=datetime.now)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Strategy generation failed",
                "message": "OpenAI quota exceeded",
                "cause": "market_analysis_failed",
                "category": "configuration",
                "timestamp": "2025-01-18T12:00:00Z"
            }
        }
