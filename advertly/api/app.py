"""
Advertly FastAPI Application.

REST API for marketing strategy generation.

Features:
- Strategy generation with SSE progress stream and unary fallback
- Facebook Ads Library research endpoints
- Single-stage AI endpoints (ICP, ad variants)
- Per-identity fixed-window rate limiting
- Health check endpoint
- Automatic OpenAPI documentation

Authentication is handled upstream. The caller identity for rate limiting
is taken from the X-User-Id header, falling back to the client address.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from slowapi.util import get_remote_address

from .. import __version__
from ..core.config import Config
from ..core.errors import (
    OnboardingValidationError,
    PipelineStageError,
    PipelineTimeout,
    RateLimitExceeded,
    UpstreamAuthFailed,
    UpstreamError,
    UpstreamUnavailable,
)
from ..pipelines.strategy_generation import StrategyDependencies
from ..services.ads_library_service import FacebookAdsLibraryService
from ..services.copywriting_service import CopywritingService
from ..services.models import AdsLibraryStatus, CompetitorAdsResult, Strategy
from ..services.profile_transformer import transform_onboarding_to_profile
from ..services.rate_limiter import RateLimiter, run_purge_loop
from .models import (
    AdsSearchRequest,
    ErrorResponse,
    HealthResponse,
    LandingPageRequest,
    OnboardingRequest,
    StrategyRequest,
)
from .progress_stream import SSE_HEADERS, run_with_deadline, stream_strategy_events

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI Application Setup
# ============================================================================

app = FastAPI(
    title="Advertly API",
    description="Marketing strategy generation with competitor ads research",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# ============================================================================
# CORS Configuration
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)

# ============================================================================
# Rate Limiting
# ============================================================================

# Full pipeline runs are expensive, single-stage calls less so
app.state.strategy_limiter = RateLimiter(
    Config.STRATEGY_RATE_LIMIT,
    Config.STRATEGY_RATE_WINDOW_SECONDS,
    name="strategy",
)
app.state.ai_limiter = RateLimiter(
    Config.AI_RATE_LIMIT,
    Config.AI_RATE_WINDOW_SECONDS,
    name="ai",
)


def get_identity(request: Request) -> str:
    """Caller identity: authenticated user id if present, else client address."""
    return request.headers.get("X-User-Id") or get_remote_address(request)


def rate_limit(limiter_name: str, route_key: Optional[str] = None):
    """
    Dependency factory admitting a request through the named limiter.

    Requests are counted per (identity, route_key). Routes sharing a
    route_key share one window; without one the request path is used.
    """

    async def check(request: Request) -> None:
        limiter: RateLimiter = getattr(request.app.state, limiter_name)
        admission = limiter.admit(get_identity(request), route_key or request.url.path)
        headers = limiter.headers(admission)
        request.state.rate_limit_headers = headers

        if not admission.allowed:
            raise RateLimitExceeded(admission.retry_after(), headers)

    return check


# The stream and unary routes run the same pipeline and share one window.
strategy_rate_limit = rate_limit("strategy_limiter", "strategy")
ai_rate_limit = rate_limit("ai_limiter")


@app.middleware("http")
async def attach_rate_limit_headers(request: Request, call_next):
    """Copy rate limit headers set during admission onto the response."""
    response = await call_next(request)
    headers = getattr(request.state, "rate_limit_headers", None)
    if headers:
        response.headers.update(headers)
    return response


# ============================================================================
# Dependencies
# ============================================================================

def get_strategy_dependencies(request: Request) -> StrategyDependencies:
    """Shared services, created on first use."""
    deps = getattr(request.app.state, "strategy_deps", None)
    if deps is None:
        deps = StrategyDependencies.create()
        request.app.state.strategy_deps = deps
    return deps


def get_ads_library(
    deps: StrategyDependencies = Depends(get_strategy_dependencies),
) -> FacebookAdsLibraryService:
    return deps.ads_library


def get_copywriting(
    deps: StrategyDependencies = Depends(get_strategy_dependencies),
) -> CopywritingService:
    return CopywritingService(deps.generation)


def _error_response(
    status_code: int,
    error: str,
    message: str,
    cause: Optional[str] = None,
    category: Optional[str] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            cause=cause,
            category=category,
        ).model_dump(mode="json")
    )


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check(deps: StrategyDependencies = Depends(get_strategy_dependencies)):
    """
    Check API health and whether external services are configured.

    Does not call OpenAI or the Ads Library. Use
    ``/api/facebook-ads/status`` to check the Ads Library credentials.
    """
    services = {
        "openai": "configured" if Config.OPENAI_API_KEY else "not_configured",
        "facebook_ads_library": "configured" if deps.ads_library.configured else "not_configured",
    }

    return HealthResponse(
        status="healthy" if Config.OPENAI_API_KEY else "degraded",
        version=__version__,
        timestamp=datetime.now(),
        services=services
    )


# ============================================================================
# Strategy Generation Endpoints
# ============================================================================

@app.post(
    "/api/strategies/generate-stream",
    responses={
        200: {"content": {"text/event-stream": {}}, "description": "SSE progress stream"},
        429: {"description": "Too many requests"},
    },
    dependencies=[Depends(strategy_rate_limit)],
    tags=["Strategies"],
    summary="Generate a strategy with streamed progress"
)
async def generate_strategy_stream(
    body: StrategyRequest,
    deps: StrategyDependencies = Depends(get_strategy_dependencies),
):
    """
    Generate a marketing strategy, streaming progress as Server-Sent Events.

    The stream carries ``progress`` records and ends with one ``complete``
    record (holding the Strategy) or one ``error`` record.

    **Rate Limits:** STRATEGY_RATE_LIMIT requests per STRATEGY_RATE_WINDOW_SECONDS
    """
    logger.info(f"Streamed strategy generation requested (profile_id={body.profile_id})")
    return StreamingResponse(
        stream_strategy_events(
            body.onboarding_data,
            deps,
            profile_id=body.profile_id,
            timeout=Config.STRATEGY_TIMEOUT_SECONDS,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.post(
    "/api/strategies/generate",
    response_model=Strategy,
    responses={
        429: {"description": "Too many requests"},
        502: {"model": ErrorResponse, "description": "A generation stage failed"},
        504: {"model": ErrorResponse, "description": "Generation timed out"},
    },
    dependencies=[Depends(strategy_rate_limit)],
    tags=["Strategies"],
    summary="Generate a strategy (single response)"
)
async def generate_strategy(
    body: StrategyRequest,
    deps: StrategyDependencies = Depends(get_strategy_dependencies),
):
    """
    Generate a marketing strategy and return it when done.

    Same pipeline as the streamed endpoint, without progress events.
    """
    logger.info(f"Unary strategy generation requested (profile_id={body.profile_id})")
    return await run_with_deadline(
        body.onboarding_data,
        deps,
        profile_id=body.profile_id,
        timeout=Config.STRATEGY_TIMEOUT_SECONDS,
    )


# ============================================================================
# Facebook Ads Library Endpoints
# ============================================================================

@app.get(
    "/api/facebook-ads/status",
    response_model=AdsLibraryStatus,
    dependencies=[Depends(ai_rate_limit)],
    tags=["Facebook Ads Library"],
    summary="Check Ads Library credentials"
)
async def ads_library_status(ads_library: FacebookAdsLibraryService = Depends(get_ads_library)):
    return await ads_library.check_availability()


@app.post(
    "/api/facebook-ads/search",
    dependencies=[Depends(ai_rate_limit)],
    tags=["Facebook Ads Library"],
    summary="Search the Ads Library"
)
async def search_ads(
    body: AdsSearchRequest,
    ads_library: FacebookAdsLibraryService = Depends(get_ads_library),
):
    ads = await ads_library.search_ads(
        body.search_terms,
        country=body.country,
        active_status=body.active_status,
        limit=body.limit,
    )
    return {"ads": ads, "total": len(ads)}


@app.post(
    "/api/facebook-ads/competitors",
    response_model=CompetitorAdsResult,
    dependencies=[Depends(ai_rate_limit)],
    tags=["Facebook Ads Library"],
    summary="Own and competitor ads for a business"
)
async def competitor_ads(
    body: OnboardingRequest,
    ads_library: FacebookAdsLibraryService = Depends(get_ads_library),
):
    if not ads_library.configured:
        raise UpstreamUnavailable("FB_ACCESS_TOKEN is not configured")

    profile = transform_onboarding_to_profile(body.onboarding_data)
    return await ads_library.fetch_competitor_ads(profile)


@app.get(
    "/api/facebook-ads/ads/{ad_id}",
    dependencies=[Depends(ai_rate_limit)],
    tags=["Facebook Ads Library"],
    summary="Details of one archived ad"
)
async def ad_details(ad_id: str, ads_library: FacebookAdsLibraryService = Depends(get_ads_library)):
    return await ads_library.get_ad_details(ad_id)


@app.get(
    "/api/facebook-ads/pages/{page_id}/ads",
    dependencies=[Depends(ai_rate_limit)],
    tags=["Facebook Ads Library"],
    summary="Ads run by one page"
)
async def page_ads(
    page_id: str,
    active_status: str = "ALL",
    limit: int = 50,
    ads_library: FacebookAdsLibraryService = Depends(get_ads_library),
):
    ads = await ads_library.get_page_ads(page_id, active_status=active_status, limit=limit)
    return {"ads": ads, "total": len(ads)}


# ============================================================================
# Single-Stage AI Endpoints
# ============================================================================

@app.post(
    "/api/ai/generate-icp",
    dependencies=[Depends(ai_rate_limit)],
    tags=["AI"],
    summary="Generate an ideal customer profile"
)
async def generate_icp(
    body: OnboardingRequest,
    copywriting: CopywritingService = Depends(get_copywriting),
):
    profile = transform_onboarding_to_profile(body.onboarding_data)
    return {"icp": await copywriting.generate_icp(profile)}


@app.post(
    "/api/ai/generate-ads",
    dependencies=[Depends(ai_rate_limit)],
    tags=["AI"],
    summary="Generate ad copy variants"
)
async def generate_ads(
    body: OnboardingRequest,
    copywriting: CopywritingService = Depends(get_copywriting),
):
    profile = transform_onboarding_to_profile(body.onboarding_data)
    return {"ads": await copywriting.generate_ad_variants(profile, offer=body.offer)}


@app.post(
    "/api/ai/generate-landing-page",
    dependencies=[Depends(ai_rate_limit)],
    tags=["AI"],
    summary="Generate a landing page structure"
)
async def generate_landing_page(
    body: LandingPageRequest,
    copywriting: CopywritingService = Depends(get_copywriting),
):
    profile = transform_onboarding_to_profile(body.onboarding_data)
    sections = await copywriting.generate_landing_page(
        profile,
        offer=body.offer,
        key_messages=body.key_messages,
    )
    return {"landingPage": sections}


@app.post(
    "/api/ai/analyze-market",
    dependencies=[Depends(ai_rate_limit)],
    tags=["AI"],
    summary="Analyze the market and competitors"
)
async def analyze_market(
    body: OnboardingRequest,
    copywriting: CopywritingService = Depends(get_copywriting),
):
    profile = transform_onboarding_to_profile(body.onboarding_data)
    return {"analysis": await copywriting.analyze_market(profile)}


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """429 with the rate limit headers and a Retry-After hint."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "message": str(exc),
            "retryAfter": exc.retry_after,
        },
        headers=exc.headers,
    )


@app.exception_handler(PipelineStageError)
async def pipeline_stage_exception_handler(request: Request, exc: PipelineStageError):
    details = exc.to_dict()
    return _error_response(
        502,
        "Strategy generation failed",
        details["message"],
        cause=details["cause"],
        category=details["category"],
    )


@app.exception_handler(PipelineTimeout)
async def pipeline_timeout_exception_handler(request: Request, exc: PipelineTimeout):
    return _error_response(504, "Strategy generation timed out", str(exc), cause=exc.cause, category=exc.category)


@app.exception_handler(OnboardingValidationError)
async def onboarding_exception_handler(request: Request, exc: OnboardingValidationError):
    return _error_response(422, "Invalid onboarding data", str(exc))


@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    """Errors from single-stage routes that talk to OpenAI or the Ads Library directly."""
    if isinstance(exc, UpstreamUnavailable):
        return _error_response(503, "Facebook Ads Library unavailable", str(exc))
    category = "configuration" if isinstance(exc, UpstreamAuthFailed) else "transient"
    return _error_response(502, "AI generation failed", str(exc), category=category)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "Internal server error", str(exc))


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Log configuration and start the rate limit purge loop."""
    logger.info("="*60)
    logger.info("Advertly API Starting...")
    logger.info(f"API Version: {__version__}")
    logger.info(f"Docs available at: /docs")
    logger.info(f"OpenAI model: {Config.OPENAI_MODEL}")
    logger.info(f"Facebook Ads Library: {'configured' if Config.FB_ACCESS_TOKEN else 'not configured (AI-only analysis)'}")
    logger.info("="*60)

    app.state.purge_task = asyncio.create_task(
        run_purge_loop(
            [app.state.strategy_limiter, app.state.ai_limiter],
            Config.RATE_LIMIT_PURGE_SECONDS,
        )
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background work."""
    purge_task = getattr(app.state, "purge_task", None)
    if purge_task is not None:
        purge_task.cancel()
    logger.info("Advertly API Shutting down...")
