"""
FacebookAdsLibraryService - Competitor ads from the Facebook Ads Library.

Wraps the Graph API ``ads_archive`` endpoint. The archive is treated as a
best-effort data source: credentials may be missing or rejected, and single
queries may fail. Strategy generation must keep working in every case, so
only ``search_ads``, ``get_ad_details`` and ``get_page_ads`` raise;
``check_availability`` and ``fetch_competitor_ads`` never do.
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

import httpx

from ..core.config import Config
from ..core.errors import UpstreamUnavailable
from .models import (
    AdsLibraryStatus,
    BusinessProfile,
    CompetitorAd,
    CompetitorAdsResult,
    Insight,
)

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"

AD_FIELDS = [
    "id",
    "ad_creation_time",
    "ad_creative_bodies",
    "ad_creative_link_captions",
    "ad_creative_link_descriptions",
    "ad_creative_link_titles",
    "ad_delivery_start_time",
    "ad_delivery_stop_time",
    "ad_snapshot_url",
    "currency",
    "languages",
    "page_id",
    "page_name",
    "publisher_platforms",
    "estimated_audience_size",
    "impressions",
    "spend",
]

AD_DETAIL_FIELDS = AD_FIELDS + ["demographic_distribution", "delivery_by_region"]

PAGE_AD_FIELDS = [
    "id",
    "ad_creation_time",
    "ad_creative_bodies",
    "ad_creative_link_titles",
    "ad_snapshot_url",
    "ad_delivery_start_time",
    "ad_delivery_stop_time",
    "publisher_platforms",
]

MAX_HEADLINE_EXAMPLES = 5
MAX_TOP_PLATFORMS = 3


def _first(values: Optional[List[str]]) -> str:
    return values[0] if values else ""


def to_competitor_ad(raw: Dict[str, Any]) -> CompetitorAd:
    """Flatten a raw ads_archive record."""
    stop_date = raw.get("ad_delivery_stop_time")
    return CompetitorAd(
        id=str(raw.get("id", "")),
        page_id=raw.get("page_id"),
        page_name=raw.get("page_name") or "",
        headline=_first(raw.get("ad_creative_link_titles")),
        body=_first(raw.get("ad_creative_bodies")),
        description=_first(raw.get("ad_creative_link_descriptions")),
        link_caption=_first(raw.get("ad_creative_link_captions")),
        snapshot_url=raw.get("ad_snapshot_url"),
        platforms=raw.get("publisher_platforms") or [],
        is_active=not stop_date,
        start_date=raw.get("ad_delivery_start_time"),
        stop_date=stop_date,
        estimated_audience=raw.get("estimated_audience_size"),
        impressions=raw.get("impressions"),
        spend=raw.get("spend"),
        currency=raw.get("currency"),
        languages=raw.get("languages") or [],
    )


def is_own_ad(ad: CompetitorAd, company_name: str) -> bool:
    """
    Whether an ad was placed by the business itself.

    Case-insensitive substring match of the company name in the page name.
    Common names can produce false positives; the archive exposes no stronger
    identity signal for a free-text company name.
    """
    if not company_name:
        return False
    return company_name.lower() in ad.page_name.lower()


def derive_insights(ads: List[CompetitorAd]) -> List[Insight]:
    """
    Summarize competitor ads.

    An empty ad list yields exactly one ``no_data`` insight so consumers
    never have to special-case an empty list.
    """
    if not ads:
        return [Insight(
            type="no_data",
            message="No active competitor ads were found to analyze.",
        )]

    insights: List[Insight] = []

    platform_counts = Counter(platform for ad in ads for platform in ad.platforms)
    top_platforms = [platform for platform, _ in platform_counts.most_common(MAX_TOP_PLATFORMS)]
    if top_platforms:
        insights.append(Insight(
            type="platforms",
            title="Top platforms",
            message=f"Competitors advertise most on: {', '.join(top_platforms)}",
            data=top_platforms,
        ))

    headlines = [ad.headline for ad in ads if ad.headline]
    if headlines:
        insights.append(Insight(
            type="headlines",
            title="Competitor headlines",
            message=f"Found {len(headlines)} competitor headlines.",
            examples=headlines[:MAX_HEADLINE_EXAMPLES],
        ))

    advertisers = len({ad.page_id or ad.page_name for ad in ads})
    insights.append(Insight(
        type="competition_level",
        title="Active advertisers",
        message=f"Found {advertisers} active advertisers in this market.",
        count=advertisers,
    ))

    average_length = round(sum(len(ad.body) for ad in ads) / len(ads))
    insights.append(Insight(
        type="copy_length",
        title="Ad copy length",
        message=f"Average ad copy length: {average_length} characters",
        average_length=average_length,
    ))

    return insights


class FacebookAdsLibraryService:
    """
    Service for reading the Facebook Ads Library (Graph API ads_archive).

    Args:
        access_token: Graph API token with ads_read permission
            (defaults to Config.FB_ACCESS_TOKEN)
        api_version: Graph API version (defaults to Config.FB_API_VERSION)
        country: Default ad_reached_countries filter
        client: Optional shared httpx.AsyncClient. When omitted, a client is
            opened per request.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        api_version: Optional[str] = None,
        country: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self._access_token = Config.FB_ACCESS_TOKEN if access_token is None else access_token
        self._api_version = api_version or Config.FB_API_VERSION
        self.country = country or Config.ADS_LIBRARY_COUNTRY
        self._client = client
        self._timeout = timeout or Config.ADS_LIBRARY_TIMEOUT_SECONDS

        if not self._access_token:
            logger.warning(
                "FB_ACCESS_TOKEN not set. Competitor research will fall back to AI-only analysis."
            )

    @property
    def configured(self) -> bool:
        return bool(self._access_token)

    @property
    def base_url(self) -> str:
        return f"{GRAPH_API_URL}/{self._api_version}"

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a Graph API path and return the decoded body, raising on API errors."""
        if not self._access_token:
            raise UpstreamUnavailable("FB_ACCESS_TOKEN is not configured")

        url = f"{self.base_url}/{path}"
        query = {"access_token": self._access_token, **params}

        try:
            if self._client is not None:
                response = await self._client.get(url, params=query)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=query)
            data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Facebook Ads Library request failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Facebook Ads Library returned invalid JSON (HTTP {response.status_code})"
            ) from e

        if not isinstance(data, dict):
            raise UpstreamUnavailable("Facebook Ads Library returned an unexpected payload")

        error = data.get("error")
        if error:
            message = error.get("message", "Facebook API error") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise UpstreamUnavailable(message, code=code)

        return data

    async def check_availability(self) -> AdsLibraryStatus:
        """
        Check the archive with one cheap query.

        Returns:
            AdsLibraryStatus. Never raises.
        """
        if not self._access_token:
            return AdsLibraryStatus(
                configured=False,
                valid=False,
                message="FB_ACCESS_TOKEN is not configured",
            )

        try:
            await self._get("ads_archive", {
                "search_terms": "test",
                "ad_reached_countries": self.country,
                "limit": 1,
            })
        except UpstreamUnavailable as e:
            logger.warning(f"Facebook Ads Library availability check failed: {e}")
            return AdsLibraryStatus(
                configured=True,
                valid=False,
                message=str(e),
                error_code=e.code,
            )

        return AdsLibraryStatus(
            configured=True,
            valid=True,
            message="Facebook Ads Library API is connected",
        )

    async def search_ads(
        self,
        search_terms: str,
        country: Optional[str] = None,
        active_status: str = "ACTIVE",
        ad_type: str = "ALL",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search the archive.

        Args:
            search_terms: Keywords to search for
            country: ad_reached_countries filter (default: service country)
            active_status: ACTIVE, INACTIVE or ALL
            ad_type: ALL or POLITICAL_AND_ISSUE_ADS
            limit: Max results (default: Config.ADS_LIBRARY_LIMIT)

        Returns:
            Raw ads_archive records

        Raises:
            UpstreamUnavailable: On missing token, transport or API errors
        """
        if not search_terms:
            raise ValueError("search_terms is required")

        data = await self._get("ads_archive", {
            "search_terms": search_terms,
            "ad_reached_countries": country or self.country,
            "ad_active_status": active_status,
            "ad_type": ad_type,
            "limit": limit or Config.ADS_LIBRARY_LIMIT,
            "fields": ",".join(AD_FIELDS),
        })
        return data.get("data") or []

    async def get_ad_details(self, ad_id: str) -> Dict[str, Any]:
        """Fetch one archived ad including demographic and regional delivery."""
        return await self._get(ad_id, {"fields": ",".join(AD_DETAIL_FIELDS)})

    async def get_page_ads(
        self,
        page_id: str,
        active_status: str = "ALL",
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """Fetch ads run by one advertiser page."""
        data = await self._get("ads_archive", {
            "search_page_ids": page_id,
            "ad_reached_countries": self.country,
            "ad_active_status": active_status,
            "limit": limit,
            "fields": ",".join(PAGE_AD_FIELDS),
        })
        return data.get("data") or []

    async def fetch_competitor_ads(
        self,
        profile: BusinessProfile,
        country: Optional[str] = None,
    ) -> CompetitorAdsResult:
        """
        Find own and competitor ads for a business.

        One query per distinct search term (product description, company
        name), issued concurrently. A failing query is logged and skipped.
        Results are merged in search-term order and de-duplicated by ad id.

        Args:
            profile: Normalized business profile
            country: Optional country override

        Returns:
            CompetitorAdsResult with own_ads, competitor_ads and insights
        """
        terms: List[str] = []
        for term in (profile.product_description, profile.company_name):
            term = term.strip()
            if term and term not in terms:
                terms.append(term)

        if not terms:
            logger.info("No search terms in profile, skipping Ads Library search")
            return CompetitorAdsResult(insights=derive_insights([]))

        results = await asyncio.gather(
            *(self.search_ads(term, country=country) for term in terms),
            return_exceptions=True,
        )

        own_ads: List[CompetitorAd] = []
        competitor_ads: List[CompetitorAd] = []
        seen_ids = set()

        for term, result in zip(terms, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"Ads Library search for '{term}' failed: {result}")
                continue

            for raw in result:
                ad = to_competitor_ad(raw)
                if ad.id in seen_ids:
                    continue
                seen_ids.add(ad.id)

                if is_own_ad(ad, profile.company_name):
                    own_ads.append(ad)
                else:
                    competitor_ads.append(ad)

        logger.info(
            f"Ads Library: {len(competitor_ads)} competitor ads, {len(own_ads)} own ads "
            f"from {len(terms)} search terms"
        )

        return CompetitorAdsResult(
            own_ads=own_ads,
            competitor_ads=competitor_ads,
            insights=derive_insights(competitor_ads),
        )
