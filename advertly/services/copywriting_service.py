"""
CopywritingService - single-stage AI generation outside the full pipeline.

Used by the ``/api/ai/*`` routes to produce one artifact (ideal customer
profile, ad variants, landing page, market analysis) without running
competitor research.
"""

import logging
from typing import Any, Dict, List, Optional

from .generation_client import GenerationClient
from .models import BusinessProfile
from .strategy_prompts import (
    ad_variants_prompt,
    icp_prompt,
    landing_page_prompt,
    market_analysis_prompt,
)

logger = logging.getLogger(__name__)


class CopywritingService:
    """Service for one-shot copy generation."""

    def __init__(self, generation: GenerationClient):
        self.generation = generation

    async def generate_icp(self, profile: BusinessProfile) -> Dict[str, Any]:
        """
        Generate an ideal customer profile.

        Raises:
            UpstreamError: When generation fails after retries
        """
        logger.info(f"Generating ICP for {profile.company_name or 'unnamed company'}")
        return await self.generation.generate(icp_prompt(profile))

    async def generate_ad_variants(
        self,
        profile: BusinessProfile,
        offer: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generate standalone ad copy variants.

        Raises:
            UpstreamError: When generation fails after retries, or the
                response holds no array
        """
        logger.info(f"Generating ad variants for {profile.company_name or 'unnamed company'}")
        ads = await self.generation.generate(ad_variants_prompt(profile, offer))
        logger.info(f"Generated {len(ads)} ad variants")
        return ads

    async def generate_landing_page(
        self,
        profile: BusinessProfile,
        offer: Optional[str] = None,
        key_messages: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generate a landing page as an ordered list of sections.

        Each section has type, title, content and purpose.

        Raises:
            UpstreamError: When generation fails after retries, or the
                response holds no array
        """
        logger.info(f"Generating landing page for {profile.company_name or 'unnamed company'}")
        sections = await self.generation.generate(landing_page_prompt(profile, offer, key_messages))
        logger.info(f"Generated {len(sections)} landing page sections")
        return sections

    async def analyze_market(self, profile: BusinessProfile) -> Dict[str, Any]:
        """Market and competitor analysis from model knowledge alone."""
        logger.info(f"Analyzing market for {profile.company_name or 'unnamed company'}")
        return await self.generation.generate(market_analysis_prompt(profile))
