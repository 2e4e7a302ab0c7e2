"""
Prompt templates for strategy generation.

Each builder returns a PromptSpec ready for GenerationClient. Prompts only
read BusinessProfile labels, never raw onboarding values.
"""

import json
from typing import Any, Dict, List, Optional

from ..core.config import Config
from .generation_client import PromptSpec
from .models import BusinessProfile, CompetitorAdsResult

MAX_ADS_IN_PROMPT = 10
MAX_BODY_CHARS_IN_PROMPT = 200

MARKET_ANALYST_SYSTEM = (
    "You are an expert in digital marketing and competitor analysis. "
    "Always respond in JSON format."
)

COPYWRITER_SYSTEM = (
    "You are an expert direct response copywriter for Facebook and Instagram ads. "
    "Always respond in JSON format."
)

STRATEGIST_SYSTEM = """You are an expert marketing strategist and copywriter specializing in digital advertising.
Your role is to create compelling, data-driven marketing strategies and content for businesses.
Always respond in valid JSON format as specified.
Focus on practical, actionable insights that drive conversions."""

MARKET_ANALYSIS_SCHEMA = """{
  "competitors": [
    {
      "name": "Competitor name",
      "estimatedMarketShare": "e.g. 15%",
      "strengths": ["strength 1", "strength 2"],
      "weaknesses": ["weakness 1", "weakness 2"],
      "adStrategy": "How they advertise - channels, messaging, offers",
      "pricePositioning": "premium / mid-market / budget"
    }
  ],
  "marketInsights": {
    "totalMarketSize": "Estimated market size",
    "growthRate": "Yearly market growth",
    "mainTrends": ["trend 1", "trend 2", "trend 3"],
    "seasonality": "Seasonality of demand"
  },
  "opportunities": ["opportunity 1", "opportunity 2", "opportunity 3"],
  "threats": ["threat 1", "threat 2"],
  "recommendedAdApproach": "Recommended ad approach based on the competitor analysis"
}"""

AD_CAMPAIGN_SCHEMA = """{
  "campaignStrategy": {
    "objective": "Campaign objective",
    "targetAudience": "Target audience description",
    "funnelStage": "cold / warm / hot",
    "budgetSplit": {"coldAudience": 50, "warmAudience": 30, "hotAudience": 20},
    "recommendedChannels": ["Facebook", "Instagram"]
  },
  "adVariants": [
    {
      "name": "Variant 1 - Main",
      "type": "static",
      "angle": "Angle / hook used",
      "headline": "Ad headline (max 60 characters)",
      "primaryText": "Main ad text (100-150 words) - grab attention, explain value, drive action",
      "cta": "CTA button text",
      "visualDescription": "Visual brief for the designer",
      "targetEmotion": "Emotion the ad should trigger"
    },
    {
      "name": "Variant 2 - Video hook",
      "type": "video",
      "angle": "A different angle than variant 1",
      "headline": "Video headline",
      "hook": "First 3 seconds - what to say so people keep watching (max 15 words)",
      "script": "Full video script (30-60 seconds, scene by scene)",
      "cta": "CTA text",
      "visualDescription": "Visuals and scenes"
    },
    {
      "name": "Variant 3 - Social proof",
      "type": "static",
      "angle": "Proof and references",
      "headline": "Results-focused headline",
      "primaryText": "Copy focused on results and customer satisfaction",
      "cta": "CTA text",
      "visualDescription": "Visual with a testimonial or numbers"
    },
    {
      "name": "Variant 4 - Remarketing",
      "type": "static",
      "angle": "For people who already visited the website",
      "headline": "Remarketing headline",
      "primaryText": "Copy that handles objections and adds urgency",
      "cta": "Stronger CTA",
      "visualDescription": "Remarketing visual"
    }
  ],
  "landingPageStructure": {
    "hero": {"headline": "Main headline", "subheadline": "Subheadline explaining the offer", "cta": "CTA button"},
    "problemSection": "The customer's problem",
    "solutionSection": "How we solve it",
    "socialProof": "Which proof to show",
    "processSteps": ["Step 1", "Step 2", "Step 3"],
    "guarantee": "Guarantee copy",
    "faq": [{"question": "Question 1", "answer": "Answer 1"}],
    "finalCta": "Final call to action"
  },
  "expectedResults": {
    "estimatedCTR": "Expected CTR",
    "estimatedCPL": "Expected cost per lead",
    "keyMetricsToTrack": ["metric 1", "metric 2", "metric 3"],
    "optimizationTips": ["tip 1", "tip 2", "tip 3"]
  }
}"""

ICP_SCHEMA = """{
  "demographics": {
    "ageRange": "e.g., 35-55",
    "gender": "e.g., Mixed",
    "incomeLevel": "e.g., 75,000+",
    "education": "e.g., Bachelor's degree or higher"
  },
  "psychographics": {
    "values": ["value1", "value2", "value3"],
    "lifestyle": "Description of lifestyle (2-3 sentences)",
    "painPoints": ["pain1", "pain2", "pain3", "pain4"]
  },
  "behaviors": {
    "purchasingBehavior": "How they make purchase decisions",
    "onlineActivity": "Where they spend time online",
    "mediaConsumption": ["platform1", "platform2", "platform3"]
  },
  "dreamOutcome": "What they really want (one sentence)",
  "fears": ["fear1", "fear2", "fear3"],
  "boundaries": ["boundary1", "boundary2"]
}"""

AD_VARIANTS_SCHEMA = """[
  {
    "type": "cold_static",
    "headline": "Compelling headline (max 60 chars)",
    "hook": "Attention-grabbing first line (15-20 words)",
    "body": "Main copy explaining benefits (40-60 words)",
    "cta": "Call to action button text (2-4 words)",
    "visualDescription": "Description for designer of visual/image needed"
  },
  {
    "type": "cold_video",
    "headline": "Video headline (max 60 chars)",
    "hook": "First 3 seconds hook (10-15 words)",
    "body": "Video script summary (80-100 words)",
    "cta": "Call to action button text",
    "script": "Full video script with scene descriptions"
  },
  {
    "type": "remarketing",
    "headline": "Remarketing ad headline",
    "hook": "Remarketing hook - address objections (15-20 words)",
    "body": "Social proof and risk reversal (50-70 words)",
    "cta": "Remarketing CTA",
    "visualDescription": "Testimonial or proof-based visual"
  }
]"""

LANDING_PAGE_SCHEMA = """[
  {
    "type": "hero",
    "title": "Main headline (max 100 chars)",
    "content": "Hero section copy with offer (30-50 words)",
    "purpose": "Why this section is important"
  },
  {
    "type": "social_proof",
    "title": "Section title",
    "content": "Social proof elements to include (testimonials, numbers, brands, etc.)",
    "purpose": "Build credibility"
  },
  {
    "type": "features",
    "title": "Features/Benefits",
    "content": "List 4-5 key benefits with brief descriptions",
    "purpose": "Show what customers get"
  },
  {
    "type": "guarantee",
    "title": "Guarantee/Risk Reversal",
    "content": "Money-back guarantee or risk-free offer details",
    "purpose": "Remove buying friction"
  },
  {
    "type": "faq",
    "title": "Frequently Asked Questions",
    "content": "3-4 most important FAQs with answers",
    "purpose": "Address common objections"
  },
  {
    "type": "cta",
    "title": "Final Call to Action",
    "content": "Final push to conversion with deadline or urgency",
    "purpose": "Drive immediate action"
  }
]"""


def _competitor_ads_context(ads_data: Optional[CompetitorAdsResult]) -> str:
    if ads_data is None or not ads_data.competitor_ads:
        return (
            "NOTE: No real ads from the Facebook Ads Library are available.\n"
            "Analyze competitors based on your knowledge of the market and industry."
        )

    lines = ["REAL COMPETITOR ADS (from the Facebook Ads Library):"]
    for i, ad in enumerate(ads_data.competitor_ads[:MAX_ADS_IN_PROMPT], start=1):
        lines.append(f"{i}. {ad.page_name}")
        lines.append(f"   Headline: {ad.headline or 'N/A'}")
        lines.append(f"   Text: {ad.body[:MAX_BODY_CHARS_IN_PROMPT] or 'N/A'}")
        lines.append(f"   Platforms: {', '.join(ad.platforms) or 'N/A'}")

    advertisers = len({ad.page_id or ad.page_name for ad in ads_data.competitor_ads})
    lines.append(
        f"\nFound {len(ads_data.competitor_ads)} active ads from {advertisers} competitors in total."
    )
    return "\n".join(lines)


def market_analysis_prompt(
    profile: BusinessProfile,
    ads_data: Optional[CompetitorAdsResult] = None,
) -> PromptSpec:
    """Competitor and market analysis for a business."""
    user = f"""Based on the following business information, analyze the market and competitors:

Company: {profile.company_name}
Product/service: {profile.product_description}
Customer type: {profile.customer_type}
Price range: {profile.price_range.label}
USP: {profile.usp}

{_competitor_ads_context(ads_data)}

Return the analysis in this JSON format:
{MARKET_ANALYSIS_SCHEMA}

Return ONLY valid JSON, nothing else."""

    return PromptSpec(
        system=MARKET_ANALYST_SYSTEM,
        user=user,
        temperature=0.7,
        max_tokens=3000,
        model=Config.get_model("market_analysis"),
    )


def ad_campaign_prompt(profile: BusinessProfile, analysis: Dict[str, Any]) -> PromptSpec:
    """Complete ad campaign built on the competitor analysis."""
    user = f"""Create a complete ad campaign based on the following information:

COMPANY:
- Name: {profile.company_name}
- Product: {profile.product_description}
- Customer: {profile.customer_type}
- Price: {profile.price_range.label}
- Decision time: {profile.decision_time}
- Customer's main fear: {profile.main_fear}
- Lead goal: {profile.lead_quality_preference}
- First step: {profile.first_step}
- USP: {profile.usp}
- Guarantee: {profile.guarantee}
- CTA: {profile.cta}

COMPETITOR ANALYSIS:
{json.dumps(analysis, indent=2, ensure_ascii=False)}

Return the campaign in this JSON format:
{AD_CAMPAIGN_SCHEMA}

Return ONLY valid JSON."""

    return PromptSpec(
        system=COPYWRITER_SYSTEM,
        user=user,
        temperature=0.8,
        max_tokens=4000,
        model=Config.get_model("ad_campaign"),
    )


def icp_prompt(profile: BusinessProfile) -> PromptSpec:
    """Ideal customer profile for a business."""
    user = f"""You are an expert in creating Ideal Customer Profiles (ICP). Based on the company profile below, create a detailed ICP.

Company Profile:
- Company: {profile.company_name}
- Product/Service: {profile.product_description}
- Customer type: {profile.customer_type}
- Price range: {profile.price_range.label}
- Main fear: {profile.main_fear}
- USP: {profile.usp}

Create an Ideal Customer Profile in JSON format with these exact keys:
{ICP_SCHEMA}"""

    return PromptSpec(
        system=STRATEGIST_SYSTEM,
        user=user,
        temperature=0.7,
        max_tokens=2000,
        model=Config.get_model("icp"),
    )


def ad_variants_prompt(profile: BusinessProfile, offer: Optional[str] = None) -> PromptSpec:
    """Standalone ad copy variants. The model wraps the array in {"ads": [...]}."""
    user = f"""Create compelling ad variants for the following business.

Company: {profile.company_name}
Product/Service: {profile.product_description}
USP: {profile.usp}
Guarantee: {profile.guarantee}
Offer: {offer or profile.first_step}
CTA: {profile.cta}

Return the ad variants as an array with this exact structure for each:
{AD_VARIANTS_SCHEMA}"""

    return PromptSpec(
        system=STRATEGIST_SYSTEM + '\nIMPORTANT: Wrap your response array in an object with key "ads". Example: {"ads": [...]}',
        user=user,
        temperature=0.8,
        max_tokens=3000,
        expect_array=True,
        model=Config.get_model("ad_variants"),
    )


def landing_page_prompt(
    profile: BusinessProfile,
    offer: Optional[str] = None,
    key_messages: Optional[List[str]] = None,
) -> PromptSpec:
    """Landing page sections. The model wraps the array in {"sections": [...]}."""
    messages = key_messages or [m for m in (profile.usp, profile.guarantee) if m]
    user = f"""Design a high-converting landing page structure for the following business.

Company: {profile.company_name}
Product/Service: {profile.product_description}
Irresistible Offer: {offer or profile.first_step or 'Special offer'}
Key Messages: {', '.join(messages)}

Return the landing page as an array of sections with this structure:
{LANDING_PAGE_SCHEMA}"""

    return PromptSpec(
        system=STRATEGIST_SYSTEM + '\nIMPORTANT: Wrap your response array in an object with key "sections". Example: {"sections": [...]}',
        user=user,
        temperature=0.7,
        max_tokens=2500,
        expect_array=True,
        model=Config.get_model("landing_page"),
    )
