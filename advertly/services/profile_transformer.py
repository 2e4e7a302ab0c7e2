"""
Profile Transformer - onboarding answers to a normalized BusinessProfile.

Onboarding forms store enum values (``b2c_private``, ``50k_200k``...). Prompts
need readable labels. This module owns the lookup tables between the two so
prompt wording can change without touching the intake schema.

The transformation is pure and total: unknown values pass through unchanged,
missing values become empty strings.
"""

from typing import Any, Dict, Mapping, Optional

from ..core.errors import OnboardingValidationError
from .models import BusinessProfile, PriceRange

PRICE_RANGES: Dict[str, Dict[str, Any]] = {
    "under_50k": {"min": 0, "max": 50000, "label": "under 50,000"},
    "50k_200k": {"min": 50000, "max": 200000, "label": "50,000 - 200,000"},
    "200k_1m": {"min": 200000, "max": 1000000, "label": "200,000 - 1,000,000"},
    "1m_5m": {"min": 1000000, "max": 5000000, "label": "1 - 5 million"},
    "over_5m": {"min": 5000000, "max": 50000000, "label": "over 5 million"},
}
PRICE_RANGE_NOT_SPECIFIED = "not specified"

CUSTOMER_TYPES = {
    "b2c_private": "B2C - homeowners and private customers",
    "b2b_business": "B2B - companies and corporations",
    "mixed": "Mix of B2C and B2B",
}

DECISION_TIMES = {
    "days": "days",
    "weeks": "weeks",
    "months": "months",
}

MAIN_FEARS = {
    "price_roi": "price and return on investment",
    "result_quality": "the result will not match expectations",
    "technical_issues": "technical complications",
    "time_disruption": "length of the project and disruption to daily life",
}

LEAD_QUALITY = {
    "quality_over_quantity": "quality - fewer leads, but serious buyers",
    "volume_over_quality": "volume - more leads, including undecided ones",
}

FIRST_STEPS = {
    "consultation": "expert consultation",
    "assessment": "technical assessment / site survey",
    "price_estimate": "rough price estimate",
    "checklist": "checklist / guide",
    "none": "no free first step",
}

USPS = {
    "speed": "speed of delivery",
    "quality": "workmanship quality and attention to detail",
    "custom_solution": "custom-made solution",
    "technology": "technical solution and innovation",
    "references": "references and similar completed projects",
    "price": "best price on the market",
}

GUARANTEES = {
    "output_match": "result matches the approved design",
    "timeline": "delivery on the agreed date",
    "fixed_price": "fixed price with no surcharges",
    "satisfaction": "customer satisfaction / free adjustments",
    "none": "no formal guarantee",
}

CTAS = {
    "request_consultation": "Request a consultation",
    "book_meeting": "Book a meeting",
    "send_info": "Send project details",
}

# Fallback labels when the user picked "other" but left the text field empty
OTHER_FEAR = "other concern"
OTHER_USP = "other advantage"
OTHER_CTA = "Get in touch"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _label(table: Mapping[str, str], value: Any) -> str:
    """Map an enum value to its label, passing unknown values through."""
    raw = _text(value)
    return table.get(raw, raw)


def _label_or_other(table: Mapping[str, str], value: Any, other_text: Any, other_default: str) -> str:
    raw = _text(value)
    if raw == "other":
        return _text(other_text) or other_default
    return table.get(raw, raw)


def _price_range(value: Any) -> PriceRange:
    raw = _text(value)
    if not raw:
        return PriceRange(label=PRICE_RANGE_NOT_SPECIFIED)
    if raw in PRICE_RANGES:
        return PriceRange(**PRICE_RANGES[raw])
    return PriceRange(label=raw)


def transform_onboarding_to_profile(answers: Optional[Mapping[str, Any]]) -> BusinessProfile:
    """
    Build a BusinessProfile from raw onboarding answers.

    Args:
        answers: Onboarding form answers keyed by the form's field names
            (companyName, whatYouSell, customerType, priceRange, ...)

    Returns:
        BusinessProfile with every enum value replaced by its label

    Raises:
        OnboardingValidationError: If answers is not a mapping at all
    """
    if answers is None:
        answers = {}
    if not isinstance(answers, Mapping):
        raise OnboardingValidationError(
            f"Onboarding answers must be an object, got {type(answers).__name__}"
        )

    return BusinessProfile(
        company_name=_text(answers.get("companyName")),
        product_description=_text(answers.get("whatYouSell")),
        customer_type=_label(CUSTOMER_TYPES, answers.get("customerType")),
        price_range=_price_range(answers.get("priceRange")),
        decision_time=_label(DECISION_TIMES, answers.get("decisionTime")),
        main_fear=_label_or_other(MAIN_FEARS, answers.get("mainFear"), answers.get("mainFearOther"), OTHER_FEAR),
        lead_quality_preference=_label(LEAD_QUALITY, answers.get("leadQualityVsVolume")),
        first_step=_label(FIRST_STEPS, answers.get("firstStep")),
        usp=_label_or_other(USPS, answers.get("usp"), answers.get("uspOther"), OTHER_USP),
        guarantee=_label(GUARANTEES, answers.get("guarantee")),
        cta=_label_or_other(CTAS, answers.get("cta"), answers.get("ctaOther"), OTHER_CTA),
    )
