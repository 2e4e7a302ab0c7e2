"""
Error types shared by the services, the strategy pipeline and the API.

Hierarchy:
    AdvertlyError
    ├── OnboardingValidationError
    ├── UpstreamError
    │   ├── UpstreamUnavailable        (ads archive missing/invalid, recoverable)
    │   ├── UpstreamAuthFailed         (AI credential rejected, non-retryable)
    │   │   └── UpstreamRateLimited    (AI quota exhausted, non-retryable)
    │   └── UpstreamTransient          (network/provider hiccup, retried)
    │       └── ParseError             (response was not the expected JSON)
    ├── PipelineStageError             (a generation stage failed the run)
    ├── PipelineTimeout                (caller deadline exceeded)
    ├── RateLimitExceeded              (admission denied)
    └── StrategyGenerationFailed       (client side: server reported an error)
"""

from typing import Dict, Optional

# Pipeline failure causes
MARKET_ANALYSIS_FAILED = "market_analysis_failed"
CAMPAIGN_GENERATION_FAILED = "campaign_generation_failed"
TIMEOUT = "timeout"

# Failure categories, so callers can tell "try again" from "fix configuration"
CATEGORY_TRANSIENT = "transient"
CATEGORY_CONFIGURATION = "configuration"
CATEGORY_TIMEOUT = "timeout"


class AdvertlyError(Exception):
    """Base class for all Advertly errors."""


class OnboardingValidationError(AdvertlyError):
    """Raised when onboarding answers cannot be turned into a profile."""


class UpstreamError(AdvertlyError):
    """An external collaborator (OpenAI, Facebook Graph API) failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class UpstreamUnavailable(UpstreamError):
    """Ads archive could not be used. Callers degrade instead of failing."""


class UpstreamAuthFailed(UpstreamError):
    """AI provider rejected the credential. Retrying cannot help."""


class UpstreamRateLimited(UpstreamAuthFailed):
    """AI provider quota is exhausted. Retrying cannot help."""


class UpstreamTransient(UpstreamError):
    """Temporary AI provider failure, safe to retry."""


class ParseError(UpstreamTransient):
    """AI response was not valid JSON or lacked the expected array."""


class PipelineStageError(AdvertlyError):
    """A strategy generation stage failed and aborted the run."""

    def __init__(self, cause: str, error: Exception):
        self.cause = cause
        self.error = error
        if isinstance(error, UpstreamAuthFailed):
            self.category = CATEGORY_CONFIGURATION
        else:
            self.category = CATEGORY_TRANSIENT
        super().__init__(f"{cause}: {error}")

    def to_dict(self) -> Dict[str, str]:
        return {
            "message": str(self.error),
            "cause": self.cause,
            "category": self.category,
        }


class PipelineTimeout(AdvertlyError):
    """Strategy generation did not finish before the deadline."""

    cause = TIMEOUT
    category = CATEGORY_TIMEOUT

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        if timeout_seconds is None:
            message = "Strategy generation timed out"
        else:
            message = f"Strategy generation timed out after {timeout_seconds:g}s"
        super().__init__(message)

    def to_dict(self) -> Dict[str, str]:
        return {"message": str(self), "cause": self.cause, "category": self.category}


class RateLimitExceeded(AdvertlyError):
    """Raised when an identity exceeds the request budget for a route."""

    def __init__(self, retry_after: int, headers: Optional[Dict[str, str]] = None):
        self.retry_after = retry_after
        self.headers = headers or {}
        super().__init__(f"Too many requests. Please try again in {retry_after} seconds.")


class StrategyGenerationFailed(AdvertlyError):
    """The server reported a failed strategy run to the client."""

    def __init__(self, message: str, cause: Optional[str] = None, category: Optional[str] = None):
        self.cause = cause
        self.category = category
        super().__init__(message)
