"""
Core module - Configuration and error types
"""

from .config import Config
from .errors import (
    AdvertlyError,
    OnboardingValidationError,
    UpstreamError,
    UpstreamUnavailable,
    UpstreamAuthFailed,
    UpstreamRateLimited,
    UpstreamTransient,
    ParseError,
    PipelineStageError,
    PipelineTimeout,
    RateLimitExceeded,
    StrategyGenerationFailed,
)

__all__ = [
    'Config',
    'AdvertlyError',
    'OnboardingValidationError',
    'UpstreamError',
    'UpstreamUnavailable',
    'UpstreamAuthFailed',
    'UpstreamRateLimited',
    'UpstreamTransient',
    'ParseError',
    'PipelineStageError',
    'PipelineTimeout',
    'RateLimitExceeded',
    'StrategyGenerationFailed',
]
