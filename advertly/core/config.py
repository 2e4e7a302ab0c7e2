"""
Configuration management for Advertly
"""

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Application configuration"""

    # OpenAI
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OPENAI_MODEL: str = os.getenv('OPENAI_MODEL', 'gpt-4o')

    # Facebook Ads Library (Graph API ads_archive)
    FB_ACCESS_TOKEN: str = os.getenv('FB_ACCESS_TOKEN', '')
    FB_API_VERSION: str = os.getenv('FB_API_VERSION', 'v18.0')
    ADS_LIBRARY_COUNTRY: str = os.getenv('ADS_LIBRARY_COUNTRY', 'CZ')
    ADS_LIBRARY_LIMIT: int = int(os.getenv('ADS_LIBRARY_LIMIT', '25'))
    ADS_LIBRARY_TIMEOUT_SECONDS: float = float(os.getenv('ADS_LIBRARY_TIMEOUT_SECONDS', '20'))

    # Generation retry policy (linear backoff: delay * attempt)
    AI_MAX_RETRIES: int = int(os.getenv('AI_MAX_RETRIES', '3'))
    AI_RETRY_DELAY_MS: int = int(os.getenv('AI_RETRY_DELAY_MS', '1000'))

    # Strategy pipeline
    STRATEGY_TIMEOUT_SECONDS: float = float(os.getenv('STRATEGY_TIMEOUT_SECONDS', '180'))

    # Rate limiting
    STRATEGY_RATE_LIMIT: int = int(os.getenv('STRATEGY_RATE_LIMIT', '3'))
    STRATEGY_RATE_WINDOW_SECONDS: int = int(os.getenv('STRATEGY_RATE_WINDOW_SECONDS', '300'))
    AI_RATE_LIMIT: int = int(os.getenv('AI_RATE_LIMIT', '5'))
    AI_RATE_WINDOW_SECONDS: int = int(os.getenv('AI_RATE_WINDOW_SECONDS', '60'))
    RATE_LIMIT_STORAGE_URI: str = os.getenv('RATE_LIMIT_STORAGE_URI', 'memory://')
    RATE_LIMIT_PURGE_SECONDS: int = int(os.getenv('RATE_LIMIT_PURGE_SECONDS', '300'))

    # API server / client
    CORS_ORIGINS: List[str] = _csv(os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173'))
    API_BASE_URL: str = os.getenv('API_BASE_URL', 'http://localhost:8000')

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'OPENAI_API_KEY': cls.OPENAI_API_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    # ========================================================================
    # Model Configuration
    # ========================================================================

    @classmethod
    def get_model(cls, key: str) -> str:
        """
        Get the configured OpenAI model for a generation stage.

        Resolution Order:
        1. Environment Variable: {KEY}_MODEL (e.g. MARKET_ANALYSIS_MODEL)
        2. Config.OPENAI_MODEL

        Args:
            key: stage name (e.g., 'market_analysis', 'ad_campaign', 'icp').
                 Keys are case-insensitive.

        Returns:
            Model identifier (e.g., 'gpt-4o')
        """
        env_model = os.getenv(f"{key.upper()}_MODEL")
        if env_model:
            return env_model

        return cls.OPENAI_MODEL
