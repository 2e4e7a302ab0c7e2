"""
Strategy Dependencies - services used by the strategy generation nodes.

Services are shared between runs. ``on_progress`` is per run: the
orchestrator attaches it to a shallow copy before starting the graph.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel

from ...services.ads_library_service import FacebookAdsLibraryService
from ...services.generation_client import GenerationClient
from ...services.models import ProgressEvent

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StrategyDependencies(BaseModel):
    """
    Typed dependencies for the strategy generation graph.

    Attributes:
        ads_library: Facebook Ads Library client (best effort)
        generation: OpenAI generation client
        on_progress: Called with each ProgressEvent of the current run
        clock: Source of the Strategy.generated_at timestamp
    """

    model_config = {"arbitrary_types_allowed": True}

    ads_library: FacebookAdsLibraryService
    generation: GenerationClient
    on_progress: Optional[Callable[[ProgressEvent], None]] = None
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def create(
        cls,
        fb_access_token: Optional[str] = None,
        openai_api_key: Optional[str] = None,
    ) -> "StrategyDependencies":
        """
        Build dependencies from Config, with optional credential overrides.

        Returns:
            StrategyDependencies with fresh service instances
        """
        ads_library = FacebookAdsLibraryService(access_token=fb_access_token)
        logger.info(
            f"FacebookAdsLibraryService initialized (configured={ads_library.configured})"
        )

        generation = GenerationClient(api_key=openai_api_key)
        logger.info(f"GenerationClient initialized (model={generation.model})")

        return cls(ads_library=ads_library, generation=generation)

    def for_run(self, on_progress: Optional[Callable[[ProgressEvent], None]]) -> "StrategyDependencies":
        """Copy with a run-specific progress callback. Services stay shared."""
        return self.model_copy(update={"on_progress": on_progress})
