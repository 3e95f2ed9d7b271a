"""Lead discovery: one Google Maps grounded search per scan."""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from leadscan.core.config import Settings
from leadscan.core.retry import RetryExecutor
from leadscan.etl.transform import to_leads
from leadscan.models import Lead, Region
from leadscan.vendors import gemini

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

SEARCH_PROMPT = (
    "Perform an exhaustive search for commercial industrial parks, large distribution centers, "
    "manufacturing facilities, and corporate office complexes in {region}. Focus on properties with "
    "large roof surface areas (over 20,000 sq ft). Provide details for as many as possible (aiming for "
    "a high-density lead list). These are for RoofMaxx roof preservation services."
)


def build_search_prompt(region: Region) -> str:
    return SEARCH_PROMPT.format(region=region)


def retry_message(attempt: int, delay_ms: float) -> str:
    return f"Rate limit reached. Cooling down... Retrying in {round(delay_ms / 1000)}s (Attempt {attempt})"


class DiscoveryStage:
    """Finds candidate leads for a region.

    The whole search (request plus parsing) runs inside a single retry
    budget. An empty list is a valid outcome; provider errors propagate.
    """

    def __init__(
        self,
        settings: Settings,
        retry: RetryExecutor,
        *,
        rng: Optional[random.Random] = None,
        search: Optional[Callable[..., list]] = None,
    ) -> None:
        self._settings = settings
        self._retry = retry
        self._rng = rng or random.Random()
        self._search = search or gemini.search_places

    def discover(self, region: Region, on_progress: Optional[ProgressCallback] = None) -> List[Lead]:
        notify = on_progress or (lambda _msg: None)

        def attempt() -> List[Lead]:
            notify(f"Scanning {region.city} for high-value commercial assets...")
            chunks = self._search(
                build_search_prompt(region),
                model=self._settings.search_model,
                api_key=self._settings.gemini_api_key,
                latitude=self._settings.latitude,
                longitude=self._settings.longitude,
            )
            leads = to_leads(chunks, region, rng=self._rng)
            logger.info("Discovery for %s returned %d chunks, %d usable leads", region, len(chunks), len(leads))
            return leads

        return self._retry.execute(attempt, on_retry=lambda n, delay: notify(retry_message(n, delay)))
