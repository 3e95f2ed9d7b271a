"""Per-lead roof analysis, one request at a time."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from leadscan.core.config import Settings
from leadscan.core.retry import RetryExecutor
from leadscan.etl.transform import MalformedResponseError, fallback_enrichment, parse_enrichment
from leadscan.models import ROOF_CONDITIONS, EnrichmentFields, EnrichmentResult, Lead
from leadscan.vendors import gemini

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str], None]
LeadCallback = Callable[[int, Lead, EnrichmentResult], None]
MergeCallback = Callable[[Lead, EnrichmentFields], None]

ANALYSIS_PROMPT = """Analyze the commercial roof at {name}. We need data for RoofMaxx targeting. Provide:
1. Precise Roof Material (e.g., TPO, EPDM, Mod-Bit).
2. Estimated Square Footage (Numeric estimate).
3. Estimated Roof Age.
4. Current condition (Excellent, Good, Fair, Poor)."""

ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "roofType": {"type": "STRING"},
        "estimatedSqFt": {"type": "STRING"},
        "estimatedAge": {"type": "STRING"},
        "roofCondition": {
            "type": "STRING",
            "description": f"Must be one of: {', '.join(ROOF_CONDITIONS)}",
        },
        "notes": {"type": "STRING"},
    },
    "required": ["roofType", "estimatedSqFt", "estimatedAge", "roofCondition"],
}


class EnrichmentStage:
    """Enriches leads strictly in order with a fixed gap between requests.

    Requests are never issued concurrently: bursts are what trips the
    provider's quota in the first place. Each lead gets its own retry
    budget, and a lead that still fails keeps its pending values while the
    loop moves on.
    """

    def __init__(
        self,
        settings: Settings,
        retry: RetryExecutor,
        *,
        analyze: Optional[Callable[..., str]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._retry = retry
        self._analyze = analyze or gemini.generate_json
        self._sleep = sleep

    def _request(self, lead: Lead) -> EnrichmentFields:
        text = self._analyze(
            ANALYSIS_PROMPT.format(name=lead.business_name),
            ANALYSIS_SCHEMA,
            model=self._settings.analysis_model,
            api_key=self._settings.gemini_api_key,
        )
        try:
            return parse_enrichment(text)
        except MalformedResponseError as exc:
            logger.warning("Unusable roof analysis for %s (%s); using fallback", lead.business_name, exc)
            return fallback_enrichment()

    def enrich_one(self, lead: Lead, on_message: Optional[MessageCallback] = None) -> EnrichmentResult:
        def on_retry(attempt: int, delay_ms: float) -> None:
            if on_message is not None:
                on_message(f"Rate limit hit for {lead.business_name}. Backing off {round(delay_ms / 1000)}s...")

        try:
            fields = self._retry.execute(lambda: self._request(lead), on_retry=on_retry)
        except Exception as exc:  # noqa: BLE001
            return EnrichmentResult.failure(exc)
        return EnrichmentResult.success(fields)

    def enrich_all(
        self,
        leads: Sequence[Lead],
        on_message: Optional[MessageCallback] = None,
        on_each: Optional[LeadCallback] = None,
        merge: Optional[MergeCallback] = None,
    ) -> int:
        """Enrich ``leads`` in place and return how many succeeded.

        ``merge`` applies a successful analysis to its lead; callers sharing
        the leads with other threads pass one that holds their lock.
        """
        notify = on_message or (lambda _msg: None)
        apply = merge or Lead.apply
        succeeded = 0

        for index, lead in enumerate(leads):
            notify(f"Analyzing satellite signatures for {lead.business_name}...")
            result = self.enrich_one(lead, notify)

            if result.ok:
                apply(lead, result.fields)
                succeeded += 1
            else:
                logger.warning("Failed to analyze lead %d (%s): %s", index, lead.business_name, result.error)

            if on_each is not None:
                on_each(index, lead, result)

            if index < len(leads) - 1:
                self._sleep(self._settings.pacing_delay_ms / 1000.0)

        return succeeded
