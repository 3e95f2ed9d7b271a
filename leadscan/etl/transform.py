"""Utilities for transforming raw Gemini payloads into pipeline models."""

import json
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from leadscan.models import ROOF_CONDITIONS, UNKNOWN_CONDITION, EnrichmentFields, Lead, Region

logger = logging.getLogger(__name__)

PLACEHOLDER_ORIGIN = (40.44, -79.99)
PLACEHOLDER_SPREAD = 0.1
FALLBACK_CONDITION = "Fair"
FALLBACK_NOTES = "Technical analysis limited. Manual inspection recommended."
DISCOVERY_NOTES = "Identified via satellite grounding. High-priority commercial lead."
REQUIRED_ENRICHMENT_KEYS = ("roofType", "estimatedSqFt", "estimatedAge", "roofCondition")


class MalformedResponseError(ValueError):
    """Raised when structured output does not match the roof analysis schema."""


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _jitter(origin: float, rng: random.Random) -> float:
    return origin + (rng.random() * PLACEHOLDER_SPREAD - PLACEHOLDER_SPREAD / 2)


def to_lead(
    chunk: Any,
    position: int,
    region: Region,
    *,
    rng: random.Random,
    scanned_at: Optional[datetime] = None,
) -> Optional[Lead]:
    """Map one grounding chunk to a pending ``Lead``; ``None`` when unusable.

    ``position`` is the 1-based index of the chunk in the raw response and
    only feeds the fallback business name.
    """
    if not isinstance(chunk, dict):
        return None
    maps = chunk.get("maps")
    if not isinstance(maps, dict) or not maps:
        return None
    uri = _strip_or_none(maps.get("uri"))
    if not uri:
        return None

    stamp = scanned_at or datetime.now(timezone.utc)
    return Lead(
        id=str(uuid.uuid4()),
        business_name=_strip_or_none(maps.get("title")) or f"Commercial Asset {position}",
        address=f"{region.city} Industrial Zone, {region.state}",
        phone_number="Pending Verification",
        website=uri,
        latitude=_jitter(PLACEHOLDER_ORIGIN[0], rng),
        longitude=_jitter(PLACEHOLDER_ORIGIN[1], rng),
        business_type="Commercial / Industrial",
        google_maps_url=uri,
        roof_type="Analyzing...",
        estimated_sq_ft="Scanning...",
        roof_condition=UNKNOWN_CONDITION,
        estimated_age="Analyzing...",
        notes=DISCOVERY_NOTES,
        scanned_at=stamp.isoformat(),
    )


def to_leads(chunks: Iterable[Any], region: Region, *, rng: random.Random) -> List[Lead]:
    scanned_at = datetime.now(timezone.utc)
    leads: List[Lead] = []
    for position, chunk in enumerate(chunks or [], start=1):
        lead = to_lead(chunk, position, region, rng=rng, scanned_at=scanned_at)
        if lead is None:
            logger.debug("Skipping grounding chunk %d without maps data: %s", position, chunk)
            continue
        leads.append(lead)
    return leads


def _normalize_condition(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    for condition in ROOF_CONDITIONS:
        if value.lower() == condition.lower():
            return condition
    logger.debug("Unrecognised roof condition %r; using %s", value, FALLBACK_CONDITION)
    return FALLBACK_CONDITION


def parse_enrichment(text: Optional[str]) -> EnrichmentFields:
    """Validate the JSON roof analysis returned by the model."""
    try:
        payload = json.loads(text or "")
    except ValueError as exc:
        raise MalformedResponseError(f"response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"expected a JSON object, got {type(payload).__name__}")
    missing = [key for key in REQUIRED_ENRICHMENT_KEYS if _strip_or_none(payload.get(key)) is None]
    if missing:
        raise MalformedResponseError(f"missing fields: {', '.join(missing)}")

    return EnrichmentFields(
        roof_type=_strip_or_none(payload["roofType"]),
        estimated_sq_ft=_strip_or_none(payload["estimatedSqFt"]),
        estimated_age=_strip_or_none(payload["estimatedAge"]),
        roof_condition=_normalize_condition(_strip_or_none(payload["roofCondition"])),
        notes=_strip_or_none(payload.get("notes")),
    )


def fallback_enrichment() -> EnrichmentFields:
    return EnrichmentFields(roof_condition=FALLBACK_CONDITION, notes=FALLBACK_NOTES)

