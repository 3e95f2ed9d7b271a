import random
import sys
from pathlib import Path

import pytest

# Ensure the `leadscan` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from leadscan.core.config import Settings  # noqa: E402
from leadscan.models import Lead  # noqa: E402


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key", pacing_delay_ms=800)


@pytest.fixture
def rng():
    return random.Random(1234)


class FakeSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


class RateLimited(Exception):
    status = 429


def make_lead(name="Acme Distribution", **overrides):
    values = dict(
        id=f"id-{name}",
        business_name=name,
        address="Pittsburgh Industrial Zone, PA",
        phone_number="Pending Verification",
        website="https://maps.google.com/?cid=1",
        latitude=40.44,
        longitude=-79.99,
        business_type="Commercial / Industrial",
        google_maps_url="https://maps.google.com/?cid=1",
        roof_type="Analyzing...",
        estimated_sq_ft="Scanning...",
        roof_condition="Unknown",
        estimated_age="Analyzing...",
        notes="Identified via satellite grounding. High-priority commercial lead.",
        scanned_at="2026-10-18T12:00:00+00:00",
    )
    values.update(overrides)
    return Lead(**values)
