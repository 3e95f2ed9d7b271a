import random

import pytest

from conftest import RateLimited
from leadscan.core.retry import RetryExecutor
from leadscan.models import Region
from leadscan.pipeline.discovery import DiscoveryStage, build_search_prompt
from leadscan.vendors.gemini import GeminiError

PITTSBURGH = Region(city="Pittsburgh", state="PA")

CHUNKS = [
    {"maps": {"title": "Alpha Logistics", "uri": "https://maps.google.com/?cid=1"}},
    {"maps": {"title": "Beta Manufacturing"}},
    {"maps": {"title": "Gamma Office Park", "uri": "https://maps.google.com/?cid=3"}},
]


class FakeSearch:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_stage(settings, search, fake_sleep):
    retry = RetryExecutor(3, 2000, rng=random.Random(0), sleep=fake_sleep)
    return DiscoveryStage(settings, retry, rng=random.Random(0), search=search)


def test_discover_maps_usable_chunks(settings, fake_sleep):
    search = FakeSearch([CHUNKS])
    messages = []

    leads = make_stage(settings, search, fake_sleep).discover(PITTSBURGH, messages.append)

    assert [lead.business_name for lead in leads] == ["Alpha Logistics", "Gamma Office Park"]
    assert messages == ["Scanning Pittsburgh for high-value commercial assets..."]
    prompt, kwargs = search.calls[0]
    assert "Pittsburgh, PA" in prompt
    assert kwargs["model"] == settings.search_model
    assert kwargs["api_key"] == "test-key"
    assert (kwargs["latitude"], kwargs["longitude"]) == (settings.latitude, settings.longitude)


def test_discover_empty_result_is_not_an_error(settings, fake_sleep):
    assert make_stage(settings, FakeSearch([[]]), fake_sleep).discover(PITTSBURGH) == []


def test_discover_retries_rate_limits(settings, fake_sleep):
    search = FakeSearch([RateLimited("429"), CHUNKS])
    messages = []

    leads = make_stage(settings, search, fake_sleep).discover(PITTSBURGH, messages.append)

    assert len(leads) == 2
    assert len(search.calls) == 2
    assert len(fake_sleep.calls) == 1
    assert any(msg.startswith("Rate limit reached. Cooling down... Retrying in") for msg in messages)
    assert messages[-1] == "Scanning Pittsburgh for high-value commercial assets..."


def test_discover_propagates_exhausted_retries(settings, fake_sleep):
    search = FakeSearch([RateLimited(), RateLimited(), RateLimited()])

    with pytest.raises(RateLimited):
        make_stage(settings, search, fake_sleep).discover(PITTSBURGH)

    assert len(search.calls) == 3


def test_discover_propagates_other_errors_without_retry(settings, fake_sleep):
    search = FakeSearch([GeminiError("API key not valid", 400, "INVALID_ARGUMENT")])

    with pytest.raises(GeminiError):
        make_stage(settings, search, fake_sleep).discover(PITTSBURGH)

    assert len(search.calls) == 1
    assert fake_sleep.calls == []


def test_build_search_prompt_mentions_region():
    assert "Cleveland, OH" in build_search_prompt(Region("Cleveland", "OH"))
