import random

import pytest

from leadscan.etl import transform
from leadscan.models import EnrichmentFields, Region

PITTSBURGH = Region(city="Pittsburgh", state="PA")


def test_to_leads_drops_chunks_without_uri_and_keeps_order():
    chunks = [
        {"maps": {"title": "Alpha Logistics", "uri": "https://maps.google.com/?cid=1"}},
        {"maps": {"title": "Beta Manufacturing"}},
        {"maps": {"title": "Gamma Office Park", "uri": "https://maps.google.com/?cid=3"}},
    ]

    leads = transform.to_leads(chunks, PITTSBURGH, rng=random.Random(7))

    assert [lead.business_name for lead in leads] == ["Alpha Logistics", "Gamma Office Park"]
    assert len({lead.id for lead in leads}) == 2


def test_to_leads_skips_non_maps_chunks():
    chunks = [{"web": {"uri": "https://example.com"}}, None, "junk", {"maps": {}}]
    assert transform.to_leads(chunks, PITTSBURGH, rng=random.Random(7)) == []


def test_to_lead_sets_pending_sentinels():
    lead = transform.to_lead({"maps": {"uri": " https://maps.google.com/?cid=9 "}}, 4, PITTSBURGH, rng=random.Random(3))

    assert lead.business_name == "Commercial Asset 4"
    assert lead.address == "Pittsburgh Industrial Zone, PA"
    assert lead.website == lead.google_maps_url == "https://maps.google.com/?cid=9"
    assert lead.roof_type == "Analyzing..."
    assert lead.estimated_sq_ft == "Scanning..."
    assert lead.estimated_age == "Analyzing..."
    assert lead.roof_condition == "Unknown"
    assert lead.phone_number == "Pending Verification"
    assert 40.39 <= lead.latitude <= 40.49
    assert -80.04 <= lead.longitude <= -79.94


def test_placeholder_coordinates_are_reproducible():
    chunk = {"maps": {"title": "Alpha", "uri": "https://maps.google.com/?cid=1"}}
    first = transform.to_lead(chunk, 1, PITTSBURGH, rng=random.Random(99))
    second = transform.to_lead(chunk, 1, PITTSBURGH, rng=random.Random(99))
    assert (first.latitude, first.longitude) == (second.latitude, second.longitude)


def test_parse_enrichment_valid_payload():
    text = '{"roofType": "TPO", "estimatedSqFt": "85,000", "estimatedAge": "12 years", "roofCondition": "good"}'

    fields = transform.parse_enrichment(text)

    assert fields == EnrichmentFields(
        roof_type="TPO", estimated_sq_ft="85,000", estimated_age="12 years", roof_condition="Good"
    )


def test_parse_enrichment_normalizes_unknown_condition():
    text = '{"roofType": "EPDM", "estimatedSqFt": "1", "estimatedAge": "2", "roofCondition": "Leaky", "notes": "ponding"}'
    fields = transform.parse_enrichment(text)
    assert fields.roof_condition == "Fair"
    assert fields.notes == "ponding"


@pytest.mark.parametrize(
    "text",
    [
        None,
        "",
        "not json",
        "[1, 2]",
        '{"roofType": "TPO"}',
        '{"roofType": "TPO", "estimatedSqFt": "", "estimatedAge": "5", "roofCondition": "Good"}',
    ],
)
def test_parse_enrichment_rejects_malformed(text):
    with pytest.raises(transform.MalformedResponseError):
        transform.parse_enrichment(text)


def test_fallback_enrichment():
    assert transform.fallback_enrichment().updates() == {
        "roof_condition": "Fair",
        "notes": "Technical analysis limited. Manual inspection recommended.",
    }
