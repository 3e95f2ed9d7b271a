from conftest import make_lead
from leadscan.etl import stats


def test_sq_ft_value_extracts_digits():
    assert stats.sq_ft_value("85,000 sq ft") == 85000
    assert stats.sq_ft_value("Scanning...") == 0
    assert stats.sq_ft_value("") == 0


def test_summarize_counts_conditions_and_priority():
    leads = [
        make_lead("A", estimated_sq_ft="40,000", roof_condition="Poor"),
        make_lead("B", estimated_sq_ft="20000", roof_condition="Fair"),
        make_lead("C", estimated_sq_ft="Scanning...", roof_condition="Unknown"),
        make_lead("D", estimated_sq_ft="60000", roof_condition="Good"),
    ]

    summary = stats.summarize(leads)

    assert summary["total_leads"] == 4
    assert summary["avg_sq_ft"] == 30000
    assert summary["condition_breakdown"] == {"Poor": 1, "Fair": 1, "Unknown": 1, "Good": 1}
    assert summary["high_priority"] == 2


def test_summarize_empty():
    assert stats.summarize([]) == {"total_leads": 0, "avg_sq_ft": 0, "condition_breakdown": {}, "high_priority": 0}
