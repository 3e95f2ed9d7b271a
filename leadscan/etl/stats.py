"""Summary figures for a list of leads."""

import re
from collections import Counter
from typing import Any, Dict, Sequence

from leadscan.models import Lead

HIGH_PRIORITY_CONDITIONS = ("Poor", "Fair")


def sq_ft_value(raw: str) -> int:
    digits = re.sub(r"[^0-9]", "", raw or "")
    return int(digits) if digits else 0


def summarize(leads: Sequence[Lead]) -> Dict[str, Any]:
    breakdown = Counter(lead.roof_condition for lead in leads)
    total = len(leads)
    avg_sq_ft = round(sum(sq_ft_value(lead.estimated_sq_ft) for lead in leads) / total) if total else 0
    return {
        "total_leads": total,
        "avg_sq_ft": avg_sq_ft,
        "condition_breakdown": dict(breakdown),
        "high_priority": sum(breakdown.get(condition, 0) for condition in HIGH_PRIORITY_CONDITIONS),
    }
