"""CSV export of scanned leads."""

import csv
import io
import logging
import re
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from leadscan.models import Lead

logger = logging.getLogger(__name__)

HEADERS = [
    "Business Name",
    "Address",
    "Phone Number",
    "Website",
    "Latitude",
    "Longitude",
    "Business Type",
    "Google Maps URL",
    "Roof Type",
    "Estimated Sq Ft",
    "Roof Condition",
    "Estimated Age",
    "Notes",
    "Scanned At",
]


def to_row(lead: Lead) -> List[str]:
    return [
        lead.business_name,
        lead.address,
        lead.phone_number,
        lead.website,
        str(lead.latitude),
        str(lead.longitude),
        lead.business_type,
        lead.google_maps_url,
        lead.roof_type,
        lead.estimated_sq_ft,
        lead.roof_condition,
        lead.estimated_age,
        lead.notes,
        lead.scanned_at,
    ]


def to_csv(leads: Sequence[Lead]) -> str:
    """Render leads with every field quoted and embedded quotes doubled."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADERS)
    for lead in leads:
        writer.writerow(to_row(lead))
    return buffer.getvalue()


def export_filename(city: str, on: Optional[date] = None) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", city.lower()).strip("_") or "region"
    stamp = (on or date.today()).isoformat()
    return f"roofmaxx_leads_{slug}_{stamp}.csv"


def export_leads(leads: Sequence[Lead], directory: str, city: str, on: Optional[date] = None) -> Optional[Path]:
    """Write leads to a dated CSV file in ``directory``; nothing is written for no leads."""
    if not leads:
        logger.info("No leads to export.")
        return None

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir.joinpath(export_filename(city, on))
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(to_csv(leads))
    logger.info("Exported %d leads to %s", len(leads), path)
    return path
