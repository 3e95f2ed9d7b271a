"""Core data models shared by the lead scan pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

ROOF_CONDITIONS = ("Excellent", "Good", "Fair", "Poor")
UNKNOWN_CONDITION = "Unknown"


class RunStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def in_flight(self) -> bool:
        return self in (RunStatus.SEARCHING, RunStatus.ANALYZING)


@dataclass(frozen=True, slots=True)
class Region:
    city: str
    state: str

    def __str__(self) -> str:
        return f"{self.city}, {self.state}"


@dataclass(slots=True)
class Lead:
    """A discovered commercial property, enriched in place with roof data."""

    id: str
    business_name: str
    address: str
    phone_number: str
    website: str
    latitude: float
    longitude: float
    business_type: str
    google_maps_url: str
    roof_type: str
    estimated_sq_ft: str
    roof_condition: str
    estimated_age: str
    notes: str
    scanned_at: str

    def apply(self, enrichment: "EnrichmentFields") -> None:
        """Merge the non-empty enrichment fields into this lead."""
        for name, value in enrichment.updates().items():
            setattr(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class EnrichmentFields:
    """Partial roof analysis for a lead; ``None`` means "leave as is"."""

    roof_type: Optional[str] = None
    estimated_sq_ft: Optional[str] = None
    estimated_age: Optional[str] = None
    roof_condition: Optional[str] = None
    notes: Optional[str] = None

    def updates(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True, slots=True)
class EnrichmentResult:
    """Outcome of enriching a single lead: either ``fields`` or ``error``."""

    fields: Optional[EnrichmentFields] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, enrichment: EnrichmentFields) -> "EnrichmentResult":
        return cls(fields=enrichment)

    @classmethod
    def failure(cls, error: BaseException) -> "EnrichmentResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Externally observable state of a scan run."""

    total: int = 0
    current: int = 0
    status: RunStatus = RunStatus.IDLE
    message: str = "System ready. Awaiting command."
    succeeded: int = 0
    failed: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.current / self.total * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "current": self.current,
            "status": self.status.value,
            "message": self.message,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "percent": self.percent,
        }
