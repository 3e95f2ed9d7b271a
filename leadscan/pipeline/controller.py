"""Scan orchestration: discovery, then enrichment, with observable progress."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional

from leadscan.core.retry import is_rate_limit_error
from leadscan.models import EnrichmentFields, EnrichmentResult, Lead, ProgressSnapshot, Region, RunStatus
from leadscan.pipeline.discovery import DiscoveryStage
from leadscan.pipeline.enrichment import EnrichmentStage

logger = logging.getLogger(__name__)

Subscriber = Callable[[ProgressSnapshot], None]

QUOTA_MESSAGE = "Quota exhausted. Please wait a moment and try again."
FAILURE_MESSAGE = "System failure during scan. Check credentials."
NO_LEADS_MESSAGE = "No leads found in initial sweep. Try again."


class ScanInProgressError(RuntimeError):
    """Raised when a scan is requested while another one is still running."""


class PipelineController:
    """Owns the progress snapshot and the lead list of the latest scan.

    Status moves idle -> searching -> analyzing -> completed, falls back to
    idle when discovery finds nothing, and lands in error when discovery
    fails or anything unexpected escapes. Every mutation is pushed to
    subscribers; ``snapshot()`` serves pollers.
    """

    def __init__(self, discovery: DiscoveryStage, enrichment: EnrichmentStage, *, target_total: int = 500) -> None:
        self._discovery = discovery
        self._enrichment = enrichment
        self._target_total = target_total
        self._lock = threading.Lock()
        self._snapshot = ProgressSnapshot()
        self._leads: List[Lead] = []
        self._region: Optional[Region] = None
        self._subscribers: List[Subscriber] = []

    # ---------- Observers ----------

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot

    def leads(self) -> List[Lead]:
        """Copies of the current leads, taken between merges."""
        with self._lock:
            return [replace(lead) for lead in self._leads]

    def region(self) -> Optional[Region]:
        """Region of the latest scan, or ``None`` before the first one."""
        with self._lock:
            return self._region

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, snapshot: ProgressSnapshot) -> None:
        logger.info("[%s] %s (%d/%d)", snapshot.status.value, snapshot.message, snapshot.current, snapshot.total)
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(snapshot)

    def _set(self, snapshot: ProgressSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
        self._publish(snapshot)

    def _update(self, **changes) -> None:
        with self._lock:
            self._snapshot = replace(self._snapshot, **changes)
            snapshot = self._snapshot
        self._publish(snapshot)

    # ---------- Run lifecycle ----------

    def begin(self, region: Region) -> None:
        """Claim the controller for a new scan or raise ``ScanInProgressError``."""
        with self._lock:
            if self._snapshot.status.in_flight:
                raise ScanInProgressError(f"scan already {self._snapshot.status.value}")
            self._leads = []
            self._region = region
            self._snapshot = ProgressSnapshot(
                total=self._target_total,
                current=0,
                status=RunStatus.SEARCHING,
                message=f"Initializing Deep-Scan Protocols for {region.city}...",
            )
            snapshot = self._snapshot
        self._publish(snapshot)

    def execute(self, region: Region) -> List[Lead]:
        """Run discovery and enrichment for a scan already claimed via ``begin``."""
        try:
            leads = self._discovery.discover(region, on_progress=lambda msg: self._update(message=msg))
            if not leads:
                self._set(ProgressSnapshot(total=0, current=0, status=RunStatus.IDLE, message=NO_LEADS_MESSAGE))
                return []

            with self._lock:
                self._leads = leads
            self._update(
                total=len(leads),
                current=0,
                status=RunStatus.ANALYZING,
                message="Lead Discovery successful. Beginning detailed roof analysis...",
            )

            succeeded = self._enrichment.enrich_all(
                leads,
                on_message=lambda msg: self._update(message=msg),
                on_each=self._record,
                merge=self._merge,
            )

            message = f"Scan finished. {len(leads)} commercial leads secured."
            if succeeded < len(leads):
                message = f"{message} {len(leads) - succeeded} could not be analyzed."
            self._update(status=RunStatus.COMPLETED, message=message)
            return leads
        except Exception as exc:  # noqa: BLE001
            logger.exception("Scan failed for %s: %s", region, exc)
            self._update(status=RunStatus.ERROR, message=QUOTA_MESSAGE if is_rate_limit_error(exc) else FAILURE_MESSAGE)
            return self.leads()

    def run(self, region: Region) -> List[Lead]:
        self.begin(region)
        return self.execute(region)

    def _merge(self, lead: Lead, enrichment: EnrichmentFields) -> None:
        with self._lock:
            lead.apply(enrichment)

    def _record(self, index: int, lead: Lead, result: EnrichmentResult) -> None:
        with self._lock:
            current = self._snapshot
            self._snapshot = replace(
                current,
                current=index + 1,
                succeeded=current.succeeded + (1 if result.ok else 0),
                failed=current.failed + (0 if result.ok else 1),
            )
            snapshot = self._snapshot
        self._publish(snapshot)
