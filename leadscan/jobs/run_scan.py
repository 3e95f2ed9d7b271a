"""CLI job to scan a region for commercial roof leads and export them."""

import argparse
import logging
import random
from typing import Optional

from leadscan.core.config import ConfigError, Settings, get_settings
from leadscan.core.retry import RetryExecutor
from leadscan.etl.csv_export import export_leads
from leadscan.models import Region, RunStatus
from leadscan.pipeline.controller import PipelineController
from leadscan.pipeline.discovery import DiscoveryStage
from leadscan.pipeline.enrichment import EnrichmentStage

logger = logging.getLogger(__name__)


def build_controller(settings: Settings, rng: Optional[random.Random] = None) -> PipelineController:
    """Wire the discovery and enrichment stages, each with its own retry budget."""
    rng = rng or random.Random()
    discovery = DiscoveryStage(
        settings,
        RetryExecutor(settings.retry_max_attempts, settings.retry_base_delay_ms, rng=rng),
        rng=rng,
    )
    enrichment = EnrichmentStage(
        settings,
        RetryExecutor(settings.retry_max_attempts, settings.retry_base_delay_ms, rng=rng),
    )
    return PipelineController(discovery, enrichment, target_total=settings.target_total)


def run_scan_job(*, city: str, state: str, export_dir: Optional[str]) -> RunStatus:
    settings = get_settings()
    if not settings.gemini_api_key:
        raise ConfigError("GEMINI_API_KEY is required")

    region = Region(city=city.strip(), state=state.strip())
    if not region.city:
        raise ValueError("City must not be empty")

    controller = build_controller(settings)
    leads = controller.run(region)
    snapshot = controller.snapshot()
    logger.info("Scan ended with status=%s leads=%d", snapshot.status.value, len(leads))

    if export_dir is not None and leads:
        export_leads(leads, export_dir, region.city)
    return snapshot.status


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Scan a region for commercial roof leads")
    parser.add_argument("--city", dest="city", default=settings.city, help="City to scan")
    parser.add_argument("--state", dest="state", default=settings.state, help="State or subdivision")
    parser.add_argument(
        "--export-dir",
        dest="export_dir",
        default=settings.export_dir,
        help="Directory for the CSV export",
    )
    parser.add_argument("--no-export", dest="no_export", action="store_true", help="Skip the CSV export")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    try:
        args = build_parser().parse_args()
        status = run_scan_job(
            city=args.city,
            state=args.state,
            export_dir=None if args.no_export else args.export_dir,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    if status is RunStatus.ERROR:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
