#!/usr/bin/env python3
"""
Daily metrics job.

Computes PerformanceMetricSnapshot rows for one day (default: yesterday, UTC),
either for every tenant with corrections that day or for the given tenants.
Safe to re-run: snapshots are upserted on (tenant_id, measurement_date).

Usage:
    python -m bizcore.scripts.compute_daily_metrics
    python -m bizcore.scripts.compute_daily_metrics --date 2024-03-01 --tenant tenant-1
"""

import argparse
from datetime import date, timedelta
from typing import Optional, Sequence

from bizcore.db.db_interface import utc_now
from bizcore.paths import logs_root
from bizcore.service import BizCoreService
from bizcore.utils.log import get_logger, setup_logger

logger = get_logger(__name__)


def yesterday() -> date:
    return utc_now().date() - timedelta(days=1)


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


def run(service: BizCoreService, day: date, tenant_ids: Optional[Sequence[str]] = None) -> dict:
    if not tenant_ids:
        return service.compute_daily_metrics_for_all_tenants(day)
    return {tenant_id: service.compute_daily_metrics(tenant_id, day) for tenant_id in tenant_ids}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compute daily classification accuracy metrics")
    parser.add_argument("--date", dest="day", type=parse_day, help="Day to compute, YYYY-MM-DD (default: yesterday UTC)")
    parser.add_argument("--tenant", dest="tenants", action="append", help="Restrict to a tenant (repeatable)")
    args = parser.parse_args(argv)

    setup_logger(logs_root)
    day = args.day or yesterday()
    logger.info(f"📊 Computing daily metrics for {day}")

    results = run(BizCoreService(), day, args.tenants)
    written = sum(1 for snapshot in results.values() if snapshot is not None)
    logger.info(f"✅ Wrote {written} snapshots ({len(results) - written} tenants without corrections)")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("🛑 Metrics job stopped by user")
    except Exception as e:
        logger.error(f"❌ Metrics job failed: {e}")
        raise
