#!/usr/bin/env python3
"""
Export vetted corrections as JSONL training data.

Exporting is state-transitioning: approved rows become `used`, so running the
script twice only re-emits them with `--include-used`.

Usage:
    python -m bizcore.scripts.export_training_data --tenant tenant-1
    python -m bizcore.scripts.export_training_data --tenant tenant-1 --min-quality 4 --fresh-only
"""

import argparse
from pathlib import Path
from typing import Iterable

import ujson

from bizcore.db.db_interface import utc_now
from bizcore.env_var_injection import training_export_limit, training_min_quality
from bizcore.feedback.schemas import TrainingExample
from bizcore.paths import exports_root, logs_root
from bizcore.service import BizCoreService
from bizcore.utils.log import get_logger, setup_logger

logger = get_logger(__name__)


def write_jsonl(examples: Iterable[TrainingExample], output_path: Path) -> int:
    """One JSON object per line with `prompt`, `completion` (the label) and `metadata` keys."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(output_path, "w", encoding="utf-8") as f:
        for example in examples:
            f.write(ujson.dumps(example.model_dump(), ensure_ascii=False, escape_forward_slashes=False))
            f.write("\n")
            count += 1
    return count


def default_output_path(tenant_id: str) -> Path:
    stamp = utc_now().strftime("%Y%m%d_%H%M%S")
    return exports_root / f"training_{tenant_id}_{stamp}.jsonl"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export approved classification corrections as JSONL")
    parser.add_argument("--tenant", required=True, help="Tenant id to export")
    parser.add_argument("--min-quality", type=int, default=training_min_quality,
                        help=f"Minimum quality rating (default: {training_min_quality})")
    parser.add_argument("--limit", type=int, default=training_export_limit,
                        help=f"Maximum examples (default: {training_export_limit})")
    parser.add_argument("--fresh-only", action="store_true",
                        help="Only export approved rows, skip rows already used by earlier exports")
    parser.add_argument("--output", type=Path, help="Output JSONL path (default: exports/training_<tenant>_<ts>.jsonl)")
    args = parser.parse_args(argv)

    setup_logger(logs_root)
    logger.info(f"📤 Exporting training data for tenant {args.tenant} (min quality {args.min_quality})")

    examples = BizCoreService().export_training_data(
        args.tenant, min_quality=args.min_quality, limit=args.limit, include_used=not args.fresh_only
    )
    output_path = args.output or default_output_path(args.tenant)
    count = write_jsonl(examples, output_path)
    logger.info(f"✅ Wrote {count} examples to {output_path}")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("🛑 Export stopped by user")
    except Exception as e:
        logger.error(f"❌ Export failed: {e}")
        raise
