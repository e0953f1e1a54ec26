#!/usr/bin/env python3
"""Group focus-bracketed photos by FocusStepCount.

Usage:
    python run_grouping.py                          # scan data/photos and group everything
    python run_grouping.py --select "P90*.ORF"      # only images matching the pattern
    python run_grouping.py --skip-ingest --dry-run  # reuse catalog.json, don't save
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from models.catalog import ImageCatalog
from pipeline import stage1_ingest, stage2_group
from settings import Settings

logger = logging.getLogger("run_grouping")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--project-dir", type=Path, dest="project_dir",
                        help="Project directory (default: FBG_PROJECT_DIR or ./data)")
    parser.add_argument("--select", action="append", default=[], metavar="PATTERN",
                        help="Filename glob to include; repeatable. Default: all images")
    parser.add_argument("--ordering", choices=sorted(stage2_group.ORDERINGS),
                        help="Order images by filename (default) or capture timestamp")
    parser.add_argument("--skip-ingest", action="store_true", dest="skip_ingest",
                        help="Use catalog.json as is instead of rescanning the photos folder")
    parser.add_argument("--dry-run", action="store_true", dest="dry_run",
                        help="Report the groups without saving them to catalog.json")
    args = parser.parse_args(argv)

    overrides = {}
    if args.project_dir is not None:
        overrides["project_dir"] = args.project_dir
    if args.ordering is not None:
        overrides["ordering"] = args.ordering
    settings = Settings(**overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.skip_ingest:
        logger.info("=== Stage 1: loading %s ===", settings.catalog_path)
        catalog = ImageCatalog.load(settings.catalog_path)
    else:
        logger.info("=== Stage 1: Ingest ===")
        catalog = stage1_ingest.run(settings)

    logger.info("=== Stage 2: Group by FocusStepCount ===")
    report = stage2_group.run(settings, catalog, args.select)

    if args.dry_run:
        logger.info("=== Dry run: catalog not saved ===")
    else:
        catalog.save(settings.catalog_path)
        logger.info("=== Done → %s ===", settings.catalog_path)

    return report.groups_created


if __name__ == "__main__":
    main()
