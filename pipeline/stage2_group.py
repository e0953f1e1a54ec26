"""Stage 2 (Grouping): collect focus brackets into catalog groups.

Candidates are walked once in a fixed order. Each image joins the run of its
predecessor when

  Δt     = t(current) − t(previous)            <= time_gap_seconds
  Δfocus = |focus(previous) − focus(current)|  <= focus_step_threshold

otherwise the run is closed and a new one starts. Runs of two or more images
become a catalog group led by their first image; single images stay as they
are.

Δt is signed on purpose: it relies on the ordering being ascending in time,
so an out-of-order pair with a negative difference still counts as adjacent.

Reads:  data/catalog.json
Writes: data/.cache/grouping_report.json (the catalog itself is saved by the caller)
"""
import logging
from typing import Callable

from models.brackets import BracketGroup, GroupingReport, GroupingThresholds
from models.catalog import ImageCatalog, ImageRecord
from settings import Settings
from utils.metadata import read_focus_position, to_absolute_time

logger = logging.getLogger(__name__)

FocusReader = Callable[[ImageRecord], int]


def _by_filename(record: ImageRecord):
    return record.filename


def _by_capture_time(record: ImageRecord):
    return to_absolute_time(record.capture_timestamp), record.filename


# Filename order stands in for capture order: EXIF timestamps only have
# one-second resolution, which cannot separate the frames of a fast bracket.
# It is only as good as the camera's file numbering.
ORDERINGS: dict[str, Callable[[ImageRecord], object]] = {
    "filename": _by_filename,
    "timestamp": _by_capture_time,
}


def run(
    settings: Settings,
    catalog: ImageCatalog,
    patterns: list[str] | tuple[str, ...] = (),
    focus_reader: FocusReader | None = None,
) -> GroupingReport:
    """Group the selected catalog images and write grouping_report.json.

    Mutates `catalog` in place; persisting it is left to the caller.
    """
    if focus_reader is None:
        def focus_reader(record: ImageRecord) -> int:
            return read_focus_position(record, settings)

    candidates = catalog.select(patterns)
    report = group_brackets(
        catalog,
        candidates,
        focus_reader,
        GroupingThresholds.from_settings(settings),
        ORDERINGS[settings.ordering],
    )

    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    settings.report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Stage 2 complete → %s", settings.report_path)

    return report


def group_brackets(
    catalog: ImageCatalog,
    candidates: list[ImageRecord],
    focus_reader: FocusReader,
    thresholds: GroupingThresholds,
    sort_key: Callable[[ImageRecord], object] = _by_filename,
) -> GroupingReport:
    """Partition `candidates` into focus brackets and group them in `catalog`."""
    ungrouped = _filter_ungrouped(candidates)
    skipped = len(candidates) - len(ungrouped)

    if len(ungrouped) < 2:
        logger.info("Not enough ungrouped images to process.")
        return GroupingReport(candidates=len(ungrouped), skipped_grouped=skipped)

    logger.info("Running focus bracket grouping on %d images.", len(ungrouped))
    images = sorted(ungrouped, key=sort_key)

    groups: list[BracketGroup] = []
    previous = images[0]
    previous_step = focus_reader(previous)
    current_run = [previous]

    for i, image in enumerate(images[1:], start=2):
        time_diff = (
            to_absolute_time(image.capture_timestamp)
            - to_absolute_time(previous.capture_timestamp)
        )
        step = focus_reader(image)
        step_diff = abs(step - previous_step)

        logger.debug(
            "[%d → %d] Δt = %ds, Δfocus = %d (values: %d → %d)",
            i - 1, i, time_diff, step_diff, previous_step, step,
        )

        if (time_diff <= thresholds.time_gap_seconds
                and step_diff <= thresholds.focus_step_threshold):
            logger.debug("→ Added to current group")
            current_run.append(image)
        else:
            _close_run(catalog, current_run, groups)
            current_run = [image]

        previous = image
        previous_step = step

    _close_run(catalog, current_run, groups)

    logger.info("Grouping complete. %d group(s) created.", len(groups))
    return GroupingReport(
        candidates=len(ungrouped),
        skipped_grouped=skipped,
        groups=groups,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _filter_ungrouped(candidates: list[ImageRecord]) -> list[ImageRecord]:
    ungrouped: list[ImageRecord] = []
    for record in candidates:
        if record.is_grouped:
            logger.debug("Skipping already grouped image: %s", record.filename)
        else:
            ungrouped.append(record)
    return ungrouped


def _close_run(
    catalog: ImageCatalog,
    run_images: list[ImageRecord],
    groups: list[BracketGroup],
) -> None:
    if len(run_images) < 2:
        logger.debug("→ Skipped single image (not grouped)")
        return

    leader = run_images[0]
    for member in run_images[1:]:
        catalog.group_with(member, leader)
    groups.append(BracketGroup(
        leader_id=leader.id,
        member_ids=[r.id for r in run_images],
    ))
    logger.debug("→ Grouped %d images (leader %s)", len(run_images), leader.filename)
