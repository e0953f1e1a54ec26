"""Stage 1 (Ingest): inventory the photo folder into catalog.json.

Reads:  data/photos/, data/catalog.json (if present)
Writes: data/catalog.json

Existing records keep their id and group link, so grouping decisions from
earlier runs survive a re-scan.
"""
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from models.catalog import ImageCatalog, ImageRecord
from settings import Settings
from utils.metadata import read_tag

logger = logging.getLogger(__name__)

_PHOTO_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".tif", ".tiff", ".png", ".heic",
    ".orf", ".ors", ".dng", ".raw", ".cr2", ".cr3", ".nef", ".arw", ".rw2", ".raf",
})

_EXIF_IFD = 0x8769
# Checked in priority order: DateTimeOriginal, DateTimeDigitized (Exif IFD)
_EXIF_IFD_DATETIME_TAGS = (36867, 36868)
_IFD0_DATETIME_TAG = 306  # DateTime


def run(settings: Settings) -> ImageCatalog:
    """Scan the photo folder, merge with the stored catalog and save it.

    Returns the refreshed ImageCatalog.
    """
    existing = ImageCatalog.load(settings.catalog_path)
    if not settings.photos_dir.is_dir():
        # An unmounted drive must not wipe the stored groups
        logger.warning(
            "Photos directory not found: %s. Keeping %s unchanged.",
            settings.photos_dir, settings.catalog_path,
        )
        return existing

    known = {r.filename: r for r in existing.images}
    next_index = _next_index(existing)

    records: list[ImageRecord] = []
    for path in _inventory_photos(settings):
        record = known.get(path.name)
        timestamp = _read_capture_timestamp(path, settings)
        if record is None:
            record = ImageRecord(
                id=f"img_{next_index:04d}",
                path=path.parent,
                filename=path.name,
                capture_timestamp=timestamp,
            )
            next_index += 1
        else:
            record = record.model_copy(update={
                "path": path.parent,
                "capture_timestamp": timestamp or record.capture_timestamp,
            })
        records.append(record)

    catalog = ImageCatalog(images=records)
    dropped = _reset_dangling_links(catalog)
    catalog.save(settings.catalog_path)

    logger.info("Stage 1 complete → %s", settings.catalog_path)
    logger.info("  Images:        %d", len(records))
    logger.info("  New:           %d", sum(1 for r in records if r.filename not in known))
    logger.info("  Grouped:       %d", sum(1 for r in records if r.is_grouped))
    logger.info("  Groups:        %d", _count_groups(catalog))
    if dropped:
        logger.info("  Links reset:   %d", dropped)

    return catalog


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------

def _inventory_photos(settings: Settings) -> list[Path]:
    return sorted(
        f for f in settings.photos_dir.iterdir()
        if f.is_file() and f.suffix.lower() in _PHOTO_EXTENSIONS
    )


def _read_capture_timestamp(path: Path, settings: Settings) -> str | None:
    """EXIF capture time as its raw text; exiftool covers RAW files Pillow can't open."""
    try:
        with Image.open(path) as img:
            exif = img.getexif()
            for tag_id in _EXIF_IFD_DATETIME_TAGS:
                value = exif.get_ifd(_EXIF_IFD).get(tag_id)
                if value:
                    return str(value).strip()
            value = exif.get(_IFD0_DATETIME_TAG)
            if value:
                return str(value).strip()
            return None
    except (UnidentifiedImageError, OSError) as exc:
        logger.debug("Pillow cannot read %s (%s), asking exiftool", path.name, exc)

    return read_tag(path, "DateTimeOriginal", settings)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _next_index(catalog: ImageCatalog) -> int:
    indices = [
        int(r.id.removeprefix("img_"))
        for r in catalog.images
        if r.id.startswith("img_") and r.id.removeprefix("img_").isdigit()
    ]
    return max(indices, default=0) + 1


def _count_groups(catalog: ImageCatalog) -> int:
    """Leaders that have at least one other member."""
    return sum(
        1 for r in catalog.images
        if not r.is_grouped and len(catalog.members_of(r)) > 1
    )


def _reset_dangling_links(catalog: ImageCatalog) -> int:
    """Point records whose leader vanished from disk back at themselves."""
    ids = {r.id for r in catalog.images}
    reset = 0
    for record in catalog.images:
        if record.group_leader not in ids:
            logger.warning(
                "Leader %s of %s no longer exists; ungrouping.",
                record.group_leader, record.filename,
            )
            record.group_leader = record.id
            reset += 1
    return reset
