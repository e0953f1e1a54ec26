"""Per-image metadata lookups that the EXIF reader in Pillow does not cover.

The focus step count lives in the Olympus / OM System maker notes, so it is
read through exiftool, one blocking process per image. Callers that need the
value more than once are expected to keep it themselves; nothing is cached
here.
"""
import logging
import re
import subprocess
import time as time_module
from pathlib import Path

from models.catalog import ImageRecord
from settings import Settings

logger = logging.getLogger(__name__)

_EXIF_TIMESTAMP_RE = re.compile(r"(\d+):(\d+):(\d+) (\d+):(\d+):(\d+)")


def read_tag(file_path: Path, tag: str, settings: Settings) -> str | None:
    """Return exiftool's bare value for a single tag, or None.

    `-s -s -s` prints the value alone, without the tag name.
    """
    cmd = [settings.exiftool_path, "-s", "-s", "-s", f"-{tag}", str(file_path)]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",  # undecodable bytes end up as a parse failure
            check=False,
        )
    except OSError as exc:
        logger.error("Failed to run exiftool on %s: %s", file_path, exc)
        return None
    value = result.stdout.strip()
    return value or None


def read_focus_position(record: ImageRecord, settings: Settings) -> int:
    """Focus step count of `record`; 0 when it cannot be read or parsed."""
    raw = read_tag(record.full_path, settings.focus_tag, settings)
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError:
        return 0


def to_absolute_time(exif_timestamp: str | None) -> float:
    """Seconds since the epoch for a `YYYY:MM:DD HH:MM:SS` string (local time).

    Anything that does not contain the six numeric fields maps to 0.
    """
    if not exif_timestamp:
        return 0
    match = _EXIF_TIMESTAMP_RE.search(exif_timestamp)
    if match is None:
        return 0
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    try:
        return time_module.mktime((year, month, day, hour, minute, second, 0, 0, -1))
    except (OverflowError, ValueError):
        return 0
