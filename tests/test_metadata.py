"""Tests for the exiftool-backed metadata accessor.

subprocess.run is mocked except for one test that runs a stand-in shell script;
exiftool does not need to be installed.
"""
import logging
import sys
import time as time_module
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from models.catalog import ImageRecord
from settings import Settings
from utils.metadata import read_focus_position, read_tag, to_absolute_time


def _record() -> ImageRecord:
    return ImageRecord(id="img_0001", path=Path("/photos/session"), filename="P5010001.ORF")


def _completed(stdout: str) -> MagicMock:
    result = MagicMock()
    result.stdout = stdout
    return result


def _mock_exiftool(stdout: str = "", side_effect=None):
    return patch(
        "utils.metadata.subprocess.run",
        return_value=_completed(stdout),
        side_effect=side_effect,
    )


# ---------------------------------------------------------------------------
# read_tag / read_focus_position
# ---------------------------------------------------------------------------

class TestReadFocusPosition:
    def test_parses_integer_output(self):
        with _mock_exiftool("412\n"):
            assert read_focus_position(_record(), Settings()) == 412

    def test_negative_values_parse(self):
        with _mock_exiftool("-35\n"):
            assert read_focus_position(_record(), Settings()) == -35

    def test_builds_command_for_single_tag(self):
        with _mock_exiftool("100") as run:
            read_focus_position(_record(), Settings(exiftool_path="/usr/bin/exiftool"))
        cmd = run.call_args.args[0]
        assert cmd == [
            "/usr/bin/exiftool", "-s", "-s", "-s",
            "-MakerNotes:FocusStepCount",
            str(Path("/photos/session/P5010001.ORF")),
        ]
        assert run.call_args.kwargs["capture_output"] is True
        assert run.call_args.kwargs["text"] is True

    def test_custom_focus_tag(self):
        with _mock_exiftool("7") as run:
            read_focus_position(_record(), Settings(focus_tag="MakerNotes:FocusDistance"))
        assert "-MakerNotes:FocusDistance" in run.call_args.args[0]

    def test_unparseable_output_defaults_to_zero_silently(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="utils.metadata"), \
             _mock_exiftool("not a number\n"):
            assert read_focus_position(_record(), Settings()) == 0
        assert caplog.records == []

    def test_output_decoded_leniently(self):
        with _mock_exiftool("12") as run:
            read_focus_position(_record(), Settings())
        assert run.call_args.kwargs["encoding"] == "utf-8"
        assert run.call_args.kwargs["errors"] == "replace"

    def test_non_utf8_output_defaults_to_zero(self):
        # What subprocess hands back for b"\xff\xfe 12\n" with errors="replace"
        garbled = b"\xff\xfe 12\n".decode("utf-8", errors="replace")
        with _mock_exiftool(garbled):
            assert read_focus_position(_record(), Settings()) == 0

    def test_empty_output_defaults_to_zero(self):
        with _mock_exiftool(""):
            assert read_focus_position(_record(), Settings()) == 0

    def test_launch_failure_logs_error_and_defaults_to_zero(self, caplog):
        with caplog.at_level(logging.ERROR, logger="utils.metadata"), \
             _mock_exiftool(side_effect=FileNotFoundError("exiftool")):
            assert read_focus_position(_record(), Settings()) == 0
        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.ERROR
        assert "P5010001.ORF" in caplog.records[0].getMessage()

    def test_read_tag_strips_output(self):
        with _mock_exiftool("2026:05:01 10:00:00\n"):
            assert read_tag(Path("/x.jpg"), "DateTimeOriginal", Settings()) == "2026:05:01 10:00:00"

    def test_read_tag_returns_none_when_missing(self):
        with _mock_exiftool("\n"):
            assert read_tag(Path("/x.jpg"), "DateTimeOriginal", Settings()) is None


# ---------------------------------------------------------------------------
# to_absolute_time
# ---------------------------------------------------------------------------

class TestToAbsoluteTime:
    def test_matches_local_mktime(self):
        expected = time_module.mktime((2026, 5, 1, 10, 0, 0, 0, 0, -1))
        assert to_absolute_time("2026:05:01 10:00:00") == expected

    def test_differences_in_seconds(self):
        a = to_absolute_time("2026:05:01 10:00:00")
        b = to_absolute_time("2026:05:01 10:00:10")
        c = to_absolute_time("2026:05:01 10:01:00")
        assert b - a == 10
        assert c - a == 60

    def test_pattern_found_inside_longer_text(self):
        assert to_absolute_time("2026:05:01 10:00:00.37") == to_absolute_time("2026:05:01 10:00:00")

    @pytest.mark.parametrize("value", [None, "", "garbage", "2026-05-01 10:00:00", "2026:05:01"])
    def test_malformed_returns_epoch(self, value):
        assert to_absolute_time(value) == 0


# ---------------------------------------------------------------------------
# Real process
# ---------------------------------------------------------------------------

@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script")
def test_undecodable_exiftool_output_reads_as_zero(tmp_path):
    fake = tmp_path / "exiftool"
    fake.write_text("#!/bin/sh\nprintf '\\377\\376 12\\n'\n", encoding="utf-8")
    fake.chmod(0o755)

    assert read_focus_position(_record(), Settings(exiftool_path=str(fake))) == 0
