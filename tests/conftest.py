from pathlib import Path

import pytest

from models.catalog import ImageCatalog, ImageRecord
from settings import Settings


@pytest.fixture
def tmp_settings(tmp_path: Path) -> Settings:
    """Settings instance pointing at a fresh temp project.

    Directory layout mirrors the real project:
        data/photos/      images to group
        data/catalog.json image store (created on first ingest)
        data/.cache/      grouping reports
    """
    (tmp_path / "photos").mkdir()
    return Settings(project_dir=tmp_path)


@pytest.fixture
def make_catalog():
    """Factory: build a catalog from (filename, capture_timestamp) pairs.

    Ids follow the input order: img_0001, img_0002, ...
    """
    def _make(entries: list[tuple[str, str | None]]) -> ImageCatalog:
        return ImageCatalog(images=[
            ImageRecord(
                id=f"img_{i:04d}",
                path=Path("/photos"),
                filename=filename,
                capture_timestamp=timestamp,
            )
            for i, (filename, timestamp) in enumerate(entries, start=1)
        ])
    return _make
