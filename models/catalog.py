import fnmatch
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class ImageRecord(BaseModel):
    """One photograph known to the catalog.

    `group_leader` is a non-owning forwarding link: a record points at the
    leader of its group and an ungrouped record points at itself. `None` on
    input is normalised to the record's own id.

    `capture_timestamp` is kept as the verbatim EXIF text
    (`YYYY:MM:DD HH:MM:SS`); convert with `utils.metadata.to_absolute_time`.
    """

    id: str
    path: Path  # directory holding the file
    filename: str
    capture_timestamp: str | None = None
    group_leader: str | None = None

    @model_validator(mode="after")
    def default_leader_to_self(self) -> "ImageRecord":
        if self.group_leader is None:
            self.group_leader = self.id
        return self

    @property
    def full_path(self) -> Path:
        return self.path / self.filename

    @property
    def is_grouped(self) -> bool:
        """True when the record already follows another leader."""
        return self.group_leader != self.id


class ImageCatalog(BaseModel):
    """JSON-backed image store standing in for the host photo catalog."""

    images: list[ImageRecord] = Field(default_factory=list)

    def by_id(self, image_id: str) -> ImageRecord | None:
        return next((r for r in self.images if r.id == image_id), None)

    def leader_of(self, record: ImageRecord) -> ImageRecord:
        """Follow leader links until a self-led record is reached.

        Dangling links and cycles stop at the last record that exists.
        """
        current = record
        seen = {current.id}
        while current.group_leader != current.id:
            nxt = self.by_id(current.group_leader)
            if nxt is None or nxt.id in seen:
                break
            seen.add(nxt.id)
            current = nxt
        return current

    def group_with(self, member: ImageRecord, leader: ImageRecord) -> None:
        """Make `member` part of the group led by `leader`."""
        target = self.leader_of(leader)
        if target.id == member.id:
            return
        member.group_leader = target.id

    def members_of(self, leader: ImageRecord) -> list[ImageRecord]:
        return [r for r in self.images if self.leader_of(r).id == leader.id]

    def select(self, patterns: list[str] | tuple[str, ...] = ()) -> list[ImageRecord]:
        """Return records whose filename matches any glob pattern (all if none)."""
        if not patterns:
            return list(self.images)
        return [
            r for r in self.images
            if any(fnmatch.fnmatch(r.filename, p) for p in patterns)
        ]

    @classmethod
    def load(cls, path: Path) -> "ImageCatalog":
        if not path.exists():
            return cls()
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
