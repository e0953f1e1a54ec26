from pydantic import BaseModel, Field, computed_field


class GroupingThresholds(BaseModel):
    """Adjacency limits between two neighbouring images. Both are inclusive."""

    time_gap_seconds: int = Field(default=10, ge=0)
    focus_step_threshold: int = Field(default=150, ge=0)

    @classmethod
    def from_settings(cls, settings) -> "GroupingThresholds":
        return cls(
            time_gap_seconds=settings.time_gap_seconds,
            focus_step_threshold=settings.focus_step_threshold,
        )


class BracketGroup(BaseModel):
    leader_id: str
    member_ids: list[str] = Field(min_length=2)  # leader first

    @computed_field  # type: ignore[misc]
    @property
    def size(self) -> int:
        return len(self.member_ids)


class GroupingReport(BaseModel):
    """Outcome of one grouping pass.

    `candidates` counts the ungrouped images that took part in the pass;
    `skipped_grouped` counts the ones filtered out as already grouped.
    """

    candidates: int = 0
    skipped_grouped: int = 0
    groups: list[BracketGroup] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def groups_created(self) -> int:
        return len(self.groups)
