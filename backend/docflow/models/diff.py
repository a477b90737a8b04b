"""Line diff entries produced by the diff engine."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class AddedLine(BaseModel):
    """Line present only in the proposed text."""

    type: Literal["added"] = "added"
    line: str
    line_number: int = Field(..., ge=1)


class RemovedLine(BaseModel):
    """Line present only in the original text."""

    type: Literal["removed"] = "removed"
    line: str
    line_number: int = Field(..., ge=1)


class ModifiedLine(BaseModel):
    """Line present on both sides with different text."""

    type: Literal["modified"] = "modified"
    old_line: str
    new_line: str
    line_number: int = Field(..., ge=1)


DiffEntry = Annotated[AddedLine | RemovedLine | ModifiedLine, Field(discriminator="type")]


class DiffSummary(BaseModel):
    """Entry counts by type."""

    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.modified
