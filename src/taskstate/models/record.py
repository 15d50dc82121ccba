"""Record health model."""

from pydantic import BaseModel, Field


class RecordHealth(BaseModel):
    """Integrity report for a task record directory.

    Attributes:
        record_id: ID of the checked record.
        present: Required files that exist.
        missing: Required files that are absent.
    """

    record_id: str = Field(description="Checked record ID")
    present: list[str] = Field(default_factory=list, description="Required files found")
    missing: list[str] = Field(default_factory=list, description="Required files absent")

    @property
    def intact(self) -> bool:
        """True if no required file is missing."""
        return not self.missing

    @property
    def repairable(self) -> bool:
        """True if some, but not all, required files are missing."""
        return bool(self.missing) and bool(self.present)
