"""Counter read models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FieldValueCounter(BaseModel):
    """Snapshot of one named counter: observed value -> occurrences."""

    name: str
    field_value_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.field_value_counts.values())

    def most_common(self, n: int | None = None) -> list[tuple[str, int]]:
        """Values ordered by descending count, ties by value."""
        ranked = sorted(
            self.field_value_counts.items(), key=lambda kv: (-kv[1], kv[0])
        )
        return ranked if n is None else ranked[:n]
