"""Data models for merge results."""

from pydantic import BaseModel, Field, model_validator

from ..workbook import Cell, EMPTY


class MergedTable(BaseModel):
    """Merge output: a header list plus body rows aligned to it."""

    headers: list[str]
    body: list[list[str]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_row_widths(self) -> "MergedTable":
        width = len(self.headers)
        for index, row in enumerate(self.body):
            if len(row) != width:
                raise ValueError(
                    f"Row {index} has {len(row)} cells, expected {width}"
                )
        return self

    @property
    def row_count(self) -> int:
        return len(self.body)

    def to_rows(self) -> list[list[str]]:
        """Header row followed by the body rows."""
        return [list(self.headers)] + [list(row) for row in self.body]

    def head(self, limit: int) -> "MergedTable":
        """A table with only the first ``limit`` body rows."""
        return MergedTable(headers=self.headers, body=self.body[:limit])


def records_to_table(headers: list[str], records: list[dict[str, Cell]]) -> MergedTable:
    """Lay out keyed row records positionally under ``headers``."""
    return MergedTable(
        headers=list(headers),
        body=[[record.get(h, EMPTY).text() for h in headers] for record in records],
    )
