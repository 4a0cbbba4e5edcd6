"""Data models for template-to-source column mappings."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ColumnMapping(BaseModel):
    """Association of one template column with a column of a source file."""

    model_config = ConfigDict(populate_by_name=True)

    template_column: str = Field(alias="templateColumn")
    source_file: Optional[str] = Field(default=None, alias="sourceFile")
    source_column: Optional[str] = Field(default=None, alias="sourceColumn")

    @property
    def is_active(self) -> bool:
        """True when both a source file and a source column are set."""
        return bool(self.source_file) and bool(self.source_column)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class MappingIssue(str, Enum):
    """Why a mapping cannot be resolved."""

    UNKNOWN_SOURCE_FILE = "unknown_source_file"
    UNKNOWN_SOURCE_COLUMN = "unknown_source_column"
    SOURCE_COLUMN_UNSET = "source_column_unset"


class MissingMappingTargetError(Exception):
    """A mapping references a source file or column that cannot be resolved.

    Merging never raises this; it is reported by validation so a partially
    configured mapping can still be previewed.
    """

    def __init__(self, mapping: ColumnMapping, issue: MappingIssue):
        self.mapping = mapping
        self.issue = issue
        super().__init__(
            f"Mapping for '{mapping.template_column}' cannot be resolved: "
            f"{issue.value} (source file: {mapping.source_file!r}, "
            f"source column: {mapping.source_column!r})"
        )
