"""In-memory registry of column mappings."""

import logging
from typing import Iterable, Iterator, Optional, Union

from ..workbook import Workbook
from .models import ColumnMapping, MappingIssue, MissingMappingTargetError

logger = logging.getLogger(__name__)


class MappingRegistry:
    """
    Ordered set of column mappings keyed by template column.

    There is never more than one entry per template column; a later
    ``set_mapping`` for the same column replaces the earlier one.
    """

    def __init__(self, mappings: Optional[Iterable[ColumnMapping]] = None):
        self._entries: dict[str, ColumnMapping] = {}
        for mapping in mappings or []:
            self.set_mapping(
                mapping.template_column, mapping.source_file, mapping.source_column
            )

    @classmethod
    def from_list(cls, mappings: Iterable[Union[ColumnMapping, dict]]) -> "MappingRegistry":
        """Build a registry from request payloads (last write wins)."""
        return cls(
            m if isinstance(m, ColumnMapping) else ColumnMapping.model_validate(m)
            for m in mappings
        )

    def set_mapping(
        self,
        template_column: str,
        source_file: Optional[str],
        source_column: Optional[str] = None,
    ) -> ColumnMapping:
        """
        Create or update the mapping for ``template_column``.

        Setting a source file always replaces the whole (file, column) pair,
        so the column stored for a previous file is dropped and never paired
        with a file it was not chosen from. Passing ``source_file=None`` on an
        existing entry only updates its column.
        """
        existing = self._entries.get(template_column)
        if existing is None or source_file is not None:
            mapping = ColumnMapping(
                template_column=template_column,
                source_file=source_file or None,
                source_column=source_column or None,
            )
        else:
            mapping = existing.model_copy(update={"source_column": source_column or None})

        self._entries[template_column] = mapping
        logger.debug(
            f"Mapping set: {template_column} <- {mapping.source_file}.{mapping.source_column}"
        )
        return mapping

    def clear_mapping(self, template_column: str) -> bool:
        """Remove the mapping for ``template_column``; True if one existed."""
        return self._entries.pop(template_column, None) is not None

    def clear(self):
        self._entries.clear()

    def get(self, template_column: str) -> Optional[ColumnMapping]:
        return self._entries.get(template_column)

    def mappings_for_source(self, source_file: str) -> list[ColumnMapping]:
        """All entries whose source file equals ``source_file``."""
        return [m for m in self._entries.values() if m.source_file == source_file]

    def active_mappings_for_source(self, source_file: str) -> list[ColumnMapping]:
        """Entries for ``source_file`` that also have a source column set."""
        return [m for m in self.mappings_for_source(source_file) if m.is_active]

    def to_list(self) -> list[ColumnMapping]:
        return list(self._entries.values())

    def validate(self, workbooks: Iterable[Workbook]) -> list[MissingMappingTargetError]:
        """
        Report mappings that cannot be resolved against the given workbooks.

        The returned errors are informational; merging treats the same gaps
        as blank cells.
        """
        by_name: dict[str, Workbook] = {}
        for workbook in workbooks:
            by_name.setdefault(workbook.name, workbook)

        issues = []
        for mapping in self._entries.values():
            if not mapping.source_file:
                continue
            workbook = by_name.get(mapping.source_file)
            if workbook is None:
                issues.append(
                    MissingMappingTargetError(mapping, MappingIssue.UNKNOWN_SOURCE_FILE)
                )
            elif not mapping.source_column:
                issues.append(
                    MissingMappingTargetError(mapping, MappingIssue.SOURCE_COLUMN_UNSET)
                )
            elif mapping.source_column not in workbook.headers:
                issues.append(
                    MissingMappingTargetError(mapping, MappingIssue.UNKNOWN_SOURCE_COLUMN)
                )
        return issues

    def __iter__(self) -> Iterator[ColumnMapping]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, template_column: str) -> bool:
        return template_column in self._entries
