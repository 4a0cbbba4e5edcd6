"""Keyed-lookup merge over a stored template's own rows."""

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from ..mapping import MappingRegistry
from ..workbook import Cell, EMPTY
from .models import MergedTable, records_to_table

if TYPE_CHECKING:
    from ..session.models import SessionRecord

logger = logging.getLogger(__name__)


def _find_source(sources: list["SessionRecord"], name: str) -> Optional["SessionRecord"]:
    for record in sources:
        if record.name == name:
            return record
    return None


def lookup_join(
    template: "SessionRecord",
    sources: Iterable["SessionRecord"],
    registry: MappingRegistry,
) -> list[dict[str, Cell]]:
    """
    Update the template's rows from matching source rows.

    For every template row and every mapping, the first row of the named
    source whose ``source_column`` text equals the template row's current
    ``template_column`` text is looked up; when found, that value replaces
    the template cell, otherwise the cell is left as it was. The source is
    found by file name, first upload winning.

    The join key is the mapped column itself, so a match only ever rewrites
    a cell with an equal value (possibly of a different kind, e.g. the
    number 100 for the text "100").

    Returns:
        New row records, one per template row, in template order. The
        template record itself is not modified.
    """
    source_list = list(sources)
    merged = [dict(row) for row in template.data]

    for mapping in registry:
        if not mapping.is_active:
            continue
        if mapping.template_column not in template.headers:
            logger.warning(
                f"Template column '{mapping.template_column}' not in template "
                f"'{template.name}'; mapping skipped"
            )
            continue
        source = _find_source(source_list, mapping.source_file)
        if source is None:
            logger.warning(f"Source file '{mapping.source_file}' not uploaded; mapping skipped")
            continue
        if mapping.source_column not in source.headers:
            logger.warning(
                f"Column '{mapping.source_column}' not in source '{source.name}'; mapping skipped"
            )
            continue

        for row in merged:
            key = row.get(mapping.template_column, EMPTY).text()
            for source_row in source.data:
                value = source_row.get(mapping.source_column, EMPTY)
                if value.text() == key:
                    row[mapping.template_column] = value
                    break

    return merged


def lookup_table(
    template: "SessionRecord",
    sources: Iterable["SessionRecord"],
    registry: MappingRegistry,
) -> MergedTable:
    """Run :func:`lookup_join` and lay the result out under the template headers."""
    return records_to_table(template.headers, lookup_join(template, sources, registry))
