"""Row-concatenation merge used by the interactive preview and export."""

import logging
from typing import Iterable

from ..mapping import MappingRegistry
from ..workbook import Workbook, data_rows, resolve_column
from .models import MergedTable

logger = logging.getLogger(__name__)


def concatenate_rows(
    template_headers: list[str],
    sources: Iterable[Workbook],
    registry: MappingRegistry,
) -> MergedTable:
    """
    Stack the data rows of every mapped source under the template headers.

    Sources are visited in the given (upload) order and skipped unless at
    least one mapping with a source column points at them. Each data row of
    a visited source (rows after its header row, active sheet) becomes one
    output row: mapped template columns copy the cell under the source
    column, everything else is blank. The template's own data rows are not
    used.

    Unresolvable source columns produce blank cells rather than errors.
    """
    headers = list(template_headers)
    body: list[list[str]] = []

    for source in sources:
        active = registry.active_mappings_for_source(source.name)
        if not active:
            continue

        by_template_column = {m.template_column: m for m in active}
        positions = []
        for header in headers:
            mapping = by_template_column.get(header)
            if mapping is None:
                positions.append(None)
                continue
            position = resolve_column(source, mapping.source_column)
            if position is None:
                logger.warning(
                    f"Column '{mapping.source_column}' not found in '{source.name}' "
                    f"headers; '{header}' left blank"
                )
            positions.append(position)

        rows = data_rows(source)
        for row in rows:
            body.append(
                [
                    row[pos].text() if pos is not None and pos < len(row) else ""
                    for pos in positions
                ]
            )
        logger.debug(f"Concatenated {len(rows)} row(s) from '{source.name}'")

    return MergedTable(headers=headers, body=body)
