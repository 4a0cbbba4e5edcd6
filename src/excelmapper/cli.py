"""Command-line interface for Excel Mapper."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from .config import settings


def configure_logging(level: str = None):
    """Configure root logging for CLI and server runs."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Excel Mapper - spreadsheet column mapping and merge"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Inspect command
    inspect_parser = subparsers.add_parser(
        "inspect", help="Show the sheets and headers of a workbook"
    )
    inspect_parser.add_argument("path", type=Path, help="Workbook to inspect")
    inspect_parser.add_argument("--sheet", help="Sheet to read (default: first sheet)")
    inspect_parser.add_argument(
        "--header-row", type=int, default=0, help="0-based header row (default: 0)"
    )

    # Merge command
    merge_parser = subparsers.add_parser(
        "merge", help="Stack mapped source rows under the template headers"
    )
    merge_parser.add_argument("template", type=Path, help="Template workbook")
    merge_parser.add_argument("sources", type=Path, nargs="+", help="Source workbooks")
    merge_parser.add_argument(
        "--map",
        dest="mappings",
        action="append",
        default=[],
        metavar="COLUMN=FILE:SOURCE_COLUMN",
        help="Map a template column to a source column (repeatable)",
    )
    merge_parser.add_argument(
        "--header-row",
        dest="header_rows",
        action="append",
        default=[],
        metavar="FILE=ROW",
        help="0-based header row for a file (default: 0)",
    )
    merge_parser.add_argument(
        "--sheet",
        dest="sheets",
        action="append",
        default=[],
        metavar="FILE=SHEET",
        help="Sheet to use for a file (default: first sheet)",
    )
    merge_parser.add_argument(
        "--output", "-o", type=Path, default=Path("mapped_data.xlsx"), help="Output file"
    )

    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL)")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "inspect":
        sys.exit(run_inspect(args.path, args.sheet, args.header_row))
    elif args.command == "merge":
        sys.exit(
            run_merge(
                args.template, args.sources, args.mappings, args.header_rows, args.sheets, args.output
            )
        )
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "excelmapper.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


def run_inspect(path: Path, sheet: str = None, header_row: int = 0) -> int:
    """Print sheet names, the chosen header row and its headers."""
    from .workbook import read_workbook, select_header_row, select_sheet

    try:
        workbook = read_workbook(path.read_bytes(), path.name)
        if sheet:
            select_sheet(workbook, sheet)
        headers = select_header_row(workbook, header_row) if workbook.row_count else []
    except Exception as e:
        print(f"Error: {e}")
        return 1

    print(f"Workbook: {workbook.name}")
    print(f"Sheets: {', '.join(workbook.sheet_names)}")
    print(f"Selected sheet: {workbook.selected_sheet} ({workbook.row_count} rows)")
    print(f"Header row {workbook.header_row}: {headers}")
    return 0


def _parse_pairs(values: list[str], flag: str) -> dict[str, str]:
    pairs = {}
    for value in values:
        key, sep, rest = value.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid {flag} value '{value}' (expected FILE=VALUE)")
        pairs[key] = rest
    return pairs


def run_merge(
    template: Path,
    sources: list[Path],
    mappings: list[str],
    header_rows: list[str],
    sheets: list[str],
    output: Path,
) -> int:
    """Run the row-concatenation merge over local files and write the result."""
    from .export import write_merged_table
    from .session import MapperWorkspace

    workspace = MapperWorkspace()
    try:
        header_row_by_file = {k: int(v) for k, v in _parse_pairs(header_rows, "--header-row").items()}
        sheet_by_file = _parse_pairs(sheets, "--sheet")

        for path in [template, *sources]:
            workbook, _role = workspace.ingest(path.read_bytes(), path.name)
            if path.name in sheet_by_file:
                workspace.select_sheet(path.name, sheet_by_file[path.name])
            if workbook.row_count:
                workspace.select_header_row(path.name, header_row_by_file.get(path.name, 0))

        for entry in mappings:
            column, sep, target = entry.partition("=")
            source_file, colon, source_column = target.rpartition(":")
            if not sep or not colon:
                raise ValueError(f"Invalid --map value '{entry}' (expected COLUMN=FILE:SOURCE_COLUMN)")
            workspace.set_mapping(column, source_file, source_column)

        for issue in workspace.registry.validate(workspace.sources):
            print(f"Warning: {issue}")

        table = workspace.preview()
        output.write_bytes(write_merged_table(table))
    except Exception as e:
        print(f"Error: {e}")
        return 1

    print(f"Wrote {table.row_count} row(s) x {len(table.headers)} column(s) to {output}")
    return 0


if __name__ == "__main__":
    main()
