"""Tests for server-held records, stores and mapping workspaces."""

import asyncio
from unittest.mock import MagicMock

import pytest

from excelmapper.session import (
    DuplicateWorkbookError,
    MapperWorkspace,
    NotFoundError,
    RecordStore,
    SessionRecord,
    TemplateNotReadyError,
    UnknownTemplateColumnError,
    WorkspaceManager,
)
from excelmapper.workbook import Cell, ParseError, read_workbook


class TestSessionRecord:
    """Test keying workbook rows by their first-row headers."""

    def test_from_workbook(self, source_a_bytes):
        record = SessionRecord.from_workbook("r1", read_workbook(source_a_bytes, "a.xlsx"))

        assert record.headers == ["Name", "Amount", "Date"]
        assert len(record.data) == 2
        assert record.data[1]["Amount"] == Cell.of_number(250)

    def test_blank_rows_are_skipped(self, xlsx_factory):
        content = xlsx_factory({"S": [["Id"], [None], ["1"]]})

        record = SessionRecord.from_workbook("r1", read_workbook(content, "s.xlsx"))

        assert record.rows_json() == [{"Id": "1"}]

    def test_to_response(self, source_a_bytes):
        record = SessionRecord.from_workbook("r1", read_workbook(source_a_bytes, "a.xlsx"))

        response = record.to_response()

        assert response["id"] == "r1"
        assert response["name"] == "a.xlsx"
        assert response["data"][0] == {"Name": "Alice", "Amount": "100", "Date": "2024-01-01"}
        assert response["data"][1]["Amount"] == 250


class TestRecordStore:
    """Test the in-memory keyed store."""

    def test_put_get_delete(self):
        store = RecordStore()

        store.put("a", 1)

        assert store.get("a") == 1
        assert "a" in store
        assert store.size() == 1
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_values_keep_insertion_order(self):
        store = RecordStore()
        for key in ("c", "a", "b"):
            store.put(key, key.upper())

        assert store.values() == ["C", "A", "B"]

    def test_injected_backend(self):
        backend = {}
        store = RecordStore(backend)

        store.put("k", "v")

        assert backend == {"k": "v"}

    def test_reads_take_the_lock(self):
        store = RecordStore()
        store.put("a", 1)
        store._lock = MagicMock()

        assert store.size() == 1
        assert "a" in store
        assert store._lock.__enter__.call_count == 2


class TestSessionStore:
    """Test template and source storage."""

    def test_add_and_get_template(self, session_store, template_bytes):
        record = session_store.add_template(template_bytes, "template.xlsx")

        assert session_store.get_template(record.id) is record
        assert record.headers == ["Quarterly import"]

    def test_unknown_ids_raise_not_found(self, session_store):
        with pytest.raises(NotFoundError):
            session_store.get_template("missing")
        with pytest.raises(NotFoundError):
            session_store.get_source("missing")

    def test_sources_keep_upload_order(self, session_store, source_a_bytes, source_b_bytes):
        first = session_store.add_source(source_a_bytes, "a.xlsx")
        second = session_store.add_source(source_b_bytes, "b.xlsx")
        session_store.add_source(source_a_bytes, "a.xlsx")

        assert [r.id for r in session_store.all_sources()][:2] == [first.id, second.id]
        assert session_store.find_source_by_name("a.xlsx") is first
        assert session_store.find_source_by_name("c.xlsx") is None

    def test_unparseable_upload_is_not_stored(self, session_store):
        with pytest.raises(ParseError):
            session_store.add_source(b"not a spreadsheet", "notes.txt")

        assert session_store.all_sources() == []


class TestMapperWorkspace:
    """Test the interactive mapping workflow."""

    @pytest.fixture
    def workspace(self, template_bytes, source_a_bytes, source_b_bytes):
        workspace = MapperWorkspace("ws-1")
        workspace.ingest(template_bytes, "template.xlsx")
        workspace.ingest(source_a_bytes, "A.xlsx")
        workspace.ingest(source_b_bytes, "B.xlsx")
        return workspace

    def test_first_upload_is_template(self, template_bytes, source_a_bytes):
        workspace = MapperWorkspace()

        _, first_role = workspace.ingest(template_bytes, "template.xlsx")
        _, second_role = workspace.ingest(source_a_bytes, "A.xlsx")

        assert (first_role, second_role) == ("template", "source")
        assert workspace.template.name == "template.xlsx"
        assert [s.name for s in workspace.sources] == ["A.xlsx"]

    def test_duplicate_source_name_rejected(self, workspace, source_a_bytes):
        with pytest.raises(DuplicateWorkbookError):
            workspace.ingest(source_a_bytes, "A.xlsx")

        assert len(workspace.sources) == 2

    def test_set_template_replaces_template(self, workspace, source_a_bytes):
        workspace.set_template(source_a_bytes, "new-template.xlsx")

        assert workspace.template.name == "new-template.xlsx"
        assert len(workspace.sources) == 2

    def test_unknown_file_raises_not_found(self, workspace):
        with pytest.raises(NotFoundError):
            workspace.workbook("missing.xlsx")

    def test_preview_requires_template_headers(self, workspace):
        with pytest.raises(TemplateNotReadyError):
            workspace.preview()

    def test_mapping_requires_template_header(self, workspace):
        workspace.select_header_row("template.xlsx", 1)

        with pytest.raises(UnknownTemplateColumnError):
            workspace.set_mapping("Total", "A.xlsx", "Amount")

    def test_full_workflow(self, workspace, xlsx_reader):
        workspace.select_header_row("template.xlsx", 1)
        workspace.select_header_row("A.xlsx", 0)
        workspace.select_sheet("B.xlsx", "Ledger")
        workspace.select_header_row("B.xlsx", 1)
        workspace.set_mapping("Name", "A.xlsx", "Name")
        workspace.set_mapping("Amount", "B.xlsx", "Value")

        table = workspace.preview()

        assert table.headers == ["Name", "Amount"]
        assert table.body == [
            ["Alice", ""],
            ["Carol", ""],
            ["", "7.5"],
            ["", "12"],
            ["", ""],
        ]
        exported = xlsx_reader(workspace.export())["Mapped Data"]
        assert exported[0] == ["Name", "Amount"]
        assert exported[1] == ["Alice", None]
        assert exported[3] == [None, "7.5"]

    def test_preview_reflects_mapping_changes(self, workspace):
        workspace.select_header_row("template.xlsx", 1)
        workspace.select_header_row("A.xlsx", 0)
        workspace.set_mapping("Name", "A.xlsx", "Name")
        assert workspace.preview().row_count == 2

        workspace.clear_mapping("Name")

        assert workspace.preview().row_count == 0

    def test_summary_lists_mapping_issues(self, workspace):
        workspace.select_header_row("template.xlsx", 1)
        workspace.select_header_row("A.xlsx", 0)
        workspace.set_mapping("Name", "A.xlsx", "Customer")

        summary = workspace.summary()

        assert summary["id"] == "ws-1"
        assert summary["template"]["headers"] == ["Name", "Amount"]
        assert [s["name"] for s in summary["sources"]] == ["A.xlsx", "B.xlsx"]
        assert summary["mappings"] == [
            {"templateColumn": "Name", "sourceFile": "A.xlsx", "sourceColumn": "Customer"}
        ]
        assert len(summary["issues"]) == 1

    def test_describe_file(self, workspace):
        info = workspace.describe_file(workspace.workbook("B.xlsx"), preview_limit=3)

        assert info["role"] == "source"
        assert info["sheets"] == ["Summary", "Ledger"]
        assert info["preview"] == [["Totals only"]]

    async def test_concurrent_ingest_keeps_every_file(
        self, template_bytes, source_a_bytes, source_b_bytes
    ):
        workspace = MapperWorkspace()
        workspace.ingest(template_bytes, "template.xlsx")

        async def delayed(content, delay):
            await asyncio.sleep(delay)
            return content

        await asyncio.gather(
            workspace.ingest_async(delayed(source_a_bytes, 0.05), "A.xlsx"),
            workspace.ingest_async(delayed(source_b_bytes, 0.0), "B.xlsx"),
            workspace.ingest_async(delayed(source_a_bytes, 0.02), "C.xlsx"),
        )

        assert sorted(s.name for s in workspace.sources) == ["A.xlsx", "B.xlsx", "C.xlsx"]
        assert workspace.template.name == "template.xlsx"

    async def test_batch_ingest_keeps_batch_order(
        self, template_bytes, source_a_bytes, source_b_bytes
    ):
        workspace = MapperWorkspace()

        async def delayed(content, delay):
            await asyncio.sleep(delay)
            return content

        results = await workspace.ingest_many(
            [
                (delayed(template_bytes, 0.03), "template.xlsx"),
                (delayed(source_a_bytes, 0.02), "A.xlsx"),
                (delayed(source_b_bytes, 0.0), "B.xlsx"),
            ]
        )

        assert [(wb.name, role) for wb, role in results] == [
            ("template.xlsx", "template"),
            ("A.xlsx", "source"),
            ("B.xlsx", "source"),
        ]
        assert [s.name for s in workspace.sources] == ["A.xlsx", "B.xlsx"]

    async def test_failed_batch_leaves_workspace_unchanged(self, template_bytes, source_a_bytes):
        workspace = MapperWorkspace()

        async def read(content):
            return content

        with pytest.raises(ParseError):
            await workspace.ingest_many(
                [
                    (read(template_bytes), "template.xlsx"),
                    (read(source_a_bytes), "A.xlsx"),
                    (read(b"not a spreadsheet"), "bad.xlsx"),
                ]
            )

        assert workspace.template is None
        assert workspace.sources == []

        results = await workspace.ingest_many(
            [(read(template_bytes), "template.xlsx"), (read(source_a_bytes), "A.xlsx")]
        )
        assert [role for _, role in results] == ["template", "source"]

    async def test_name_clash_in_batch_adds_nothing(self, workspace, source_a_bytes):
        async def read(content):
            return content

        with pytest.raises(DuplicateWorkbookError):
            await workspace.ingest_many(
                [(read(source_a_bytes), "C.xlsx"), (read(source_a_bytes), "C.xlsx")]
            )

        assert [s.name for s in workspace.sources] == ["A.xlsx", "B.xlsx"]

    def test_source_named_like_template_rejected(self, workspace, source_a_bytes):
        with pytest.raises(DuplicateWorkbookError):
            workspace.ingest(source_a_bytes, "template.xlsx")

        assert [s.name for s in workspace.sources] == ["A.xlsx", "B.xlsx"]
        assert workspace.select_header_row("template.xlsx", 1) == ["Name", "Amount"]

    def test_template_named_like_source_rejected(self, workspace, source_a_bytes):
        with pytest.raises(DuplicateWorkbookError):
            workspace.set_template(source_a_bytes, "A.xlsx")

        assert workspace.template.name == "template.xlsx"


class TestWorkspaceManager:
    """Test workspace lifecycle."""

    def test_create_get_delete(self, workspace_manager):
        workspace = workspace_manager.create()

        assert workspace_manager.get(workspace.id) is workspace
        assert workspace_manager.delete(workspace.id) is True
        with pytest.raises(NotFoundError):
            workspace_manager.get(workspace.id)
