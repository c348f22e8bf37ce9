import json

import pytest

from shard.color import Color
from shard.errors import ImportFormatError, StorageIOError
from shard.models import CodeContent, ColorContent, SnippetKind, TextContent
from shard.storage import SnippetStore
from shard.transfer import (
    EXPORT_FORMAT,
    EXPORT_VERSION,
    dump_json,
    export_snippets,
    import_snippets,
    load_json,
)


@pytest.fixture
def populated(storage):
    storage.insert(ColorContent(Color(255, 87, 51, 128)), label="brand")
    storage.insert(CodeContent(text="fn main() {}", language="rust"))
    storage.insert(TextContent(text="plain note"), label="note")
    return storage


class TestExport:
    def test_document_header(self, populated):
        document = export_snippets(populated)
        assert document["format"] == EXPORT_FORMAT
        assert document["version"] == EXPORT_VERSION
        assert "exported_at" in document

    def test_records_in_display_order(self, populated):
        records = export_snippets(populated)["snippets"]
        assert [r["kind"] for r in records] == ["text", "code", "color"]

    def test_color_record_uses_hex(self, populated):
        color_record = export_snippets(populated)["snippets"][-1]
        assert color_record["color"] == "#FF573380"
        assert color_record["label"] == "brand"

    def test_code_record_keeps_language(self, populated):
        code_record = export_snippets(populated)["snippets"][1]
        assert code_record["text"] == "fn main() {}"
        assert code_record["language"] == "rust"

    def test_document_is_json_serializable(self, populated):
        json.dumps(export_snippets(populated))


class TestImport:
    def test_round_trip_into_empty_store(self, populated):
        document = export_snippets(populated)
        with SnippetStore(":memory:") as target:
            ids = import_snippets(target, document)
            listed = target.list_snippets()
            assert [s.id for s in listed] == ids
            assert [s.content for s in listed] == [s.content for s in populated.list_snippets()]
            assert [s.label for s in listed] == ["note", None, "brand"]

    def test_import_assigns_new_ids(self, populated):
        document = export_snippets(populated)
        ids = import_snippets(populated, document)
        original_ids = {r["id"] for r in document["snippets"]}
        assert original_ids.isdisjoint(ids)
        assert populated.count() == 6

    def test_imported_snippets_go_on_top(self, populated):
        existing_top = populated.list_snippets()[0].position
        ids = import_snippets(populated, export_snippets(populated))
        assert all(populated.get(i).position > existing_top for i in ids)
        assert populated.list_snippets()[0].id == ids[0]

    def test_invalid_record_imports_nothing(self, storage):
        document = {
            "format": EXPORT_FORMAT,
            "version": 1,
            "snippets": [
                {"kind": "text", "text": "fine"},
                {"kind": "color", "color": "#zzz"},
            ],
        }
        with pytest.raises(ImportFormatError):
            import_snippets(storage, document)
        assert storage.count() == 0

    @pytest.mark.parametrize(
        "document",
        [
            [],
            {"format": "something-else", "version": 1, "snippets": []},
            {"format": EXPORT_FORMAT, "version": 99, "snippets": []},
            {"format": EXPORT_FORMAT, "version": 1},
            {"format": EXPORT_FORMAT, "version": 1, "snippets": [{"kind": "image"}]},
            {"format": EXPORT_FORMAT, "version": 1, "snippets": [{"kind": "text"}]},
            {"format": EXPORT_FORMAT, "version": 1, "snippets": [{"kind": "text", "text": "x", "label": 3}]},
            {"format": EXPORT_FORMAT, "version": 1, "snippets": ["not an object"]},
        ],
    )
    def test_rejects_malformed_documents(self, storage, document):
        with pytest.raises(ImportFormatError):
            import_snippets(storage, document)

    def test_color_record_accepts_any_color_format(self, storage):
        document = {
            "format": EXPORT_FORMAT,
            "version": 1,
            "snippets": [{"kind": "color", "color": "rgb(0, 255, 0)"}],
        }
        [snippet_id] = import_snippets(storage, document)
        assert storage.get(snippet_id).content == ColorContent(Color(0, 255, 0))


class TestFiles:
    def test_dump_and_load(self, populated, tmp_path):
        path = tmp_path / "export.json"
        assert dump_json(populated, path) == 3
        with SnippetStore(":memory:") as target:
            ids = load_json(target, path)
            assert len(ids) == 3
            assert target.count(SnippetKind.COLOR) == 1

    def test_load_invalid_json(self, storage, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ImportFormatError):
            load_json(storage, path)

    def test_load_missing_file(self, storage, tmp_path):
        with pytest.raises(StorageIOError):
            load_json(storage, tmp_path / "missing.json")

    def test_dump_to_missing_directory(self, storage, tmp_path):
        with pytest.raises(StorageIOError):
            dump_json(storage, tmp_path / "no" / "such" / "dir.json")
