"""Tests for the shard command-line interface."""

import io
import json
from unittest.mock import patch

import pyperclip
import pytest

from shard.__main__ import build_parser, main, resolve_id
from shard.color import Color
from shard.errors import ShardError
from shard.models import ColorContent, SnippetKind, TextContent
from shard.storage import SnippetStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cli.db"


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("shard.__main__.setup_logging") as mock_setup:
        yield mock_setup


def run(db_path, *argv):
    return main(["--db", str(db_path), *argv])


class TestParser:
    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_list_defaults(self):
        args = build_parser().parse_args(["list"])
        assert args.kind is None
        assert args.query is None
        assert args.limit > 0

    def test_rejects_unknown_kind(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["list", "--kind", "image"])


class TestConvert:
    def test_single_format(self, capsys):
        assert main(["convert", "#FF5733", "--format", "rgb"]) == 0
        assert capsys.readouterr().out.strip() == "rgb(255, 87, 51)"

    def test_all_formats(self, capsys):
        assert main(["convert", "hsl(0, 100%, 50%)"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[:3] == ["#FF0000", "rgb(255, 0, 0)", "hsl(0, 100%, 50%)"]
        assert lines[3].startswith("oklch(")

    def test_invalid_color(self, capsys):
        assert main(["convert", "#zzz"]) == 1
        assert "Invalid color format" in capsys.readouterr().err

    def test_does_not_open_store(self, no_logging_setup):
        with patch("shard.__main__.SnippetStore") as mock_store:
            main(["convert", "#fff"])
        mock_store.open.assert_not_called()
        no_logging_setup.assert_not_called()


class TestAddAndList:
    def test_add_color(self, db_path, capsys):
        assert run(db_path, "add", "#FF5733", "--label", "brand") == 0
        assert "#FF5733" in capsys.readouterr().out
        with SnippetStore(db_path) as store:
            [snippet] = store.list_snippets()
            assert snippet.content == ColorContent(Color(255, 87, 51))
            assert snippet.label == "brand"

    def test_add_same_color_twice_keeps_one(self, db_path):
        run(db_path, "add", "#FF5733")
        run(db_path, "add", "rgb(255, 87, 51)")
        with SnippetStore(db_path) as store:
            assert store.count(SnippetKind.COLOR) == 1

    def test_add_from_stdin(self, db_path):
        with patch("sys.stdin", io.StringIO("def f():\n    return 1\n")):
            assert run(db_path, "add", "--stdin") == 0
        with SnippetStore(db_path) as store:
            assert store.list_snippets()[0].kind is SnippetKind.CODE

    def test_add_nothing(self, db_path, capsys):
        assert run(db_path, "add") == 1
        assert "Nothing to add" in capsys.readouterr().err

    def test_list_empty(self, db_path, capsys):
        assert run(db_path, "list") == 0
        assert "(No snippets)" in capsys.readouterr().out

    def test_list_filters(self, db_path, capsys):
        run(db_path, "add", "#000000")
        run(db_path, "add", "buy milk")
        capsys.readouterr()
        assert run(db_path, "list", "--kind", "text") == 0
        out = capsys.readouterr().out
        assert "buy milk" in out
        assert "#000000" not in out

    def test_list_query(self, db_path, capsys):
        run(db_path, "add", "alpha note")
        run(db_path, "add", "beta note")
        capsys.readouterr()
        run(db_path, "list", "--query", "ALPHA")
        out = capsys.readouterr().out
        assert "alpha note" in out
        assert "beta note" not in out


class TestSnippetCommands:
    @pytest.fixture
    def color_id(self, db_path):
        with SnippetStore.open(db_path) as store:
            return store.insert(ColorContent(Color(255, 0, 0)))

    def test_show_in_format(self, db_path, color_id, capsys):
        assert run(db_path, "show", color_id[:8], "--format", "hsl") == 0
        assert capsys.readouterr().out.strip() == "hsl(0, 100%, 50%)"

    def test_show_missing(self, db_path, capsys):
        assert run(db_path, "show", "nope") == 1
        assert "Error:" in capsys.readouterr().err

    def test_label(self, db_path, color_id):
        assert run(db_path, "label", color_id, "red") == 0
        with SnippetStore(db_path) as store:
            assert store.get(color_id).label == "red"

    def test_delete(self, db_path, color_id, capsys):
        assert run(db_path, "delete", color_id) == 0
        assert f"Deleted {color_id}" in capsys.readouterr().out
        with SnippetStore(db_path) as store:
            assert store.count() == 0

    def test_delete_missing(self, db_path, capsys):
        assert run(db_path, "delete", "missing") == 1
        assert "Snippet not found" in capsys.readouterr().err

    @patch("shard.__main__.pyperclip.copy")
    def test_copy_color_moves_to_top(self, mock_copy, db_path, color_id):
        with SnippetStore(db_path) as store:
            store.insert(TextContent(text="newer"))
        assert run(db_path, "copy", color_id) == 0
        mock_copy.assert_called_once_with("#FF0000")
        with SnippetStore(db_path) as store:
            assert store.list_snippets()[0].id == color_id

    @patch("shard.__main__.pyperclip.copy", side_effect=pyperclip.PyperclipException("no clipboard"))
    def test_copy_without_clipboard(self, _mock_copy, db_path, color_id, capsys):
        assert run(db_path, "copy", color_id) == 1
        assert "Clipboard unavailable" in capsys.readouterr().err


class TestExportImport:
    def test_export_then_import(self, db_path, tmp_path, capsys):
        run(db_path, "add", "#00FF00")
        run(db_path, "add", "a note")
        export_path = tmp_path / "out.json"
        assert run(db_path, "export", str(export_path)) == 0
        assert json.loads(export_path.read_text())["format"] == "shard-snippets"

        other_db = tmp_path / "other.db"
        assert run(other_db, "import", str(export_path)) == 0
        assert "Imported 2 snippets" in capsys.readouterr().out

    def test_import_bad_file(self, db_path, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        assert run(db_path, "import", str(bad)) == 1
        assert "Error:" in capsys.readouterr().err


class TestWatch:
    @patch("shard.__main__.ClipboardMonitor")
    def test_watch_stops_on_interrupt(self, mock_monitor_cls, db_path):
        mock_monitor_cls.return_value.run.side_effect = KeyboardInterrupt
        assert run(db_path, "watch", "--interval", "0.1") == 0
        mock_monitor_cls.return_value.sync_last_content.assert_called_once()
        mock_monitor_cls.return_value.run.assert_called_once_with(interval=0.1)


class TestResolveId:
    def test_unique_prefix(self, storage):
        snippet_id = storage.insert(TextContent(text="x"))
        assert resolve_id(storage, snippet_id[:6]) == snippet_id

    def test_unknown_prefix_passes_through(self, storage):
        assert resolve_id(storage, "zzz") == "zzz"

    def test_ambiguous_prefix(self, storage):
        storage.insert(TextContent(text="x"))
        storage.insert(TextContent(text="y"))
        with pytest.raises(ShardError):
            resolve_id(storage, "")
