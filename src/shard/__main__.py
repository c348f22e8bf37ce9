import argparse
import logging
import sys

import pyperclip

from shard import __version__
from shard.classifier import classify
from shard.color import ColorFormat, format_color, parse
from shard.config import DB_PATH, LIST_DISPLAY_COUNT, LOG_PATH, POLL_INTERVAL, PREVIEW_LENGTH
from shard.errors import ShardError
from shard.models import CodeContent, ColorContent, Snippet, SnippetFilter, SnippetKind
from shard.monitor import ClipboardMonitor
from shard.storage import SnippetStore
from shard.transfer import dump_json, load_json
from shard.utils import ensure_dirs

logger = logging.getLogger("shard")


def setup_logging(verbose: bool = False) -> None:
    ensure_dirs()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def format_snippet_line(snippet: Snippet) -> str:
    kind = snippet.kind.value
    if isinstance(snippet.content, CodeContent) and snippet.content.language:
        kind = f"{kind}:{snippet.content.language}"
    label = f" [{snippet.label}]" if snippet.label else ""
    return f"{snippet.id[:8]}  {kind:<16} {snippet.preview(PREVIEW_LENGTH)}{label}"


def resolve_id(store: SnippetStore, prefix: str) -> str:
    """Expand a unique id prefix (as printed by ``list``) to a full snippet id."""
    matches = [s.id for s in store.list_snippets() if s.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ShardError(f"Ambiguous snippet id prefix: {prefix}")
    return prefix


def cmd_add(store: SnippetStore, args: argparse.Namespace) -> int:
    text = sys.stdin.read() if args.stdin else args.text
    if not text or not text.strip():
        print("Nothing to add.", file=sys.stderr)
        return 1
    content = classify(text)
    if isinstance(content, ColorContent):
        snippet_id = store.insert_or_bump_color(content.color, label=args.label)
    else:
        snippet_id = store.insert(content, label=args.label)
    print(format_snippet_line(store.get(snippet_id)))
    return 0


def cmd_list(store: SnippetStore, args: argparse.Namespace) -> int:
    snippet_filter = SnippetFilter(
        kind=SnippetKind(args.kind) if args.kind else None,
        text_query=args.query,
    )
    snippets = store.list_snippets(snippet_filter, limit=args.limit)
    if not snippets:
        print("(No snippets)")
        return 0
    for snippet in snippets:
        print(format_snippet_line(snippet))
    return 0


def cmd_show(store: SnippetStore, args: argparse.Namespace) -> int:
    snippet = store.get(resolve_id(store, args.id))
    if isinstance(snippet.content, ColorContent):
        print(format_color(snippet.content.color, args.format))
    else:
        print(snippet.copyable_text())
    return 0


def cmd_delete(store: SnippetStore, args: argparse.Namespace) -> int:
    snippet_id = resolve_id(store, args.id)
    store.delete(snippet_id)
    print(f"Deleted {snippet_id}")
    return 0


def cmd_label(store: SnippetStore, args: argparse.Namespace) -> int:
    snippet = store.update(resolve_id(store, args.id), label=args.label or None)
    print(format_snippet_line(snippet))
    return 0


def cmd_copy(store: SnippetStore, args: argparse.Namespace) -> int:
    snippet = store.get(resolve_id(store, args.id))
    try:
        pyperclip.copy(snippet.copyable_text())
    except pyperclip.PyperclipException as exc:
        print(f"Clipboard unavailable: {exc}", file=sys.stderr)
        return 1
    if isinstance(snippet.content, ColorContent):
        store.move_to_top(snippet.id)
    print(f"Copied {snippet.preview(PREVIEW_LENGTH)}")
    return 0


def cmd_export(store: SnippetStore, args: argparse.Namespace) -> int:
    count = dump_json(store, args.path)
    print(f"Exported {count} snippets to {args.path}")
    return 0


def cmd_import(store: SnippetStore, args: argparse.Namespace) -> int:
    ids = load_json(store, args.path)
    print(f"Imported {len(ids)} snippets from {args.path}")
    return 0


def cmd_watch(store: SnippetStore, args: argparse.Namespace) -> int:
    monitor = ClipboardMonitor(
        store,
        on_change=lambda snippet_id: print(format_snippet_line(store.get(snippet_id))),
    )
    monitor.sync_last_content()
    logger.info("Watching clipboard every %.2fs (Ctrl+C to stop)", args.interval)
    try:
        monitor.run(interval=args.interval)
    except KeyboardInterrupt:
        logger.info("Stopped watching clipboard")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    try:
        color = parse(args.color)
    except ShardError as exc:
        print(exc, file=sys.stderr)
        return 1
    formats = [ColorFormat(args.format)] if args.format else list(ColorFormat)
    for fmt in formats:
        print(format_color(color, fmt))
    return 0


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "show": cmd_show,
    "delete": cmd_delete,
    "label": cmd_label,
    "copy": cmd_copy,
    "export": cmd_export,
    "import": cmd_import,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shard",
        description="Shard - snippet manager for colors, code and text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shard add "#FF5733" --label brand   # store a color
  shard list --kind code              # list code snippets
  shard watch                         # capture clipboard changes
  shard export snippets.json          # write all snippets to a file
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", default=None, help=f"database path (default: {DB_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="classify text and store it as a snippet")
    add.add_argument("text", nargs="?", help="text to store")
    add.add_argument("--label", default=None)
    add.add_argument("--stdin", action="store_true", help="read the text from standard input")

    lst = sub.add_parser("list", help="list snippets, most recent first")
    lst.add_argument("--kind", choices=[k.value for k in SnippetKind])
    lst.add_argument("--query", default=None, help="case-insensitive text filter")
    lst.add_argument("--limit", type=int, default=LIST_DISPLAY_COUNT)

    show = sub.add_parser("show", help="print a snippet's content")
    show.add_argument("id")
    show.add_argument("--format", choices=[f.value for f in ColorFormat], default=ColorFormat.HEX.value)

    delete = sub.add_parser("delete", help="delete a snippet")
    delete.add_argument("id")

    label = sub.add_parser("label", help="set or clear a snippet's label")
    label.add_argument("id")
    label.add_argument("label", nargs="?", default=None)

    copy = sub.add_parser("copy", help="copy a snippet to the clipboard")
    copy.add_argument("id")

    export = sub.add_parser("export", help="export all snippets to a JSON file")
    export.add_argument("path")

    imp = sub.add_parser("import", help="import snippets from a JSON export")
    imp.add_argument("path")

    watch = sub.add_parser("watch", help="store clipboard changes as snippets")
    watch.add_argument("--interval", type=float, default=POLL_INTERVAL)

    convert = sub.add_parser("convert", help="convert a color between formats")
    convert.add_argument("color")
    convert.add_argument("--format", choices=[f.value for f in ColorFormat], default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "convert":
        return cmd_convert(args)

    setup_logging(args.verbose)
    try:
        with SnippetStore.open(args.db or DB_PATH) as store:
            return COMMANDS[args.command](store, args)
    except ShardError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
