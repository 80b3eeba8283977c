"""Command-line front end.

``htmlregions render``  restore persisted records onto a document and write
                       the highlighted HTML.
``htmlregions anchor``  anchor a selection given as linear text offsets and
                       print its records as JSON.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from htmlregions import __version__, setup_logging
from htmlregions.dom.tree import load_document, range_from_text_offsets
from htmlregions.labels import ControlDescriptor, LabelStateRef, StaticLabelSource
from htmlregions.session import DocumentSession

console = Console(stderr=True)


def _color_argument(value: str) -> tuple[str, str]:
    """argparse type for ``NAME=COLOR``."""
    name, sep, color = value.partition("=")
    if not sep or not name or not color:
        msg = f"Expected NAME=COLOR, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    return name, color


def _label_argument(value: str) -> tuple[str, str, str]:
    """argparse type for ``KIND:NAME:VALUE``."""
    parts = value.split(":", 2)
    if len(parts) != 3 or not all(parts):
        msg = f"Expected KIND:NAME:VALUE, got {value!r}"
        raise argparse.ArgumentTypeError(msg)
    kind, name, label = parts
    return kind, name, label


def _group_labels(labels: Sequence[tuple[str, str, str]]) -> list[LabelStateRef]:
    """Label arguments -> label states, values grouped per control."""
    grouped: dict[tuple[str, str], list[str]] = {}
    for kind, name, value in labels:
        grouped.setdefault((kind, name), []).append(value)
    return [
        LabelStateRef(name=name, kind=kind, values=tuple(values))
        for (kind, name), values in grouped.items()
    ]


def _load_records(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        msg = f"{path}: expected a JSON list of records"
        raise ValueError(msg)
    return data


def _cmd_render(args: argparse.Namespace) -> int:
    html = Path(args.document).read_text(encoding="utf-8")
    records = _load_records(Path(args.records))
    name = args.name or next(
        (r["to_name"] for r in records if isinstance(r, dict) and "to_name" in r),
        "document",
    )

    origins = {
        record["from_name"]: ControlDescriptor(record["from_name"], record["type"])
        for record in records
        if isinstance(record, dict)
        and record.get("from_name") not in (None, name)
        and "type" in record
    }
    session = DocumentSession(name, StaticLabelSource(colors=dict(args.color)))

    # Two-phase restore: logical regions first, visual binding on mount.
    restored = session.restore(records, origins)
    bind = session.mount_html(html)

    output = session.html()
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
    else:
        print(output)

    failures: list[tuple[str, str]] = [
        (str(record.get("id", "?")) if isinstance(record, dict) else "?", str(exc))
        for record, exc in restored.failures
    ]
    failures.extend((region.id, str(exc)) for region, exc in bind.failures)

    console.print(
        f"[green]{len(bind.bound)}[/] region(s) rendered, "
        f"[red]{len(failures)}[/] failed"
    )
    if failures:
        table = Table(title="Failed records")
        table.add_column("Record id", style="cyan")
        table.add_column("Reason")
        for record_id, reason in failures:
            table.add_row(record_id, reason)
        console.print(table)
        return 1
    return 0


def _cmd_anchor(args: argparse.Namespace) -> int:
    html = Path(args.document).read_text(encoding="utf-8")
    states = _group_labels(args.label)
    session = DocumentSession(args.name, StaticLabelSource(active=states))
    root = load_document(html, session.settings)
    session.mount(root)

    try:
        live_range = range_from_text_offsets(root, args.start, args.end)
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        return 2

    if states:
        result = session.handle_selection([live_range])
        created = len(result.regions)
    else:
        # No label: a bare region tied to the document itself
        anchor = session.anchorer.capture_one(live_range, root)
        created = 0
        if anchor is not None:
            region = session.add_region(anchor)
            session.serializer.bind_region(region, root)
            created = 1

    if not created:
        console.print("[yellow]Selection covers no text; nothing anchored[/]")
        return 1

    print(json.dumps(list(session.to_records()), indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htmlregions",
        description="Anchor and render highlight regions in HTML documents.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render persisted records onto a document")
    render.add_argument("document", help="HTML document")
    render.add_argument("records", help="JSON file with a list of region records")
    render.add_argument("-o", "--output", help="Write HTML here instead of stdout")
    render.add_argument("--name", help="Document name (default: records' to_name)")
    render.add_argument(
        "--color",
        action="append",
        default=[],
        type=_color_argument,
        metavar="NAME=COLOR",
        help="Colour for a label value or control (repeatable)",
    )
    render.set_defaults(func=_cmd_render)

    anchor = sub.add_parser("anchor", help="Anchor a text-offset selection")
    anchor.add_argument("document", help="HTML document")
    anchor.add_argument("start", type=int, help="Start character offset (0-based)")
    anchor.add_argument("end", type=int, help="End character offset (exclusive)")
    anchor.add_argument("--name", default="document", help="Document name")
    anchor.add_argument(
        "--label",
        action="append",
        default=[],
        type=_label_argument,
        metavar="KIND:NAME:VALUE",
        help="Active label state to attach (repeatable)",
    )
    anchor.set_defaults(func=_cmd_anchor)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``htmlregions`` console script."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(log_to_file=not args.no_log_file)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
