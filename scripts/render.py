#!/usr/bin/env python3
"""CLI: Render the UI components embedded in a saved model response."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from hypernotebook import config
from hypernotebook.render import RenderNode
from hypernotebook.stream import IteratorSource, RenderPass, StreamIngestor


def _chunks(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def _outline(nodes: list[RenderNode], depth: int = 0) -> list[str]:
    lines = []
    for node in nodes:
        label = node.props.get("title") or node.props.get("label") or node.props.get("text") or ""
        suffix = f" {label!r}" if label else ""
        lines.append(f"{'  ' * depth}- {node.kind} [{node.key}]{suffix}")
        lines.extend(_outline(node.children, depth + 1))
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description="Render generative UI directives from a response file")
    parser.add_argument("file", type=Path, help="Text file holding the full model response")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=0,
        help="Replay the text through the stream loop in deltas of this many characters "
        "(default: render the whole text once)",
    )
    parser.add_argument(
        "--timestamp",
        type=int,
        default=0,
        help="Timestamp used for generated component ids (default: 0, for reproducible output)",
    )
    parser.add_argument("--json", action="store_true", help="Print the render tree as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.file.is_file():
        print(f"Error: {args.file} is not a file.", file=sys.stderr)
        sys.exit(1)
    text = args.file.read_text()

    size = args.chunk_size if args.chunk_size > 0 else max(len(text), 1)
    ingestor = StreamIngestor(timestamp=args.timestamp)

    def _on_render(render_pass: RenderPass) -> None:
        if not render_pass.final:
            print(
                f"  pass: {len(render_pass.text)} chars, {len(render_pass.records)} record(s)",
                file=sys.stderr,
            )

    result = asyncio.run(ingestor.run(IteratorSource(_chunks(text, size)), on_render=_on_render))
    if result.status != "completed":
        print(f"Error: {result.error or result.status}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps({
            "content": result.content,
            "tree": [n.to_dict() for n in result.nodes],
        }, indent=2))
        return

    print(f"{len(result.records)} component(s), {result.passes} pass(es)")
    for line in _outline(result.nodes):
        print(line)
    if result.content:
        print()
        print(result.content)


if __name__ == "__main__":
    main()
