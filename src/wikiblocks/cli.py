"""CLI for wikiblocks - parse, expand and render wiki documents."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from . import __version__
from .core.errors import WikiBlocksError
from .core.reference import URIReference, split_attachment
from .core.syntax import Syntax
from .format.escape import EscapeState, escape
from .runtime import build_runtime


def cmd_render(args: argparse.Namespace, rt: Any) -> int:
    """Parse a file, run its macros and print the rendered result."""
    path = Path(args.file)
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return 1

    renderer = rt.renderer(Syntax.parse(args.to))
    document, result = rt.render_text(
        path.read_text(encoding="utf-8"),
        rt.config.rendering.syntax,
        transform=not args.no_transform,
    )
    print(renderer.render(document))

    if result is None:
        return 0
    for failure in result.failures:
        location = "/".join(str(i) for i in failure.location)
        line = f"{failure.macro_id} at {location}: {failure.message}"
        if failure.description:
            line += f" ({failure.description})"
        print(line, file=sys.stderr)
    for truncation in result.truncated:
        if not args.quiet:
            print(
                f"{truncation.macro_id}: left unexpanded ({truncation.reason} limit)",
                file=sys.stderr,
            )
    return 0 if result.ok else 1


def cmd_ref(args: argparse.Namespace, rt: Any) -> int:
    """Parse a link or image reference."""
    if args.image:
        reference = rt.references.parse_image(args.text)
    else:
        reference = rt.references.parse(args.text)

    fields = {"type": type(reference).__name__, **asdict(reference)}
    if isinstance(reference, URIReference) and reference.scheme == "attach":
        document, filename = split_attachment(reference)
        fields["document"] = str(document) if document else None
        fields["filename"] = filename

    if args.json:
        print(json.dumps(fields, indent=2))
    else:
        for key, value in fields.items():
            if value is not None:
                print(f"{key}: {value}")
    return 0


def cmd_escape(args: argparse.Namespace, rt: Any) -> int:
    """Escape text for XWiki 2.0."""
    state = EscapeState(
        text_on_new_line=args.line_start,
        in_paragraph=not (args.heading or args.link),
        in_section=args.heading,
        in_link=args.link,
    )
    print(escape(args.text, state))
    return 0


def cmd_macros(args: argparse.Namespace, rt: Any) -> int:
    """List registered macros."""
    ids = rt.registry.macro_ids(rt.config.rendering.syntax)
    if args.json:
        out = []
        for macro_id in ids:
            macro = rt.registry.resolve(macro_id, rt.config.rendering.syntax)
            out.append({
                "id": macro_id,
                "name": macro.descriptor.name,
                "description": macro.descriptor.description,
                "priority": macro.priority,
                "inline": macro.supports_inline(),
            })
        print(json.dumps(out, indent=2))
        return 0

    for macro_id in ids:
        macro = rt.registry.resolve(macro_id, rt.config.rendering.syntax)
        description = macro.descriptor.description
        print(f"{macro_id}\t{description}" if description else macro_id)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="wikiblocks", description="wikiblocks CLI"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/wikiblocks.toml)",
    )
    parser.add_argument(
        "--version", action="version", version=f"wikiblocks {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug messages"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # render command
    parser_render = subparsers.add_parser("render", help="Expand macros and render a file")
    parser_render.add_argument("file", help="Wiki source file")
    parser_render.add_argument(
        "--to", default="xwiki/2.0", help="Output syntax: xwiki/2.0 or events/1.0"
    )
    parser_render.add_argument(
        "--no-transform", action="store_true", help="Don't execute macros"
    )

    # ref command
    parser_ref = subparsers.add_parser("ref", help="Parse a link or image reference")
    parser_ref.add_argument("text", help="Reference text, e.g. Space.Page#anchor")
    parser_ref.add_argument(
        "--image", action="store_true", help="Parse as an image location"
    )
    parser_ref.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )

    # escape command
    parser_escape = subparsers.add_parser("escape", help="Escape plain text")
    parser_escape.add_argument("text", help="Text to escape")
    parser_escape.add_argument(
        "--line-start", action="store_true", help="Text starts a line"
    )
    parser_escape.add_argument(
        "--heading", action="store_true", help="Text goes inside a heading"
    )
    parser_escape.add_argument(
        "--link", action="store_true", help="Text goes inside a link label"
    )

    # macros command
    parser_macros = subparsers.add_parser("macros", help="List registered macros")
    parser_macros.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )

    args = parser.parse_args(argv)

    try:
        rt = build_runtime(config_path=args.config)
    except (WikiBlocksError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    level = logging.DEBUG if args.verbose else rt.config.logging.level_number
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    handlers = {
        "render": cmd_render,
        "ref": cmd_ref,
        "escape": cmd_escape,
        "macros": cmd_macros,
    }

    handler = handlers.get(args.cmd)
    if handler:
        try:
            exit_code = handler(args, rt)
            sys.exit(exit_code)
        except WikiBlocksError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
