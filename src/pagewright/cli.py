"""
Command-line interface for pagewright.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import load_config
from .data.transport import UrllibHttpClient
from .document.loader import iter_nodes, load_page_file
from .errors import DocumentError
from .renderer import PageRenderer
from .resolution.environment import Environment
from .version import DOCUMENT_SCHEMA_VERSION, __version__


def build_cli_parser() -> argparse.ArgumentParser:
    cli = argparse.ArgumentParser(prog="pagewright", description="Resolve declarative page documents")
    cli.add_argument(
        "--version",
        action="version",
        version=f"pagewright {__version__} (documents {DOCUMENT_SCHEMA_VERSION}, Python {sys.version.split()[0]})",
    )
    cli.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = cli.add_subparsers(dest="command", required=True)

    check_cmd = sub.add_parser("check", help="Validate a page document")
    check_cmd.add_argument("file", type=Path)

    resolve_cmd = sub.add_parser("resolve", help="Resolve a page document and print the tree as JSON")
    resolve_cmd.add_argument("file", type=Path)
    resolve_cmd.add_argument("--data", type=Path, default=None, help="JSON file used as page data")
    size = resolve_cmd.add_mutually_exclusive_group()
    size.add_argument("--breakpoint", default=None, help="Breakpoint name, e.g. mobile")
    size.add_argument("--width", type=float, default=None, help="Viewport width in pixels")
    resolve_cmd.add_argument("--locale", default=None)
    resolve_cmd.add_argument("--out", type=Path, default=None, help="Write JSON here instead of stdout")

    serve_cmd = sub.add_parser("serve", help="Start the page API server")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8000)
    serve_cmd.add_argument("--dry-run", action="store_true", help="Build the app and exit")
    return cli


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"{path}: not valid JSON ({exc.msg} at line {exc.lineno})") from exc


def _print_document_error(exc: DocumentError) -> None:
    print(f"{exc.code}: {exc.message}", file=sys.stderr)
    for diag in exc.diagnostics or []:
        location = ".".join(str(part) for part in diag.get("location", []))
        print(f"- {location}: {diag.get('message')}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    cli = build_cli_parser()
    args = cli.parse_args(argv)
    logging.basicConfig(level=str(args.log_level).upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "check":
        try:
            document = load_page_file(args.file)
        except DocumentError as exc:
            _print_document_error(exc)
            raise SystemExit(1) from exc
        count = sum(1 for _ in iter_nodes(document.nodes))
        print(json.dumps({"status": "ok", "page": document.info(), "nodes": count}, indent=2))
        return

    if args.command == "resolve":
        config = load_config()
        try:
            document = load_page_file(args.file)
        except DocumentError as exc:
            _print_document_error(exc)
            raise SystemExit(1) from exc
        data = _read_json(args.data) if args.data else None
        environment = Environment.for_viewport(
            args.width, locale=args.locale or config.default_locale, breakpoint=args.breakpoint
        )
        renderer = PageRenderer(
            document,
            environment=environment,
            config=config,
            http=UrllibHttpClient(config),
            initial_data=data,
        )
        asyncio.run(renderer.render())
        text = json.dumps(renderer.to_dict(), indent=2, ensure_ascii=False)
        if args.out:
            args.out.write_text(text + "\n", encoding="utf-8")
            print(f"Wrote {args.out}")
        else:
            print(text)
        return

    if args.command == "serve":
        try:
            from .server import create_app
        except Exception as exc:  # pragma: no cover - load-time guard
            raise SystemExit(f"Failed to import server: {exc}") from exc
        app = create_app()
        if args.dry_run:
            print(json.dumps({"status": "ready", "host": args.host, "port": args.port}, indent=2))
            return
        try:
            import uvicorn
        except ImportError as exc:  # pragma: no cover - runtime check
            raise SystemExit("uvicorn is required to run the server") from exc
        uvicorn.run(app, host=args.host, port=args.port)
        return


if __name__ == "__main__":  # pragma: no cover
    main()
