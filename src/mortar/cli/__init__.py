"""Mortar CLI: serve an app, or serve a directory as a demo site.

Entry point registered as ``mortar`` in ``pyproject.toml``::

    [project.scripts]
    mortar = "mortar.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``mortar`` command."""
    parser = argparse.ArgumentParser(
        prog="mortar",
        description="Mortar: template pages, services and static files.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- mortar run -------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve an app")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument("--debug", action="store_true", help="Access logs and stack traces")

    # -- mortar serve -----------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve a directory as a static site")
    serve_parser.add_argument("directory", help="Directory holding the static files")
    serve_parser.add_argument("--prefix", default="/", help="URL prefix (default: /)")
    serve_parser.add_argument(
        "--bundle",
        action="store_true",
        help="Gzip every file at startup and serve from memory",
    )
    serve_parser.add_argument(
        "--templates",
        default=None,
        help="Directory of *.html templates served as pages at /<name>",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host address")
    serve_parser.add_argument("--port", type=int, default=7077, help="Bind port number")
    serve_parser.add_argument("--debug", action="store_true", help="Access logs and stack traces")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from mortar.cli._run import run_server

        run_server(args)
    elif args.command == "serve":
        from mortar.cli._serve import serve_directory

        serve_directory(args)
