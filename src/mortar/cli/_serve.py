"""``mortar serve``: a static site from a directory.

With ``--bundle`` every file is gzipped once at startup and served from
memory; anything added later still comes from disk. With
``--templates`` each ``*.html`` file in that directory is served as a
template page at ``/<name>``; files starting with ``_`` are left for
``include``.
"""

import argparse
import sys
from pathlib import Path
from typing import Any

from mortar.app import App
from mortar.cli._run import configure_logging
from mortar.config import AppConfig
from mortar.context import Context
from mortar.static.resource import StaticResource


def query_data(ctx: Context) -> dict[str, Any]:
    """Template data for demo pages: the request parameters."""
    return {name: ctx.get(name) for name in ctx.params}


def build_app(args: argparse.Namespace) -> App:
    directory = Path(args.directory)
    if not directory.is_dir():
        msg = f"{directory} is not a directory"
        raise NotADirectoryError(msg)

    app = App(AppConfig(host=args.host, port=args.port, debug=args.debug))

    mapping = StaticResource.from_directory(directory) if args.bundle else None
    app.static_page(args.prefix, directory, mapping)

    if args.templates:
        templates = Path(args.templates)
        app.set_template_dir(templates)
        for path in sorted(templates.glob("*.html")):
            if path.name.startswith("_"):
                continue
            app.service(f"/{path.stem}", app.template_page(str(path), query_data))

    return app


def serve_directory(args: argparse.Namespace) -> None:
    configure_logging(args.debug)
    try:
        app = build_app(args)
    except NotADirectoryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    app.serve()
