"""``mortar run``: serve an app resolved from an import string."""

import argparse
import logging
import sys
from dataclasses import replace

from mortar.cli._resolve import resolve_app


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it until interrupted.

    CLI flags override the app's config.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.debug:
        app.config = replace(app.config, debug=True)
    configure_logging(app.config.debug)

    app.serve(host=args.host, port=args.port)
