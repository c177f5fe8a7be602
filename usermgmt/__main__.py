"""Command-line entry point: ``python -m usermgmt serve`` or ``python -m usermgmt init-db``."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from usermgmt.core.config import get_settings
from usermgmt.core.logging import configure_logging

logger = logging.getLogger("usermgmt.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User management service")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("init-db", help="Create the database schema and exit")
    return parser.parse_args(argv)


def _serve(host: str, port: int) -> None:
    from usermgmt.app import create_app
    import uvicorn

    logger.info("Starting user management API on http://%s:%s", host, port)
    uvicorn.run(create_app(), host=host, port=port, log_level=get_settings().log_level.lower())


def main(argv: Sequence[str] | None = None) -> None:
    configure_logging(get_settings().log_level)
    args = _parse_args(argv)

    if args.command == "serve":
        _serve(args.host, args.port)
    elif args.command == "init-db":
        from usermgmt.db.create_tables import create_all

        create_all()
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
