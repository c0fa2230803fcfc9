"""CLI entrypoint for the demo controls.

Runs the same pipelines as the operator panel, printing the run transcript.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError
from pydantic_settings import SettingsError

from demo_controls import __version__
from demo_controls.orchestrator.config import DemoSettings
from demo_controls.orchestrator.demo_service import DemoService
from demo_controls.orchestrator.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="demo-controls",
        description="Create or reset the TaskFlow demo branch, PR and Linear issues",
    )
    parser.add_argument("--version", action="version", version=f"demo-controls {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser(
        "create", help="Create the demo branch with injected bugs and open a PR"
    )
    create.add_argument("--user", required=True, help="Operator name (see 'users')")

    reset = subparsers.add_parser(
        "reset", help="Close open PRs, delete the demo branch and purge Linear issues"
    )
    reset.add_argument(
        "--user",
        default=None,
        help="Operator name; defaults to the configured reset repository (DEMO_RESET_REPO)",
    )

    subparsers.add_parser("users", help="List configured operator names")

    serve = subparsers.add_parser("serve", help="Run the operator panel and API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def _load_settings(command: str) -> DemoSettings:
    if command == "serve":
        from demo_controls.server.config import ServerSettings

        return ServerSettings()
    return DemoSettings()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _load_settings(args.command)
    except (ValidationError, SettingsError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level, stream=sys.stderr)

    if args.command == "serve":
        import uvicorn

        from demo_controls.server.app import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0

    service = DemoService(settings)

    if args.command == "users":
        for name in service.identities.names():
            print(name)
        return 0

    if args.command == "create":
        result = service.create_demo(args.user)
    elif args.command == "reset":
        result = service.reset_demo(args.user)
    else:  # pragma: no cover - argparse enforces choices
        parser.error(f"Unknown command: {args.command}")

    print(result.output)
    if not result.success:
        logger.error("Demo command failed", extra={"command": args.command, "error": result.error})
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
