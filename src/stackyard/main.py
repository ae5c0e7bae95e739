"""
Stackyard command line entry point.

Usage:
    stackyard run <blueprint>
    stackyard destroy
    stackyard status [--output json]
    stackyard exec [resource] [-- command ...]
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from stackyard.config import get_settings
from stackyard.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stackyard",
        description="Create and destroy local development environments from blueprints",
    )
    parser.add_argument(
        "--log-level", help="Log level (defaults to STACKYARD_LOG_LEVEL or INFO)"
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Create the resources of a blueprint")
    run_parser.add_argument("blueprint", help="Blueprint file or directory of blueprint files")
    run_parser.add_argument(
        "--max-workers", type=int, help="Resources created concurrently on independent branches"
    )
    run_parser.add_argument("--output", choices=["text", "json"], default="text",
                            help="Output format")

    destroy_parser = subparsers.add_parser("destroy", help="Destroy the running environment")
    destroy_parser.add_argument("-y", "--yes", action="store_true",
                                help="Do not ask for confirmation")
    destroy_parser.add_argument("--max-workers", type=int,
                                help="Resources destroyed concurrently")
    destroy_parser.add_argument("--output", choices=["text", "json"], default="text",
                                help="Output format")

    status_parser = subparsers.add_parser("status", help="Show the running resources")
    status_parser.add_argument("--output", choices=["text", "json"], default="text",
                               help="Output format")

    exec_parser = subparsers.add_parser(
        "exec", help="Open a shell in a container, or in a tools container for a cluster"
    )
    exec_parser.add_argument("target", nargs="?",
                             help="Resource identifier, e.g. container.consul or k8s_cluster.dev")
    exec_parser.add_argument("exec_args", nargs=argparse.REMAINDER,
                             help="Command to run instead of a shell (after --)")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, json=settings.log_json)

    if args.command == "run":
        from stackyard.cli.run import run_command

        sys.exit(run_command(
            args.blueprint,
            max_workers=args.max_workers,
            output_format=args.output,
        ))

    if args.command == "destroy":
        from stackyard.cli.destroy import destroy_command

        sys.exit(destroy_command(
            yes=args.yes,
            max_workers=args.max_workers,
            output_format=args.output,
        ))

    if args.command == "status":
        from stackyard.cli.status import status_command

        sys.exit(status_command(output_format=args.output))

    if args.command == "exec":
        from stackyard.cli.exec import exec_command

        command = list(args.exec_args)
        if command and command[0] == "--":
            command = command[1:]
        sys.exit(exec_command(args.target, command or None))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
