"""Command line entry point."""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from opct.images import list_images
from opct.version import version_lines

NOTHING_TO_DO = "Nothing to do. See -h for more options."


def _cmd_version(args: argparse.Namespace) -> int:
    for line in version_lines():
        print(line)
    return 0


def _cmd_get(args: argparse.Namespace) -> int:
    print(NOTHING_TO_DO)
    return 0


def _cmd_get_images(args: argparse.Namespace) -> int:
    for image in list_images(args.to_repository):
        print(image)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Parser with every subcommand the tool offers."""
    parser = argparse.ArgumentParser(
        prog="opct", description="OpenShift provider validation tool."
    )
    commands = parser.add_subparsers(dest="command")

    version = commands.add_parser("version", help="Print provider validation tool version")
    version.set_defaults(handler=_cmd_version)

    get = commands.add_parser("get", help="Get tool information.")
    get.set_defaults(handler=_cmd_get)
    get_commands = get.add_subparsers(dest="get_command")
    images = get_commands.add_parser("images", help="Print images used by OPCT.")
    images.add_argument(
        "--to-repository",
        default="",
        help="Show images with format to mirror to repository. Example: registry.example.io:5000",
    )
    images.set_defaults(handler=_cmd_get_images)

    adm = commands.add_parser("adm", help="Administrative commands.")

    def _cmd_adm(args: argparse.Namespace) -> int:
        adm.print_help()
        return 0

    adm.set_defaults(handler=_cmd_adm)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command named in argv; return the exit status."""
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())