"""teaktrace CLI: rebuild SDK state from a captured device log."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Optional

from teaktrace._internal.canonical_json import canonical_dumps
from teaktrace.api import process_log
from teaktrace.kernel.errors import ConsistencyError


def _read_log(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(Path(source), 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def main(argv: Optional[list] = None):
    """Main CLI entry point for teaktrace commands."""
    try:
        teaktrace_version = get_version("teaktrace")
    except PackageNotFoundError:
        teaktrace_version = "dev"

    parser = argparse.ArgumentParser(
        prog="teaktrace",
        description="teaktrace: Reconstruct Teak SDK lifecycle state from device logs"
    )
    parser.add_argument("--version", action="version", version=f"teaktrace {teaktrace_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "log",
        nargs="?",
        default="-",
        help="Path to captured log text, or '-' for stdin (default)"
    )
    parent_parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Print non-fatal diagnostics (unrecognized lines and events) to stderr."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "history",
        help="Print the reconstructed history as canonical JSON",
        parents=[parent_parser]
    )
    subparsers.add_parser(
        "narrate",
        help="Print the narrated event stream",
        parents=[parent_parser]
    )

    args = parser.parse_args(argv)

    if args.command not in ("history", "narrate"):
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        history, stream = process_log(_read_log(args.log))
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ConsistencyError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.line:
            print(f"  Line: {e.line}", file=sys.stderr)
        sys.exit(1)

    if args.diagnostics:
        for diagnostic in history.diagnostics:
            print(str(diagnostic), file=sys.stderr)

    if args.command == "history":
        print(canonical_dumps(history.to_h()))
    else:
        text = stream.text()
        if text:
            print(text)


if __name__ == "__main__":
    main()
