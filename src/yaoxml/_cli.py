"""Command-line interface for yaoxml."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from yaoxml._compare import TreeComparator
from yaoxml._errors import ParseError, UnknownVersionError
from yaoxml._io import read_text
from yaoxml.migration import detect_version, upgrade_text

if TYPE_CHECKING:
    from yaoxml.migration import MigrationResult


def _print_errors(path: str, result: MigrationResult) -> None:
    print(f"✗ Upgrade failed for: {path}\n", file=sys.stderr)
    for error in result.errors:
        loc = "/".join(error["loc"]) or error["type"]
        print(f"  {loc}: {error['msg']}", file=sys.stderr)


def version_command(args: argparse.Namespace) -> int:
    """Print the schema release of a document.

    Returns
    -------
    int
        Exit code (0 for success, 1 for an unrecognized document, 2 for other
        errors)
    """
    try:
        version = detect_version(read_text(args.path))
    except (ParseError, UnknownVersionError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 2
    print(version.token)
    return 0


def upgrade_command(args: argparse.Namespace) -> int:
    """Upgrade a document to the latest schema release.

    Returns
    -------
    int
        Exit code (0 for success, 1 for a failed upgrade, 2 for other errors)
    """
    try:
        result = upgrade_text(read_text(args.path))
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 2
    if not result.ok or result.text is None:
        _print_errors(args.path, result)
        return 1

    if args.output is None:
        print(result.text)
    else:
        Path(args.output).write_text(result.text, encoding="utf-8")
    steps = ", ".join(result.applied) or "none"
    print(
        f"✓ {result.source_version} -> {result.version} (steps: {steps})",
        file=sys.stderr,
    )
    return 0


def compare_command(args: argparse.Namespace) -> int:
    """Compare two documents after upgrading both to the latest release.

    Returns
    -------
    int
        Exit code (0 if equal, 1 if different, 2 for errors)
    """
    roots = []
    for path in (args.a, args.b):
        try:
            result = upgrade_text(read_text(path))
        except Exception as e:
            print(f"✗ Error: {e}", file=sys.stderr)
            return 2
        if not result.ok or result.document is None:
            _print_errors(path, result)
            return 2
        roots.append(result.document.root)

    comparison = TreeComparator().compare(*roots)
    for error in comparison.reference_errors:
        print(f"  reference error: {error}", file=sys.stderr)
    if comparison.equal:
        print("✓ Documents are equal")
        return 0
    print(f"✗ Documents differ at {comparison.path}: {comparison.reason}")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Parameters
    ----------
    argv : list[str] | None
        Command-line arguments (defaults to sys.argv[1:])

    Returns
    -------
    int
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="yaoxml",
        description="CLI tools for upgrading and comparing OME-XML documents",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    version_parser = subparsers.add_parser(
        "version",
        help="Print the schema release of an OME-XML document",
    )
    version_parser.add_argument("path", help="Path or URI to the document")
    version_parser.set_defaults(func=version_command)

    upgrade_parser = subparsers.add_parser(
        "upgrade",
        help="Upgrade an OME-XML document to the latest schema release",
    )
    upgrade_parser.add_argument("path", help="Path or URI to the document")
    upgrade_parser.add_argument(
        "-o",
        "--output",
        help="Write the upgraded document here instead of to stdout",
    )
    upgrade_parser.set_defaults(func=upgrade_command)

    compare_parser = subparsers.add_parser(
        "compare",
        help="Check that two OME-XML documents describe the same dataset",
    )
    compare_parser.add_argument("a", help="Path or URI to the first document")
    compare_parser.add_argument("b", help="Path or URI to the second document")
    compare_parser.set_defaults(func=compare_command)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
