"""CLI entry point for shellwatch."""

import sys


def main() -> int:
    """Main entry point for the shellwatch CLI."""
    from shellwatch.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
