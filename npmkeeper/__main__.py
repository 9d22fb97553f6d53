"""
Executable module for npmkeeper.

Running:
    python -m npmkeeper

is equivalent to:
    npmkeeper

This module simply forwards execution to the CLI entrypoint defined in
`npmkeeper.cli`.
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entrypoint when executing `python -m npmkeeper`.

    Returns:
        Exit code returned by the CLI.
    """
    # Import lazily so dependencies are only loaded during CLI use
    from npmkeeper.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
