#!/usr/bin/env python3
"""
calcgraph - Decimal Calculator and Function Grapher

Main entry point for the calcgraph application.
This file serves as a thin wrapper that delegates all functionality
to the calcgraph_pkg package.

Usage:
    python calcgraph.py                       # Interactive REPL
    python calcgraph.py -e "2+2"              # Evaluate expression
    python calcgraph.py -e "x^2" --plot 2d    # Sample a graph
    python calcgraph.py --help                # Show help
"""

from __future__ import annotations

import sys


def main() -> int:
    """
    Main entry point for calcgraph.

    Delegates all functionality to the calcgraph_pkg.cli module,
    which handles argument parsing, expression evaluation, and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    from calcgraph_pkg.cli import main_entry

    try:
        return main_entry(sys.argv[1:])
    except KeyboardInterrupt:
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
