"""Main entry point for running calcgraph_pkg as a module.

This allows running calcgraph with:
    python -m calcgraph_pkg
    python -m calcgraph_pkg -e "2+2"
    python -m calcgraph_pkg -e "x^2 - 4" --special-points --domain -5 5

This is equivalent to running:
    python -m calcgraph_pkg.cli
    python calcgraph.py
"""

from __future__ import annotations

import sys

from .cli import main_entry

if __name__ == "__main__":
    sys.exit(main_entry())
