#!/usr/bin/env python3
"""sqlbench CLI entrypoint -- run without pip install.

Usage:
    python sbrun.py run -n 100 examples/sum/*.sql
    python sbrun.py --help
"""

import sys
from pathlib import Path

# Add src/ to import path so the sqlbench package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from sqlbench.cli import app

if __name__ == "__main__":
    app()
