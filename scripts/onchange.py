#!/usr/bin/env python3
"""
Onchange runner script.

Runs the supervisor from a source checkout without installing it.

Usage:
    python scripts/onchange.py [flags] example.com/app [args...]
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from orchestrator.cli import main


if __name__ == "__main__":
    sys.exit(main())
