#!/usr/bin/env python3
"""
Drawer Rectification Script

Rectifies an angled drawer photo into a flat, metrically scaled underlay.
See src/rectification/cli.py for options.

Usage:
    python scripts/rectify_drawer.py photo.jpg \\
        --corners 412,300 3580,355 3820,2810 190,2760 \\
        --width-mm 210 --length-mm 297 --output underlay.jpg
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.rectification.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
