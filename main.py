#!/usr/bin/env python3
"""
ytarchive v1.0.0 — Main entry point.
Run from a checkout (`./main.py URL`), or place yt-dlp next to this file
so the colocated copy is preferred over the system one.
"""

import sys
from pathlib import Path

# ── Determine project root ────────────────────────────────────────────
if getattr(sys, 'frozen', False):
    # Running inside a PyInstaller bundle
    PROJECT_ROOT = Path(sys._MEIPASS)
else:
    # Running from source
    PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ytarchive.cli.cli_main import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
