"""CLI entry point.

Usage:
    python -m sheets_gpt list "5 product name ideas"
    python -m sheets_gpt config
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
