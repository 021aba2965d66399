"""Run the deduplication CLI with ``python -m velocore.deduplication``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
