#!/usr/bin/env python3
"""Run the feed worker."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from heise_feed.worker import run


if __name__ == "__main__":
    run()
