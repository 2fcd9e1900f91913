#!/usr/bin/env python3
"""
Query the local knowledge base from the command line.

Usage:
    python scripts/query_kb.py "<query>" [--top-k N] [--strategy keyword|vector|hybrid]
    python scripts/query_kb.py --stats

Installed as the `hybrid-kb-query` console script as well.
"""

import sys

from hybrid_kb.cli import main

if __name__ == "__main__":
    sys.exit(main())
