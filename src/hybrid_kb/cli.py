"""
Command-line queries against the persisted knowledge base.

Reads KB_* settings from .env.local, .env or the environment, loads the
knowledge base the API would serve and prints ranked results.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .api import build_knowledge_base
from .config import load_settings
from .knowledge_base import RETRIEVAL_STRATEGIES, KnowledgeBase
from .logging_config import setup_logging


def print_results(kb: KnowledgeBase, query: str, strategy: str, max_results: int) -> None:
    """Run one query and print the ranked results."""
    results = kb.retrieve(query, strategy, max_results)

    print(f"\n{strategy} results for '{query}':")
    print("=" * 80)

    if not results:
        print("No matching documents.")

    for rank, result in enumerate(results, start=1):
        doc = result.document
        print(f"{rank}. {doc.title}  [{doc.category}]  id={doc.id}")
        print(
            f"   combined={result.combined_score:.3f}  "
            f"keyword={result.keyword_score:.1f}  vector={result.vector_score:.3f}"
        )

    print("=" * 80)


def print_stats(kb: KnowledgeBase) -> None:
    stats = kb.get_stats()
    print(f"\nDocuments: {stats['total_documents']} (vectorized: {stats['vectorized_docs']})")
    print("Categories:")
    for category, count in stats["categories"].items():
        print(f"  - {category}: {count}")
    print("Difficulties:")
    for difficulty, count in stats["difficulties"].items():
        print(f"  - {difficulty}: {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="query_kb.py",
        description="Query the local hybrid knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "vector retrieval"
  %(prog)s "agentic rag" --strategy keyword --top-k 3
  %(prog)s --stats

Environment variables:
- KB_DOCUMENTS_FILE / KB_VECTORS_FILE (knowledge base location)
- KB_MAX_RESULTS (default for --top-k)
- LOG_LEVEL / LOG_FILE (used with --verbose)
        """
    )

    parser.add_argument("query", nargs="?", help="Query text")

    parser.add_argument(
        "--top-k", "-k",
        type=int,
        default=None,
        help="Number of results (default: KB_MAX_RESULTS)"
    )

    parser.add_argument(
        "--strategy", "-s",
        choices=RETRIEVAL_STRATEGIES,
        default="hybrid",
        help="Retrieval strategy (default: hybrid)"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print corpus statistics instead of querying"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log to the console at LOG_LEVEL instead of WARNING"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 = success, 1 = bad input or configuration)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.stats and args.query is None:
        parser.print_usage(sys.stderr)
        print("ERROR: a query or --stats is required", file=sys.stderr)
        return 1

    if args.top_k is not None and args.top_k < 0:
        print(f"ERROR: --top-k must be >= 0, got {args.top_k}", file=sys.stderr)
        return 1

    try:
        settings = load_settings()
        setup_logging(
            settings,
            console_level=None if args.verbose else logging.WARNING,
            stream=sys.stderr,
        )
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1

    kb = build_knowledge_base(settings)

    if args.stats:
        print_stats(kb)
        return 0

    top_k = args.top_k if args.top_k is not None else settings.max_results
    print_results(kb, args.query, args.strategy, top_k)
    return 0
