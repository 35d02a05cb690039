"""Build a tiny semantic database, persist it, and run a query against it.

Example:
    python scripts/demo_semantic_search.py --query animal --count 3
    python scripts/demo_semantic_search.py --offline --debug
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv(ROOT / ".env")

from semantic_index import HashEmbedder, SemanticDatabase, get_settings

DEFAULT_ITEMS = ["cat", "dog", "fish", "apple", "banana", "orange"]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Semantic index demo")
    parser.add_argument(
        "--database", type=Path, default=None, help="Snapshot file (defaults to persistence.snapshot_path)"
    )
    parser.add_argument("--settings", type=Path, default=ROOT / "config" / "settings.yaml")
    parser.add_argument("--query", default="animal")
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument(
        "--offline", action="store_true", help="Use deterministic hash embeddings instead of OpenAI"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    settings = get_settings(args.settings)
    snapshot_path = args.database or settings.persistence.snapshot_path or Path("data/test-database.json")
    if not snapshot_path.is_absolute():
        snapshot_path = ROOT / snapshot_path

    if args.offline:
        database: SemanticDatabase[str] = SemanticDatabase(
            HashEmbedder(), settings.store, snapshot_path=snapshot_path
        )
    else:
        database = SemanticDatabase.from_settings(settings, snapshot_path=snapshot_path)

    if snapshot_path.exists():
        database.load()
    else:
        database.add_many(DEFAULT_ITEMS)
        database.save()

    for item in database.search_text(args.query, args.count):
        print(item)
    return 0


if __name__ == "__main__":
    sys.exit(main())
