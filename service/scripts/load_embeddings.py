#!/usr/bin/env python3
"""
Load precomputed item embeddings from a JSON file into the configured embedding store.

Embedding generation itself happens elsewhere; this only upserts vectors keyed
by (item_id, model_id). Catalog metadata (media type, library, content rating) is attached
so Qdrant can filter natively.

Input JSON: {"model_id": "...", "embeddings": {item_id: [floats]}} or a bare
{item_id: [floats]} mapping (then --model is required).

Usage:
  From repo root:
    python -m service.scripts.load_embeddings data/embeddings_export.json
    python -m service.scripts.load_embeddings vectors.json --model text-embedding-3-small
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..state import get_state


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Load item embeddings into the embedding store")
    parser.add_argument("path", type=Path, help="JSON file with embeddings")
    parser.add_argument(
        "--model",
        default=None,
        help="Embedding model id (default: model_id in the file, else EMBEDDING_MODEL_ID env)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Embeddings per upsert call",
    )
    args = parser.parse_args(argv)
    if args.batch_size < 1:
        parser.error(f"--batch-size must be at least 1, got {args.batch_size}")

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if not args.path.exists():
        print(f"Embeddings file not found: {args.path}", file=sys.stderr)
        return 1
    with open(args.path) as f:
        data = json.load(f)

    if isinstance(data, dict) and "embeddings" in data:
        embeddings = data["embeddings"]
        file_model_id = data.get("model_id")
    else:
        embeddings = data
        file_model_id = None

    state = get_state()
    model_id = args.model or file_model_id or state.config.embedding_model_id
    if not model_id:
        print("Model id required: pass --model or set EMBEDDING_MODEL_ID.", file=sys.stderr)
        return 1

    dims = {len(v) for v in embeddings.values()}
    if len(dims) > 1:
        print(f"Embeddings have mixed dimensions: {sorted(dims)}", file=sys.stderr)
        return 1
    if not embeddings:
        print("No embeddings to load.", file=sys.stderr)
        return 0

    items_by_id = state.catalog_store.get_items(list(embeddings))
    missing = len(embeddings) - len(items_by_id)
    if missing:
        print(f"{missing} embeddings have no catalog entry; stored without filter metadata", file=sys.stderr)

    item_ids = list(embeddings)
    for i in range(0, len(item_ids), args.batch_size):
        batch = {item_id: embeddings[item_id] for item_id in item_ids[i:i + args.batch_size]}
        state.embedding_store.save_embeddings(model_id, batch, items_by_id=items_by_id)
        print(f"Loaded {min(i + args.batch_size, len(item_ids))}/{len(item_ids)}")

    print(f"Loaded {len(embeddings)} embeddings for model '{model_id}' ({dims.pop()} dimensions)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
