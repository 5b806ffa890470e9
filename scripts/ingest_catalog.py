# ==============================
# Catalog Ingestion Script
# ==============================
"""
Load a product catalog file into the persisted vector store snapshot.

Usage examples:
  python scripts/ingest_catalog.py --catalog data/catalog.json
  python scripts/ingest_catalog.py --catalog data/catalog.yaml --db storage/vectors/curae.sqlite --rebuild

Notes:
- Default mode is ensure (ingest when empty, full re-ingest on drift).
- --rebuild always clears and re-ingests.
- Settings come from configs/*.yaml and CURAE__* env vars; flags override them.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from curae.config.loader import load_settings
from curae.knowledge.catalog import FileCatalog
from curae.knowledge.retriever import RetrievalEngine
from curae.logging.logger import bootstrap_logger


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Ingest a product catalog into the vector store snapshot.")
    ap.add_argument("--catalog", help="Catalog file (.json, .yaml or .yml); defaults to ingestion.catalog_path")
    ap.add_argument("--db", help="SQLite snapshot path (overrides store.db_path)")
    ap.add_argument("--repo-root", help="Repo root used to resolve configs/ and relative paths")
    ap.add_argument("--rebuild", action="store_true", help="Clear the store and re-ingest everything")
    return ap.parse_args(argv)


def run_ingest(args: argparse.Namespace) -> int:
    settings = load_settings(repo_root=args.repo_root)
    bootstrap_logger(settings)

    catalog_path = args.catalog or settings.ingestion.catalog_path
    if not catalog_path:
        raise SystemExit("Provide --catalog or set ingestion.catalog_path")
    catalog_file = Path(catalog_path) if args.catalog else settings.resolve_path(catalog_path)

    overrides = {"backend": "sqlite"}
    if args.db:
        overrides["db_path"] = str(Path(args.db).expanduser().resolve())
    settings = settings.model_copy(update={"store": settings.store.model_copy(update=overrides)})

    engine = RetrievalEngine.from_settings(settings, FileCatalog(catalog_file))
    result = engine.pipeline.re_ingest_all() if args.rebuild else engine.ensure_ingested()
    status = engine.pipeline.status()

    print(f"catalog={catalog_file}")
    print(f"mode={'rebuild' if args.rebuild else 'ensure'} ok={result.success} count={result.count}")
    print(f"store_documents={status.document_count} catalog_items={status.catalog_count}")
    if result.skipped:
        print("Skipped:")
        for label in result.skipped[:20]:
            print(f"- {label}")
    if result.error:
        print(f"Error: {result.error}")
    return 0 if result.success else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    return run_ingest(args)


if __name__ == "__main__":
    raise SystemExit(main())
