"""
Import phrases from CSV into the MongoDB phrase catalog.

This script:
1. Reads the phrase CSV (columns: german, english, and optionally
   phrase_id, pronunciation, category, difficulty)
2. Validates every row into a Phrase
3. Upserts each phrase into the catalog by phrase_id, reporting which
   phrases were new and which replaced an existing entry

Rows without a phrase_id get a stable id derived from the German text, so
re-running the import updates phrases instead of duplicating them.

Usage:
    python -m scripts.data.import_phrases [--csv PATH] [--dry-run]
"""

from __future__ import annotations

import argparse
import uuid
from pathlib import Path
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from learning_core.catalog_repo import MongoPhraseCatalog
from learning_core.config import load_settings
from learning_core.errors import StoreUnavailable
from learning_core.schemas import Phrase

# Configuration
CSV_PATH = Path("data/phrases.csv")
REQUIRED_COLUMNS = ("german", "english")


def _cell(row: pd.Series, column: str) -> Optional[str]:
    value = row.get(column)
    if pd.isna(value) or str(value).strip() == "":
        return None
    return str(value).strip()


def derive_phrase_id(german: str) -> str:
    return f"phrase_{uuid.uuid5(uuid.NAMESPACE_URL, german.lower()).hex[:16]}"


def row_to_phrase(row: pd.Series) -> Phrase:
    """
    Convert one CSV row to a Phrase.

    Raises:
        ValueError / ValidationError: if the row is missing required fields
    """
    german = _cell(row, "german")
    english = _cell(row, "english")
    if not german or not english:
        raise ValueError("german and english are required")

    return Phrase(
        phrase_id=_cell(row, "phrase_id") or derive_phrase_id(german),
        prompt=german,
        answer=english,
        pronunciation=_cell(row, "pronunciation") or "",
        category=_cell(row, "category") or "general",
        difficulty=_cell(row, "difficulty") or "intermediate",
    )


def import_rows(df: pd.DataFrame, catalog: Optional[MongoPhraseCatalog] = None) -> dict[str, int]:
    """
    Validate every row and, when a catalog is given, upsert it.

    Returns:
        Counts keyed by "validated", "new", "updated" and "errors"
    """
    counts = {"validated": 0, "new": 0, "updated": 0, "errors": 0}

    for idx, row in df.iterrows():
        try:
            phrase = row_to_phrase(row)
        except (ValueError, ValidationError) as e:
            counts["errors"] += 1
            print(f"  ✗ Row {idx + 1}: {e}")
            continue

        if catalog is not None:
            try:
                existing = catalog.get_phrase(phrase.phrase_id)
                catalog.upsert_phrase(phrase)
            except StoreUnavailable as e:
                counts["errors"] += 1
                print(f"  ✗ Row {idx + 1} ({phrase.prompt}): {e}")
                continue
            counts["updated" if existing is not None else "new"] += 1

        counts["validated"] += 1

    return counts


def import_phrases(csv_path: Path = CSV_PATH, dry_run: bool = False) -> None:
    """
    Import phrases from CSV to MongoDB.

    Args:
        csv_path: CSV file to read
        dry_run: If True, validate only and don't write to MongoDB
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    df = pd.read_csv(csv_path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing required columns: {', '.join(missing)}")
    print(f"Loaded {len(df)} phrases from CSV")

    catalog = None
    if not dry_run:
        print("Connecting to MongoDB...")
        settings = load_settings()
        catalog = MongoPhraseCatalog.connect(settings)
        catalog.ensure_indexes()
        print(f"✓ Connected to MongoDB: {settings.catalog_db_name}.{settings.catalog_collection}\n")

    counts = import_rows(df, catalog)

    # Summary
    print(f"\n{'='*60}")
    print("Import complete!")
    print(f"{'='*60}")
    if dry_run:
        print(f"Validated: {counts['validated']}")
    else:
        print(f"New:       {counts['new']}")
        print(f"Updated:   {counts['updated']}")
    print(f"Errors:    {counts['errors']}")
    print(f"Total:     {len(df)}")

    if dry_run:
        print("\n⚠ DRY RUN MODE - No changes were made to MongoDB")



def main():
    parser = argparse.ArgumentParser(description="Import phrases from CSV to MongoDB")
    parser.add_argument(
        "--csv",
        type=Path,
        default=CSV_PATH,
        help=f"Phrase CSV to import (default: {CSV_PATH})"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate rows without writing to MongoDB"
    )

    args = parser.parse_args()
    import_phrases(csv_path=args.csv, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
