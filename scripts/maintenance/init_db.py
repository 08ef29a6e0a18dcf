"""
Create any missing learning-database tables.

Safe to run repeatedly; existing tables and rows are left alone.

Usage:
    python -m scripts.maintenance.init_db
"""

from learning_core.config import load_settings
from learning_core.store import Database


def main():
    settings = load_settings()
    db = Database.from_settings(settings)
    try:
        db.init_db()
    finally:
        db.dispose()
    print("✓ Learning database ready")


if __name__ == "__main__":
    main()
