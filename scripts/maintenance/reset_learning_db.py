"""
Reset the learning database.

DANGEROUS: This deletes all per-user progress, tasks, sessions and analytics!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_learning_db
"""

from learning_core.config import load_settings
from learning_core.store import Database


def main():
    print("=" * 60)
    print("WARNING: Reset Learning Database")
    print("=" * 60)
    print()
    print("This will DELETE all learning records:")
    print("  - All SRS progress (intervals, ease factors, counters)")
    print("  - All daily checkpoint tasks")
    print("  - All study sessions and learning analytics")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        db = Database.from_settings(load_settings())
        try:
            db.reset_db()
        finally:
            db.dispose()
        print("✓ Database reset complete!")
        print("\nThe database now has empty tables ready for new reviews.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
