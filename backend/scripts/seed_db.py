"""
Seed the configured database with the Danang catalog, demo users and the
curated itinerary templates.

Run from backend/:  python -m scripts.seed_db [--reset]
"""

import argparse
import logging

from anvago.core.config import settings
from anvago.db.database import SessionLocal, init_db
from anvago.db.seed import seed_database

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("seed_db")


def main():
    parser = argparse.ArgumentParser(description="Seed the Anvago database")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    logger.info(f"Database: {settings.database_url}")
    init_db()

    db = SessionLocal()
    try:
        created = seed_database(db, reset=args.reset)
    finally:
        db.close()

    print(f"Created {created['locations']} locations, {created['users']} users, "
          f"{created['templates']} templates")
    print("Admin login: admin@anvago.com / admin123")
    print("Demo login:  demo@anvago.com / demo123")


if __name__ == "__main__":
    main()
