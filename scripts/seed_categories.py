"""
Initialize the catalog database: create tables and seed default categories.
Run once before first launch. Safe to re-run; seeding only happens on an
empty categories table.
Usage: python scripts/seed_categories.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dealer_catalog.config import settings
from dealer_catalog.database import SessionLocal, check_db_connection, create_tables
from dealer_catalog.services.category_service import CategoryService


def main():
    print("🗄️  Dealer Catalog DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    if not check_db_connection():
        print("❌ Cannot connect to database")
        sys.exit(1)
    print("✅ Database connection OK")

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ categories, vehicles, vehicle_images ready")

    db = SessionLocal()
    try:
        added = CategoryService(db).seed_defaults()
        categories = CategoryService(db).list_categories()
    finally:
        db.close()

    if added:
        print(f"\n🌱 Seeded {added} default categories")
    else:
        print("\nℹ️  Categories already present, nothing seeded")

    print(f"\n📊 Categories ({len(categories)} total):")
    for c in categories:
        print(f"   ✓ {c['slug']:<14} {c['nameGlobal']} / {c['nameLocal']}")


if __name__ == "__main__":
    main()
