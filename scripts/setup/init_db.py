# scripts/setup/init_db.py
"""
Initialize database: creates all tables and seeds the default department codes.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import create_tables, engine, SessionLocal
from app.config import settings
from app.models.department import Department
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

DEFAULT_DEPARTMENTS = [
    ("001", "Motorpool"),
    ("002", "MEO"),
]


def seed_departments(db) -> int:
    """Insert the default department codes that are missing. Returns how many were added."""
    existing = {code for (code,) in db.query(Department.code).all()}
    added = 0
    for code, name in DEFAULT_DEPARTMENTS:
        if code not in existing:
            db.add(Department(code=code, name=name))
            added += 1
    db.commit()
    return added


def main():
    print("🗄️  Motorpool DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except SQLAlchemyError as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  sudo systemctl start postgresql")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    db = SessionLocal()
    try:
        added = seed_departments(db)
    finally:
        db.close()
    print(f"\n🏢 Department codes seeded: {added} new")

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn app.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
