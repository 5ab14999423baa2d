"""
Create all database tables without running migrations
Run with: python3 create_tables.py
"""
from sqlalchemy import inspect

from db import Base, engine

# Import all models so they are registered with Base.metadata
from models.user import User  # noqa: F401
from models.ledger_entry import LedgerEntry  # noqa: F401
from models.team import Team  # noqa: F401
from models.team_member import TeamMember  # noqa: F401
from models.tournament import Tournament  # noqa: F401
from models.registration import Registration  # noqa: F401

if __name__ == "__main__":
    print("🔨 Creating all tables...")
    Base.metadata.create_all(bind=engine)
    print("✅ All tables created successfully!")

    tables = inspect(engine).get_table_names()
    print(f"\n📋 Tables ({len(tables)}):")
    for table in sorted(tables):
        print(f"   - {table}")
