"""
Migration script to create all database tables

Run this script to create all database tables:
    python -m watchlist_core.migrations.create_all_tables
"""
import asyncio

from watchlist_core.database import Base, create_engine, create_tables


async def main():
    engine = create_engine()
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()


def run():
    """Create all database tables"""
    print("=" * 60)
    print("Creating all database tables...")
    print("=" * 60)

    try:
        asyncio.run(main())
        print("\nAll tables created successfully!")
        print("\nTables:")
        for table in Base.metadata.sorted_tables:
            print(f"   - {table.name}")
        print("=" * 60)
    except Exception as e:
        print(f"\nError creating tables: {e}")
        raise


if __name__ == "__main__":
    run()
