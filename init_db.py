"""Database initialization script."""
import asyncio
import os
import sys


async def init_database():
    """Initialize database tables."""
    from api.db.database import Database
    from shared.config import load_settings

    settings = load_settings(os.environ.get("GRIDHUB_CONFIG", "config.yaml"))
    database = Database(
        database_url=settings.database.url,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )

    print("Connecting to database...")
    print("Creating tables...")
    await database.create_tables()

    print("Tables created successfully:")
    print("  - bot")
    print("  - bot_transaction")
    print("  - bot_stats")
    print("  - api_config")

    await database.close()
    print("Done!")


if __name__ == "__main__":
    # Add current directory to path
    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
    asyncio.run(init_database())
