"""
Create the MongoDB indexes the tracker relies on.

Usage:
    python scripts/create_indexes.py
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from freelance_tracker.config import settings
from freelance_tracker.database import database
from freelance_tracker.logging_config import configure_logging


async def main():
    """Connect, which ensures indexes, then disconnect."""
    configure_logging(settings.log_level, settings.debug)
    await database.connect()
    await database.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
