"""Script to create the campaigns, signatures and contact_messages tables."""

import asyncio
import sys
import pathlib

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from app.core.db import engine
from app.models import Base


async def create_tables():
    print("Creating tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    for name in sorted(Base.metadata.tables):
        print(f"  {name}")
    print("Done.")


if __name__ == "__main__":
    asyncio.run(create_tables())
