import sys, pathlib, asyncio
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from sqlalchemy import func, select, text
from app.core.config import settings
from app.core.db import SessionLocal
from app.models import Campaign, ContactMessage, Signature

async def main():
    print("SIGN_COUNTER_MODE:", settings.SIGN_COUNTER_MODE)
    print("STORE_OP_TIMEOUT_SEC:", settings.STORE_OP_TIMEOUT_SEC)
    async with SessionLocal() as s:
        # Simple ping
        one = await s.execute(text("SELECT 1"))
        print("db-ping:", one.scalar())

        for model in (Campaign, Signature, ContactMessage):
            count = await s.execute(select(func.count()).select_from(model))
            print(f"{model.__tablename__}:", count.scalar())

asyncio.run(main())
