import asyncio
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from luckypaws.core.config import settings
from luckypaws.core.database import engine, Base
from luckypaws.models.order import Order
from luckypaws.models.cashout import Cashout
from luckypaws.models.username import Username
from luckypaws.models.audit import AuditLog

async def init_db(drop: bool = False):
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Tables ready on {settings.DATABASE_URL}: {', '.join(sorted(Base.metadata.tables))}")

if __name__ == "__main__":
    drop = "--drop" in sys.argv[1:]
    if drop:
        print("Dropping existing tables first")
    asyncio.run(init_db(drop))
