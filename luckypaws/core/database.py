from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from loguru import logger
from luckypaws.core.config import settings
from luckypaws.core.errors import StoreError

DATABASE_URL = settings.DATABASE_URL

# SQLite: WAL for concurrent pollers, bounded lock wait
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if "sqlite" in DATABASE_URL:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000") # Wait up to 5s before locking
        cursor.close()

connect_args = {"check_same_thread": False} if "sqlite" in DATABASE_URL else {}

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    connect_args=connect_args,
    pool_pre_ping=True # Health check connections
)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

async def get_db():
    async with AsyncSessionLocal() as session:
        yield session

@asynccontextmanager
async def store_errors(session: AsyncSession, operation: str):
    """
    Roll back and re-raise persistence failures as StoreError.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store failure during {operation}: {e}")
        await session.rollback()
        raise StoreError(f"Failed to {operation}") from e
