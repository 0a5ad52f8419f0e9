"""
資料庫連線與 Session（Async SQLAlchemy）
- PostgreSQL 一律轉成 asyncpg driver（postgresql+asyncpg://）
- 建表交給 Alembic，啟動時不 create_all
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from agentcare.config import settings


def normalize_database_url(url: str) -> str:
    """postgres:// / postgresql:// / postgresql+psycopg2:// → postgresql+asyncpg://"""
    url = str(url or "").strip()
    for prefix in ("postgres://", "postgresql://", "postgresql+psycopg2://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


db_url = normalize_database_url(settings.database_url)

engine = create_async_engine(
    db_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """一個 request 一個 transaction：成功 commit，例外 rollback"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
