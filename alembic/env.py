"""Alembic 環境：使用 agentcare 的 Base 與 database_url，支援 SQLite / PostgreSQL 遷移。
遷移以同步 driver 執行：aiosqlite → sqlite、asyncpg → psycopg2。"""
from pathlib import Path
from logging.config import fileConfig

from alembic import context

from agentcare.config import settings
from agentcare.database import Base, normalize_database_url
import agentcare.models  # noqa: F401  註冊所有資料表到 Base.metadata

_project_root = Path(__file__).resolve().parent.parent

config = context.config
if config.config_file_name is not None:
    config_path = Path(config.config_file_name).resolve()
    if config_path.exists():
        fileConfig(str(config_path))

target_metadata = Base.metadata


def sync_database_url(url: str) -> str:
    """async URL → 同步 URL；SQLite 相對路徑改為以專案根目錄為基準的絕對路徑"""
    url = normalize_database_url(url)
    if url.startswith("sqlite+aiosqlite"):
        url = url.replace("sqlite+aiosqlite", "sqlite", 1)
    if url.startswith("sqlite:///./"):
        rel = url.replace("sqlite:///./", "").strip()
        return "sqlite:///" + (_project_root / rel).resolve().as_posix()
    return url.replace("postgresql+asyncpg", "postgresql+psycopg2", 1)


config.set_main_option("sqlalchemy.url", sync_database_url(settings.database_url))


def run_migrations_offline() -> None:
    """離線模式：只產生 SQL，不連 DB"""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """線上模式：連 DB 執行遷移"""
    from sqlalchemy import create_engine
    url = config.get_main_option("sqlalchemy.url")
    connectable = create_engine(url)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
