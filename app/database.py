import ssl
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from structlog import get_logger
from app.config import settings

logger = get_logger()

DB_URL = settings.DATABASE_URL
if not DB_URL:
    raise RuntimeError("DATABASE_URL not set")

connect_args = {}
if settings.DB_SSL:
    # Create an SSLContext as recommended for asyncpg
    ssl_ctx = ssl.create_default_context()
    # Allow self-signed certs for development
    ssl_ctx.check_hostname = False
    ssl_ctx.verify_mode = ssl.CERT_NONE
    connect_args["ssl"] = ssl_ctx

# Single shared engine; handlers receive sessions (and repositories) through dependencies
engine = create_async_engine(
    DB_URL,
    poolclass=NullPool,
    connect_args=connect_args,
    future=True,
)

AsyncSessionFactory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

CHAT_TABLES = ("chat_rooms", "messages")


# Dependency for getting a session in FastAPI routes
async def get_session() -> AsyncSession:
    async with AsyncSessionFactory() as session:
        yield session


async def probe_tables(*names: str) -> dict:
    """Return {table_name: present} for the given tables."""
    async with engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return {name: name in existing for name in names}


async def chat_tables_available() -> bool:
    try:
        found = await probe_tables(*CHAT_TABLES)
    except Exception as e:
        logger.warning("Could not probe chat tables", error=str(e))
        return False
    return all(found.values())


async def probe_columns(table: str, *names: str) -> dict:
    """Return {column_name: present} for the given table; all False when the table is missing."""

    def _columns(sync_conn):
        inspector = inspect(sync_conn)
        if not inspector.has_table(table):
            return set()
        return {col["name"] for col in inspector.get_columns(table)}

    async with engine.connect() as conn:
        existing = await conn.run_sync(_columns)
    return {name: name in existing for name in names}
