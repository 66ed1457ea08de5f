import os
import sys
from logging.config import fileConfig
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool

from app.models import Base

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Read the DB URL directly (don't pass it through configparser)
db_url = os.environ.get("DATABASE_URL")
if not db_url:
    raise RuntimeError("DATABASE_URL not set. Export it (or add in .env).")

# The app runs on asyncpg; migrations use the sync psycopg2 driver
url = make_url(db_url)
if url.drivername in ("postgres", "postgresql", "postgresql+asyncpg"):
    url = url.set(drivername="postgresql+psycopg2")
if os.environ.get("DB_SSL", "").lower() in ("1", "true", "yes") and "sslmode" not in url.query:
    url = url.update_query_dict({"sslmode": "require"})
sync_db_url = url.render_as_string(hide_password=False)

target_metadata = Base.metadata


def run_migrations_offline():
    """Emit the migration SQL to stdout without connecting."""
    context.configure(
        url=sync_db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = create_engine(sync_db_url, poolclass=NullPool, future=True)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
