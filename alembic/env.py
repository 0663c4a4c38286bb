"""
Alembic migration environment for SQLite.

Database path is resolved from DATABASE_PATH env var,
falling back to artregistry/data/registry.db relative to the project root.
"""

import logging
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context

# Add project root to Python path so artregistry imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

config = context.config
# Only configure logging when run from the alembic CLI; entry points that
# already called basicConfig keep their handlers and levels
if (
    config.config_file_name is not None
    and Path(config.config_file_name).exists()
    and not logging.getLogger().handlers
):
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def get_database_url() -> str:
    """Get SQLite URL from config, environment, or default.

    Resolution order:
    1. sqlalchemy.url config option (programmatic callers via ensure_schema)
    2. DATABASE_PATH env var
    3. Default: artregistry/data/registry.db
    """
    config_url = config.get_main_option("sqlalchemy.url")
    if config_url:
        return config_url

    env_path = os.getenv("DATABASE_PATH")
    if env_path:
        return f"sqlite:///{env_path}"

    default_path = Path(__file__).parent.parent / "artregistry" / "data" / "registry.db"
    return f"sqlite:///{default_path}"


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = get_database_url()
    context.configure(
        url=url,
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    from sqlalchemy import create_engine

    url = get_database_url()
    connectable = create_engine(url)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
