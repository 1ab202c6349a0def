# gym_backend/alembic/env.py

from logging.config import fileConfig
import logging

from alembic import context

from gym_backend.app.config import Settings
from gym_backend.db import Base, Database
import gym_backend.models  # noqa: F401  registers the tables on Base.metadata

# Alembic Config object (reads alembic.ini etc.)
config = context.config

# Set up logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def run_migrations_online() -> None:
    """Run migrations against the same DATABASE_URL the API uses."""
    database = Database(Settings.from_env().database_url)
    engine = database.engine
    logger.info(f"Migrating {engine.url.render_as_string(hide_password=True)}")

    # batch mode for SQLite ALTERs
    render_as_batch = engine.url.get_backend_name().startswith("sqlite")

    try:
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
                compare_server_default=True,
                render_as_batch=render_as_batch,
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        database.dispose()


# online mode only (engine comes from the app settings)
run_migrations_online()
