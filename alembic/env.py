from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from machine_health.config import get_settings
from machine_health.database import Base
import machine_health.models  # noqa: F401  registers the tables on Base.metadata

# --- Alembic Config object ---
config = context.config

# DATABASE_URL from the environment wins over alembic.ini
database_url = get_settings().database_url
if database_url:
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))

# --- Logging ---
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# --- Metadata for autogenerate ---
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (no DB connection)."""
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
    """Run migrations in 'online' mode (with DB connection)."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
