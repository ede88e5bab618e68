"""
Alembic migration environment for the MadSocial schema.

The target URL comes from DATABASE_URL_SYNC and can be overridden per run with
`alembic -x url=sqlite:///madsocial.db upgrade head`. SQLite cannot ALTER most
constraints in place, so migrations against it run in batch mode.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from madsocial.db.base import Base
from madsocial.models import User, Event, Pregame, JoinRequest  # noqa: F401 - Import models for autogenerate
from madsocial.core.config import get_settings

config = context.config
settings = get_settings()

config.set_main_option(
    "sqlalchemy.url", context.get_x_argument(as_dictionary=True).get("url", settings.DATABASE_URL_SYNC)
)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        # Catches capacity and status column type drift on autogenerate
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the MadSocial DDL as a SQL script without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(str(connection.engine.url)))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
