from logging.config import fileConfig

from alembic import context

from darta_chalani.core.config import settings
from darta_chalani.db.base import Base
# Registers every table on Base.metadata
import darta_chalani.db.models  # noqa: F401
from darta_chalani.db.session import build_engine

config = context.config

# DATABASE_URL wins over the placeholder in alembic.ini
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options(dialect_name: str) -> dict:
    # SQLite cannot ALTER most constraints in place; batch mode recreates the table
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": dialect_name == "sqlite",
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL for the configured URL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url.split(":", 1)[0].split("+", 1)[0]),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations on the same engine setup the API uses."""
    connectable = build_engine(config.get_main_option("sqlalchemy.url"))

    try:
        with connectable.connect() as connection:
            context.configure(connection=connection, **_configure_options(connection.dialect.name))

            with context.begin_transaction():
                context.run_migrations()
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
