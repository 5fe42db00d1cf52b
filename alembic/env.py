# alembic/env.py
import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
DELIVERY_COMMON_PATH = os.path.join(PROJECT_ROOT, 'src', 'libs', 'delivery-common')

# Migrations run from a checkout where delivery-common may not be installed.
if DELIVERY_COMMON_PATH not in sys.path:
    sys.path.insert(0, DELIVERY_COMMON_PATH)
load_dotenv(os.path.join(PROJECT_ROOT, '.env'))

from delivery_common import database_models  # noqa: E402  (registers the tables)
from delivery_common.db import get_sync_database_url  # noqa: E402

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = database_models.Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=get_sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = dict(config.get_section(config.config_ini_section) or {})
    section["sqlalchemy.url"] = get_sync_database_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
