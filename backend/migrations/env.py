"""Alembic environment for the bizadmin schema.

The database URL comes from DATABASE_URL (same variable the app reads), so no
alembic.ini url needs to be maintained.
"""
from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os, sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bizadmin.config.settings import load_settings  # noqa: E402
from bizadmin.models.authz import Base  # noqa: E402
# every model module has to be imported for autogenerate to see its tables
import bizadmin.models.tenancy  # noqa: E402,F401
import bizadmin.models.catalog  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DB_URL = load_settings()['DATABASE_URL']
config.set_main_option('sqlalchemy.url', DB_URL)
target_metadata = Base.metadata
# SQLite cannot ALTER most constraints in place
BATCH = DB_URL.startswith('sqlite')


def run_migrations_offline():
    context.configure(url=DB_URL, target_metadata=target_metadata, literal_binds=True,
                      compare_type=True, render_as_batch=BATCH)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata,
                          compare_type=True, render_as_batch=BATCH)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
