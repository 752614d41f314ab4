"""
Alembic environment for the ingestion schema.

The target URL comes from ``-x db_url=...``, then ALEMBIC_DATABASE_URL,
then the application's own resolution in ``db.config``. Autogenerate only
compares tables registered on ``Base.metadata`` so a shared database with
foreign tables does not produce drop operations.
"""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool

import db.models  # noqa: F401  registers the ingestion tables on Base.metadata
from db.base import Base
from db.config import normalize_postgres_url, resolve_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")
target_metadata = Base.metadata


def _migration_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("db_url", "").strip()
    url = override or os.getenv("ALEMBIC_DATABASE_URL", "").strip()
    url = normalize_postgres_url(url) if url else resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Ingestion migrations target PostgreSQL only (JSONB, ON CONFLICT).")
    return url


def _include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    if type_ == "table" and reflected and compare_to is None:
        return name in target_metadata.tables
    return True


def _configure_options() -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "include_object": _include_object,
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options())
        with context.begin_transaction():
            context.run_migrations()
    logger.info("Ingestion migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
