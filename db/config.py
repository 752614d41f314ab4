"""
db/config.py

Environment loading and database URL resolution for the API, the CLI,
and Alembic.
"""

from __future__ import annotations

import os
from pathlib import Path

DATABASE_URL_VARIABLES: tuple[str, ...] = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
ENV_FILES: tuple[str, ...] = (".env", ".env.local")

_DRIVER_PREFIXES: tuple[tuple[str, str], ...] = (
    ("postgres://", "postgresql+psycopg://"),
    ("postgresql://", "postgresql+psycopg://"),
)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files() -> None:
    """
    Populate ``os.environ`` from the project's ``.env`` and ``.env.local``.

    ``export KEY=VALUE`` lines are accepted. A variable already set in the
    process is never replaced, so deployment settings beat local files.
    """

    project_root = Path(__file__).resolve().parents[1]
    for env_path in (project_root / name for name in ENV_FILES):
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is not None:
                os.environ.setdefault(*parsed)


def _env(name: str) -> str:
    return os.getenv(name, "").strip()


def database_url_configured() -> bool:
    load_env_files()
    return any(_env(name) for name in DATABASE_URL_VARIABLES)


def normalize_postgres_url(url: str) -> str:
    """
    Point bare ``postgres``/``postgresql`` URLs at the psycopg 3 driver.
    """

    for prefix, replacement in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


def resolve_database_url() -> str:
    """
    Pick the ingestion database.

    DATABASE_URL always wins. CLOUD_DATABASE_URL is used only when
    ENVIRONMENT names a deployed stage; otherwise LOCAL_DATABASE_URL.
    """

    load_env_files()

    candidates = ["DATABASE_URL"]
    if _env("ENVIRONMENT").lower() in CLOUD_ENVIRONMENTS:
        candidates.append("CLOUD_DATABASE_URL")
    candidates.append("LOCAL_DATABASE_URL")

    for name in candidates:
        url = _env(name)
        if url:
            return normalize_postgres_url(url)

    raise RuntimeError(
        "No ingestion database configured: set DATABASE_URL, "
        "or LOCAL_DATABASE_URL (CLOUD_DATABASE_URL with ENVIRONMENT=prod|staging|cloud)."
    )
