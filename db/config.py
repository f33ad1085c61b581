"""
db/config.py

Environment access shared by the API, the engine factory and Alembic.

Values come from the process environment, topped up once from the project's
``.env`` and ``.env.local`` files. Variables already set in the process win.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = (".env", ".env.local")
DATABASE_URL_VARS = ("DATABASE_URL", "LOCAL_DATABASE_URL")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _read_env_file(path: Path) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            pairs[key] = value.strip().strip("\"'")
    return pairs


def load_env_files(root: Path = PROJECT_ROOT) -> None:
    """Copy ``KEY=VALUE`` pairs from the env files into ``os.environ``."""
    for name in ENV_FILES:
        path = root / name
        if path.is_file():
            for key, value in _read_env_file(path).items():
                os.environ.setdefault(key, value)


@lru_cache(maxsize=1)
def ensure_env_loaded() -> None:
    load_env_files()


def env_str(name: str, default: str) -> str:
    ensure_env_loaded()
    value = (os.getenv(name) or "").strip()
    return value or default


def env_int(name: str, default: int) -> int:
    """Integer variable; unset or malformed values give ``default``."""
    ensure_env_loaded()
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def env_bool(name: str, default: bool = False) -> bool:
    ensure_env_loaded()
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def normalize_postgres_url(url: str) -> str:
    """Point bare ``postgres://`` / ``postgresql://`` URLs at psycopg 3."""
    scheme, sep, rest = url.partition("://")
    if sep and scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg://{rest}"
    return url


def require_postgres(url: str) -> str:
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL database URLs are supported.")
    return url


def resolve_database_url(*overrides: str | None) -> str:
    """
    Return the first configured database URL, normalized for psycopg.

    Explicit ``overrides`` are tried in order before ``DATABASE_URL`` and
    then ``LOCAL_DATABASE_URL``. Blank values are skipped.
    """
    ensure_env_loaded()
    candidates = [*overrides, *(os.getenv(name) for name in DATABASE_URL_VARS)]
    for candidate in candidates:
        if candidate and candidate.strip():
            return normalize_postgres_url(candidate.strip())

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL."
    )
