# NG-HEADER: Nombre de archivo: util.py
# NG-HEADER: Ubicación: db/migrations/util.py
# NG-HEADER: Descripción: Utilidades compartidas para scripts de migración.
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import Connection


def has_table(bind: Connection, name: str) -> bool:
    """Devuelve True si la tabla existe."""
    return sa.inspect(bind).has_table(name)


def sync_url(url: str) -> str:
    """Convierte la URL async de la app en una URL usable por Alembic (sync)."""
    if url.startswith("sqlite+aiosqlite"):
        return "sqlite" + url[len("sqlite+aiosqlite"):]
    if url.startswith("postgresql+asyncpg"):
        return "postgresql+psycopg" + url[len("postgresql+asyncpg"):]
    return url
