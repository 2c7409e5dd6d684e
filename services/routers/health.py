# NG-HEADER: Nombre de archivo: health.py
# NG-HEADER: Ubicación: services/routers/health.py
# NG-HEADER: Descripción: Endpoints de healthcheck del backend y la base de datos.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Endpoints de health.

- Liveness básico (`/health`)
- Conectividad DB (`/health/db`)
"""
from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db

router = APIRouter(prefix="/health", tags=["health"])
START_TIME = time.monotonic()


def _status(ok: bool, detail: str | None = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"ok": ok}
    if detail:
        out["detail"] = detail
    return out


@router.get("")
async def health_root() -> Dict[str, Any]:
    """Liveness simple del backend (si responde, está vivo)."""
    return {"status": "ok", "uptime_s": round(time.monotonic() - START_TIME, 1)}


@router.get("/db")
async def health_db(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Valida conexión a la base de datos (SELECT 1)."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:  # pragma: no cover - depende del motor
        return _status(False, detail=str(e))
    return _status(True)
