#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: settings.py
# NG-HEADER: Ubicación: services/routers/settings.py
# NG-HEADER: Descripción: Endpoints de configuración del negocio (clave/valor tipado)
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_session
from services.pricing import MAX_MONEY
from services.settings_store import (
    SettingValidationError,
    UnknownSettingError,
    get_setting,
    put_setting,
    surcharge_preview,
)

router = APIRouter(prefix="/settings", tags=["settings"])


async def _read(db: AsyncSession, key: str) -> dict:
    try:
        value = await get_setting(db, key)
    except UnknownSettingError:
        raise HTTPException(status_code=404, detail=f"Configuración desconocida: {key}")
    return {"key": key, "value": value}


async def _write(db: AsyncSession, key: str, value: Any) -> dict:
    try:
        clean = await put_setting(db, key, value)
    except UnknownSettingError:
        raise HTTPException(status_code=404, detail=f"Configuración desconocida: {key}")
    except SettingValidationError as exc:
        raise HTTPException(status_code=400, detail={"message": str(exc), "errors": exc.errors})
    await db.commit()
    return {"key": key, "value": clean}


@router.get("/payment_surcharges/preview")
async def payment_surcharges_preview(
    total: float = Query(..., ge=0, le=float(MAX_MONEY), description="Total del documento"),
    db: AsyncSession = Depends(get_session),
):
    surcharges = await get_setting(db, "payment_surcharges")
    return {"total": total, "amounts": surcharge_preview(total, surcharges)}


# Rutas históricas del frontend
@router.get("/business-info")
async def get_business_info(db: AsyncSession = Depends(get_session)):
    return await _read(db, "business_info")


@router.put("/business-info")
async def put_business_info(payload: dict, db: AsyncSession = Depends(get_session)):
    return await _write(db, "business_info", payload)


@router.get("/payment-surcharges")
async def get_payment_surcharges(db: AsyncSession = Depends(get_session)):
    return await _read(db, "payment_surcharges")


@router.put("/payment-surcharges")
async def put_payment_surcharges(payload: dict, db: AsyncSession = Depends(get_session)):
    return await _write(db, "payment_surcharges", payload)


@router.get("/{key}")
async def read_setting(key: str, db: AsyncSession = Depends(get_session)):
    return await _read(db, key)


@router.put("/{key}")
async def write_setting(key: str, payload: Any = Body(...), db: AsyncSession = Depends(get_session)):
    """Acepta el valor directo o envuelto como ``{"value": ...}``."""
    value = payload["value"] if isinstance(payload, dict) and set(payload) == {"value"} else payload
    return await _write(db, key, value)
