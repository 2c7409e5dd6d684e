#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: system_colors.py
# NG-HEADER: Ubicación: services/routers/system_colors.py
# NG-HEADER: Descripción: Endpoints de colores de sistema (mecanismos)
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import SystemColor
from db.session import get_session
from services.collections_sync import apply_sync, plan_sync
from services.documents import payload_text

router = APIRouter(prefix="/system-colors", tags=["system-colors"])


def _serialize(c: SystemColor) -> dict:
    return {"id": c.id, "name": c.name, "hexCode": c.hex_code, "isActive": bool(c.is_active)}


def _build(entry: dict) -> SystemColor:
    return SystemColor(
        name=payload_text(entry, "name", field="colors"),
        hex_code=(payload_text(entry, "hexCode", field="colors") or None),
        is_active=bool(entry.get("isActive", True)),
    )


def _apply(color: SystemColor, entry: dict) -> None:
    if entry.get("name"):
        color.name = payload_text(entry, "name", field="colors")
    if "hexCode" in entry:
        color.hex_code = payload_text(entry, "hexCode", field="colors") or None
    if "isActive" in entry:
        color.is_active = bool(entry.get("isActive"))


async def _all(db: AsyncSession) -> list[SystemColor]:
    return list((await db.execute(select(SystemColor).order_by(SystemColor.name.asc()))).scalars().all())


@router.get("")
async def list_system_colors(db: AsyncSession = Depends(get_session)):
    return [_serialize(c) for c in await _all(db)]


@router.put("")
async def replace_system_colors(payload: dict, db: AsyncSession = Depends(get_session)):
    colors = payload.get("colors")
    if not isinstance(colors, list):
        raise HTTPException(status_code=400, detail="colors debe ser una lista")
    plan = plan_sync(await _all(db), colors)
    for entry in plan.create:
        if not payload_text(entry, "name", field="colors"):
            raise HTTPException(status_code=400, detail="Cada color necesita name")
    await apply_sync(db, plan, _build, _apply)
    await db.commit()
    return [_serialize(c) for c in await _all(db)]
