#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: fabric_types.py
# NG-HEADER: Ubicación: services/routers/fabric_types.py
# NG-HEADER: Descripción: Endpoints del catálogo de telas y sus colores
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Tipos de tela con precio minorista/revendedor y colores disponibles.

Los colores se sincronizan por id: PUT/PATCH conservan los ids existentes
y sólo eliminan los colores que ya no vienen en la lista.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import FabricColor, FabricType
from db.session import get_session
from services.collections_sync import apply_sync, plan_sync
from services.documents import payload_text
from services.pricing import MAX_MONEY, to_money

router = APIRouter(prefix="/fabric-types", tags=["fabric-types"])


def _serialize_color(c: FabricColor) -> dict:
    return {
        "id": c.id,
        "fabricTypeId": c.fabric_type_id,
        "name": c.name,
        "hexCode": c.hex_code,
        "isActive": bool(c.is_active),
    }


def _serialize(ft: FabricType) -> dict:
    return {
        "id": ft.id,
        "name": ft.name,
        "code": ft.code,
        "pricePerSqm": float(ft.price_per_sqm or 0),
        "resellerPrice": float(ft.reseller_price or 0),
        "description": ft.description,
        "isActive": bool(ft.is_active),
        "colors": [_serialize_color(c) for c in ft.colors],
    }


def _price(payload: dict, key: str) -> Optional[object]:
    if key not in payload:
        return None
    value = to_money(payload.get(key))
    if value < 0:
        raise HTTPException(status_code=400, detail=f"{key} no puede ser negativo")
    if value > MAX_MONEY:
        raise HTTPException(status_code=400, detail=f"{key} excede el máximo admitido")
    return value


def _build_color(entry: dict) -> FabricColor:
    return FabricColor(
        name=payload_text(entry, "name", field="colors"),
        hex_code=(payload_text(entry, "hexCode", field="colors") or None),
        is_active=bool(entry.get("isActive", True)),
    )


def _apply_color(color: FabricColor, entry: dict) -> None:
    if entry.get("name"):
        color.name = payload_text(entry, "name", field="colors")
    if "hexCode" in entry:
        color.hex_code = payload_text(entry, "hexCode", field="colors") or None
    if "isActive" in entry:
        color.is_active = bool(entry.get("isActive"))


async def _load(db: AsyncSession, fid: int) -> FabricType:
    ft = await db.get(FabricType, fid)
    if not ft:
        raise HTTPException(status_code=404, detail="Tipo de tela no encontrado")
    return ft


async def _apply_fields(db: AsyncSession, ft: FabricType, payload: dict, partial: bool) -> None:
    if "name" in payload or not partial:
        name = payload_text(payload, "name")
        if not name:
            raise HTTPException(status_code=400, detail="name es obligatorio")
        ft.name = name
    if "code" in payload or not partial:
        code = payload_text(payload, "code").upper()
        if not code:
            raise HTTPException(status_code=400, detail="code es obligatorio")
        if code != ft.code:
            dup = await db.scalar(
                select(FabricType.id).where(FabricType.code == code, FabricType.id != ft.id)
            )
            if dup:
                raise HTTPException(status_code=409, detail="Ya existe un tipo de tela con ese código")
        ft.code = code
    for key, attr in (("pricePerSqm", "price_per_sqm"), ("resellerPrice", "reseller_price")):
        value = _price(payload, key)
        if value is not None:
            setattr(ft, attr, value)
    if "description" in payload:
        ft.description = payload_text(payload, "description") or None
    if "isActive" in payload:
        ft.is_active = bool(payload.get("isActive"))


async def _sync_colors(db: AsyncSession, ft: FabricType, colors) -> None:
    if not isinstance(colors, list):
        raise HTTPException(status_code=400, detail="colors debe ser una lista")
    plan = plan_sync(list(ft.colors), colors)
    for entry in plan.create:
        if not payload_text(entry, "name", field="colors"):
            raise HTTPException(status_code=400, detail="Cada color necesita name")
    await apply_sync(db, plan, _build_color, _apply_color, collection=ft.colors)


@router.get("")
async def list_fabric_types(only_active: bool = False, db: AsyncSession = Depends(get_session)):
    stmt = select(FabricType).order_by(FabricType.name.asc())
    if only_active:
        stmt = stmt.where(FabricType.is_active == True)  # noqa: E712
    rows = (await db.execute(stmt)).scalars().all()
    return [_serialize(ft) for ft in rows]


@router.post("", status_code=201)
async def create_fabric_type(payload: dict, db: AsyncSession = Depends(get_session)):
    code = payload_text(payload, "code").upper()
    if code and await db.scalar(select(FabricType.id).where(FabricType.code == code)):
        raise HTTPException(status_code=409, detail="Ya existe un tipo de tela con ese código")
    ft = FabricType(is_active=True, colors=[])
    await _apply_fields(db, ft, payload, partial=False)
    db.add(ft)
    await db.flush()
    await _sync_colors(db, ft, payload.get("colors") or [])
    await db.commit()
    return _serialize(ft)


@router.get("/{fid}")
async def get_fabric_type(fid: int, db: AsyncSession = Depends(get_session)):
    return _serialize(await _load(db, fid))


@router.put("/{fid}")
async def replace_fabric_type(fid: int, payload: dict, db: AsyncSession = Depends(get_session)):
    ft = await _load(db, fid)
    await _apply_fields(db, ft, payload, partial=False)
    await _sync_colors(db, ft, payload.get("colors") or [])
    await db.commit()
    return _serialize(ft)


@router.patch("/{fid}")
async def update_fabric_type(fid: int, payload: dict, db: AsyncSession = Depends(get_session)):
    ft = await _load(db, fid)
    await _apply_fields(db, ft, payload, partial=True)
    if "colors" in payload:
        await _sync_colors(db, ft, payload.get("colors"))
    await db.commit()
    return _serialize(ft)


@router.delete("/{fid}")
async def delete_fabric_type(fid: int, db: AsyncSession = Depends(get_session)):
    ft = await _load(db, fid)
    await db.delete(ft)
    await db.commit()
    return {"success": True}
