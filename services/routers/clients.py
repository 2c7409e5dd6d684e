#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: clients.py
# NG-HEADER: Ubicación: services/routers/clients.py
# NG-HEADER: Descripción: Endpoints de clientes (listado, alta y detalle con documentos)
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.models import Client, Document
from db.session import get_session
from services.documents import (
    find_client_by_phone,
    normalize_client_type,
    payload_text,
    serialize_client,
    serialize_document,
)

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("")
async def list_clients(db: AsyncSession = Depends(get_session)):
    counts = (
        select(Document.client_id, func.count(Document.id).label("n"))
        .group_by(Document.client_id)
        .subquery()
    )
    stmt = (
        select(Client, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.client_id == Client.id)
        .order_by(Client.created_at.desc(), Client.id.desc())
    )
    rows = (await db.execute(stmt)).all()
    out = []
    for c, n in rows:
        data = serialize_client(c)
        data["documentCount"] = int(n or 0)
        out.append(data)
    return out


@router.post("", status_code=201)
async def create_client(payload: dict, db: AsyncSession = Depends(get_session)):
    name = payload_text(payload, "name")
    phone = payload_text(payload, "phone")
    if not name or not phone:
        raise HTTPException(status_code=400, detail="Nombre y teléfono son obligatorios")
    ctype = normalize_client_type(payload.get("type"))
    if ctype is None:
        raise HTTPException(status_code=400, detail="type inválido (RETAIL o RESELLER)")
    if await find_client_by_phone(db, phone) is not None:
        raise HTTPException(status_code=409, detail="Ya existe un cliente con ese número de teléfono")
    c = Client(
        name=name,
        type=ctype,
        dni=(payload_text(payload, "dni") or None),
        phone=phone,
        email=(payload_text(payload, "email") or None),
        address=(payload_text(payload, "address") or None),
        city=(payload_text(payload, "city") or settings.default_city),
        province=(payload_text(payload, "province") or settings.default_province),
        notes=(payload_text(payload, "notes") or None),
    )
    db.add(c)
    await db.commit()
    await db.refresh(c)
    return serialize_client(c)


@router.get("/{cid}")
async def get_client(cid: int, db: AsyncSession = Depends(get_session)):
    c = await db.get(Client, cid)
    if not c:
        raise HTTPException(status_code=404, detail="Cliente no encontrado")
    docs = (
        await db.execute(
            select(Document).where(Document.client_id == cid).order_by(Document.date.desc())
        )
    ).scalars().all()
    data = serialize_client(c)
    data["documents"] = [serialize_document(d, include_items=False) for d in docs]
    return data
