#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: documents.py
# NG-HEADER: Ubicación: services/routers/documents.py
# NG-HEADER: Descripción: Endpoints de documentos (alta, listado, estados, tablero de producción, WhatsApp)
# NG-HEADER: Lineamientos: Ver AGENTS.md
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.models import Document
from db.session import get_session
from services.documents import (
    create_document,
    document_stats,
    get_document,
    list_documents,
    payload_text,
    production_board,
    serialize_document,
    set_production_status,
    set_status,
)
from services.settings_store import get_setting
from services.whatsapp import build_message, build_whatsapp_link, snapshot_from_document

router = APIRouter(prefix="/documents", tags=["documents"])


async def _load(db: AsyncSession, doc_id: int) -> Document:
    doc = await get_document(db, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Documento no encontrado")
    return doc


@router.get("")
async def list_documents_endpoint(
    type: Optional[str] = None,
    status: Optional[str] = None,
    production: Optional[str] = None,
    search: Optional[str] = None,
    dateFrom: Optional[str] = Query(None, description="Fecha desde (YYYY-MM-DD)"),
    dateTo: Optional[str] = Query(None, description="Fecha hasta inclusive (YYYY-MM-DD)"),
    limit: int = 50,
    db: AsyncSession = Depends(get_session),
):
    rows = await list_documents(
        db,
        doc_type=type,
        status=status,
        production=production,
        search=search,
        date_from=dateFrom,
        date_to=dateTo,
        limit=limit,
    )
    return {"items": [serialize_document(d, include_items=False) for d in rows], "total": len(rows)}


@router.get("/stats")
async def stats(db: AsyncSession = Depends(get_session)):
    return await document_stats(db)


@router.get("/production")
async def production(db: AsyncSession = Depends(get_session)):
    return await production_board(db)


@router.post("")
async def create_document_endpoint(payload: dict, db: AsyncSession = Depends(get_session)):
    doc = await create_document(db, payload)
    return {"success": True, "document": serialize_document(doc)}


@router.get("/{doc_id}")
async def get_document_endpoint(doc_id: int, db: AsyncSession = Depends(get_session)):
    doc = await _load(db, doc_id)
    return {"success": True, "document": serialize_document(doc)}


@router.patch("/{doc_id}/status")
async def update_status(doc_id: int, payload: dict, db: AsyncSession = Depends(get_session)):
    doc = await _load(db, doc_id)
    status = payload_text(payload, "status").upper()
    if not status:
        raise HTTPException(status_code=400, detail="status es obligatorio")
    doc = await set_status(db, doc, status)
    return {"success": True, "document": serialize_document(doc)}


@router.patch("/{doc_id}/production-status")
async def update_production_status(doc_id: int, payload: dict, db: AsyncSession = Depends(get_session)):
    doc = await _load(db, doc_id)
    status = (payload_text(payload, "productionStatus") or payload_text(payload, "status")).upper()
    if not status:
        raise HTTPException(status_code=400, detail="productionStatus es obligatorio")
    doc = await set_production_status(db, doc, status)
    return {"success": True, "document": serialize_document(doc)}


@router.get("/{doc_id}/whatsapp")
async def whatsapp_message(doc_id: int, db: AsyncSession = Depends(get_session)):
    doc = await _load(db, doc_id)
    business = await get_setting(db, "business_info")
    text = build_message(snapshot_from_document(doc, business))
    link = build_whatsapp_link(
        doc.client.phone,
        text,
        country_code=settings.country_code,
        base_url=settings.whatsapp_base_url,
    )
    return {"text": text, "deepLink": link}
