#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: numbering.py
# NG-HEADER: Ubicación: db/numbering.py
# NG-HEADER: Descripción: Numeración transaccional de documentos por tipo (presupuesto, recibo, remito)
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Asignador transaccional de números de documento.

Uso:
    async with numbering_guard(session):
        number = await allocate_document_number(session, "QUOTE")
        ...  # insertar el documento y hacer commit dentro del guard

Reglas:
 - La numeración es independiente por tipo: QUOTE, RECEIPT y DELIVERY_NOTE
   tienen cada uno su fila en document_sequences(doc_type PK, last_number).
 - Primer uso de un tipo: la fila se crea con el máximo ``number`` ya
   persistido para ese tipo (0 si no hay documentos).
 - El incremento es un ``UPDATE ... RETURNING`` atómico. En Postgres la fila
   queda bloqueada hasta el commit, así que dos altas del mismo tipo se
   serializan y las de tipos distintos no compiten.
 - SQLite no tiene bloqueo por fila: ``numbering_guard`` serializa la unidad
   de trabajo completa dentro del proceso.
 - La restricción única (type, number) es la última red: ante una colisión
   el llamador hace rollback, ``resync_sequence`` y reintenta.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Document, DOCUMENT_TYPES

logger = logging.getLogger("azuldeco.numbering")

UNIQUE_CONSTRAINT_NAME = "ux_documents_type_number"


class DocumentNumberConflict(Exception):
    """No se pudo asignar un número libre tras agotar los reintentos."""

    def __init__(self, doc_type: str, attempts: int) -> None:
        super().__init__(f"Conflicto de numeración para {doc_type} tras {attempts} intentos")
        self.doc_type = doc_type
        self.attempts = attempts


# Un lock por event loop: los tests levantan loops nuevos y asyncio.Lock
# queda ligado al loop donde se usó por primera vez.
_SQLITE_GUARDS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def _dialect(session: AsyncSession) -> str:
    bind = session.get_bind()
    return bind.dialect.name if bind else ""


@asynccontextmanager
async def numbering_guard(session: AsyncSession) -> AsyncIterator[None]:
    """Serializa el alta de documentos cuando el motor no bloquea filas (SQLite)."""
    if _dialect(session) != "sqlite":
        yield
        return
    loop = asyncio.get_running_loop()
    lock = _SQLITE_GUARDS.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _SQLITE_GUARDS[loop] = lock
    async with lock:
        yield


async def current_max_number(session: AsyncSession, doc_type: str) -> int:
    value = await session.scalar(
        select(func.coalesce(func.max(Document.number), 0)).where(Document.type == doc_type)
    )
    return int(value or 0)


async def _ensure_sequence_row(session: AsyncSession, doc_type: str) -> None:
    """Crea la fila del contador si no existe, alineada al máximo persistido."""
    exists = await session.scalar(
        text("SELECT 1 FROM document_sequences WHERE doc_type = :t"), {"t": doc_type}
    )
    if exists:
        return
    start = await current_max_number(session, doc_type)
    # ON CONFLICT DO NOTHING: si otra transacción la creó primero, se respeta la suya
    await session.execute(
        text(
            "INSERT INTO document_sequences (doc_type, last_number, updated_at) "
            "VALUES (:t, :n, :now) ON CONFLICT (doc_type) DO NOTHING"
        ),
        {"t": doc_type, "n": start, "now": datetime.utcnow()},
    )


async def allocate_document_number(session: AsyncSession, doc_type: str) -> int:
    """Reserva y devuelve el siguiente número para ``doc_type``.

    El número queda consumido al hacer commit de la transacción del llamador;
    si la transacción se revierte, el incremento también.
    """
    if doc_type not in DOCUMENT_TYPES:
        raise ValueError(f"Tipo de documento desconocido: {doc_type}")
    await _ensure_sequence_row(session, doc_type)
    row = await session.execute(
        text(
            "UPDATE document_sequences SET last_number = last_number + 1, updated_at = :now "
            "WHERE doc_type = :t RETURNING last_number"
        ),
        {"t": doc_type, "now": datetime.utcnow()},
    )
    number = int(row.scalar_one())
    logger.debug("Número asignado %s #%s", doc_type, number)
    return number


async def resync_sequence(session: AsyncSession, doc_type: str) -> int:
    """Adelanta el contador hasta el máximo persistido (nunca lo retrocede)."""
    await _ensure_sequence_row(session, doc_type)
    top = await current_max_number(session, doc_type)
    await session.execute(
        text(
            "UPDATE document_sequences SET last_number = :n, updated_at = :now "
            "WHERE doc_type = :t AND last_number < :n"
        ),
        {"t": doc_type, "n": top, "now": datetime.utcnow()},
    )
    return top


def is_number_collision(exc: IntegrityError) -> bool:
    """True si el error corresponde a la unicidad (type, number) de documentos."""
    raw = str(exc.orig) if getattr(exc, "orig", None) else str(exc)
    if UNIQUE_CONSTRAINT_NAME in raw:
        return True
    # SQLite: "UNIQUE constraint failed: documents.type, documents.number"
    return "documents.type" in raw and "documents.number" in raw
