# NG-HEADER: Nombre de archivo: documents.py
# NG-HEADER: Ubicación: services/documents.py
# NG-HEADER: Descripción: Alta, consulta y estados de documentos (presupuestos, recibos, remitos)
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Servicio de documentos.

Alta de documento (una sola unidad de trabajo):
  1. Validar encabezado e ítems sin escribir nada.
  2. Recalcular medidas, m² y subtotales en el servidor; los valores que
     manda el cliente (squareMeters, subtotal, total) sólo se comparan.
  3. Buscar o crear el cliente por teléfono y el usuario por defecto.
  4. Asignar número, insertar documento + ítems y hacer commit.
Ante colisión (type, number) se hace rollback, se resincroniza el contador
y se reintenta hasta ``settings.doc_number_max_retries`` veces.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, bindparam, func, or_, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from db.models import (
    Client,
    Document,
    DocumentItem,
    User,
    DOCUMENT_STATUSES,
    DOCUMENT_TYPES,
    PRODUCTION_STATUSES,
)
from db.numbering import (
    DocumentNumberConflict,
    allocate_document_number,
    is_number_collision,
    numbering_guard,
    resync_sequence,
)
from services.pricing import (
    MAX_INT,
    MAX_MONEY,
    LinePricing,
    PricingError,
    price_line,
    to_cm,
    to_money,
    totalize,
)
from services.settings_store import get_setting

logger = logging.getLogger("azuldeco.documents")

_DOCUMENT_TYPE_ALIASES = {
    "QUOTE": "QUOTE",
    "PRESUPUESTO": "QUOTE",
    "RECEIPT": "RECEIPT",
    "RECIBO": "RECEIPT",
    "DELIVERY_NOTE": "DELIVERY_NOTE",
    "REMITO": "DELIVERY_NOTE",
}

_CLIENT_TYPE_ALIASES = {
    "RETAIL": "RETAIL",
    "MINORISTA": "RETAIL",
    "RESELLER": "RESELLER",
    "REVENDEDOR": "RESELLER",
    "MAYORISTA": "RESELLER",
}

# Estados que cuentan como venta concretada en las estadísticas
_SOLD_STATUSES = ("APPROVED", "COMPLETED")


class DocumentValidationError(ValueError):
    """Dato de entrada inválido; se responde 400 con el campo involucrado."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


def normalize_document_type(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    return _DOCUMENT_TYPE_ALIASES.get(raw.strip().upper())


def normalize_client_type(raw: Any, default: Optional[str] = "RETAIL") -> Optional[str]:
    if not isinstance(raw, str) or not raw.strip():
        return default
    return _CLIENT_TYPE_ALIASES.get(raw.strip().upper())


def payload_text(payload: dict, key: str, field: Optional[str] = None) -> str:
    """Texto recortado de ``payload[key]``; números se aceptan, objetos y listas no."""
    value = payload.get(key)
    if value is None or isinstance(value, str):
        return (value or "").strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value).strip()
    raise DocumentValidationError(field or key, f"{field or key} debe ser texto")


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _price_items(raw_items: list, tier: str) -> list[tuple[dict, LinePricing]]:
    priced: list[tuple[dict, LinePricing]] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise DocumentValidationError(f"items[{idx}]", "Ítem inválido")
        name = _clean(raw.get("productName"))
        if not name:
            raise DocumentValidationError(f"items[{idx}].productName", "productName es obligatorio")
        width = to_cm(raw.get("width"), raw.get("widthUnit"))
        height = to_cm(raw.get("height"), raw.get("heightUnit"))
        try:
            line = price_line(
                width,
                height,
                quantity=raw.get("quantity"),
                tier=raw.get("priceType") or tier,
                retail_price=raw.get("unitPrice"),
                wholesale_price=raw.get("wholesalePrice"),
            )
        except PricingError as exc:
            raise DocumentValidationError(f"items[{idx}].{exc.field}", exc.message) from exc
        _warn_mismatch(idx, raw, line)
        priced.append((raw, line))
    return priced


def _warn_mismatch(idx: int, raw: dict, line: LinePricing) -> None:
    sent_sqm = raw.get("squareMeters")
    if sent_sqm not in (None, "") and abs(float(to_money(sent_sqm)) - line.square_meters) > 0.005:
        logger.warning(
            "Ítem %s: m² enviados %s difieren de los calculados %.4f", idx, sent_sqm, line.square_meters
        )
    sent_sub = raw.get("subtotal")
    if sent_sub not in (None, "") and to_money(sent_sub) != line.subtotal:
        logger.warning(
            "Ítem %s: subtotal enviado %s difiere del calculado %s", idx, sent_sub, line.subtotal
        )


async def find_client_by_phone(db: AsyncSession, phone: str) -> Optional[Client]:
    return (
        await db.execute(select(Client).where(Client.phone == phone).order_by(Client.id).limit(1))
    ).scalars().first()


async def insert_default_user(db: AsyncSession) -> None:
    """Alta del administrador implícito; si otra transacción ya lo creó no hace nada."""
    stmt = text(
        "INSERT INTO users (email, name, role, created_at, updated_at) "
        "VALUES (:email, :name, 'ADMIN', :now, :now) ON CONFLICT (email) DO NOTHING"
    ).bindparams(bindparam("now", type_=DateTime()))
    await db.execute(
        stmt, {"email": settings.admin_email, "name": settings.admin_name, "now": datetime.utcnow()}
    )


async def get_or_create_default_user(db: AsyncSession) -> User:
    user = (await db.execute(select(User).order_by(User.id).limit(1))).scalars().first()
    if user is None:
        await insert_default_user(db)
        user = (
            await db.execute(select(User).where(User.email == settings.admin_email))
        ).scalars().one()
    return user


async def create_document(db: AsyncSession, payload: dict) -> Document:
    """Crea un documento con sus ítems y devuelve el grafo completo."""
    doc_type = normalize_document_type(payload.get("type"))
    if doc_type is None:
        raise DocumentValidationError("type", "type inválido (QUOTE, RECEIPT o DELIVERY_NOTE)")
    client_in = payload.get("client") or {}
    if not isinstance(client_in, dict):
        raise DocumentValidationError("client", "client inválido")
    client_name = _clean(client_in.get("name"))
    client_phone = _clean(client_in.get("phone"))
    if not client_name:
        raise DocumentValidationError("client.name", "client.name es obligatorio")
    if not client_phone:
        raise DocumentValidationError("client.phone", "client.phone es obligatorio")
    client_type = normalize_client_type(client_in.get("type"))
    if client_type is None:
        raise DocumentValidationError("client.type", "client.type inválido")
    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise DocumentValidationError("items", "El documento debe tener al menos un ítem")

    existing = await find_client_by_phone(db, client_phone)
    tier_client = existing.type if existing is not None else client_type
    tier = "wholesale" if tier_client == "RESELLER" else "retail"
    priced = _price_items(raw_items, tier)
    total = totalize(line for _, line in priced)
    if total > MAX_MONEY:
        raise DocumentValidationError("items", "El total del documento excede el máximo admitido")

    sent_total = payload.get("total")
    if sent_total not in (None, "") and to_money(sent_total) != total:
        logger.warning("Total enviado %s difiere del calculado %s", sent_total, total)

    validity_days = int(await get_setting(db, "default_validity_days"))
    delivery_hours = int(await get_setting(db, "default_delivery_hours"))
    observations = _clean(payload.get("observations"))

    attempts = settings.doc_number_max_retries
    async with numbering_guard(db):
        for attempt in range(1, attempts + 1):
            try:
                client = await find_client_by_phone(db, client_phone)
                if client is None:
                    client = Client(
                        name=client_name,
                        phone=client_phone,
                        type=client_type,
                        city=settings.default_city,
                        province=settings.default_province,
                    )
                    db.add(client)
                    await db.flush()
                user = await get_or_create_default_user(db)
                number = await allocate_document_number(db, doc_type)
                now = datetime.utcnow()
                doc = Document(
                    type=doc_type,
                    number=number,
                    status="DRAFT",
                    production_status="PENDING",
                    date=now,
                    valid_until=(now + timedelta(days=validity_days)) if doc_type == "QUOTE" else None,
                    estimated_date=now + timedelta(hours=delivery_hours),
                    subtotal=total,
                    total=total,
                    observations=observations,
                    client=client,
                    created_by=user,
                    items=[
                        DocumentItem(
                            position=pos,
                            product_name=_clean(raw.get("productName")),
                            width=line.width,
                            height=line.height,
                            price_per_sqm=line.price_per_sqm,
                            square_meters=line.square_meters,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            subtotal=line.subtotal,
                            location=_clean(raw.get("location")),
                            status="PENDING",
                        )
                        for pos, (raw, line) in enumerate(priced)
                    ],
                )
                db.add(doc)
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                if not is_number_collision(exc):
                    raise
                logger.warning(
                    "Colisión de numeración %s (intento %s/%s); resincronizando contador",
                    doc_type,
                    attempt,
                    attempts,
                )
                await resync_sequence(db, doc_type)
                await db.commit()
                continue
            logger.info(
                "Documento creado %s #%s id=%s cliente=%s total=%s",
                doc_type,
                doc.number,
                doc.id,
                client.id,
                total,
            )
            return doc
    raise DocumentNumberConflict(doc_type, attempts)


async def get_document(db: AsyncSession, doc_id: int) -> Optional[Document]:
    stmt = select(Document).where(Document.id == doc_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalars().first()


def _parse_date(raw: Optional[str], field: str) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise DocumentValidationError(field, f"{field} debe tener formato YYYY-MM-DD")


async def list_documents(
    db: AsyncSession,
    *,
    doc_type: Optional[str] = None,
    status: Optional[str] = None,
    production: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    limit: int = 50,
) -> list[Document]:
    stmt = select(Document).join(Client, Document.client_id == Client.id)
    if doc_type:
        norm = normalize_document_type(doc_type)
        if norm is None:
            raise DocumentValidationError("type", "type inválido")
        stmt = stmt.where(Document.type == norm)
    if status:
        if status not in DOCUMENT_STATUSES:
            raise DocumentValidationError("status", "status inválido")
        stmt = stmt.where(Document.status == status)
    if production:
        if production not in PRODUCTION_STATUSES:
            raise DocumentValidationError("production", "production inválido")
        stmt = stmt.where(Document.production_status == production)
    if search:
        term = search.strip()
        conds = [Client.name.ilike(f"%{term}%")]
        if term.isdigit() and int(term) <= MAX_INT:
            conds.append(Document.number == int(term))
        stmt = stmt.where(or_(*conds))
    start = _parse_date(date_from, "dateFrom")
    if start is not None:
        stmt = stmt.where(Document.date >= start)
    end = _parse_date(date_to, "dateTo")
    if end is not None:
        # dateTo es inclusivo: hasta el final del día
        if end.hour == 0 and end.minute == 0 and end.second == 0:
            end = end + timedelta(days=1)
            stmt = stmt.where(Document.date < end)
        else:
            stmt = stmt.where(Document.date <= end)
    limit = min(200, max(1, int(limit or 50)))
    stmt = stmt.order_by(Document.date.desc(), Document.id.desc()).limit(limit)
    return list((await db.execute(stmt)).scalars().all())


async def document_stats(db: AsyncSession) -> dict:
    rows = (
        await db.execute(select(Document.type, func.count(Document.id)).group_by(Document.type))
    ).all()
    by_type = {t: 0 for t in DOCUMENT_TYPES}
    for doc_type, count in rows:
        by_type[doc_type] = int(count)
    sold = await db.scalar(
        select(func.coalesce(func.sum(Document.total), 0)).where(Document.status.in_(_SOLD_STATUSES))
    )
    return {
        "total": sum(by_type.values()),
        "byType": by_type,
        "totalValue": float(sold or 0),
    }


async def production_board(db: AsyncSession) -> dict:
    """Presupuestos y recibos no cancelados agrupados por estado de producción."""
    stmt = (
        select(Document)
        .where(Document.type.in_(("QUOTE", "RECEIPT")), Document.status != "CANCELLED")
        .order_by(Document.estimated_date.is_(None), Document.estimated_date.asc(), Document.id.asc())
    )
    docs = (await db.execute(stmt)).scalars().all()
    board: dict[str, dict] = {
        status: {"count": 0, "totalValue": 0.0, "documents": []} for status in PRODUCTION_STATUSES
    }
    for doc in docs:
        column = board[doc.production_status]
        column["count"] += 1
        column["totalValue"] = float(Decimal(str(column["totalValue"])) + Decimal(str(doc.total or 0)))
        column["documents"].append(serialize_document(doc, include_items=False))
    return board


async def set_production_status(db: AsyncSession, doc: Document, status: str) -> Document:
    if status not in PRODUCTION_STATUSES:
        raise DocumentValidationError("productionStatus", "productionStatus inválido")
    doc.production_status = status
    for item in doc.items:
        item.status = status
    await db.commit()
    logger.info("Documento %s: producción -> %s", doc.id, status)
    return doc


async def set_status(db: AsyncSession, doc: Document, status: str) -> Document:
    if status not in DOCUMENT_STATUSES:
        raise DocumentValidationError("status", "status inválido")
    doc.status = status
    await db.commit()
    logger.info("Documento %s: estado -> %s", doc.id, status)
    return doc


# --- Serialización (camelCase, como la consume el frontend) ---

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _money(value) -> float:
    return float(value or 0)


def serialize_client(c: Client) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "type": c.type,
        "dni": c.dni,
        "phone": c.phone,
        "email": c.email,
        "address": c.address,
        "city": c.city,
        "province": c.province,
        "notes": c.notes,
        "createdAt": _iso(c.created_at),
        "updatedAt": _iso(c.updated_at),
    }


def serialize_user(u: Optional[User]) -> Optional[dict]:
    if u is None:
        return None
    return {"id": u.id, "email": u.email, "name": u.name, "role": u.role}


def serialize_item(it: DocumentItem) -> dict:
    return {
        "id": it.id,
        "position": it.position,
        "productName": it.product_name,
        "width": it.width,
        "height": it.height,
        "pricePerSqm": _money(it.price_per_sqm),
        "squareMeters": float(it.square_meters or 0),
        "quantity": it.quantity,
        "unitPrice": _money(it.unit_price),
        "subtotal": _money(it.subtotal),
        "location": it.location,
        "status": it.status,
    }


def serialize_document(doc: Document, include_items: bool = True) -> dict:
    out = {
        "id": doc.id,
        "type": doc.type,
        "number": doc.number,
        "status": doc.status,
        "productionStatus": doc.production_status,
        "date": _iso(doc.date),
        "validUntil": _iso(doc.valid_until),
        "estimatedDate": _iso(doc.estimated_date),
        "subtotal": _money(doc.subtotal),
        "total": _money(doc.total),
        "observations": doc.observations,
        "clientId": doc.client_id,
        "userId": doc.user_id,
        "client": serialize_client(doc.client) if doc.client is not None else None,
        "createdBy": serialize_user(doc.created_by),
        "createdAt": _iso(doc.created_at),
        "updatedAt": _iso(doc.updated_at),
    }
    if include_items:
        out["items"] = [serialize_item(it) for it in doc.items]
    return out
