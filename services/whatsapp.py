# NG-HEADER: Nombre de archivo: whatsapp.py
# NG-HEADER: Ubicación: services/whatsapp.py
# NG-HEADER: Descripción: Mensaje de WhatsApp para enviar un documento y link wa.me
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Formateo del mensaje de WhatsApp de un documento.

Funciones puras: reciben un snapshot ya resuelto (montos formateados como
moneda) y devuelven texto. No tocan la base de datos.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from urllib.parse import quote

SEPARATOR = "━━━━━━━━━━━━━━━━━━"
DEFAULT_BUSINESS_NAME = "Azul Deco - Fábrica de Cortinas Roller"
DEFAULT_BUSINESS_LOCATION = "Villa María, Córdoba"

_TITLES = {
    "QUOTE": ("📋", "PRESUPUESTO"),
    "RECEIPT": ("🧾", "RECIBO"),
    "DELIVERY_NOTE": ("📄", "REMITO"),
}


def format_currency(amount) -> str:
    """Formato es-AR: ``$ 15.000,00``."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer, cents = f"{abs(value):.2f}".split(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}$ {'.'.join(groups)},{cents}"


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


@dataclass
class WhatsAppItem:
    product_name: str
    width: int
    height: int
    quantity: int
    unit_price: str
    subtotal: str
    location: Optional[str] = None


@dataclass
class WhatsAppDocument:
    type: str
    number: int
    client_name: str
    date: datetime
    total: str
    items: list[WhatsAppItem] = field(default_factory=list)
    observations: Optional[str] = None
    valid_until: Optional[datetime] = None
    estimated_date: Optional[datetime] = None
    business_name: str = DEFAULT_BUSINESS_NAME
    business_location: str = DEFAULT_BUSINESS_LOCATION


def build_message(doc: WhatsAppDocument) -> str:
    emoji, title = _TITLES.get(doc.type, _TITLES["RECEIPT"])

    lines: list[str] = [f"{emoji} *{title} #{doc.number}*", SEPARATOR, ""]
    lines.append(f"👤 *Cliente:* {doc.client_name}")
    lines.append(f"📅 *Fecha:* {format_date(doc.date)}")
    if doc.valid_until:
        lines.append(f"⏰ *Válido hasta:* {format_date(doc.valid_until)}")
    if doc.estimated_date:
        lines.append(f"🚚 *Entrega estimada:* {format_date(doc.estimated_date)}")

    lines += ["", SEPARATOR, "📦 *PRODUCTOS*", SEPARATOR, ""]
    for index, item in enumerate(doc.items, start=1):
        lines.append(f"*{index}. {item.product_name}*")
        lines.append(f"   📏 Medidas: {item.width}cm × {item.height}cm")
        lines.append(f"   🔢 Cantidad: {item.quantity}")
        if item.location:
            lines.append(f"   📍 Ubicación: {item.location}")
        lines.append(f"   💰 Precio: {item.unit_price}")
        if item.quantity > 1:
            lines.append(f"   💵 Subtotal: {item.subtotal}")
        lines.append("")

    lines += [SEPARATOR, f"💵 *TOTAL: {doc.total}*", SEPARATOR]

    observations = (doc.observations or "").strip()
    if observations:
        lines += ["", "📝 *Observaciones:*", observations]

    lines += ["", f"✨ *{doc.business_name}*", f"📍 {doc.business_location}", ""]
    if doc.type == "QUOTE":
        lines.append("_Para confirmar tu pedido, respondé este mensaje._")
    else:
        lines.append("_¡Gracias por tu compra!_")
    return "\n".join(lines)


def normalize_phone(phone: str, country_code: str = "54") -> str:
    """Sólo dígitos, con código de país si no empieza ya con él."""
    digits = re.sub(r"\D", "", phone or "")
    return digits if digits.startswith(country_code) else f"{country_code}{digits}"


def build_whatsapp_link(
    phone: str,
    message: str,
    country_code: str = "54",
    base_url: str = "https://wa.me",
) -> str:
    full_phone = normalize_phone(phone, country_code)
    # Mismo conjunto seguro que encodeURIComponent
    encoded = quote(message, safe="-_.!~*'()")
    return f"{base_url.rstrip('/')}/{full_phone}?text={encoded}"


def snapshot_from_document(document, business_info: dict | None = None) -> WhatsAppDocument:
    """Arma el snapshot a partir de un Document persistido (con client e items cargados)."""
    info = business_info or {}
    items = [
        WhatsAppItem(
            product_name=it.product_name,
            width=int(it.width),
            height=int(it.height),
            quantity=int(it.quantity),
            unit_price=format_currency(it.unit_price),
            subtotal=format_currency(it.subtotal),
            location=it.location,
        )
        for it in document.items
    ]
    name = (info.get("name") or "").strip()
    return WhatsAppDocument(
        type=document.type,
        number=document.number,
        client_name=document.client.name,
        date=document.date,
        total=format_currency(document.total),
        items=items,
        observations=document.observations,
        valid_until=document.valid_until,
        estimated_date=document.estimated_date,
        business_name=(f"{name} - Fábrica de Cortinas Roller" if name else DEFAULT_BUSINESS_NAME),
    )
