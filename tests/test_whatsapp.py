#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_whatsapp.py
# NG-HEADER: Ubicación: tests/test_whatsapp.py
# NG-HEADER: Descripción: Pruebas del mensaje de WhatsApp y del link wa.me.
# NG-HEADER: Lineamientos: Ver AGENTS.md
from datetime import datetime
from decimal import Decimal

import pytest

from services.whatsapp import (
    SEPARATOR,
    WhatsAppDocument,
    WhatsAppItem,
    build_message,
    build_whatsapp_link,
    format_currency,
    format_date,
    normalize_phone,
)


def _quote(**overrides) -> WhatsAppDocument:
    data = dict(
        type="QUOTE",
        number=12,
        client_name="María González",
        date=datetime(2025, 3, 10, 15, 0),
        valid_until=datetime(2025, 3, 17, 15, 0),
        estimated_date=datetime(2025, 3, 13, 15, 0),
        total="$ 45.000,00",
        items=[
            WhatsAppItem("Roller Black Out", 150, 200, 1, "$ 15.000,00", "$ 15.000,00", "Living"),
            WhatsAppItem("Roller Sunscreen", 100, 180, 2, "$ 15.000,00", "$ 30.000,00"),
        ],
        observations="Instalación incluida",
    )
    data.update(overrides)
    return WhatsAppDocument(**data)


def test_quote_message_layout():
    expected = "\n".join(
        [
            "📋 *PRESUPUESTO #12*",
            SEPARATOR,
            "",
            "👤 *Cliente:* María González",
            "📅 *Fecha:* 10/03/2025",
            "⏰ *Válido hasta:* 17/03/2025",
            "🚚 *Entrega estimada:* 13/03/2025",
            "",
            SEPARATOR,
            "📦 *PRODUCTOS*",
            SEPARATOR,
            "",
            "*1. Roller Black Out*",
            "   📏 Medidas: 150cm × 200cm",
            "   🔢 Cantidad: 1",
            "   📍 Ubicación: Living",
            "   💰 Precio: $ 15.000,00",
            "",
            "*2. Roller Sunscreen*",
            "   📏 Medidas: 100cm × 180cm",
            "   🔢 Cantidad: 2",
            "   💰 Precio: $ 15.000,00",
            "   💵 Subtotal: $ 30.000,00",
            "",
            SEPARATOR,
            "💵 *TOTAL: $ 45.000,00*",
            SEPARATOR,
            "",
            "📝 *Observaciones:*",
            "Instalación incluida",
            "",
            "✨ *Azul Deco - Fábrica de Cortinas Roller*",
            "📍 Villa María, Córdoba",
            "",
            "_Para confirmar tu pedido, respondé este mensaje._",
        ]
    )
    assert build_message(_quote()) == expected


def test_single_unit_item_has_no_subtotal_line():
    doc = _quote(items=[WhatsAppItem("Roller", 100, 100, 1, "$ 1.000,00", "$ 1.000,00")])
    assert "Subtotal" not in build_message(doc)


def test_blank_observations_are_omitted():
    assert "Observaciones" not in build_message(_quote(observations="   "))
    assert "Observaciones" not in build_message(_quote(observations=None))


@pytest.mark.parametrize("doc_type,title", [("RECEIPT", "🧾 *RECIBO #12*"), ("DELIVERY_NOTE", "📄 *REMITO #12*")])
def test_non_quote_documents_thank_the_client(doc_type, title):
    text = build_message(_quote(type=doc_type, valid_until=None))
    assert text.startswith(title)
    assert text.endswith("_¡Gracias por tu compra!_")
    assert "Válido hasta" not in text


def test_message_is_deterministic():
    assert build_message(_quote()) == build_message(_quote())


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("3534123456", "543534123456"),
        ("3534-123456", "543534123456"),
        ("5493534123456", "5493534123456"),
        ("+54 9 353 412-3456", "5493534123456"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_link_percent_encodes_message():
    link = build_whatsapp_link("3534-123456", "Hola mundo! ¿Todo bien?")
    assert link == "https://wa.me/543534123456?text=Hola%20mundo!%20%C2%BFTodo%20bien%3F"


def test_link_encodes_newlines_and_asterisks():
    link = build_whatsapp_link("5493534123456", "*A*\nB")
    assert link.endswith("?text=*A*%0AB")


def test_format_currency_es_ar():
    assert format_currency(15000) == "$ 15.000,00"
    assert format_currency(Decimal("1234567.5")) == "$ 1.234.567,50"
    assert format_currency(0) == "$ 0,00"
    assert format_currency(Decimal("999.999")) == "$ 1.000,00"


def test_format_date():
    assert format_date(datetime(2025, 1, 5)) == "05/01/2025"
    assert format_date(None) == ""
