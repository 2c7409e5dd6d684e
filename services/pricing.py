# NG-HEADER: Nombre de archivo: pricing.py
# NG-HEADER: Ubicación: services/pricing.py
# NG-HEADER: Descripción: Normalización de medidas, precio por ítem y total de documentos.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Cálculo de medidas y precios de los ítems de un documento.

El precio de cada ítem es plano: ``subtotal = precio_unitario × cantidad``.
Los m² se calculan sólo para informar; el ``price_per_sqm`` que se persiste
se deriva después (``precio_unitario / m²``) y nunca alimenta al subtotal.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

CENTS = Decimal("0.01")
# Capacidad de las columnas: Numeric(12, 2) para dinero, Integer para cm y cantidad
MAX_MONEY = Decimal("9999999999.99")
MAX_INT = 2**31 - 1
MAX_CM = MAX_INT

_UNIT_ALIASES = {
    "cm": "cm",
    "centimetros": "cm",
    "centímetros": "cm",
    "m": "m",
    "metros": "m",
}

_TIER_ALIASES = {
    "retail": "retail",
    "minorista": "retail",
    "wholesale": "wholesale",
    "mayorista": "wholesale",
    "reseller": "wholesale",
    "revendedor": "wholesale",
}


class PricingError(ValueError):
    """Dato de ítem inválido para el cálculo (p. ej. cantidad <= 0)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


def _to_float(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        num = float(value)
    else:
        raw = str(value).strip().replace(",", ".")
        if not raw:
            return 0.0
        try:
            num = float(raw)
        except ValueError:
            return 0.0
    # NaN/inf se tratan igual que un valor no numérico
    if num != num or num in (float("inf"), float("-inf")):
        return 0.0
    return num


def normalize_unit(unit: Optional[str]) -> str:
    """Devuelve ``cm`` o ``m``. Sin unidad se asume centímetros."""
    if not unit:
        return "cm"
    return _UNIT_ALIASES.get(str(unit).strip().lower(), "cm")


def to_cm(value, unit: Optional[str] = "cm") -> float:
    """Convierte una medida (texto o número) a centímetros.

    Nunca falla: un valor vacío o no numérico se normaliza a 0.
    """
    num = _to_float(value)
    return num * 100 if normalize_unit(unit) == "m" else num


def square_meters(width_cm: float, height_cm: float) -> float:
    return (width_cm * height_cm) / 10000


def round_cm(value: float) -> int:
    """Redondea al centímetro más cercano (0.5 hacia arriba)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_area(sqm: float) -> str:
    """m² con 2 decimales, sólo para mostrar."""
    return f"{sqm:.2f}"


def normalize_tier(tier: Optional[str], default: str = "retail") -> str:
    if not tier:
        return default
    return _TIER_ALIASES.get(str(tier).strip().lower(), default)


def to_money(value) -> Decimal:
    """Convierte a Decimal; vacío o no numérico => 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    raw = str(value).strip().replace(",", ".")
    if not raw:
        return Decimal("0")
    try:
        dec = Decimal(raw)
    except InvalidOperation:
        return Decimal("0")
    return dec if dec.is_finite() else Decimal("0")


@dataclass(frozen=True)
class LinePricing:
    width: int
    height: int
    square_meters: float
    unit_price: Decimal
    quantity: int
    subtotal: Decimal
    price_per_sqm: Decimal


def _measure(value: float, field: str) -> float:
    if value < 0:
        raise PricingError(field, f"{field} no puede ser negativo")
    if value > MAX_CM:
        raise PricingError(field, f"{field} excede el máximo admitido")
    return value


def _price(value, field: str) -> Decimal:
    amount = to_money(value)
    if amount < 0:
        raise PricingError(field, f"{field} no puede ser negativo")
    if amount > MAX_MONEY:
        raise PricingError(field, f"{field} excede el máximo admitido")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _quantity(quantity) -> int:
    if quantity is None or quantity == "":
        return 1
    try:
        qty = int(quantity)
    except (TypeError, ValueError, OverflowError):
        raise PricingError("quantity", "quantity debe ser un entero")
    if qty != _to_float(quantity):
        raise PricingError("quantity", "quantity debe ser un entero")
    if qty <= 0:
        raise PricingError("quantity", "quantity debe ser > 0")
    if qty > MAX_INT:
        raise PricingError("quantity", "quantity excede el máximo admitido")
    return qty


def price_line(
    width_cm: float,
    height_cm: float,
    quantity=1,
    tier: Optional[str] = "retail",
    retail_price=0,
    wholesale_price=None,
) -> LinePricing:
    """Calcula m², precio unitario elegido y subtotal de un ítem.

    Orden de derivación:
      1. m² = ancho × alto / 10000 con las medidas sin redondear.
      2. precio unitario = minorista o mayorista según ``tier``; sin precio
         mayorista se usa el minorista.
      3. subtotal = precio unitario × cantidad.
      4. price_per_sqm = precio unitario / m² (0 si el área es 0).

    Todo valor que no entre en las columnas (entero de 32 bits o
    ``Numeric(12, 2)``) se rechaza con ``PricingError``.
    """
    qty = _quantity(quantity)
    width_cm = _measure(width_cm, "width")
    height_cm = _measure(height_cm, "height")

    sqm = square_meters(width_cm, height_cm)
    if normalize_tier(tier) == "wholesale" and wholesale_price not in (None, ""):
        unit_price = _price(wholesale_price, "wholesalePrice")
    else:
        unit_price = _price(retail_price, "unitPrice")
    subtotal = unit_price * qty
    if subtotal > MAX_MONEY:
        raise PricingError("quantity", "El subtotal del ítem excede el máximo admitido")
    per_sqm = Decimal("0")
    if sqm > 0:
        per_sqm = unit_price / Decimal(str(sqm))
        if per_sqm > MAX_MONEY:
            raise PricingError("width", "Medidas demasiado chicas para calcular el precio por m²")
        per_sqm = per_sqm.quantize(CENTS)
    return LinePricing(
        width=round_cm(width_cm),
        height=round_cm(height_cm),
        square_meters=sqm,
        unit_price=unit_price,
        quantity=qty,
        subtotal=subtotal,
        price_per_sqm=per_sqm,
    )


def totalize(lines: Iterable[LinePricing]) -> Decimal:
    """Suma de subtotales: es a la vez subtotal y total del documento."""
    total = Decimal("0")
    for line in lines:
        total += line.subtotal
    return total
