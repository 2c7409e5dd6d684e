# NG-HEADER: Nombre de archivo: settings_store.py
# NG-HEADER: Ubicación: services/settings_store.py
# NG-HEADER: Descripción: Registro tipado de configuraciones clave/valor con valores por defecto
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Configuraciones del negocio guardadas en la tabla ``settings``.

Cada clave conocida tiene un modelo pydantic y un valor por defecto. Una
clave ausente en la base devuelve su default sin persistirlo.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Setting

logger = logging.getLogger("azuldeco.settings")


class BusinessInfo(BaseModel):
    name: str = "Azul Deco"
    slogan: str = "⚡️ Tus cortinas en 72 hs"
    address: str = "Villa María, Córdoba, Argentina"
    phone: str = ""
    email: str = ""
    website: str = ""


PaymentSurcharges = dict[str, float]

MAX_SURCHARGE_PCT = 1000

DEFAULT_PAYMENT_SURCHARGES: PaymentSurcharges = {
    "CONTADO": 0,
    "CUOTAS_3": 10,
    "CUOTAS_6": 20,
    "CUOTAS_12": 35,
}


class UnknownSettingError(KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key


class SettingValidationError(ValueError):
    def __init__(self, key: str, errors: list[dict]) -> None:
        super().__init__(f"Valor inválido para {key}")
        self.key = key
        self.errors = errors


@dataclass(frozen=True)
class SettingSpec:
    adapter: TypeAdapter
    default: Callable[[], Any]


REGISTRY: dict[str, SettingSpec] = {
    "business_info": SettingSpec(TypeAdapter(BusinessInfo), BusinessInfo),
    "payment_surcharges": SettingSpec(
        TypeAdapter(dict[str, float]), lambda: dict(DEFAULT_PAYMENT_SURCHARGES)
    ),
    "default_validity_days": SettingSpec(
        TypeAdapter(int), lambda: 7
    ),
    "default_delivery_hours": SettingSpec(
        TypeAdapter(int), lambda: 72
    ),
}


class _NonNegative(BaseModel):
    value: int = Field(ge=0)


def _spec(key: str) -> SettingSpec:
    spec = REGISTRY.get(key)
    if spec is None:
        raise UnknownSettingError(key)
    return spec


def validate_setting(key: str, value: Any) -> Any:
    """Valida ``value`` contra el modelo de ``key`` y devuelve su forma JSON."""
    spec = _spec(key)
    try:
        parsed = spec.adapter.validate_python(value)
        if isinstance(parsed, int) and not isinstance(parsed, bool):
            _NonNegative(value=parsed)
        if isinstance(parsed, dict):
            for method, pct in parsed.items():
                if not 0 <= pct <= MAX_SURCHARGE_PCT:
                    raise SettingValidationError(
                        key, [{"loc": [method], "msg": f"el recargo debe estar entre 0 y {MAX_SURCHARGE_PCT}"}]
                    )
    except ValidationError as exc:
        raise SettingValidationError(key, exc.errors(include_url=False)) from exc
    return spec.adapter.dump_python(parsed, mode="json")


async def get_setting(db: AsyncSession, key: str) -> Any:
    """Valor guardado de ``key`` o su default si no existe o quedó corrupto."""
    spec = _spec(key)
    row = await db.get(Setting, key)
    if row is None or row.value is None:
        return spec.adapter.dump_python(spec.default(), mode="json")
    try:
        return validate_setting(key, row.value)
    except SettingValidationError:
        logger.warning("Setting %s inválido en la base; se usa el valor por defecto", key)
        return spec.adapter.dump_python(spec.default(), mode="json")


async def put_setting(db: AsyncSession, key: str, value: Any) -> Any:
    """Valida y guarda (upsert) el valor. No hace commit."""
    clean = validate_setting(key, value)
    row = await db.get(Setting, key)
    if row is None:
        db.add(Setting(key=key, value=clean))
    else:
        row.value = clean
        row.updated_at = datetime.utcnow()
    logger.info("Setting actualizado: %s", key)
    return clean


def surcharge_preview(total, surcharges: PaymentSurcharges) -> dict[str, float]:
    """Monto final por medio de pago: ``total × (1 + pct/100)``, a centavos."""
    base = Decimal(str(total or 0))
    out: dict[str, float] = {}
    for method, pct in surcharges.items():
        factor = Decimal("1") + Decimal(str(pct)) / Decimal("100")
        out[method] = float((base * factor).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return out
