# NG-HEADER: Nombre de archivo: seed.py
# NG-HEADER: Ubicación: services/seed.py
# NG-HEADER: Descripción: Carga idempotente de datos iniciales desde config/seed.yml
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Aplicación del seed YAML (telas, colores de sistema y configuraciones).

Cada entrada se crea sólo si no existe (por código de tela, nombre de color
o clave de setting); lo ya cargado no se modifica.
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import FabricColor, FabricType, Setting, SystemColor
from services.settings_store import validate_setting

logger = logging.getLogger("azuldeco.seed")

DEFAULT_SEED_PATH = Path(__file__).resolve().parents[1] / "config" / "seed.yml"


def load_seed(path: Path | str = DEFAULT_SEED_PATH) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


async def apply_seed(db: AsyncSession, data: dict) -> dict[str, int]:
    """Inserta lo que falte y devuelve cuántos registros se crearon por tipo."""
    created = {"fabric_types": 0, "fabric_colors": 0, "system_colors": 0, "settings": 0}

    for entry in data.get("fabric_types") or []:
        code = str(entry["code"]).strip().upper()
        ft = await db.scalar(select(FabricType).where(FabricType.code == code))
        if ft is None:
            ft = FabricType(
                code=code,
                name=entry.get("name") or code,
                price_per_sqm=entry.get("price_per_sqm") or 0,
                reseller_price=entry.get("reseller_price") or 0,
                description=entry.get("description"),
                is_active=True,
                colors=[],
            )
            db.add(ft)
            await db.flush()
            created["fabric_types"] += 1
        have = {c.name for c in ft.colors}
        for color in entry.get("colors") or []:
            if color["name"] in have:
                continue
            ft.colors.append(FabricColor(name=color["name"], hex_code=color.get("hex_code")))
            have.add(color["name"])
            created["fabric_colors"] += 1

    for color in data.get("system_colors") or []:
        exists = await db.scalar(select(SystemColor.id).where(SystemColor.name == color["name"]))
        if exists is None:
            db.add(SystemColor(name=color["name"], hex_code=color.get("hex_code")))
            created["system_colors"] += 1

    for key, value in (data.get("settings") or {}).items():
        if await db.get(Setting, key) is None:
            db.add(Setting(key=key, value=validate_setting(key, value)))
            created["settings"] += 1

    await db.commit()
    logger.info("Seed aplicado: %s", created)
    return created
