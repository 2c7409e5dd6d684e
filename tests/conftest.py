#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: conftest.py
# NG-HEADER: Ubicación: tests/conftest.py
# NG-HEADER: Descripción: Fixtures y configuración compartida de Pytest.
# NG-HEADER: Lineamientos: Ver AGENTS.md
import os
import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Asegurar path del proyecto antes de importar módulos internos
project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

# -------- Entorno base de tests --------
# DB en memoria compartida; sin doctor al importar la app
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("ENV", "dev")
os.environ["RUN_DOCTOR_ON_BOOT"] = "0"

import db.session as _session  # noqa: E402
import db.base as _base  # noqa: E402
import db.models  # noqa: F401,E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from services.api import app  # noqa: E402

Base = _base.Base


@pytest_asyncio.fixture(scope="function", autouse=True)
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """DB limpia por test (SQLite memoria compartida). Retorna sesión para usar en fixtures/tests."""
    engine = _session.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with _session.SessionLocal() as session:
        yield session

    # Cleanup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


# -------- Clientes HTTP asíncronos para tests --------
@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP async contra la app ASGI (sin levantar servidor)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def quote_payload_factory():
    """Factory de payloads para POST /documents con defaults útiles.

    - type: QUOTE, cliente "María González" / 3534-123456
    - un ítem Black Out de 150 × 200 cm a 15000, cantidad 1
    """
    def _make(
        *,
        doc_type: str = "QUOTE",
        name: str = "María González",
        phone: str = "3534-123456",
        items: list[dict] | None = None,
        observations: str | None = None,
        total: float | None = None,
    ) -> dict:
        payload: dict = {
            "type": doc_type,
            "client": {"name": name, "phone": phone},
            "items": items
            if items is not None
            else [
                {
                    "productName": "Roller Black Out Blanco",
                    "width": "150",
                    "height": "200",
                    "widthUnit": "cm",
                    "heightUnit": "cm",
                    "unitPrice": 15000,
                    "quantity": 1,
                }
            ],
        }
        if observations is not None:
            payload["observations"] = observations
        if total is not None:
            payload["total"] = total
        return payload

    return _make
