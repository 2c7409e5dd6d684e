# NG-HEADER: Nombre de archivo: runserver.py
# NG-HEADER: Ubicación: services/runserver.py
# NG-HEADER: Descripción: Arranque local del backend con uvicorn
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Servidor de Azul Deco.

Host, puerto, nivel de log y recarga salen de ``core.config.settings``
(``AZUL_HOST``, ``AZUL_PORT``, ``LOG_LEVEL``, ``ENV``). En Windows se fuerza
la política Selector porque psycopg async no funciona con Proactor.
"""

from __future__ import annotations

import asyncio
import sys

import uvicorn

from core.config import settings


def uvicorn_options() -> dict:
    """Argumentos para ``uvicorn.run`` según la configuración vigente."""
    return {
        "host": settings.api_host,
        "port": settings.api_port,
        "reload": settings.env == "dev",
        "log_level": (settings.log_level or "info").lower(),
        "access_log": True,
    }


def main() -> None:
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    uvicorn.run("services.api:app", **uvicorn_options())


if __name__ == "__main__":
    main()
