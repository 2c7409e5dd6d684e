# NG-HEADER: Nombre de archivo: azul.py
# NG-HEADER: Ubicación: cli/azul.py
# NG-HEADER: Descripción: CLI de mantenimiento (esquema, seed y mensaje de WhatsApp)
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""CLI principal de Azul Deco usando Typer."""
from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from core.config import settings
from db.base import Base
from db.session import SessionLocal, engine
import db.models  # noqa: F401
from services.documents import get_document
from services.seed import DEFAULT_SEED_PATH, apply_seed, load_seed
from services.settings_store import get_setting
from services.whatsapp import build_message, build_whatsapp_link, snapshot_from_document

app = typer.Typer(help="Herramientas de línea de comandos para Azul Deco")


@app.command()
def db_init() -> None:
    """Crea las tablas que falten (para producción usar `alembic upgrade head`)."""

    async def _run() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_run())
    typer.echo("Esquema listo")


@app.command()
def seed(path: Path = typer.Option(DEFAULT_SEED_PATH, help="Archivo YAML de seed")) -> None:
    """Carga telas, colores de sistema y configuraciones iniciales."""
    data = load_seed(path)

    async def _run() -> dict:
        async with SessionLocal() as session:
            return await apply_seed(session, data)

    created = asyncio.run(_run())
    for kind, n in created.items():
        typer.echo(f"{kind}: {n} creados")


@app.command()
def whatsapp(doc_id: int) -> None:
    """Imprime el mensaje de WhatsApp y el link de un documento."""

    async def _run() -> tuple[str, str] | None:
        async with SessionLocal() as session:
            doc = await get_document(session, doc_id)
            if doc is None:
                return None
            business = await get_setting(session, "business_info")
            text = build_message(snapshot_from_document(doc, business))
            link = build_whatsapp_link(
                doc.client.phone,
                text,
                country_code=settings.country_code,
                base_url=settings.whatsapp_base_url,
            )
            return text, link

    out = asyncio.run(_run())
    if out is None:
        typer.echo(f"Documento {doc_id} no encontrado", err=True)
        raise typer.Exit(code=1)
    text, link = out
    typer.echo(text)
    typer.echo("")
    typer.echo(link)


if __name__ == "__main__":
    app()
