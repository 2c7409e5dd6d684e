# NG-HEADER: Nombre de archivo: api.py
# NG-HEADER: Ubicación: services/api.py
# NG-HEADER: Descripción: Aplicación FastAPI: logging, middleware, manejadores de error y routers
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Aplicación FastAPI principal de Azul Deco."""

# --- Windows psycopg async fix (no-op en otros SO) ---
import sys, asyncio
if sys.platform.startswith("win"):
    try:
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    except Exception:
        pass
# --- end fix ---

import logging
from logging.handlers import RotatingFileHandler
import os
import re
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi import HTTPException as FastHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from core.config import settings
from db.numbering import DocumentNumberConflict
from db.session import engine, ensure_schema_if_memory
import db.models  # noqa: F401  asegura que la metadata tenga todas las tablas
from services.documents import DocumentValidationError
from services.pricing import PricingError
from .routers import (
    clients,
    documents,
    fabric_types,
    health,
    settings as settings_router,
    system_colors,
)

raw_level = settings.log_level or "INFO"
level_name = raw_level.strip().upper()
if level_name not in logging._nameToLevel:
    level_name = "INFO"
logger = logging.getLogger("azuldeco")
logger.setLevel(level_name)
LOG_DIR = Path(__file__).resolve().parents[1] / "logs"
try:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
except OSError:
    pass
fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
stream_handler = logging.StreamHandler()
stream_handler.setFormatter(fmt)

file_handler = None
log_path = LOG_DIR / "backend.log"
try:
    # delay=True evita abrir el archivo hasta el primer log
    file_handler = RotatingFileHandler(
        str(log_path), maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8", delay=True
    )
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)
except OSError:
    # Sin permisos: continuar sólo con consola
    file_handler = None

logger.addHandler(stream_handler)

handlers = [h for h in (file_handler, stream_handler) if h is not None]
for _name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(_name).handlers = handlers
    logging.getLogger(_name).setLevel(level_name)

# `redirect_slashes=False` evita redirecciones 307 entre `/ruta` y `/ruta/`,
# lo que rompe las solicitudes *preflight* de CORS.
app = FastAPI(title="Azul Deco", redirect_slashes=False)

logger.info("DB effective URL: %s", engine.url.render_as_string(hide_password=True))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Registra cada solicitud y captura excepciones con un correlation-id."""
    start = time.perf_counter()
    corr = request.headers.get("x-correlation-id") or request.headers.get("x-request-id")
    if not corr:
        corr = f"req-{int(time.time() * 1000):x}-{os.getpid():x}"
    try:
        resp = await call_next(request)
    except (FastHTTPException, StarletteHTTPException):
        raise
    except Exception:
        dur = (time.perf_counter() - start) * 1000
        logger.exception("EXC %s %s cid=%s (%.2fms)", request.method, request.url.path, corr, dur)
        return JSONResponse(
            {
                "detail": "Uy, algo se rompió de nuestro lado. Probá de nuevo en un rato.",
                "correlationId": corr,
            },
            status_code=500,
            headers={"X-Correlation-Id": corr},
        )
    dur = (time.perf_counter() - start) * 1000
    resp.headers["X-Correlation-Id"] = corr
    logger.info("%s %s -> %s cid=%s (%.2fms)", request.method, request.url.path, resp.status_code, corr, dur)
    return resp


# --- Exception Handlers Específicos ---
@app.exception_handler(DocumentValidationError)
@app.exception_handler(PricingError)
async def field_error_handler(request: Request, exc):  # type: ignore[override]
    """Errores de validación de dominio: 400 con el campo involucrado."""
    logger.info("Validación rechazada %s %s: %s (%s)", request.method, request.url.path, exc.message, exc.field)
    return JSONResponse({"detail": exc.message, "field": exc.field}, status_code=400)


@app.exception_handler(DocumentNumberConflict)
async def numbering_conflict_handler(request: Request, exc: DocumentNumberConflict):  # type: ignore[override]
    logger.error("Numeración agotada para %s tras %s intentos", exc.doc_type, exc.attempts)
    return JSONResponse(
        {"detail": "No se pudo asignar número al documento, probá de nuevo", "code": "numbering_conflict"},
        status_code=409,
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):  # type: ignore[override]
    """Mapea errores de integridad conocidos a respuestas HTTP más útiles.

    - ux_fabric_types_code -> 409 duplicate_fabric_code
    - ux_system_colors_name -> 409 duplicate_system_color
    Otros: 409 conflict genérico sin filtrar información sensible.
    """
    raw = str(exc.orig) if getattr(exc, "orig", None) else str(exc)
    detail = "conflict"
    code = "conflict"
    field = None
    if "ux_fabric_types_code" in raw or re.search(r"fabric_types\.code", raw):
        code = "duplicate_fabric_code"
        detail = "Ya existe un tipo de tela con ese código"
        field = "code"
    elif "ux_system_colors_name" in raw or re.search(r"system_colors\.name", raw):
        code = "duplicate_system_color"
        detail = "Ya existe un color de sistema con ese nombre"
        field = "name"
    elif "ux_fabric_colors_type_name" in raw or re.search(r"fabric_colors\.", raw):
        code = "duplicate_fabric_color"
        detail = "El tipo de tela ya tiene un color con ese nombre"
        field = "colors"
    logger.warning("IntegrityError %s %s -> %s", request.method, request.url.path, code)
    payload = {"detail": detail, "code": code}
    if field:
        payload["field"] = field
    return JSONResponse(payload, status_code=409)


# Handler amistoso para errores de validación (422) sin cambiar el contrato
@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
    """Loguea en español los campos inválidos y devuelve el formato por defecto de FastAPI."""
    flat = [
        {"loc": ".".join(str(p) for p in e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    logger.warning("Validación fallida 422 %s %s: %s", request.method, request.url.path, flat)
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Doctor on boot (opcional)
if os.getenv("RUN_DOCTOR_ON_BOOT", "0") == "1":
    from tools.doctor import run_doctor

    fail = os.getenv("DOCTOR_FAIL_ON_ERROR", "1") == "1"
    code = run_doctor(fail_on_error=fail)
    if code != 0 and fail:
        raise RuntimeError("Doctor detectó dependencias críticas faltantes")

app.include_router(health.router)
app.include_router(clients.router)
app.include_router(documents.router)
app.include_router(fabric_types.router)
app.include_router(system_colors.router)
app.include_router(settings_router.router)


@app.on_event("startup")
async def _init_inmemory_db():
    """Auto-crea el esquema cuando usamos SQLite en memoria (tests, demos)."""
    try:
        await ensure_schema_if_memory()
    except Exception:
        logger.exception("No se pudo inicializar el esquema en memoria")
