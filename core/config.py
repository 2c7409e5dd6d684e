# NG-HEADER: Nombre de archivo: config.py
# NG-HEADER: Ubicación: core/config.py
# NG-HEADER: Descripción: Constantes y configuración central de la aplicación.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Configuración central de la aplicación."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Carga automática de variables definidas en .env
load_dotenv()


def _expand_local(origins: list[str]) -> list[str]:
    """Duplica ``localhost``/``127.0.0.1`` para evitar errores de CORS en desarrollo."""
    out: set[str] = set()
    for o in origins:
        o = o.strip()
        if not o:
            continue
        out.add(o)
        if o.startswith("http://localhost:"):
            out.add(o.replace("http://localhost:", "http://127.0.0.1:"))
        if o.startswith("http://127.0.0.1:"):
            out.add(o.replace("http://127.0.0.1:", "http://localhost:"))
    return list(out)


@dataclass
class Settings:
    """Parámetros de configuración leídos de variables de entorno."""

    env: str = os.getenv("ENV", "dev")
    db_url: str = os.getenv("DB_URL", "")
    # Soporte para componer la URL si no se pasa DB_URL directamente
    db_host: str = os.getenv("DB_HOST", "localhost")
    db_port: str = os.getenv("DB_PORT", "5432")
    db_name: str = os.getenv("DB_NAME", "azuldeco")
    db_user: str = os.getenv("DB_USER", "")
    db_pass: str = os.getenv("DB_PASS", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: list[str] = field(default_factory=list)

    # Usuario implícito que figura como creador de los documentos
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@azuldeco.com")
    admin_name: str = os.getenv("ADMIN_NAME", "Administrador")

    # Datos por defecto de clientes nuevos
    default_city: str = os.getenv("DEFAULT_CITY", "Villa María")
    default_province: str = os.getenv("DEFAULT_PROVINCE", "Córdoba")

    # WhatsApp: código de país (Argentina = 54) y base del link
    country_code: str = os.getenv("COUNTRY_CODE", "54")
    whatsapp_base_url: str = os.getenv("WHATSAPP_BASE_URL", "https://wa.me")

    # Servidor de desarrollo (services/runserver.py)
    api_host: str = os.getenv("AZUL_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("AZUL_PORT", "8000"))

    # Reintentos del asignador de numeración ante colisión (type, number)
    doc_number_max_retries: int = int(os.getenv("DOC_NUMBER_MAX_RETRIES", "3"))

    def __post_init__(self) -> None:
        if not self.db_url:
            # Intentar construir desde variables sueltas
            if self.db_pass:
                from urllib.parse import quote_plus as _qp
                pw_enc = _qp(self.db_pass)
            else:
                pw_enc = ""
            if self.db_user and pw_enc:
                candidate = f"postgresql+psycopg://{self.db_user}:{pw_enc}@{self.db_host}:{self.db_port}/{self.db_name}"
            elif self.db_user:
                candidate = f"postgresql+psycopg://{self.db_user}@{self.db_host}:{self.db_port}/{self.db_name}"
            else:
                candidate = ""
            if candidate:
                self.db_url = candidate
        if not self.db_url:
            if self.env == "dev":
                # Fallback amigable para no bloquear el arranque local sin Postgres
                self.db_url = "sqlite+aiosqlite:///./dev.db"
            else:
                raise RuntimeError("DB_URL debe definirse en el entorno")

        if self.doc_number_max_retries < 1:
            self.doc_number_max_retries = 1

        raw = os.getenv("ALLOWED_ORIGINS", "").split(",")
        origins = [o.strip() for o in raw if o.strip()]
        if self.env == "dev":
            if not origins:
                origins = ["http://localhost:3000", "http://localhost:5173"]
            origins = _expand_local(origins)
        elif not origins:
            raise RuntimeError(
                "En producción, ALLOWED_ORIGINS debe definir al menos un origen"
            )
        self.allowed_origins = origins


settings = Settings()
