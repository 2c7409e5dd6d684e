# NG-HEADER: Nombre de archivo: models.py
# NG-HEADER: Ubicación: db/models.py
# NG-HEADER: Descripción: Modelos ORM de clientes, catálogo de telas, documentos y configuración.
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Modelos principales de la base de datos."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


# AUTOINCREMENT en SQLite: un id borrado nunca se reasigna
_NO_ID_REUSE = {"sqlite_autoincrement": True}

# Vocabulario cerrado de los campos de estado (se replica en los CHECK)
CLIENT_TYPES = ("RETAIL", "RESELLER")
DOCUMENT_TYPES = ("QUOTE", "RECEIPT", "DELIVERY_NOTE")
DOCUMENT_STATUSES = ("DRAFT", "SENT", "APPROVED", "COMPLETED", "CANCELLED", "EXPIRED")
PRODUCTION_STATUSES = ("PENDING", "IN_PRODUCTION", "READY", "DELIVERED")


def _in_check(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ",".join(f"'{v}'" for v in values) + ")"


class User(Base):
    """Usuario del sistema. Hoy existe uno solo, implícito (administrador)."""

    __tablename__ = "users"
    __table_args__ = _NO_ID_REUSE

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), default="ADMIN")
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        CheckConstraint(_in_check("type", CLIENT_TYPES), name="ck_clients_type"),
        _NO_ID_REUSE,
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[str] = mapped_column(String(16), default="RETAIL")
    dni: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    # Clave natural de deduplicación; la unicidad se controla en la aplicación
    phone: Mapped[str] = mapped_column(String(50), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    documents: Mapped[list["Document"]] = relationship(back_populates="client")


# --- Catálogo de telas ---

class FabricType(Base):
    __tablename__ = "fabric_types"
    __table_args__ = (UniqueConstraint("code", name="ux_fabric_types_code"), _NO_ID_REUSE)

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[str] = mapped_column(String(50))
    price_per_sqm: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    reseller_price: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    colors: Mapped[list["FabricColor"]] = relationship(
        back_populates="fabric_type",
        cascade="all, delete-orphan",
        order_by="FabricColor.id",
        lazy="selectin",
    )


class FabricColor(Base):
    __tablename__ = "fabric_colors"
    __table_args__ = (
        UniqueConstraint("fabric_type_id", "name", name="ux_fabric_colors_type_name"),
        _NO_ID_REUSE,
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    fabric_type_id: Mapped[int] = mapped_column(ForeignKey("fabric_types.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(100))
    hex_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    fabric_type: Mapped["FabricType"] = relationship(back_populates="colors")


class SystemColor(Base):
    """Colores de mecanismo (independientes de la tela)."""

    __tablename__ = "system_colors"
    __table_args__ = (UniqueConstraint("name", name="ux_system_colors_name"), _NO_ID_REUSE)

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    hex_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


# --- Documentos (presupuestos, recibos, remitos) ---

class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("type", "number", name="ux_documents_type_number"),
        CheckConstraint(_in_check("type", DOCUMENT_TYPES), name="ck_documents_type"),
        CheckConstraint(_in_check("status", DOCUMENT_STATUSES), name="ck_documents_status"),
        CheckConstraint(
            _in_check("production_status", PRODUCTION_STATUSES),
            name="ck_documents_production_status",
        ),
        _NO_ID_REUSE,
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(16))
    number: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default="DRAFT")
    production_status: Mapped[str] = mapped_column(String(16), default="PENDING")
    date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    estimated_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    subtotal: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    total: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    client: Mapped["Client"] = relationship(back_populates="documents", lazy="selectin")
    created_by: Mapped["User"] = relationship(lazy="selectin")
    items: Mapped[list["DocumentItem"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentItem.position",
        lazy="selectin",
    )


class DocumentItem(Base):
    __tablename__ = "document_items"
    __table_args__ = (
        CheckConstraint(_in_check("status", PRODUCTION_STATUSES), name="ck_document_items_status"),
        _NO_ID_REUSE,
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    document_id: Mapped[int] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"))
    position: Mapped[int] = mapped_column(Integer, default=0)
    product_name: Mapped[str] = mapped_column(String(200))
    # Medidas en centímetros enteros
    width: Mapped[int] = mapped_column(Integer)
    height: Mapped[int] = mapped_column(Integer)
    # Derivado (unit_price / square_meters); sólo informativo
    price_per_sqm: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    square_meters: Mapped[float] = mapped_column(Float, default=0.0)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    subtotal: Mapped[Numeric] = mapped_column(Numeric(12, 2), default=0)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="PENDING")

    document: Mapped["Document"] = relationship(back_populates="items")


class DocumentSequence(Base):
    """Contador por tipo de documento (último número asignado)."""

    __tablename__ = "document_sequences"

    doc_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)


class Setting(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
