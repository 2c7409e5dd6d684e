# NG-HEADER: Nombre de archivo: collections_sync.py
# NG-HEADER: Ubicación: services/collections_sync.py
# NG-HEADER: Descripción: Sincronización por id de colecciones anidadas (colores de tela y de sistema)
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Sincronización de una colección persistida contra la lista enviada por el cliente.

Regla única para colores de tela y colores de sistema:
 - los existentes cuyo id no viene en la lista se eliminan;
 - los que vienen con un id existente se actualizan en su lugar (conservan id);
 - los que vienen sin id (o con un id desconocido) se crean.

El orden de escritura es eliminar, actualizar y crear, con un flush entre
cada paso, para que un nombre liberado pueda reutilizarse sin chocar con
las restricciones únicas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass
class SyncPlan(Generic[T]):
    update: list[tuple[T, dict]] = field(default_factory=list)
    create: list[dict] = field(default_factory=list)
    delete: list[T] = field(default_factory=list)


def normalize_entries(entries: Iterable[Any] | None) -> list[dict]:
    """Acepta dicts o nombres sueltos (``["Blanco", "Negro"]``)."""
    out: list[dict] = []
    for entry in entries or []:
        if isinstance(entry, str):
            name = entry.strip()
            if name:
                out.append({"name": name})
        elif isinstance(entry, dict):
            out.append(dict(entry))
    return out


def _entry_id(entry: dict) -> Optional[int]:
    raw = entry.get("id")
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def plan_sync(existing: Iterable[T], incoming: Iterable[Any] | None) -> SyncPlan[T]:
    """Calcula qué eliminar, actualizar y crear. No modifica nada."""
    by_id = {getattr(obj, "id"): obj for obj in existing}
    plan: SyncPlan[T] = SyncPlan()
    seen: set[int] = set()
    for entry in normalize_entries(incoming):
        eid = _entry_id(entry)
        if eid is not None and eid in by_id and eid not in seen:
            plan.update.append((by_id[eid], entry))
            seen.add(eid)
        else:
            plan.create.append(entry)
    plan.delete = [obj for oid, obj in by_id.items() if oid not in seen]
    return plan


async def apply_sync(
    db: AsyncSession,
    plan: SyncPlan[T],
    build: Callable[[dict], T],
    apply: Callable[[T, dict], None],
    collection: Optional[list] = None,
) -> list[T]:
    """Ejecuta el plan y devuelve los objetos resultantes en el orden recibido.

    Con ``collection`` (relación con delete-orphan) las bajas y altas se hacen
    sobre la lista; sin ella, directamente sobre la sesión.
    """
    for obj in plan.delete:
        if collection is not None:
            collection.remove(obj)
        else:
            await db.delete(obj)
    if plan.delete:
        await db.flush()

    for obj, entry in plan.update:
        apply(obj, entry)
    if plan.update:
        await db.flush()

    created: list[T] = []
    for entry in plan.create:
        obj = build(entry)
        if collection is not None:
            collection.append(obj)
        else:
            db.add(obj)
        created.append(obj)
    if created:
        await db.flush()
    return [obj for obj, _ in plan.update] + created
