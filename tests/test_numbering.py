#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_numbering.py
# NG-HEADER: Ubicación: tests/test_numbering.py
# NG-HEADER: Descripción: Pruebas del asignador de números de documento por tipo.
# NG-HEADER: Lineamientos: Ver AGENTS.md
import asyncio
from datetime import datetime

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError

from db.models import Client, Document, User
from db.numbering import (
    DocumentNumberConflict,
    allocate_document_number,
    is_number_collision,
    resync_sequence,
)
from core.config import settings
from db.session import SessionLocal
from services.documents import create_document, get_or_create_default_user, insert_default_user


def _payload(phone: str = "3534-000001") -> dict:
    return {
        "type": "QUOTE",
        "client": {"name": "Cliente Test", "phone": phone},
        "items": [{"productName": "Roller", "width": 100, "height": 100, "unitPrice": 1000, "quantity": 1}],
    }


async def _insert_document(session, doc_type: str, number: int) -> None:
    client = Client(name="Directo", phone="000", type="RETAIL")
    user = User(email=f"u{doc_type}{number}@test", name="U")
    session.add_all([client, user])
    await session.flush()
    session.add(
        Document(
            type=doc_type,
            number=number,
            date=datetime.utcnow(),
            subtotal=0,
            total=0,
            client_id=client.id,
            user_id=user.id,
        )
    )
    await session.commit()


@pytest.mark.asyncio
async def test_first_number_is_one_and_increments(db_session):
    numbers = [await allocate_document_number(db_session, "QUOTE") for _ in range(3)]
    await db_session.commit()
    assert numbers == [1, 2, 3]


@pytest.mark.asyncio
async def test_counters_are_independent_per_type(db_session):
    q1 = await allocate_document_number(db_session, "QUOTE")
    r1 = await allocate_document_number(db_session, "RECEIPT")
    q2 = await allocate_document_number(db_session, "QUOTE")
    d1 = await allocate_document_number(db_session, "DELIVERY_NOTE")
    await db_session.commit()
    assert (q1, r1, q2, d1) == (1, 1, 2, 1)


@pytest.mark.asyncio
async def test_counter_seeds_from_existing_max(db_session):
    await _insert_document(db_session, "RECEIPT", 7)
    assert await allocate_document_number(db_session, "RECEIPT") == 8
    await db_session.commit()


@pytest.mark.asyncio
async def test_rolled_back_allocation_is_not_consumed(db_session):
    assert await allocate_document_number(db_session, "QUOTE") == 1
    await db_session.commit()
    assert await allocate_document_number(db_session, "QUOTE") == 2
    await db_session.rollback()
    assert await allocate_document_number(db_session, "QUOTE") == 2
    await db_session.commit()


@pytest.mark.asyncio
async def test_unknown_type_is_rejected(db_session):
    with pytest.raises(ValueError):
        await allocate_document_number(db_session, "FACTURA")


@pytest.mark.asyncio
async def test_resync_only_moves_forward(db_session):
    await _insert_document(db_session, "QUOTE", 4)
    await allocate_document_number(db_session, "QUOTE")  # 5
    await db_session.commit()
    assert await resync_sequence(db_session, "QUOTE") == 4
    await db_session.commit()
    last = await db_session.scalar(text("SELECT last_number FROM document_sequences WHERE doc_type = 'QUOTE'"))
    assert last == 5


@pytest.mark.asyncio
async def test_concurrent_creations_get_distinct_numbers():
    async def _one():
        async with SessionLocal() as session:
            doc = await create_document(session, _payload())
            return doc.number

    numbers = await asyncio.gather(*[_one() for _ in range(5)])
    assert sorted(numbers) == [1, 2, 3, 4, 5]

    async with SessionLocal() as session:
        clients = await session.scalar(select(func.count(Client.id)))
    # Mismo teléfono: un único cliente
    assert clients == 1


@pytest.mark.asyncio
async def test_stale_counter_recovers_by_resync(db_session):
    first = await create_document(db_session, _payload())
    assert first.number == 1
    await db_session.execute(text("UPDATE document_sequences SET last_number = 0 WHERE doc_type = 'QUOTE'"))
    await db_session.commit()

    second = await create_document(db_session, _payload())
    assert second.number == 2


@pytest.mark.asyncio
async def test_retry_exhaustion_raises_conflict(db_session, monkeypatch):
    first = await create_document(db_session, _payload())
    assert first.number == 1

    async def _no_resync(session, doc_type):
        return 0

    monkeypatch.setattr("services.documents.resync_sequence", _no_resync)
    await db_session.execute(text("UPDATE document_sequences SET last_number = 0 WHERE doc_type = 'QUOTE'"))
    await db_session.commit()

    with pytest.raises(DocumentNumberConflict) as err:
        await create_document(db_session, _payload())
    assert err.value.doc_type == "QUOTE"
    assert err.value.attempts == 3


def test_is_number_collision_detects_unique_violation():
    sqlite_exc = IntegrityError(
        "INSERT", {}, Exception("UNIQUE constraint failed: documents.type, documents.number")
    )
    pg_exc = IntegrityError(
        "INSERT", {}, Exception('duplicate key value violates unique constraint "ux_documents_type_number"')
    )
    other = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: fabric_types.code"))
    assert is_number_collision(sqlite_exc)
    assert is_number_collision(pg_exc)
    assert not is_number_collision(other)


@pytest.mark.asyncio
async def test_default_user_insert_tolerates_concurrent_creator(db_session):
    # Otra transacción ya dio de alta al administrador: el alta no debe fallar
    db_session.add(User(email=settings.admin_email, name="Creado antes", role="ADMIN"))
    await db_session.commit()

    await insert_default_user(db_session)
    await db_session.commit()

    assert await db_session.scalar(select(func.count(User.id))) == 1
    user = await get_or_create_default_user(db_session)
    assert (user.email, user.name) == (settings.admin_email, "Creado antes")


@pytest.mark.asyncio
async def test_default_user_is_created_once(db_session):
    first = await get_or_create_default_user(db_session)
    await db_session.commit()
    second = await get_or_create_default_user(db_session)
    assert first.id == second.id
    assert first.role == "ADMIN"
    assert await db_session.scalar(select(func.count(User.id))) == 1
