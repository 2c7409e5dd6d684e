#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_system_colors_api.py
# NG-HEADER: Ubicación: tests/test_system_colors_api.py
# NG-HEADER: Descripción: Pruebas de sincronización de colores de sistema.
# NG-HEADER: Lineamientos: Ver AGENTS.md
import pytest


@pytest.mark.asyncio
async def test_put_synchronises_to_given_set(client):
    r = await client.put(
        "/system-colors",
        json={"colors": [{"name": "A"}, {"name": "B", "hexCode": "#111111"}, {"name": "C"}]},
    )
    assert r.status_code == 200, r.text
    ids = {c["name"]: c["id"] for c in r.json()}

    r = await client.put(
        "/system-colors",
        json={"colors": [{"id": ids["B"], "name": "B2", "hexCode": "#222222"}, {"name": "D"}]},
    )
    assert r.status_code == 200, r.text
    out = {c["name"]: c for c in r.json()}
    assert set(out) == {"B2", "D"}
    assert out["B2"]["id"] == ids["B"]
    assert out["B2"]["hexCode"] == "#222222"
    assert out["D"]["id"] not in ids.values()

    r = await client.get("/system-colors")
    assert [c["name"] for c in r.json()] == ["B2", "D"]


@pytest.mark.asyncio
async def test_duplicate_name_is_a_conflict(client):
    r = await client.put("/system-colors", json={"colors": [{"name": "Blanco"}, {"name": "Blanco"}]})
    assert r.status_code == 409
    assert r.json()["code"] == "duplicate_system_color"


@pytest.mark.asyncio
async def test_colors_must_be_a_list(client):
    r = await client.put("/system-colors", json={"colors": "Blanco"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_deleted_id_is_not_handed_to_a_new_color(client):
    r = await client.put("/system-colors", json={"colors": [{"name": "A"}, {"name": "B"}]})
    ids = {c["name"]: c["id"] for c in r.json()}
    r = await client.put("/system-colors", json={"colors": [{"id": ids["A"], "name": "A"}, {"name": "C"}]})
    out = {c["name"]: c["id"] for c in r.json()}
    assert out["A"] == ids["A"]
    assert out["C"] > ids["B"]
