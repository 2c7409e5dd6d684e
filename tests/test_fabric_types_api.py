#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_fabric_types_api.py
# NG-HEADER: Ubicación: tests/test_fabric_types_api.py
# NG-HEADER: Descripción: Pruebas de endpoints del catálogo de telas y colores.
# NG-HEADER: Lineamientos: Ver AGENTS.md
import pytest


async def _create_blackout(client, colors=None):
    r = await client.post(
        "/fabric-types",
        json={
            "name": "Black Out",
            "code": "blackout",
            "pricePerSqm": 15000,
            "resellerPrice": 12000,
            "description": "Tela opaca",
            "colors": colors if colors is not None else ["Blanco", "Gris", "Negro"],
        },
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_and_list_fabric_types(client):
    data = await _create_blackout(client)
    assert data["code"] == "BLACKOUT"
    assert data["pricePerSqm"] == 15000
    assert [c["name"] for c in data["colors"]] == ["Blanco", "Gris", "Negro"]

    r = await client.get("/fabric-types")
    assert r.status_code == 200
    assert [ft["code"] for ft in r.json()] == ["BLACKOUT"]


@pytest.mark.asyncio
async def test_duplicate_code_returns_409(client):
    await _create_blackout(client)
    r = await client.post("/fabric-types", json={"name": "Otra", "code": "BLACKOUT", "colors": []})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_create_requires_name_and_code(client):
    r = await client.post("/fabric-types", json={"code": "X", "colors": []})
    assert r.status_code == 400
    r = await client.post("/fabric-types", json={"name": "X", "colors": []})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_put_syncs_colors_keeping_ids(client):
    data = await _create_blackout(client)
    blanco, gris, negro = data["colors"]

    r = await client.put(
        f"/fabric-types/{data['id']}",
        json={
            "name": "Black Out",
            "code": "BLACKOUT",
            "pricePerSqm": 16000,
            "resellerPrice": 12500,
            "colors": [
                {"id": gris["id"], "name": "Gris Perla", "hexCode": "#C0C0C0"},
                {"name": "Crudo"},
            ],
        },
    )
    assert r.status_code == 200, r.text
    out = r.json()
    assert out["pricePerSqm"] == 16000
    by_name = {c["name"]: c for c in out["colors"]}
    assert set(by_name) == {"Gris Perla", "Crudo"}
    assert by_name["Gris Perla"]["id"] == gris["id"]
    assert by_name["Gris Perla"]["hexCode"] == "#C0C0C0"
    assert by_name["Crudo"]["id"] not in {blanco["id"], gris["id"], negro["id"]}

    r = await client.get(f"/fabric-types/{data['id']}")
    assert {c["name"] for c in r.json()["colors"]} == {"Gris Perla", "Crudo"}


@pytest.mark.asyncio
async def test_deleted_color_name_can_be_reused(client):
    data = await _create_blackout(client, colors=["Blanco"])
    r = await client.put(
        f"/fabric-types/{data['id']}",
        json={"name": "Black Out", "code": "BLACKOUT", "colors": [{"name": "Blanco"}]},
    )
    assert r.status_code == 200, r.text
    assert [c["name"] for c in r.json()["colors"]] == ["Blanco"]


@pytest.mark.asyncio
async def test_patch_updates_only_given_fields(client):
    data = await _create_blackout(client)
    r = await client.patch(f"/fabric-types/{data['id']}", json={"resellerPrice": 11000, "isActive": False})
    assert r.status_code == 200
    out = r.json()
    assert out["resellerPrice"] == 11000
    assert out["pricePerSqm"] == 15000
    assert out["isActive"] is False
    assert len(out["colors"]) == 3

    r = await client.get("/fabric-types", params={"only_active": True})
    assert r.json() == []


@pytest.mark.asyncio
async def test_delete_and_not_found(client):
    data = await _create_blackout(client)
    r = await client.delete(f"/fabric-types/{data['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True}
    r = await client.get(f"/fabric-types/{data['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_non_text_and_oversized_values_are_rejected(client):
    r = await client.post("/fabric-types", json={"name": ["Black Out"], "code": "BO", "colors": []})
    assert r.status_code == 400
    r = await client.post("/fabric-types", json={"name": "Black Out", "code": "BO", "colors": [{"name": {"x": 1}}]})
    assert r.status_code == 400
    assert r.json()["field"] == "colors"
    r = await client.post("/fabric-types", json={"name": "Black Out", "code": "BO", "pricePerSqm": "1e30"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_deleted_color_id_is_never_reused(client):
    data = await _create_blackout(client)
    last = max(c["id"] for c in data["colors"])
    keep = [{"id": c["id"], "name": c["name"]} for c in data["colors"] if c["id"] != last]
    r = await client.put(
        f"/fabric-types/{data['id']}",
        json={"name": "Black Out", "code": "BLACKOUT", "colors": keep + [{"name": "Crudo"}]},
    )
    assert r.status_code == 200, r.text
    crudo = next(c for c in r.json()["colors"] if c["name"] == "Crudo")
    assert crudo["id"] > last
