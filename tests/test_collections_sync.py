#!/usr/bin/env python
# NG-HEADER: Nombre de archivo: test_collections_sync.py
# NG-HEADER: Ubicación: tests/test_collections_sync.py
# NG-HEADER: Descripción: Pruebas del plan de sincronización por id de colecciones.
# NG-HEADER: Lineamientos: Ver AGENTS.md
from dataclasses import dataclass

from services.collections_sync import normalize_entries, plan_sync


@dataclass
class _Row:
    id: int
    name: str


def test_plan_deletes_missing_updates_matching_and_creates_new():
    a, b, c = _Row(1, "A"), _Row(2, "B"), _Row(3, "C")
    plan = plan_sync([a, b, c], [{"id": 2, "name": "B2"}, {"name": "D"}])
    assert [(obj.id, entry["name"]) for obj, entry in plan.update] == [(2, "B2")]
    assert plan.create == [{"name": "D"}]
    assert sorted(obj.id for obj in plan.delete) == [1, 3]


def test_unknown_id_is_treated_as_new():
    plan = plan_sync([_Row(1, "A")], [{"id": 99, "name": "Z"}])
    assert plan.update == []
    assert plan.create == [{"id": 99, "name": "Z"}]
    assert [obj.id for obj in plan.delete] == [1]


def test_repeated_id_updates_only_once():
    plan = plan_sync([_Row(1, "A")], [{"id": 1, "name": "A1"}, {"id": "1", "name": "A2"}])
    assert len(plan.update) == 1
    assert plan.create == [{"id": "1", "name": "A2"}]


def test_empty_incoming_deletes_everything():
    plan = plan_sync([_Row(1, "A"), _Row(2, "B")], [])
    assert len(plan.delete) == 2
    assert plan.update == [] and plan.create == []


def test_normalize_entries_accepts_plain_names():
    assert normalize_entries(["Blanco", " ", {"name": "Negro", "id": 3}, 5]) == [
        {"name": "Blanco"},
        {"name": "Negro", "id": 3},
    ]
