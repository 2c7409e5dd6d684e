# NG-HEADER: Nombre de archivo: doctor.py
# NG-HEADER: Ubicación: tools/doctor.py
# NG-HEADER: Descripción: Chequeo de dependencias y sintaxis del backend antes de arrancar
# NG-HEADER: Lineamientos: Ver AGENTS.md
"""Doctor del proyecto: valida dependencias instaladas y sintaxis de los módulos.

Uso manual:
  python -m tools.doctor

Entorno:
  RUN_DOCTOR_ON_BOOT=1       # services.api lo ejecuta al importar la app
  DOCTOR_FAIL_ON_ERROR=1|0   # falla si falta una dependencia crítica
"""
from __future__ import annotations

import importlib
import os
import py_compile
import sys
import traceback
from pathlib import Path
from typing import Iterable

ROOT = Path(__file__).resolve().parents[1]

CRITICAL: list[str] = [
    "fastapi",
    "uvicorn",
    "sqlalchemy",
    "pydantic",
    "dotenv",
]

IMPORTANT: list[str] = [
    "alembic",
    "typer",
    "yaml",
]

OPTIONAL: list[str] = [
    "aiosqlite",
    "psycopg",
]


def _import_name(name: str) -> tuple[str, bool, str | None]:
    try:
        mod = importlib.import_module(name)
    except Exception:
        return name, False, None
    return name, True, getattr(mod, "__version__", None)


def _quick_py_syntax(paths: Iterable[Path]) -> list[str]:
    errs: list[str] = []
    for p in paths:
        if not p.exists():
            continue
        for file in p.rglob("*.py"):
            try:
                py_compile.compile(str(file), doraise=True)
            except py_compile.PyCompileError as e:
                errs.append(f"Syntax error: {file}: {e}")
    return errs


def check_imports() -> dict[str, list[str]]:
    """Devuelve los módulos faltantes por grupo (CRITICAL/IMPORTANT/OPTIONAL)."""
    missing: dict[str, list[str]] = {}
    for group, names in (("CRITICAL", CRITICAL), ("IMPORTANT", IMPORTANT), ("OPTIONAL", OPTIONAL)):
        for n in names:
            name, ok, ver = _import_name(n)
            if ok:
                print(f"[doctor] {group:9s} OK   {name}" + (f" {ver}" if ver else ""))
            else:
                print(f"[doctor] {group:9s} MISS {name}")
                missing.setdefault(group, []).append(name)
    return missing


def run_doctor(fail_on_error: bool = False) -> int:
    print("[doctor] Python", sys.version.replace("\n", " "))
    missing = check_imports()
    errs = _quick_py_syntax([ROOT / "services", ROOT / "db", ROOT / "core"])
    for e in errs:
        print("[doctor]", e)

    problems = len(missing.get("CRITICAL", [])) + len(errs)
    if not problems:
        print("[doctor] Summary: OK")
        return 0
    print(f"[doctor] Summary: {problems} problem(s) detected")
    return 2 if fail_on_error else 1


if __name__ == "__main__":
    env = os.getenv("ENV", "dev")
    fail = os.getenv("DOCTOR_FAIL_ON_ERROR", "1" if env == "production" else "0") == "1"
    try:
        raise SystemExit(run_doctor(fail_on_error=fail))
    except SystemExit:
        raise
    except Exception:
        traceback.print_exc()
        raise SystemExit(2)
