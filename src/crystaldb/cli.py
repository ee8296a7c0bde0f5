from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from .core.errors import KindValueError
from .core.kinds import list_kinds
from .core.serde import json_dumps_canonical, json_loads
from .core.serialization import Serializer, deserialize_unit_type
from .io.config import StoreSettings
from .io.database import CrystalDB
from .io.errors import StoreError
from .io.query import UnitListOptions
from .observability.logging import setup_logging

# Errors reported as "[ERROR] ..." with exit code 1.
_EXPECTED_ERRORS = (OSError, ValueError, KindValueError, StoreError)


def _read_json(path: Path) -> Any:
    """Read and parse a JSON file (OSError/ValueError propagate)."""
    return json_loads(path.read_text(encoding="utf-8"))


def _fail(message: str) -> int:
    print(f"[ERROR] {message}", file=sys.stderr)
    return 1


def _open_store(settings: StoreSettings) -> CrystalDB:
    setup_logging(settings.log_level, settings.log_format, cache_loggers=False)
    return CrystalDB.from_settings(settings)


def _cmd_kinds(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="kinds", description="List the built-in value kinds.")
    p.parse_args(argv)
    for kind in list_kinds():
        print(kind)
    return 0


def _cmd_validate_type(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="validate-type",
        description="Validate a unit type definition stored as JSON.",
    )
    p.add_argument("file", type=Path, help="Path to the unit type JSON file.")
    args = p.parse_args(argv)

    try:
        result = deserialize_unit_type(_read_json(args.file))
    except _EXPECTED_ERRORS as exc:
        return _fail(f"{args.file}: {exc}")
    unit_type = result.unit_type
    print(f"[OK] unit type {unit_type.id!r} ({len(unit_type.items)} items)")
    return 0


def _cmd_validate_unit(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="validate-unit",
        description="Validate a unit payload (JSON) against a unit type definition (JSON).",
    )
    p.add_argument("--type", dest="type_file", type=Path, required=True, help="Unit type JSON file.")
    p.add_argument("file", type=Path, help="Path to the unit JSON file.")
    args = p.parse_args(argv)

    serializer = Serializer()
    try:
        unit_type = serializer.deserialize_unit_type(_read_json(args.type_file)).unit_type
    except _EXPECTED_ERRORS as exc:
        return _fail(f"{args.type_file}: {exc}")
    try:
        unit = serializer.deserialize_unit(_read_json(args.file), unit_type)
    except _EXPECTED_ERRORS as exc:
        return _fail(f"{args.file}: {exc}")
    set_count = sum(1 for value in unit.values.values() if value is not None)
    print(f"[OK] unit {unit.id!r} of {unit_type.id!r} ({set_count}/{len(unit.values)} values set)")
    return 0


def _cmd_upsert_type(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="upsert-type",
        description="Create or update a unit type in the configured store.",
    )
    p.add_argument("file", type=Path, help="Path to the unit type JSON file.")
    p.add_argument("--config", type=Path, default=None, help="TOML settings file.")
    args = p.parse_args(argv)

    async def run() -> Any:
        db = _open_store(StoreSettings.load(args.config))
        await db.initialize()
        return await db.upsert_unit_type(_read_json(args.file))

    try:
        stored = asyncio.run(run())
    except _EXPECTED_ERRORS as exc:
        return _fail(f"{args.file}: {exc}")
    print(f"[OK] stored unit type {stored.id!r} ({len(stored.items)} items)")
    return 0


def _cmd_list_units(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="list-units",
        description="Print units of a stored unit type as JSON lines.",
    )
    p.add_argument("unit_type", help="Business id of the unit type.")
    p.add_argument("--search", default=None, help="Substring matched on unit ids.")
    p.add_argument("--limit", type=int, default=None, help="Maximum number of units.")
    p.add_argument("--offset", type=int, default=0, help="Number of units to skip.")
    p.add_argument("--config", type=Path, default=None, help="TOML settings file.")
    args = p.parse_args(argv)

    options = UnitListOptions(
        order={"createdAt": "asc"}, limit=args.limit, offset=args.offset, search=args.search
    )

    async def run() -> list[dict[str, Any]]:
        db = _open_store(StoreSettings.load(args.config))
        await db.initialize()
        unit_type = await db.get_unit_type_by_id(args.unit_type)
        units = await db.list_units(args.unit_type, options)
        return [db.serializer.serialize_unit(unit, unit_type) for unit in units]

    try:
        payloads = asyncio.run(run())
    except _EXPECTED_ERRORS as exc:
        return _fail(f"{args.unit_type}: {exc}")
    for payload in payloads:
        print(json_dumps_canonical(payload))
    return 0


_COMMANDS = {
    "kinds": _cmd_kinds,
    "validate-type": _cmd_validate_type,
    "validate-unit": _cmd_validate_unit,
    "upsert-type": _cmd_upsert_type,
    "list-units": _cmd_list_units,
}


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="crystaldb", description="crystaldb schema and store CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)
    for name in _COMMANDS:
        sub.add_parser(name)
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    cmd, rest = argv[0], argv[1:]
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        code = 2
    else:
        code = handler(rest)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
