#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from menuops.core.database import SessionLocal  # noqa: E402
from menuops.core.logging_setup import configure_logging  # noqa: E402
from menuops.schemas.menu_import import parse_menu_import, parse_system_menu_import  # noqa: E402
from menuops.services.audit import SYSTEM_ACTOR  # noqa: E402
from menuops.services.import_errors import CatalogImportError, ImportPayloadError  # noqa: E402
from menuops.services.menu_import import import_menu  # noqa: E402
from menuops.services.system_import import import_system_menu  # noqa: E402


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import a menu document into the catalog.")
    parser.add_argument("--file", required=True, help="Path to the JSON document")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--restaurant", help="Restaurant id for a single-restaurant import")
    target.add_argument("--system", action="store_true", help="System-wide multi-restaurant import")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the import and roll it back instead of committing",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging()

    try:
        raw = Path(args.file).read_bytes()
    except OSError as exc:
        print(f"Cannot read {args.file}: {exc}")
        return 1

    try:
        payload = parse_system_menu_import(raw) if args.system else parse_menu_import(raw)
    except ImportPayloadError as exc:
        print(str(exc))
        for error in exc.errors:
            print(f"  {'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}")
        return 1

    db = SessionLocal()
    try:
        if args.system:
            stats = import_system_menu(db, payload, actor=SYSTEM_ACTOR)
        else:
            stats = import_menu(db, args.restaurant, payload, actor=SYSTEM_ACTOR)
        if args.dry_run:
            db.rollback()
        else:
            db.commit()
    except CatalogImportError as exc:
        db.rollback()
        print(str(exc))
        return 1
    finally:
        db.close()

    print(json.dumps(stats.to_dict(), indent=2))
    if args.dry_run:
        print("Dry run: no changes were committed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
