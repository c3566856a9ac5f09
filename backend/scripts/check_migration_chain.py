"""Static governance checks for the Alembic revision files.

Usage:
    python scripts/check_migration_chain.py

Checks:
- every revision id is unique
- every down_revision exists (except root)
- there is exactly one head revision
- every table declared by the ORM models is created by some revision
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Iterable, Optional


REVISION_RE = re.compile(r'^revision\s*=\s*["\']([^"\']+)["\']', re.MULTILINE)
DOWN_RE = re.compile(r'^down_revision\s*=\s*(.+)$', re.MULTILINE)
CREATE_TABLE_RE = re.compile(r'op\.create_table\(\s*["\']([^"\']+)["\']')

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _extract_scalar(raw: str) -> str | None:
    raw = raw.strip()
    if raw in {"None", ""}:
        return None
    if raw.startswith(("'", '"')) and raw.endswith(("'", '"')):
        return raw[1:-1]
    return None


def model_tables() -> set[str]:
    backend_dir = str(VERSIONS_DIR.parents[1])
    if backend_dir not in sys.path:
        sys.path.insert(0, backend_dir)
    import app.models  # noqa: F401  (registers every table on Base.metadata)
    from app.database import Base

    return set(Base.metadata.tables)


def check_chain(versions_dir: Path = VERSIONS_DIR, expected_tables: Optional[Iterable[str]] = None) -> tuple[list[str], list[str]]:
    """Return (heads, errors) for the revision files in ``versions_dir``."""
    files = sorted(versions_dir.glob("*.py"))
    revisions: dict[str, Path] = {}
    down_map: dict[str, str | None] = {}
    created: set[str] = set()
    errors: list[str] = []

    for file in files:
        text = file.read_text(encoding="utf-8")
        rev_m = REVISION_RE.search(text)
        down_m = DOWN_RE.search(text)
        created.update(CREATE_TABLE_RE.findall(text))

        if not rev_m:
            errors.append(f"{file.name}: missing revision")
            continue

        rev = rev_m.group(1)
        if rev in revisions:
            errors.append(f"Duplicate revision id {rev} in {file.name} and {revisions[rev].name}")
        revisions[rev] = file
        down_map[rev] = _extract_scalar(down_m.group(1)) if down_m else None

    for rev, down in down_map.items():
        if down is not None and down not in revisions:
            errors.append(f"Revision {rev} references missing down_revision {down}")

    referenced = {d for d in down_map.values() if d is not None}
    heads = [r for r in revisions if r not in referenced]
    if len(heads) != 1:
        errors.append(f"Expected exactly one head revision, found {len(heads)} ({heads})")

    for table in sorted(set(expected_tables or ()) - created):
        errors.append(f"Table {table} is declared by the models but created by no revision")

    return heads, errors


def main() -> int:
    heads, errors = check_chain(expected_tables=model_tables())

    print("Migration chain check")
    print(f"- revisions: {len(list(VERSIONS_DIR.glob('*.py')))}")

    if errors:
        for err in errors:
            print(f"[FAIL] {err}")
        return 1

    print(f"[PASS] single head: {heads[0]}")
    print("[PASS] revision/down_revision integrity checks")
    print("[PASS] every model table has a migration")
    return 0


if __name__ == "__main__":
    sys.exit(main())
