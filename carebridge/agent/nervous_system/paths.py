from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_DB_PATH = Path(__file__).resolve().parent / "db" / "carebridge.db"


def resolve_directory_db_path() -> Path:
    """Location of the user directory database.

    ``CAREBRIDGE_DB_PATH`` overrides the default file beside this package;
    relative values resolve against the working directory.
    """
    configured = str(os.getenv("CAREBRIDGE_DB_PATH") or "").strip()
    path = Path(configured).expanduser().resolve() if configured else _DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
