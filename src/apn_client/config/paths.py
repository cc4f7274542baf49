from __future__ import annotations

import sys
from pathlib import Path


def app_base_dir() -> Path:
    """
    Returns the base directory for runtime files (.env, artifacts).

    - In dev: repo root (relative to this file)
    - In PyInstaller: directory containing the executable
    """
    if getattr(sys, "frozen", False) and hasattr(sys, "_MEIPASS"):
        return Path(sys.executable).resolve().parent

    # .../src/apn_client/config/paths.py -> repo root is 3 parents up
    return Path(__file__).resolve().parents[3]


def env_file_path() -> Path:
    return app_base_dir() / ".env"


def resolve_artifacts_dir(value: str | Path) -> Path:
    """Relative artifact dirs are anchored at the base dir, not the cwd."""
    path = Path(value)
    if not path.is_absolute():
        path = app_base_dir() / path
    return path
