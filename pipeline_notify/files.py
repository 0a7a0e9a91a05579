"""JSON data files kept under the configured data directory."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = ".data"


def data_file_path(filename: str, data_path: str | None = None) -> Path:
    """Resolve `filename` inside the data directory (cwd/.data by default)."""
    data_dir = Path(data_path) if data_path else Path.cwd() / DEFAULT_DATA_DIR
    return (data_dir / filename).resolve()


def existing_file(path: str) -> Path | None:
    """Return the resolved path if `path` names an existing file."""
    try:
        resolved = Path(path).expanduser().resolve()
        return resolved if resolved.is_file() else None
    except (OSError, ValueError):
        return None


def load_json_data(filename: str, data_path: str | None = None) -> Any | None:
    """Load a JSON data file, or None when it does not exist."""
    path = data_file_path(filename, data_path)
    if not path.exists():
        return None
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def save_json_data(filename: str, data: Any, data_path: str | None = None) -> Path:
    path = data_file_path(filename, data_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info(f"File written: {path}")
    return path
