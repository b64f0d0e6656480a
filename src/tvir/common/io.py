from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def write_json(path: str | Path, obj: Dict[str, Any], *, indent: int = 2) -> Path:
    """Write obj as pretty JSON, creating parent dirs. Returns the written path."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(obj, indent=indent, sort_keys=True, default=str), encoding="utf-8")
    return p


def require_file(path: Path, what: str = "File") -> Path:
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")
    return path
