"""Raw file helpers exposed through the gateway (fs-* operations)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from confcurate.errors import CorruptCollectionError, ExternalError


def read_json(path: Path | str) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to read file: {exc.strerror or exc}"
        raise ExternalError(msg) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptCollectionError(path, exc.msg) from exc


def write_json(path: Path | str, data: Any) -> None:
    """Write data to path. Strings are written verbatim, anything else as 2-space JSON."""
    text = data if isinstance(data, str) else json.dumps(data, indent=2, ensure_ascii=False)
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to write file: {exc.strerror or exc}"
        raise ExternalError(msg) from exc


def read_dir(path: Path | str) -> list[str]:
    try:
        return sorted(p.name for p in Path(path).iterdir())
    except OSError as exc:
        msg = f"Failed to read directory: {exc.strerror or exc}"
        raise ExternalError(msg) from exc


def exists(path: Path | str) -> bool:
    return Path(path).exists()
