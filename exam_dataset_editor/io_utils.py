"""JSON file helpers shared by the CLI, the session and the UI."""

import json
import os
from typing import Any


def parse_json_text(text: str) -> Any:
    """Parse JSON text, tolerating a leading UTF-8 byte order mark."""
    return json.loads(text.lstrip("\ufeff"))


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8-sig") as fh:
        return json.load(fh)


def save_json(path: str, data: Any) -> None:
    """Write ``data`` atomically (temp file + replace)."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False, indent=2)
            fh.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
