"""Whitespace, folding and path-lookup helpers."""

import re
import unicodedata
from typing import Any, Iterable, Optional

_WS_RE = re.compile(r"\s+")
_UMLAUT_FOLD = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


def norm_space(value: Any) -> str:
    """Collapse internal whitespace and trim. ``None`` becomes ``""``."""
    if value is None:
        return ""
    return _WS_RE.sub(" ", str(value)).strip()


def fold_token(value: Any) -> str:
    """Comparison key: lowercase, collapsed whitespace, umlauts folded, accents stripped."""
    # NFC first so decomposed umlauts hit the fold table
    token = unicodedata.normalize("NFC", norm_space(value)).lower().translate(_UMLAUT_FOLD)
    decomposed = unicodedata.normalize("NFD", token)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_key(value: Any) -> str:
    """Like :func:`fold_token` but also drops everything except ``[a-z0-9]``."""
    return re.sub(r"[^a-z0-9]", "", fold_token(value))


def get_by_path(obj: Any, path: str) -> Any:
    current = obj
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def pick_first_non_empty_string(source: Any, paths: Iterable[str]) -> Optional[str]:
    for path in paths:
        value = get_by_path(source, path)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = norm_space(value)
        if text:
            return text
    return None
