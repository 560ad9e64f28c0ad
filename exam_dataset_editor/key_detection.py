"""Locate the property names a raw record uses for topic and maintenance concepts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Pattern, Tuple

from exam_dataset_editor.text_utils import norm_space

ROLE_TOPIC = "topic"
ROLE_SUPER_TOPIC = "super_topic"
ROLE_SUB_TOPIC = "sub_topic"
ROLE_MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class KeyRule:
    preferred: Tuple[str, ...]
    pattern: Pattern[str]
    # keys matching this are never picked by the pattern fallback
    exclude: Optional[Pattern[str]] = None
    scalar_only: bool = True


_SUPER_RE = re.compile(r"super.?topic|ober.?thema|haupt.?thema|ueber.?thema|über.?thema", re.IGNORECASE)
_SUB_RE = re.compile(r"sub.?topic|unter.?thema", re.IGNORECASE)
_META_SUFFIX_RE = re.compile(r"(confidence|reason|source|key|candidates?)$", re.IGNORECASE)

KEY_RULES: Dict[str, KeyRule] = {
    ROLE_TOPIC: KeyRule(
        preferred=("topic", "thema", "Thema", "aiTopic"),
        pattern=re.compile(r"topic|thema", re.IGNORECASE),
        exclude=re.compile(f"{_SUPER_RE.pattern}|{_SUB_RE.pattern}|{_META_SUFFIX_RE.pattern}", re.IGNORECASE),
    ),
    ROLE_SUPER_TOPIC: KeyRule(
        preferred=("superTopic", "aiSuperTopic", "oberthema", "Oberthema", "ueberthema", "hauptthema"),
        pattern=_SUPER_RE,
        exclude=_META_SUFFIX_RE,
    ),
    ROLE_SUB_TOPIC: KeyRule(
        preferred=("subTopic", "subtopic", "aiSubtopic", "aiSubTopic", "unterthema", "Unterthema"),
        pattern=_SUB_RE,
        exclude=_META_SUFFIX_RE,
    ),
    ROLE_MAINTENANCE: KeyRule(
        preferred=("needsMaintenance", "needsReview", "wartung", "Wartung", "aiNeedsMaintenance"),
        pattern=re.compile(r"wartung|fehlerhaft|defekt|maintenance|needs.?review|invalid", re.IGNORECASE),
        exclude=re.compile(r"(reasons?|severity|note|notiz)$", re.IGNORECASE),
    ),
}


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def detect_key(record: Any, role: str) -> Optional[str]:
    """Return the record's property name that plays ``role``, or ``None``.

    Exact preferred names win over the pattern fallback; among pattern hits the
    first key in the record's own order wins.
    """
    if not isinstance(record, dict):
        return None
    rule = KEY_RULES[role]

    for name in rule.preferred:
        if name in record and (not rule.scalar_only or _is_scalar(record[name])):
            return name

    for key in record:
        if not isinstance(key, str) or not rule.pattern.search(key):
            continue
        if rule.exclude is not None and rule.exclude.search(key):
            continue
        if rule.scalar_only and not _is_scalar(record[key]):
            continue
        return key
    return None


def detect_keys(record: Any) -> Dict[str, Optional[str]]:
    return {role: detect_key(record, role) for role in KEY_RULES}


_LEGACY_TOPIC_RE = re.compile(r"^(.+?)\s*(?:->|::|>|/)\s*(.+)$")


def split_legacy_topic(text: Any) -> Tuple[str, str]:
    """Split a combined ``"super > sub"`` string at the first separator.

    Returns ``(super_topic, sub_topic)``; without a separator the whole text is
    the super-topic.
    """
    normalized = norm_space(text)
    if not normalized:
        return "", ""

    match = _LEGACY_TOPIC_RE.match(normalized)
    if not match:
        return normalized, ""
    return norm_space(match.group(1)), norm_space(match.group(2))
