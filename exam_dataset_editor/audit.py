"""Resolve confidence, maintenance and reason facts from ``aiAudit`` annotated records.

Records written by the annotation pipeline carry a nested ``aiAudit`` block
(``topicInitial``/``topicFinal``, ``answerPlausibility.passA``/``passB``/
``verification``, ``maintenance``) plus flat ``ai*`` convenience fields. Older
exports only carry flat legacy fields. Every lookup below walks a precedence
list from the most specific source to the most general one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from exam_dataset_editor.models import OverrideSource
from exam_dataset_editor.text_utils import get_by_path, norm_space, pick_first_non_empty_string

TOPIC_CONFIDENCE_PATHS: Tuple[Tuple[str, str], ...] = (
    ("aiAudit.topicFinal.confidence", "topicFinal"),
    ("aiAudit.topicInitial.confidence", "topicInitial"),
    ("aiTopicConfidence", "legacy"),
    ("topicConfidence", "legacy"),
)

MAINTENANCE_FLAG_PATHS: Tuple[str, ...] = (
    "aiAudit.maintenance.needsMaintenance",
    "aiNeedsMaintenance",
    "needsMaintenance",
    "wartung",
    "Wartung",
    "maintenance",
    "fehlerhaft",
)

# Top-level override keys first; the same keys are mirrored under ``annotations``.
MANUAL_OVERRIDE_KEYS: Dict[str, Tuple[str, ...]] = {
    "maintenance": ("manualMaintenanceNote", "maintenanceNote", "wartungsNotiz"),
    "answer": (
        "manualAnswerReason",
        "AnswerReasonDetailed",
        "answerReasonDetailed",
        "AnswerReasonShort",
        "answerReasonShort",
    ),
    "topic": ("manualTopicReason", "topicReasonManual"),
}

# Key written back by the synchronizer for each override kind.
MANUAL_OVERRIDE_WRITE_KEYS: Dict[str, str] = {
    kind: keys[0] for kind, keys in MANUAL_OVERRIDE_KEYS.items()
}

AI_DISPLAY_RULES: Dict[str, Tuple[str, ...]] = {
    "answer": (
        "aiAnswerReasonDetailed",
        "aiAnswerReasonShort",
        # explicit finalPass beats the older passes
        "aiAudit.answerPlausibility.finalPass.reasonDetailed",
        "aiAudit.answerPlausibility.finalPass.reasonShort",
        "aiAudit.answerPlausibility.passB.reasonDetailed",
        "aiAudit.answerPlausibility.passB.reasonShort",
        "aiAudit.answerPlausibility.verification.reasonDetailed",
        "aiAudit.answerPlausibility.verification.reasonShort",
        "aiAudit.answerPlausibility.passA.reasonDetailed",
        "aiAudit.answerPlausibility.passA.reasonShort",
    ),
    "topic": (
        "aiTopicReason",
        "aiAudit.topicFinal.reasonDetailed",
        "aiAudit.topicFinal.reasonShort",
        "aiAudit.topicInitial.reasonDetailed",
        "aiAudit.topicInitial.reasonShort",
    ),
}


@dataclass
class AuditFacts:
    topic_confidence: Optional[float] = None
    answer_confidence: Optional[float] = None
    recommend_change: bool = False
    ai_changed_answers: bool = False
    needs_maintenance: bool = False
    topic_reason: str = ""
    topic_source: str = ""
    answer_reason: str = ""
    answer_source: str = ""
    maintenance_severity: Optional[int] = None
    maintenance_reasons: List[str] = field(default_factory=list)


@dataclass
class ManualOverrides:
    maintenance: OverrideSource = OverrideSource.NONE
    answer: OverrideSource = OverrideSource.NONE
    topic: OverrideSource = OverrideSource.NONE
    notes: Dict[str, str] = field(default_factory=dict)
    manual_edited: bool = False

    def note(self, kind: str) -> str:
        return self.notes.get(kind, "")


def coerce_confidence(value: Any) -> Optional[float]:
    """Return ``value`` as a float clamped to [0, 1], or ``None`` if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return max(0.0, min(1.0, number))


def coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


def coerce_flag(value: Any) -> Optional[bool]:
    """Interpret a flag value; ``None`` means the record does not assert anything."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        token = value.strip().lower()
        if not token:
            return None
        if token in {"0", "false", "nein", "no", "n", "off"}:
            return False
        return True
    return None


def _first_confidence(record: Dict[str, Any], paths: Sequence[Tuple[str, str]]) -> Tuple[Optional[float], str]:
    for path, source in paths:
        conf = coerce_confidence(get_by_path(record, path))
        if conf is not None:
            return conf, source
    return None, ""


def _first_flag(record: Dict[str, Any], paths: Sequence[str]) -> Optional[bool]:
    for path in paths:
        flag = coerce_flag(get_by_path(record, path))
        if flag is not None:
            return flag
    return None


def select_answer_pass(record: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
    """Return the most authoritative answer-plausibility block and its name.

    ``passB`` wins over a pass-B ``verification`` block (when it ran without an
    error), which wins over ``passA``.
    """
    plausibility = get_by_path(record, "aiAudit.answerPlausibility")
    if not isinstance(plausibility, dict):
        return {}, ""

    pass_b = plausibility.get("passB")
    if isinstance(pass_b, dict) and pass_b:
        return pass_b, "passB"

    verification = plausibility.get("verification")
    if isinstance(verification, dict) and verification.get("ran") and not verification.get("error"):
        if "confidence" in verification or "agreeWithChange" in verification:
            return verification, "verification"

    pass_a = plausibility.get("passA")
    if isinstance(pass_a, dict) and pass_a:
        return pass_a, "passA"
    return {}, ""


def _block_reason(block: Dict[str, Any]) -> str:
    return norm_space(block.get("reasonShort") or block.get("reasonDetailed") or "")


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [norm_space(item) for item in value if norm_space(item)]


def extract_audit_facts(record: Dict[str, Any]) -> AuditFacts:
    facts = AuditFacts()

    facts.topic_confidence, facts.topic_source = _first_confidence(record, TOPIC_CONFIDENCE_PATHS)
    topic_reason_source = {
        "topicFinal": "aiAudit.topicFinal.reasonShort",
        "topicInitial": "aiAudit.topicInitial.reasonShort",
    }.get(facts.topic_source)
    if topic_reason_source:
        facts.topic_reason = norm_space(get_by_path(record, topic_reason_source) or "")
    if not facts.topic_reason:
        facts.topic_reason = norm_space(record.get("aiTopicReason") or "")

    block, block_name = select_answer_pass(record)
    if block:
        facts.answer_confidence = coerce_confidence(block.get("confidence"))
        facts.answer_source = block_name
        flag_key = "agreeWithChange" if block_name == "verification" else "recommendChange"
        facts.recommend_change = bool(coerce_flag(block.get(flag_key)))
        facts.answer_reason = _block_reason(block)
    if facts.answer_confidence is None:
        facts.answer_confidence, legacy_source = _first_confidence(record, (
            ("aiAudit.answerPlausibility.finalAnswerConfidence", block_name or "final"),
            ("aiAnswerConfidence", "legacy"),
            ("answerConfidence", "legacy"),
        ))
        facts.answer_source = facts.answer_source or legacy_source
    if not facts.recommend_change:
        facts.recommend_change = bool(_first_flag(record, (
            "aiAudit.answerPlausibility.aiSuggestedChange",
            "aiRecommendChange",
            "recommendChange",
        )))

    plausibility = get_by_path(record, "aiAudit.answerPlausibility")
    if isinstance(plausibility, dict):
        facts.ai_changed_answers = evaluate_ai_changed_label(
            changed_in_dataset=plausibility.get("changedInDataset"),
            original_correct_indices=plausibility.get("originalCorrectIndices"),
            final_correct_indices=plausibility.get("finalCorrectIndices"),
        )

    facts.needs_maintenance = bool(_first_flag(record, MAINTENANCE_FLAG_PATHS))
    severity = coerce_int(get_by_path(record, "aiAudit.maintenance.severity"))
    if severity is None:
        severity = coerce_int(record.get("aiMaintenanceSeverity"))
    facts.maintenance_severity = severity
    reasons = _string_list(get_by_path(record, "aiAudit.maintenance.reasons"))
    facts.maintenance_reasons = reasons or _string_list(record.get("aiMaintenanceReasons"))
    return facts


def _override_text(record: Dict[str, Any], keys: Sequence[str]) -> str:
    annotations = record.get("annotations")
    for key in keys:
        text = norm_space(record.get(key) or "")
        if text:
            return text
        if isinstance(annotations, dict):
            text = norm_space(annotations.get(key) or "")
            if text:
                return text
    return ""


def detect_manual_overrides(record: Dict[str, Any], facts: Optional[AuditFacts] = None) -> ManualOverrides:
    """Derive the provenance of the maintenance, answer and topic explanations once."""
    facts = facts if facts is not None else extract_audit_facts(record)
    ai_texts = {
        "maintenance": bool(facts.maintenance_reasons),
        "answer": bool(facts.answer_reason or pick_first_non_empty_string(record, AI_DISPLAY_RULES["answer"])),
        "topic": bool(facts.topic_reason or pick_first_non_empty_string(record, AI_DISPLAY_RULES["topic"])),
    }

    overrides = ManualOverrides()
    for kind, keys in MANUAL_OVERRIDE_KEYS.items():
        text = _override_text(record, keys)
        if text:
            source = OverrideSource.MANUAL
            overrides.notes[kind] = text
        elif ai_texts[kind]:
            source = OverrideSource.AI
        else:
            source = OverrideSource.NONE
        setattr(overrides, kind, source)

    annotations = record.get("annotations")
    edited = coerce_flag(record.get("manualEdited"))
    if edited is None and isinstance(annotations, dict):
        edited = coerce_flag(annotations.get("manualEdited"))
    overrides.manual_edited = bool(edited)
    return overrides


def resolve_display_text(record: Dict[str, Any], kind: str, overrides: Optional[ManualOverrides] = None) -> str:
    """Text shown to the editor for ``kind`` (``answer``, ``topic`` or ``maintenance``)."""
    overrides = overrides if overrides is not None else detect_manual_overrides(record)
    if overrides.note(kind):
        return overrides.note(kind)
    if kind == "maintenance":
        return "; ".join(extract_audit_facts(record).maintenance_reasons)
    return pick_first_non_empty_string(record, AI_DISPLAY_RULES.get(kind, ())) or ""


def evaluate_ai_changed_label(
    *,
    changed_in_dataset: Any = None,
    original_correct_indices: Any = None,
    final_correct_indices: Any = None,
) -> bool:
    """Whether the AI changed the correct answers of a question."""
    if isinstance(changed_in_dataset, bool):
        return changed_in_dataset
    if not isinstance(original_correct_indices, list) or not isinstance(final_correct_indices, list):
        return False
    if not original_correct_indices or not final_correct_indices:
        return False
    return original_correct_indices != final_correct_indices
