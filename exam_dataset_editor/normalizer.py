"""Build canonical :class:`Question` objects from raw, schema-variable records."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from exam_dataset_editor.audit import coerce_flag, detect_manual_overrides, extract_audit_facts, resolve_display_text
from exam_dataset_editor.decision_policy import evaluate_question_maintenance
from exam_dataset_editor.key_detection import (
    ROLE_MAINTENANCE,
    ROLE_SUB_TOPIC,
    ROLE_SUPER_TOPIC,
    ROLE_TOPIC,
    detect_key,
    split_legacy_topic,
)
from exam_dataset_editor.models import Answer, Question
from exam_dataset_editor.text_utils import norm_space

logger = logging.getLogger(__name__)


def _record_id(record: Dict[str, Any]) -> str:
    value = record.get("id")
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    return str(value).strip()


def _exam_year(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _answers(record: Dict[str, Any], question_id: str) -> List[Answer]:
    raw_answers = record.get("answers")
    if not isinstance(raw_answers, list):
        return []
    out: List[Answer] = []
    for idx, raw in enumerate(raw_answers):
        raw = raw if isinstance(raw, dict) else {"text": raw}
        answer_id = norm_space(raw.get("id")) or f"ans_{question_id}_{idx}"
        out.append(Answer(
            id=answer_id,
            text=norm_space(raw.get("text") or ""),
            is_correct=bool(raw.get("isCorrect")),
        ))
    return out


def _image_files(record: Dict[str, Any]) -> List[str]:
    refs = record.get("imageFiles")
    if not isinstance(refs, list):
        return []
    return [str(ref).strip() for ref in refs if ref is not None and str(ref).strip()]


def normalize_question(record: Any, file_index: int = 0) -> Optional[Question]:
    """Return the canonical question for ``record``, or ``None`` when it has no usable id."""
    if not isinstance(record, dict):
        return None
    question_id = _record_id(record)
    if not question_id:
        return None

    topic_key = detect_key(record, ROLE_TOPIC)
    super_topic_key = detect_key(record, ROLE_SUPER_TOPIC)
    sub_topic_key = detect_key(record, ROLE_SUB_TOPIC)
    maintenance_key = detect_key(record, ROLE_MAINTENANCE)

    topic = norm_space(record.get(topic_key) or "") if topic_key else ""
    legacy_super, legacy_sub = split_legacy_topic(topic)
    super_topic = norm_space(record.get(super_topic_key) or "") if super_topic_key else ""
    sub_topic = norm_space(record.get(sub_topic_key) or "") if sub_topic_key else ""

    facts = extract_audit_facts(record)
    overrides = detect_manual_overrides(record, facts)

    q = Question(
        id=question_id,
        source_file_index=file_index,
        source_ref=record,
        topic_key=topic_key,
        super_topic_key=super_topic_key,
        sub_topic_key=sub_topic_key,
        maintenance_key=maintenance_key,
        exam_name=norm_space(record.get("examName") or ""),
        exam_year=_exam_year(record.get("examYear")),
        text=norm_space(record.get("questionText") or record.get("text") or ""),
        explanation=norm_space(record.get("explanationText") or record.get("explanation") or ""),
        topic=topic,
        super_topic=super_topic or legacy_super,
        sub_topic=sub_topic or legacy_sub,
        answers=_answers(record, question_id),
        topic_confidence=facts.topic_confidence,
        answer_confidence=facts.answer_confidence,
        recommend_change=facts.recommend_change,
        ai_changed_answers=facts.ai_changed_answers,
        needs_maintenance=facts.needs_maintenance,
        needs_review=bool(maintenance_key and coerce_flag(record.get(maintenance_key))),
        topic_reason=resolve_display_text(record, "topic", overrides) or facts.topic_reason,
        answer_reason=resolve_display_text(record, "answer", overrides) or facts.answer_reason,
        maintenance_reason=resolve_display_text(record, "maintenance", overrides),
        topic_source="manual" if overrides.note("topic") else facts.topic_source,
        answer_source="manual" if overrides.note("answer") else facts.answer_source,
        maintenance_severity=facts.maintenance_severity,
        maintenance_reasons=list(facts.maintenance_reasons),
        maintenance_override=overrides.maintenance,
        answer_override=overrides.answer,
        topic_override=overrides.topic,
        manual_maintenance_note=overrides.note("maintenance"),
        manual_answer_note=overrides.note("answer"),
        manual_topic_note=overrides.note("topic"),
        manual_edited=overrides.manual_edited,
        image_files=_image_files(record),
    )
    if q.super_topic or q.sub_topic:
        q.topic = q.combined_topic()

    refresh_traffic_light(q)
    return q


def refresh_traffic_light(question: Question) -> None:
    light = evaluate_question_maintenance(question)
    question.maintenance_traffic_level = light.level
    question.maintenance_traffic_label = light.label


def normalize(raw_records: Iterable[Any], file_index: int = 0) -> List[Question]:
    """Normalize a list of raw records; later duplicate ids replace earlier ones."""
    by_id: Dict[str, Question] = {}
    skipped = 0
    for record in raw_records or []:
        question = normalize_question(record, file_index)
        if question is None:
            skipped += 1
            continue
        by_id[question.id] = question
    if skipped:
        logger.debug("Skipped %d record(s) without usable id in file %d", skipped, file_index)
    return list(by_id.values())
