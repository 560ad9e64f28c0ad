"""Write edited canonical questions back into their raw records."""

from __future__ import annotations

import math
from typing import Any, Dict, List

from exam_dataset_editor.audit import MANUAL_OVERRIDE_KEYS, MANUAL_OVERRIDE_WRITE_KEYS
from exam_dataset_editor.config import CONFIG
from exam_dataset_editor.models import Question


def _exam_year_value(exam_year: str) -> Any:
    text = (exam_year or "").strip()
    if not text:
        return None
    try:
        number = float(text.replace(",", "."))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _annotations(raw: Dict[str, Any]) -> Dict[str, Any]:
    annotations = raw.get("annotations")
    if not isinstance(annotations, dict):
        annotations = {}
        raw["annotations"] = annotations
    return annotations


def _write_override(raw: Dict[str, Any], kind: str, enabled: bool, note: str) -> None:
    """Mirror a manual override into ``raw`` and ``raw["annotations"]``.

    A cleared override removes the key and its aliases; absence means "no override".
    """
    key = MANUAL_OVERRIDE_WRITE_KEYS[kind]
    if enabled:
        raw[key] = note
        _annotations(raw)[key] = note
        return
    annotations = raw.get("annotations")
    for alias in MANUAL_OVERRIDE_KEYS[kind]:
        raw.pop(alias, None)
        if isinstance(annotations, dict):
            annotations.pop(alias, None)


def _write_answers(raw: Dict[str, Any], question: Question) -> List[Dict[str, Any]]:
    previous = raw.get("answers") if isinstance(raw.get("answers"), list) else []
    answers: List[Dict[str, Any]] = []
    for idx, answer in enumerate(question.answers):
        base = previous[idx] if idx < len(previous) and isinstance(previous[idx], dict) else {}
        row = dict(base)
        row["id"] = answer.id or base.get("id") or f"ans_{question.id}_{idx}"
        row["text"] = answer.text or ""
        row["html"] = answer.text or ""
        row["isCorrect"] = bool(answer.is_correct)
        answers.append(row)
    raw["answers"] = answers
    return answers


def apply_correct_indices(raw: Dict[str, Any]) -> None:
    """Regenerate ``correctIndices`` and ``correctAnswers`` from ``answers[].isCorrect``."""
    answers = raw.get("answers") or []
    correct_indices = [idx for idx, a in enumerate(answers) if a.get("isCorrect")]
    raw["correctIndices"] = correct_indices
    raw["correctAnswers"] = [
        {"index": idx, "text": answers[idx].get("text") or "", "html": answers[idx].get("html") or ""}
        for idx in correct_indices
    ]


def sync_question_to_source(question: Question) -> None:
    """Mutate ``question.source_ref`` in place so it reflects the canonical fields.

    Idempotent; a detached question (no ``source_ref``) is left alone.
    """
    raw = question.source_ref
    if raw is None:
        return

    raw["examName"] = question.exam_name or None
    raw["examYear"] = _exam_year_value(question.exam_year)

    raw["questionText"] = question.text or ""
    if "questionHtml" in raw:
        raw["questionHtml"] = question.text or ""
    raw["explanationText"] = question.explanation or ""
    if "explanationHtml" in raw:
        raw["explanationHtml"] = question.explanation or ""

    topic_key = question.topic_key or CONFIG["DEFAULT_TOPIC_KEY"]
    raw[topic_key] = question.combined_topic() or question.topic or ""
    raw[question.super_topic_key or CONFIG["DEFAULT_SUPER_TOPIC_KEY"]] = question.super_topic or ""
    raw[question.sub_topic_key or CONFIG["DEFAULT_SUB_TOPIC_KEY"]] = question.sub_topic or ""

    raw[question.maintenance_key or CONFIG["DEFAULT_MAINTENANCE_KEY"]] = bool(question.needs_review)

    _write_override(raw, "maintenance", question.has_manual_maintenance_override, question.manual_maintenance_note)
    _write_override(raw, "answer", question.has_manual_answer_override, question.manual_answer_note)
    _write_override(raw, "topic", question.has_manual_topic_override, question.manual_topic_note)

    _write_answers(raw, question)
    apply_correct_indices(raw)

    raw["imageFiles"] = [str(ref).strip() for ref in (question.image_files or []) if str(ref or "").strip()]

    if question.manual_edited:
        raw["manualEdited"] = True
        _annotations(raw)["manualEdited"] = True
        tags = raw.get("tags")
        if not isinstance(tags, list):
            tags = []
        tag = CONFIG["MANUAL_EDIT_TAG"]
        if tag not in tags:
            tags.append(tag)
        raw["tags"] = tags
