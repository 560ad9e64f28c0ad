"""Question subset filters, text search and bulk replace for the editor views."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from exam_dataset_editor.config import CONFIG
from exam_dataset_editor.decision_policy import LEVEL_GREEN, LEVEL_RED, LEVEL_YELLOW
from exam_dataset_editor.models import Question

IMAGE_MODES = ("all", "with", "without")


def super_topic_token(super_topic: str) -> str:
    return f"super::{super_topic}"


def sub_topic_token(super_topic: str, sub_topic: str) -> str:
    return f"sub::{super_topic}::{sub_topic}"


def filter_by_exams(questions: Sequence[Question], exam_names: Optional[Iterable[str]]) -> List[Question]:
    wanted = set(exam_names or [])
    if not wanted:
        return list(questions)
    return [q for q in questions if q.exam_name and q.exam_name in wanted]


def filter_by_image_mode(questions: Sequence[Question], mode: Optional[str]) -> List[Question]:
    if mode == "with":
        return [q for q in questions if q.image_files]
    if mode == "without":
        return [q for q in questions if not q.image_files]
    return list(questions)


def filter_by_topics(questions: Sequence[Question], topic_tokens: Optional[Iterable[str]]) -> List[Question]:
    """Keep questions matching any ``super::<name>`` or ``sub::<super>::<sub>`` token."""
    wanted = set(topic_tokens or [])
    if not wanted:
        return list(questions)

    out: List[Question] = []
    for q in questions:
        super_topic = (q.super_topic or "").strip() or CONFIG["NO_SUPER_TOPIC_LABEL"]
        sub_topic = (q.sub_topic or "").strip()
        if super_topic_token(super_topic) in wanted:
            out.append(q)
        elif sub_topic and sub_topic_token(super_topic, sub_topic) in wanted:
            out.append(q)
    return out


def filter_by_quality(
    questions: Sequence[Question],
    *,
    topic_confidence_max: float = 1.0,
    answer_confidence_max: float = 1.0,
    only_recommend_change: bool = False,
    only_needs_maintenance: bool = False,
) -> List[Question]:
    """Keep questions at or below the confidence cutoffs; absent confidence counts as 1.0."""
    out: List[Question] = []
    for q in questions:
        topic_conf = q.topic_confidence if q.topic_confidence is not None else 1.0
        answer_conf = q.answer_confidence if q.answer_confidence is not None else 1.0
        if topic_conf > topic_confidence_max:
            continue
        if answer_conf > answer_confidence_max:
            continue
        if only_recommend_change and not q.recommend_change:
            continue
        if only_needs_maintenance and not q.needs_maintenance:
            continue
        out.append(q)
    return out


def filter_by_traffic_level(questions: Sequence[Question], levels: Optional[Iterable[str]]) -> List[Question]:
    wanted = set(levels or [])
    if not wanted:
        return list(questions)
    return [q for q in questions if q.maintenance_traffic_level in wanted]


def search_questions(questions: Sequence[Question], query: str = "", *, in_answers: bool = False) -> List[Question]:
    """Every ``;``-separated term must occur in the question text (or an answer)."""
    terms = [t.strip().lower() for t in (query or "").split(";") if t.strip()]
    if not terms:
        return list(questions)

    out: List[Question] = []
    for q in questions:
        text = (q.text or "").lower()
        answer_texts = [(a.text or "").lower() for a in q.answers] if in_answers else []
        if all(term in text or any(term in a for a in answer_texts) for term in terms):
            out.append(q)
    return out


def replace_across_question(question: Question, search_text: str, replace_text: str) -> bool:
    """Replace ``search_text`` in question, explanation and answer texts; True if anything changed."""
    if not search_text:
        return False
    touched = False

    new_text = (question.text or "").replace(search_text, replace_text)
    if new_text != question.text:
        question.text = new_text
        touched = True

    new_explanation = (question.explanation or "").replace(search_text, replace_text)
    if new_explanation != question.explanation:
        question.explanation = new_explanation
        touched = True

    for answer in question.answers:
        new_answer = (answer.text or "").replace(search_text, replace_text)
        if new_answer != answer.text:
            answer.text = new_answer
            touched = True

    if touched:
        question.manual_edited = True
    return touched


def bulk_replace(questions: Iterable[Question], search_text: str, replace_text: str) -> int:
    if not search_text:
        raise ValueError("Bulk replace needs a non-empty search text.")
    return sum(1 for q in questions if replace_across_question(q, search_text, replace_text))


def count_by_traffic_level(questions: Iterable[Question]) -> Dict[str, int]:
    counts = Counter(q.maintenance_traffic_level for q in questions)
    return {level: counts.get(level, 0) for level in (LEVEL_GREEN, LEVEL_YELLOW, LEVEL_RED)}


def exam_names(questions: Iterable[Question]) -> List[str]:
    return sorted({q.exam_name for q in questions if q.exam_name})
