"""Canonical in-memory entities for loaded exam datasets."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OverrideSource(str, Enum):
    """Where the explanation text of a field comes from."""

    NONE = "none"
    AI = "ai"
    MANUAL = "manual"


@dataclass
class Answer:
    id: str
    text: str = ""
    is_correct: bool = False


@dataclass
class Question:
    """Schema-independent view of one raw question record.

    ``source_ref`` is the raw record itself, never a copy. The question is the
    only writer of that dict (see :func:`exam_dataset_editor.sync.sync_question_to_source`).
    The ``*_key`` attributes remember which property names the record used so
    that write-back never invents new ones.
    """

    id: str
    source_file_index: int = 0
    source_ref: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    topic_key: Optional[str] = None
    super_topic_key: Optional[str] = None
    sub_topic_key: Optional[str] = None
    maintenance_key: Optional[str] = None

    exam_name: str = ""
    exam_year: str = ""
    text: str = ""
    explanation: str = ""
    topic: str = ""
    super_topic: str = ""
    sub_topic: str = ""
    answers: List[Answer] = field(default_factory=list)

    topic_confidence: Optional[float] = None
    answer_confidence: Optional[float] = None
    recommend_change: bool = False
    ai_changed_answers: bool = False
    needs_maintenance: bool = False
    needs_review: bool = False
    topic_reason: str = ""
    answer_reason: str = ""
    maintenance_reason: str = ""
    topic_source: str = ""
    answer_source: str = ""
    maintenance_severity: Optional[int] = None
    maintenance_reasons: List[str] = field(default_factory=list)
    maintenance_traffic_level: str = "green"
    maintenance_traffic_label: str = ""

    maintenance_override: OverrideSource = OverrideSource.NONE
    answer_override: OverrideSource = OverrideSource.NONE
    topic_override: OverrideSource = OverrideSource.NONE
    manual_maintenance_note: str = ""
    manual_answer_note: str = ""
    manual_topic_note: str = ""
    manual_edited: bool = False

    image_files: List[str] = field(default_factory=list)

    @property
    def has_manual_maintenance_override(self) -> bool:
        return self.maintenance_override is OverrideSource.MANUAL

    @property
    def has_manual_answer_override(self) -> bool:
        return self.answer_override is OverrideSource.MANUAL

    @property
    def has_manual_topic_override(self) -> bool:
        return self.topic_override is OverrideSource.MANUAL

    def combined_topic(self) -> str:
        return " > ".join(part for part in (self.super_topic, self.sub_topic) if part)

    def set_topic_parts(self, super_topic: str, sub_topic: str) -> None:
        """Update both topic levels and keep ``topic`` consistent with them."""
        self.super_topic = (super_topic or "").strip()
        self.sub_topic = (sub_topic or "").strip()
        self.topic = self.combined_topic()

    def set_manual_override(self, kind: str, note: str) -> None:
        """Record (or with an empty note, clear) a manual override for ``kind``.

        ``kind`` is one of ``maintenance``, ``answer`` or ``topic``. An empty
        note only clears a manual override; AI or absent provenance is kept.
        """
        note = (note or "").strip()
        if not note and getattr(self, f"{kind}_override") is not OverrideSource.MANUAL:
            return
        source = OverrideSource.MANUAL if note else OverrideSource.NONE
        setattr(self, f"{kind}_override", source)
        setattr(self, f"manual_{kind}_note", note)

    def correct_indices(self) -> List[int]:
        return [idx for idx, answer in enumerate(self.answers) if answer.is_correct]

    @staticmethod
    def answer_label(index: int) -> str:
        # spreadsheet-style: A..Z, AA..AZ, BA.. without an upper bound
        letters = string.ascii_uppercase
        label = ""
        index += 1
        while index > 0:
            index, rest = divmod(index - 1, len(letters))
            label = letters[rest] + label
        return label


@dataclass(frozen=True)
class TopicCatalog:
    """Two-level topic taxonomy: super-topic -> sorted sub-topics."""

    super_topics: List[str] = field(default_factory=list)
    sub_topics_by_super: Dict[str, List[str]] = field(default_factory=dict)
    all_sub_topics: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.super_topics

    def sub_topics_for(self, super_topic: str) -> List[str]:
        if not super_topic:
            return list(self.all_sub_topics)
        return list(self.sub_topics_by_super.get(super_topic, []))
