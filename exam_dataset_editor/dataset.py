"""Editing session over one or more loaded dataset documents."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from exam_dataset_editor.config import CONFIG
from exam_dataset_editor.io_utils import load_json, save_json
from exam_dataset_editor.models import Question, TopicCatalog
from exam_dataset_editor.normalizer import normalize_question, refresh_traffic_light
from exam_dataset_editor.sync import sync_question_to_source
from exam_dataset_editor.topic_catalog import MalformedTaxonomy, canonicalize_question_topics, parse_topic_tree

logger = logging.getLogger(__name__)


class DatasetFormatError(ValueError):
    """An input document carries no question list."""


@dataclass
class DatasetFile:
    label: str
    payload: Any


def questions_of(payload: Any) -> List[Any]:
    """Return the raw question list of a document (``{questions: [...]}`` or a bare list)."""
    if isinstance(payload, list):
        return payload
    field_name = CONFIG["QUESTIONS_FIELD"]
    if isinstance(payload, dict) and isinstance(payload.get(field_name), list):
        return payload[field_name]
    raise DatasetFormatError(f"Input must be a list of questions or {{{field_name}:[...]}} object.")


class EditorSession:
    """Holds the loaded documents, the canonical questions and the topic catalog."""

    def __init__(self) -> None:
        self.files: List[DatasetFile] = []
        self.questions: List[Question] = []
        self.topic_catalog: Optional[TopicCatalog] = None
        self.invalid_topics: Dict[str, List[str]] = {}

    def load_documents(self, documents: Sequence[Tuple[str, Any]]) -> List[Question]:
        """Replace the session content with ``(label, payload)`` documents."""
        by_id: Dict[str, Question] = {}
        files: List[DatasetFile] = []
        for file_index, (label, payload) in enumerate(documents):
            records = questions_of(payload)
            files.append(DatasetFile(label=label, payload=payload))
            skipped = 0
            for record in records:
                question = normalize_question(record, file_index)
                if question is None:
                    skipped += 1
                    continue
                by_id[question.id] = question
            logger.info("Loaded %s: %d record(s), %d without id", label, len(records), skipped)

        self.files = files
        self.questions = list(by_id.values())
        self.invalid_topics = {}
        return self.questions

    def load_files(self, paths: Iterable[str]) -> List[Question]:
        return self.load_documents([(path, load_json(path)) for path in paths])

    def install_topic_catalog(self, document: Any) -> Optional[TopicCatalog]:
        """Parse and install a topic tree; an empty result installs no catalog.

        On :class:`MalformedTaxonomy` the previous catalog is cleared and the
        error propagates.
        """
        try:
            catalog = parse_topic_tree(document)
        except MalformedTaxonomy:
            self.topic_catalog = None
            raise
        if catalog.is_empty:
            logger.warning("Topic tree contains no recognisable super-/sub-topics; ignoring it.")
            self.topic_catalog = None
        else:
            self.topic_catalog = catalog
        return self.topic_catalog

    def load_topic_file(self, path: str) -> Optional[TopicCatalog]:
        with open(path, "rb") as fh:
            return self.install_topic_catalog(fh.read())

    def clear_topic_catalog(self) -> None:
        self.topic_catalog = None

    def question_index(self) -> Dict[str, Question]:
        return {q.id: q for q in self.questions}

    def sync_all(self) -> None:
        """Canonicalize topics against the catalog (if any) and write every question back."""
        self.invalid_topics = {}
        for q in self.questions:
            if self.topic_catalog is not None:
                invalid = canonicalize_question_topics(q, self.topic_catalog)
                if invalid:
                    self.invalid_topics[q.id] = invalid
            refresh_traffic_light(q)
            sync_question_to_source(q)
        if self.invalid_topics:
            logger.warning("%d question(s) had topics outside the catalog", len(self.invalid_topics))

    def build_exports(self) -> List[Tuple[str, Any]]:
        return [(f.label, f.payload) for f in self.files]

    def save(self, output_dir: str = "", suffix: str = "") -> List[str]:
        """Sync and write every document; returns the written paths."""
        self.sync_all()
        written: List[str] = []
        for label, payload in self.build_exports():
            stem, ext = os.path.splitext(os.path.basename(label))
            directory = output_dir or os.path.dirname(label)
            path = os.path.join(directory, f"{stem}{suffix}{ext or '.json'}")
            save_json(path, payload)
            written.append(path)
        logger.info("Wrote %d file(s)", len(written))
        return written
