"""Topic catalog parsing, canonicalization and formatting.

Topic tree documents come from many tools and are not schema-checked. The
parser walks any JSON shape depth-first and recognises a small, closed set of
node shapes by inspection:

* list            -> walk every entry in the current super-topic context
* string leaf     -> sub-topic of the current super-topic
* object w/ name  -> super-topic (top level) or sub-topic (inside a super)
* object w/ children / explicit sub key
* bare map        -> ``{super: [subs]}`` / ``{super: "sub"}`` / ``{super: {...}}``
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from exam_dataset_editor.io_utils import parse_json_text
from exam_dataset_editor.models import Question, TopicCatalog
from exam_dataset_editor.text_utils import fold_key, fold_token, norm_space

logger = logging.getLogger(__name__)

ROOT_KEYS = ("superTopics", "super_topics", "topics", "themen", "topicTree", "topic_tree")
NAME_KEYS = (
    "name", "title", "label",
    "superTopic", "super_topic", "superThema", "oberThema", "hauptThema", "ueberthema", "topic",
)
CHILDREN_KEYS = (
    "subtopics", "subTopics", "sub_themes", "subThemen", "unterthemen", "unterThemen",
    "children", "topics",
)
EXPLICIT_SUB_KEYS = ("subtopic", "subTopic", "sub_theme", "unterthema", "unterThema", "child", "sub")

TOPIC_TREE_FILENAMES = (
    "topic-tree.json", "topic_tree.json", "topicTree.json",
    "themen-tree.json", "themenbaum.json", "topics.json",
)
_TOPIC_TREE_FILE_RE = re.compile(r"(topic|themen?)[-_]?(tree|baum).*\.json$", re.IGNORECASE)

_MISSING = object()


class MalformedTaxonomy(ValueError):
    """The topic tree document is not parseable structured data."""


def _value_by_keys(node: Any, variants: Sequence[str]) -> Any:
    """Look up the first of ``variants`` in ``node``, comparing diacritic-folded keys."""
    if not isinstance(node, dict):
        return _MISSING
    folded: Dict[str, Any] = {}
    for key, value in node.items():
        folded.setdefault(fold_key(key), value)
    for variant in variants:
        token = fold_key(variant)
        if token in folded:
            return folded[token]
    return _MISSING


def _scalar_text(value: Any) -> str:
    if value is _MISSING or value is None or isinstance(value, (bool, dict, list)):
        return ""
    return norm_space(value)


class _CatalogBuilder:
    def __init__(self) -> None:
        self.subs_by_super: Dict[str, List[str]] = {}

    def push(self, super_name: str, sub_name: str = "") -> None:
        over = norm_space(super_name)
        if not over:
            return
        subs = self.subs_by_super.setdefault(over, [])
        under = norm_space(sub_name)
        if under and under not in subs:
            subs.append(under)

    def build(self) -> TopicCatalog:
        by_super = {key: sorted(set(values)) for key, values in self.subs_by_super.items()}
        all_subs = sorted({sub for values in by_super.values() for sub in values})
        return TopicCatalog(
            super_topics=sorted(by_super),
            sub_topics_by_super=by_super,
            all_sub_topics=all_subs,
        )

    def walk(self, node: Any, current_super: str = "") -> None:
        if node is None:
            return
        if isinstance(node, list):
            for entry in node:
                self.walk(entry, current_super)
            return
        if isinstance(node, str):
            if current_super:
                self.push(current_super, node)
            return
        if not isinstance(node, dict):
            return

        name = _scalar_text(_value_by_keys(node, NAME_KEYS))
        explicit_sub = _scalar_text(_value_by_keys(node, EXPLICIT_SUB_KEYS))
        children = _value_by_keys(node, CHILDREN_KEYS)
        if not isinstance(children, list):
            children = None

        if name and current_super and not explicit_sub:
            # named node inside a super-topic: a sub-topic; deeper levels are flattened
            self.push(current_super, name)
            if children is not None:
                self.walk(children, current_super)
            return

        if name or explicit_sub or children is not None:
            super_name = name or current_super
            if super_name:
                self.push(super_name)
            if children is not None:
                self.walk(children, super_name)
            if explicit_sub and super_name:
                self.push(super_name, explicit_sub)
            return

        self._walk_bare_map(node, current_super)

    def _walk_bare_map(self, node: Dict[str, Any], current_super: str) -> None:
        for key, value in node.items():
            label = norm_space(key)
            if not label:
                continue
            if current_super:
                self.push(current_super, label)
                if isinstance(value, (list, dict)):
                    self.walk(value, current_super)
                continue
            if isinstance(value, str):
                self.push(label, value)
            elif isinstance(value, (list, dict)):
                self.push(label)
                self.walk(value, label)
            elif value is None:
                self.push(label)


def load_topic_document(document: Any) -> Any:
    """Return the structured form of ``document`` or raise :class:`MalformedTaxonomy`."""
    if isinstance(document, bytes):
        try:
            document = document.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedTaxonomy(f"Topic tree is not UTF-8 text: {exc}") from exc
    if isinstance(document, str):
        try:
            document = parse_json_text(document)
        except ValueError as exc:
            raise MalformedTaxonomy(f"Topic tree is not valid JSON: {exc}") from exc
    if not isinstance(document, (dict, list)):
        raise MalformedTaxonomy(f"Topic tree must be a JSON object or array, got {type(document).__name__}.")
    return document


def parse_topic_tree(document: Any) -> TopicCatalog:
    """Build a :class:`TopicCatalog` from a topic tree of any supported shape.

    Only unparseable input raises; unrecognised shapes give an empty catalog.
    """
    source = load_topic_document(document)
    root = _value_by_keys(source, ROOT_KEYS)
    if root is _MISSING or not isinstance(root, (dict, list)):
        root = source

    builder = _CatalogBuilder()
    builder.walk(root)
    catalog = builder.build()
    logger.debug(
        "Parsed topic tree: %d super-topics, %d sub-topics",
        len(catalog.super_topics), len(catalog.all_sub_topics),
    )
    return catalog


def canonicalize_topic(value: Any, allowed_values: Iterable[str]) -> str:
    """Return the allowed spelling of ``value`` or ``""`` when nothing matches."""
    token = fold_token(value)
    if not token:
        return ""
    for entry in allowed_values or []:
        if fold_token(entry) == token:
            return entry
    return ""


def canonicalize_question_topics(question: Question, catalog: TopicCatalog) -> List[str]:
    """Snap a question's topic parts to the catalog spelling.

    Values without a catalog match are cleared; their field names are returned
    so callers can flag them as invalid.
    """
    invalid: List[str] = []

    super_topic = canonicalize_topic(question.super_topic, catalog.super_topics)
    if question.super_topic and not super_topic:
        invalid.append("super_topic")

    sub_topic = canonicalize_topic(question.sub_topic, catalog.sub_topics_for(super_topic))
    if question.sub_topic and not sub_topic:
        invalid.append("sub_topic")

    question.set_topic_parts(super_topic, sub_topic)
    return invalid


def find_topic_tree_file(filenames: Iterable[str]) -> Optional[str]:
    """Pick the topic tree file out of a directory listing."""
    names = [name for name in filenames if name]
    by_lower = {os.path.basename(name).lower(): name for name in names}
    for candidate in TOPIC_TREE_FILENAMES:
        match = by_lower.get(candidate.lower())
        if match:
            return match
    for name in names:
        if _TOPIC_TREE_FILE_RE.search(os.path.basename(name)):
            return name
    return None


def format_topic_catalog(catalog: TopicCatalog) -> str:
    lines = ["Themenstruktur:"]
    for s_idx, super_topic in enumerate(catalog.super_topics, start=1):
        lines.append(f"\n{s_idx}. {super_topic}")
        for sub_topic in catalog.sub_topics_by_super.get(super_topic, []):
            lines.append(f"  - {sub_topic}")
    return "\n".join(lines)
