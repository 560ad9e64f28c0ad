"""Decision policies for the maintenance traffic light (green / yellow / red)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from exam_dataset_editor.config import MAINTENANCE_TRAFFIC_RULES

LEVEL_GREEN = "green"
LEVEL_YELLOW = "yellow"
LEVEL_RED = "red"

_LEVEL_RANK = {LEVEL_GREEN: 0, LEVEL_YELLOW: 1, LEVEL_RED: 2}


@dataclass
class MaintenanceFacts:
    hard_issue: bool = False
    soft_issue_count: int = 0
    soft_issues: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TrafficLight:
    level: str
    label: str
    color: str

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self.level]


def collect_maintenance_facts(
    *,
    needs_maintenance: bool,
    severity: Optional[int],
    reason_count: int,
    answer_confidence: Optional[float],
    topic_confidence: Optional[float],
    answer_option_count: int,
    thresholds: Optional[Dict[str, Any]] = None,
) -> MaintenanceFacts:
    """Turn extracted question facts into hard/soft maintenance issues.

    Each soft check adds one point on its own, so a very low answer confidence
    counts both as soft-low and as hard-low.
    """
    t = thresholds or MAINTENANCE_TRAFFIC_RULES["thresholds"]
    facts = MaintenanceFacts()

    if needs_maintenance:
        facts.hard_issue = True
    if severity is not None and severity >= t["hardSeverityMin"]:
        facts.hard_issue = True

    checks = [
        ("severity", severity is not None and severity >= t["softSeverityMin"]),
        ("maintenance_reasons", reason_count > 0),
        ("low_answer_confidence", answer_confidence is not None and answer_confidence <= t["lowConfidenceSoftMax"]),
        ("low_topic_confidence", topic_confidence is not None and topic_confidence <= t["lowConfidenceSoftMax"]),
        ("very_low_answer_confidence", answer_confidence is not None and answer_confidence <= t["lowConfidenceHardMax"]),
        ("few_answer_options", answer_option_count < t["minAnswerOptions"]),
    ]
    facts.soft_issues = [name for name, hit in checks if hit]
    facts.soft_issue_count = len(facts.soft_issues)
    return facts


def classify_maintenance(facts: MaintenanceFacts, rules: Optional[Dict[str, Any]] = None) -> TrafficLight:
    rules = rules or MAINTENANCE_TRAFFIC_RULES
    soft_for_red = int(rules["thresholds"]["softIssuesForRed"])
    soft = int(facts.soft_issue_count or 0)

    if facts.hard_issue or soft >= soft_for_red:
        level = LEVEL_RED
    elif soft >= 1:
        level = LEVEL_YELLOW
    else:
        level = LEVEL_GREEN
    level_rules = rules["levels"][level]
    return TrafficLight(level=level, label=level_rules["label"], color=level_rules["color"])


def evaluate_question_maintenance(question: Any) -> TrafficLight:
    """Classify a canonical question from the facts it already carries."""
    facts = collect_maintenance_facts(
        needs_maintenance=bool(question.needs_maintenance),
        severity=question.maintenance_severity,
        reason_count=len(question.maintenance_reasons or []),
        answer_confidence=question.answer_confidence,
        topic_confidence=question.topic_confidence,
        answer_option_count=len(question.answers or []),
    )
    return classify_maintenance(facts)
