import pytest

from exam_dataset_editor.audit import (
    coerce_confidence,
    detect_manual_overrides,
    evaluate_ai_changed_label,
    extract_audit_facts,
    resolve_display_text,
    select_answer_pass,
)
from exam_dataset_editor.models import OverrideSource


@pytest.mark.parametrize("value", [-5, -0.1, 0, 0.3, 1, 1.7, 42, "0.8", "0,25", float("inf")])
def test_numeric_confidence_is_clamped(value):
    conf = coerce_confidence(value)
    assert conf is not None
    assert 0.0 <= conf <= 1.0


@pytest.mark.parametrize("value", [None, "", "hoch", True, False, [0.5], {"v": 1}, float("nan")])
def test_non_numeric_confidence_is_absent(value):
    assert coerce_confidence(value) is None


def test_asserted_zero_is_not_absent():
    assert coerce_confidence(0) == 0.0


def test_topic_confidence_prefers_final_over_initial_over_flat(ai_record):
    facts = extract_audit_facts(ai_record)
    assert facts.topic_confidence == pytest.approx(0.91)
    assert facts.topic_source == "topicFinal"

    del ai_record["aiAudit"]["topicFinal"]
    facts = extract_audit_facts(ai_record)
    assert facts.topic_confidence == pytest.approx(0.55)
    assert facts.topic_source == "topicInitial"

    del ai_record["aiAudit"]
    facts = extract_audit_facts(ai_record)
    assert facts.topic_confidence == pytest.approx(0.91)
    assert facts.topic_source == "legacy"


def test_pass_b_block_beats_pass_a(ai_record):
    ai_record["aiAudit"]["answerPlausibility"]["passB"] = {
        "confidence": 0.4,
        "recommendChange": True,
        "reasonShort": "B sagt nein",
    }
    facts = extract_audit_facts(ai_record)
    assert facts.answer_source == "passB"
    assert facts.answer_confidence == pytest.approx(0.4)
    assert facts.recommend_change is True
    assert facts.answer_reason == "B sagt nein"


def test_successful_verification_counts_as_pass_b(ai_record):
    ai_record["aiAudit"]["answerPlausibility"]["verification"] = {
        "ran": True,
        "confidence": 0.95,
        "agreeWithChange": True,
        "reasonShort": "bestätigt",
    }
    block, name = select_answer_pass(ai_record)
    assert name == "verification"
    facts = extract_audit_facts(ai_record)
    assert facts.answer_confidence == pytest.approx(0.95)
    assert facts.recommend_change is True


def test_failed_verification_falls_back_to_pass_a(ai_record):
    ai_record["aiAudit"]["answerPlausibility"]["verification"] = {"ran": True, "error": "timeout"}
    _, name = select_answer_pass(ai_record)
    assert name == "passA"


def test_missing_audit_degrades_to_defaults():
    facts = extract_audit_facts({"id": "x"})
    assert facts.topic_confidence is None
    assert facts.answer_confidence is None
    assert facts.recommend_change is False
    assert facts.needs_maintenance is False
    assert facts.topic_reason == ""
    assert facts.maintenance_reasons == []


def test_maintenance_flag_precedence():
    record = {
        "aiAudit": {"maintenance": {"needsMaintenance": False, "severity": 2, "reasons": ["x"]}},
        "aiNeedsMaintenance": True,
        "wartung": True,
    }
    facts = extract_audit_facts(record)
    assert facts.needs_maintenance is False
    assert facts.maintenance_severity == 2
    assert facts.maintenance_reasons == ["x"]

    del record["aiAudit"]
    assert extract_audit_facts(record).needs_maintenance is True

    assert extract_audit_facts({"fehlerhaft": "ja"}).needs_maintenance is True
    assert extract_audit_facts({"Wartung": 0}).needs_maintenance is False


def test_manual_answer_override_wins_for_display(ai_record):
    ai_record["annotations"] = {"manualAnswerReason": "Laut Skript S. 12"}
    overrides = detect_manual_overrides(ai_record)
    assert overrides.answer is OverrideSource.MANUAL
    assert overrides.topic is OverrideSource.AI
    assert overrides.maintenance is OverrideSource.NONE
    assert resolve_display_text(ai_record, "answer", overrides) == "Laut Skript S. 12"


def test_display_text_prefers_detailed_and_newer_passes(ai_record):
    assert resolve_display_text(ai_record, "answer") == "Pass A ausführlich"
    ai_record["aiAudit"]["answerPlausibility"]["passB"] = {"reasonShort": "B kurz"}
    assert resolve_display_text(ai_record, "answer") == "B kurz"
    ai_record["aiAudit"]["answerPlausibility"]["finalPass"] = {"reasonDetailed": "Final lang", "reasonShort": "kurz"}
    assert resolve_display_text(ai_record, "answer") == "Final lang"


def test_manual_edited_is_read_from_annotations():
    overrides = detect_manual_overrides({"annotations": {"manualEdited": True}})
    assert overrides.manual_edited is True


@pytest.mark.parametrize(
    "changed, original, final, expected",
    [
        (True, [0], [0], True),
        (False, [0], [1], False),
        (None, [0], [1], True),
        (None, [0, 1], [0, 1], False),
        (None, [], [1], False),
        (None, None, [1], False),
    ],
)
def test_evaluate_ai_changed_label(changed, original, final, expected):
    assert evaluate_ai_changed_label(
        changed_in_dataset=changed,
        original_correct_indices=original,
        final_correct_indices=final,
    ) is expected


def test_ai_changed_answers_is_derived_from_the_plausibility_block(ai_record):
    plausibility = ai_record["aiAudit"]["answerPlausibility"]
    assert extract_audit_facts(ai_record).ai_changed_answers is False

    plausibility["originalCorrectIndices"] = [1]
    plausibility["finalCorrectIndices"] = [2]
    assert extract_audit_facts(ai_record).ai_changed_answers is True

    plausibility["changedInDataset"] = False
    assert extract_audit_facts(ai_record).ai_changed_answers is False
