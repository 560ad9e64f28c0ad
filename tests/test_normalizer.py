import logging

from exam_dataset_editor.models import OverrideSource
from exam_dataset_editor.normalizer import normalize, normalize_question


def test_legacy_combined_topic_is_split(legacy_record):
    q = normalize_question(legacy_record)
    assert q.id == "q1"
    assert q.topic_key == "topic"
    assert q.super_topic_key is None
    assert q.sub_topic_key is None
    assert q.super_topic == "Netzwerke"
    assert q.sub_topic == "TCP"
    assert q.topic == "Netzwerke > TCP"
    assert [a.id for a in q.answers] == ["ans_q1_0", "ans_q1_1"]
    assert q.correct_indices() == [0]
    assert q.source_ref is legacy_record


def test_legacy_record_without_audit_gets_defaults(legacy_record):
    q = normalize_question(legacy_record)
    assert q.topic_confidence is None
    assert q.answer_confidence is None
    assert q.recommend_change is False
    assert q.needs_maintenance is False
    assert q.needs_review is False
    assert q.maintenance_key is None
    # two answer options only
    assert q.maintenance_traffic_level == "yellow"


def test_ai_audited_record(ai_record):
    q = normalize_question(ai_record, file_index=3)
    assert q.source_file_index == 3
    assert q.exam_name == "Informatik I"
    assert q.exam_year == "2023"
    assert q.text == "Welches Protokoll ist verbindungsorientiert?"
    assert q.super_topic_key == "aiSuperTopic"
    assert q.sub_topic_key == "aiSubtopic"
    assert q.maintenance_key == "aiNeedsMaintenance"
    assert q.topic == "Netzwerke > Transportschicht"
    assert q.topic_confidence == 0.91
    assert q.topic_source == "topicFinal"
    assert q.topic_reason == "TCP und UDP liegen auf Schicht 4."
    assert q.answer_confidence == 0.7
    assert q.answer_source == "passA"
    assert q.answer_reason == "Pass A ausführlich"
    assert q.answer_override is OverrideSource.AI
    assert q.topic_override is OverrideSource.AI
    assert q.maintenance_override is OverrideSource.NONE
    assert q.maintenance_severity == 1
    assert q.maintenance_traffic_level == "green"
    assert q.maintenance_traffic_label == "gut"


def test_explicit_parts_win_over_combined_topic():
    q = normalize_question({
        "id": "q2",
        "topic": "Alt > Veraltet",
        "superTopic": "Datenbanken",
        "subTopic": "SQL",
    })
    assert (q.super_topic, q.sub_topic) == ("Datenbanken", "SQL")
    assert q.topic == "Datenbanken > SQL"


def test_manual_notes_are_picked_up():
    q = normalize_question({
        "id": "q3",
        "manualTopicReason": "Laut Modulhandbuch",
        "annotations": {"manualMaintenanceNote": "Bild unscharf", "manualEdited": True},
    })
    assert q.has_manual_topic_override
    assert q.topic_source == "manual"
    assert q.topic_reason == "Laut Modulhandbuch"
    assert q.has_manual_maintenance_override
    assert q.maintenance_reason == "Bild unscharf"
    assert not q.has_manual_answer_override
    assert q.manual_edited is True


def test_scalar_ids_and_float_years():
    q = normalize_question({"id": 17, "examYear": 2021.0, "needsReview": "ja"})
    assert q.id == "17"
    assert q.exam_year == "2021"
    assert q.needs_review is True


def test_records_without_usable_id_are_skipped(caplog):
    records = [
        {"questionText": "ohne id"},
        {"id": "   "},
        {"id": {"nested": 1}},
        {"id": True},
        "kein Objekt",
        {"id": "ok"},
    ]
    with caplog.at_level(logging.DEBUG, logger="exam_dataset_editor.normalizer"):
        questions = normalize(records)
    assert [q.id for q in questions] == ["ok"]
    assert "Skipped 5 record(s)" in caplog.text


def test_duplicate_ids_last_wins_keeping_first_position():
    questions = normalize([
        {"id": "a", "questionText": "erste"},
        {"id": "b", "questionText": "b"},
        {"id": "a", "questionText": "zweite"},
    ])
    assert [q.id for q in questions] == ["a", "b"]
    assert questions[0].text == "zweite"


def test_answers_given_as_plain_strings():
    q = normalize_question({"id": "s", "answers": ["Ja", " Nein "]})
    assert [a.text for a in q.answers] == ["Ja", "Nein"]
    assert q.correct_indices() == []


def test_image_files_are_cleaned():
    q = normalize_question({"id": "i", "imageFiles": [" img_i_1.png ", "", None, "img_i_2.png"]})
    assert q.image_files == ["img_i_1.png", "img_i_2.png"]
