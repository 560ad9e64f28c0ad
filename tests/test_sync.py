import copy
import json

from exam_dataset_editor.models import Answer, Question
from exam_dataset_editor.normalizer import normalize_question
from exam_dataset_editor.sync import apply_correct_indices, sync_question_to_source


def test_legacy_record_write_back(legacy_record):
    q = normalize_question(legacy_record)
    sync_question_to_source(q)

    assert legacy_record["correctIndices"] == [0]
    assert legacy_record["correctAnswers"] == [{"index": 0, "text": "A", "html": "A"}]
    assert legacy_record["topic"] == "Netzwerke > TCP"
    assert legacy_record["superTopic"] == "Netzwerke"
    assert legacy_record["subTopic"] == "TCP"
    assert legacy_record["needsReview"] is False
    assert legacy_record["examName"] is None
    assert legacy_record["examYear"] is None
    assert [a["id"] for a in legacy_record["answers"]] == ["ans_q1_0", "ans_q1_1"]
    assert "questionHtml" not in legacy_record
    assert "tags" not in legacy_record


def test_sync_is_idempotent(ai_record):
    q = normalize_question(ai_record)
    sync_question_to_source(q)
    first = copy.deepcopy(ai_record)
    sync_question_to_source(q)
    assert ai_record == first


def test_detected_keys_are_reused(ai_record):
    q = normalize_question(ai_record)
    q.set_topic_parts("Netzwerke", "Anwendungsschicht")
    q.needs_review = True
    sync_question_to_source(q)

    assert ai_record["aiSuperTopic"] == "Netzwerke"
    assert ai_record["aiSubtopic"] == "Anwendungsschicht"
    assert ai_record["aiNeedsMaintenance"] is True
    assert ai_record["topic"] == "Netzwerke > Anwendungsschicht"
    assert "superTopic" not in ai_record
    assert "needsReview" not in ai_record
    # audit payload is read-only for the editor
    assert ai_record["aiAudit"]["topicFinal"]["subtopic"] == "Transportschicht"


def test_html_mirrors_only_existing_keys(ai_record):
    q = normalize_question(ai_record)
    q.text = "Welches Protokoll ist verbindungslos?"
    sync_question_to_source(q)
    assert ai_record["questionText"] == "Welches Protokoll ist verbindungslos?"
    assert ai_record["questionHtml"] == "Welches Protokoll ist verbindungslos?"
    assert "explanationHtml" not in ai_record


def test_answer_edits_regenerate_correct_indices_and_keep_extra_props(ai_record):
    q = normalize_question(ai_record)
    q.answers[0].is_correct = False
    q.answers[1].is_correct = True
    q.answers.append(Answer(id="", text="SCTP", is_correct=True))
    sync_question_to_source(q)

    assert ai_record["correctIndices"] == [1, 3]
    assert [c["text"] for c in ai_record["correctAnswers"]] == ["UDP", "SCTP"]
    assert ai_record["answers"][0]["votes"] == 12
    assert ai_record["answers"][0]["answerIndex"] == 1
    assert ai_record["answers"][3]["id"] == "ans_q-ai-1_3"
    assert ai_record["answers"][3]["html"] == "SCTP"


def test_removed_answers_are_dropped(ai_record):
    q = normalize_question(ai_record)
    del q.answers[2]
    sync_question_to_source(q)
    assert [a["text"] for a in ai_record["answers"]] == ["TCP", "UDP"]
    assert ai_record["correctIndices"] == [0]


def test_manual_override_is_written_and_cleared(ai_record):
    ai_record["answerReasonShort"] = "alte Notiz"
    q = normalize_question(ai_record)
    assert q.has_manual_answer_override

    q.set_manual_override("answer", "Laut Vorlesung Folie 7")
    sync_question_to_source(q)
    assert ai_record["manualAnswerReason"] == "Laut Vorlesung Folie 7"
    assert ai_record["annotations"]["manualAnswerReason"] == "Laut Vorlesung Folie 7"

    q.set_manual_override("answer", "")
    sync_question_to_source(q)
    assert "manualAnswerReason" not in ai_record
    assert "answerReasonShort" not in ai_record
    assert "manualAnswerReason" not in ai_record["annotations"]
    assert not normalize_question(ai_record).has_manual_answer_override


def test_manual_edit_tag_is_added_once(legacy_record):
    legacy_record["tags"] = ["klausur"]
    q = normalize_question(legacy_record)
    q.manual_edited = True
    sync_question_to_source(q)
    sync_question_to_source(q)

    assert legacy_record["tags"] == ["klausur", "manuell-bearbeitet"]
    assert legacy_record["manualEdited"] is True
    assert legacy_record["annotations"]["manualEdited"] is True


def test_exam_year_and_images(legacy_record):
    q = normalize_question(legacy_record)
    q.exam_name = "Mathe II"
    q.exam_year = "2022"
    q.image_files = [" img_q1_1.png", "", "img_q1_2.png "]
    sync_question_to_source(q)
    assert legacy_record["examName"] == "Mathe II"
    assert legacy_record["examYear"] == 2022
    assert legacy_record["imageFiles"] == ["img_q1_1.png", "img_q1_2.png"]

    q.exam_year = "WS 22/23"
    sync_question_to_source(q)
    assert legacy_record["examYear"] is None

    for text in ("nan", "inf", "-Infinity", "1e999"):
        q.exam_year = text
        sync_question_to_source(q)
        assert legacy_record["examYear"] is None
    assert "NaN" not in json.dumps(legacy_record)


def test_detached_question_is_a_no_op():
    q = Question(id="lose", text="ohne Quelle")
    sync_question_to_source(q)
    assert q.source_ref is None


def test_round_trip_preserves_canonical_fields(ai_record):
    q = normalize_question(ai_record)
    q.explanation = "Neu erklärt."
    q.set_manual_override("topic", "Modulhandbuch Kap. 3")
    sync_question_to_source(q)

    again = normalize_question(ai_record)
    assert again.explanation == "Neu erklärt."
    assert again.super_topic == q.super_topic
    assert again.sub_topic == q.sub_topic
    assert again.correct_indices() == q.correct_indices()
    assert again.topic_reason == "Modulhandbuch Kap. 3"
    assert again.topic_override == q.topic_override


def test_apply_correct_indices_on_raw_answers():
    raw = {"answers": [{"text": "x"}, {"text": "y", "html": "<b>y</b>", "isCorrect": True}]}
    apply_correct_indices(raw)
    assert raw["correctIndices"] == [1]
    assert raw["correctAnswers"] == [{"index": 1, "text": "y", "html": "<b>y</b>"}]
