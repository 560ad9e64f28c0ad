import copy

import pytest


AI_AUDITED_RECORD = {
    "id": "q-ai-1",
    "examName": "Informatik I",
    "examYear": 2023,
    "questionText": "Welches  Protokoll ist verbindungsorientiert?",
    "questionHtml": "<p>Welches Protokoll ist verbindungsorientiert?</p>",
    "explanationText": "TCP baut eine Verbindung auf.",
    "answers": [
        {"id": "a1", "text": "TCP", "isCorrect": True, "answerIndex": 1, "votes": 12},
        {"id": "a2", "text": "UDP", "isCorrect": False, "answerIndex": 2},
        {"id": "a3", "text": "ICMP", "isCorrect": False, "answerIndex": 3},
    ],
    "correctIndices": [0],
    "aiSuperTopic": "Netzwerke",
    "aiSubtopic": "Transportschicht",
    "aiTopicConfidence": 0.91,
    "aiNeedsMaintenance": False,
    "aiMaintenanceSeverity": 1,
    "aiMaintenanceReasons": [],
    "aiAudit": {
        "status": "completed",
        "topicInitial": {
            "superTopic": "Netzwerke",
            "subtopic": "Vermittlungsschicht",
            "confidence": 0.55,
            "reasonShort": "Erste Einschätzung",
            "reasonDetailed": "",
        },
        "topicFinal": {
            "superTopic": "Netzwerke",
            "subtopic": "Transportschicht",
            "confidence": 0.91,
            "reasonShort": "TCP ist ein Transportprotokoll",
            "reasonDetailed": "TCP und UDP liegen auf Schicht 4.",
            "source": "passA",
        },
        "answerPlausibility": {
            "passA": {
                "isPlausible": True,
                "confidence": 0.7,
                "recommendChange": False,
                "reasonShort": "Pass A kurz",
                "reasonDetailed": "Pass A ausführlich",
            },
            "verification": {"ran": False},
            "finalAnswerConfidence": 0.7,
        },
        "maintenance": {"needsMaintenance": False, "severity": 1, "reasons": []},
    },
    "imageFiles": [],
}

LEGACY_RECORD = {
    "id": "q1",
    "topic": "Netzwerke > TCP",
    "answers": [{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": False}],
}


@pytest.fixture
def ai_record():
    return copy.deepcopy(AI_AUDITED_RECORD)


@pytest.fixture
def legacy_record():
    return copy.deepcopy(LEGACY_RECORD)
