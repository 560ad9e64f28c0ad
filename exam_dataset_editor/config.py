"""Configuration defaults for the dataset editor CLI and UI."""

CONFIG = {
    "INPUT_PATH": "export.json",
    "TOPICS_PATH": "topic-tree.json",
    "OUTPUT_DIR": "",
    "OUTPUT_SUFFIX": ".edited",
    "IMAGES_ZIP_PATH": "images.zip",
    "QUESTIONS_FIELD": "questions",
    "DEFAULT_TOPIC_KEY": "topic",
    "DEFAULT_SUPER_TOPIC_KEY": "superTopic",
    "DEFAULT_SUB_TOPIC_KEY": "subTopic",
    "DEFAULT_MAINTENANCE_KEY": "needsReview",
    "MANUAL_EDIT_TAG": "manuell-bearbeitet",
    "NO_SUPER_TOPIC_LABEL": "(Ohne Überthema)",
    "LOG_LEVEL": "INFO",
}

MAINTENANCE_TRAFFIC_RULES = {
    "levels": {
        "green": {"label": "gut", "color": "green"},
        "yellow": {"label": "Wartung empfohlen", "color": "yellow/orange"},
        "red": {"label": "kritisch", "color": "red"},
    },
    "thresholds": {
        "hardSeverityMin": 3,
        "softSeverityMin": 2,
        "lowConfidenceSoftMax": 0.6,
        "lowConfidenceHardMax": 0.45,
        "minAnswerOptions": 3,
        "softIssuesForRed": 2,
    },
}

EDITOR_VERSION = "dataset-editor-v1"
