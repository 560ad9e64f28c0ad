"""Command line interface for loading, checking and writing back exam datasets."""

import argparse
import logging
import os
from typing import List, Optional, Sequence

from exam_dataset_editor.config import CONFIG, EDITOR_VERSION
from exam_dataset_editor.dataset import EditorSession
from exam_dataset_editor.filters import (
    bulk_replace,
    count_by_traffic_level,
    filter_by_exams,
    filter_by_image_mode,
    filter_by_quality,
    filter_by_topics,
    filter_by_traffic_level,
    search_questions,
)
from exam_dataset_editor.image_store import QuestionImageStore
from exam_dataset_editor.models import Question
from exam_dataset_editor.topic_catalog import MalformedTaxonomy, format_topic_catalog


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Normalize, check and write back exam question datasets.")

    ap.add_argument("--input", nargs="+", default=[CONFIG["INPUT_PATH"]],
                    help="One or more dataset JSON files ({questions:[...]} or a bare list)")
    ap.add_argument("--topics", default=CONFIG["TOPICS_PATH"],
                    help="Topic tree JSON; ignored when the default file does not exist")
    ap.add_argument("--images-zip", default=CONFIG["IMAGES_ZIP_PATH"],
                    help="Optional ZIP with question images, used to report missing references")

    ap.add_argument("--write", action="store_true", help="Write synced documents back to disk")
    ap.add_argument("--output-dir", default=CONFIG["OUTPUT_DIR"],
                    help="Directory for written files (default: next to each input)")
    ap.add_argument("--suffix", default=CONFIG["OUTPUT_SUFFIX"],
                    help="Suffix inserted before the extension of written files ('' overwrites)")

    ap.add_argument("--replace", nargs=2, metavar=("SEARCH", "REPLACE"),
                    help="Bulk replace text in the selected questions (question, explanation, answers)")

    ap.add_argument("--list", action="store_true", help="Print the selected questions")
    ap.add_argument("--show-topics", action="store_true", help="Print the parsed topic catalog")
    ap.add_argument("--exam", action="append", default=[], help="Only questions of this exam (repeatable)")
    ap.add_argument("--topic", action="append", default=[],
                    help="Topic filter token 'super::<name>' or 'sub::<super>::<sub>' (repeatable)")
    ap.add_argument("--images", choices=["all", "with", "without"], default="all")
    ap.add_argument("--search", default="", help="';'-separated search terms")
    ap.add_argument("--search-in-answers", action="store_true")
    ap.add_argument("--max-topic-conf", type=float, default=1.0)
    ap.add_argument("--max-answer-conf", type=float, default=1.0)
    ap.add_argument("--only-recommend-change", action="store_true")
    ap.add_argument("--only-needs-maintenance", action="store_true")
    ap.add_argument("--level", action="append", choices=["green", "yellow", "red"], default=[],
                    help="Only questions with this maintenance traffic level (repeatable)")

    ap.add_argument("--log-level", default=CONFIG["LOG_LEVEL"])
    ap.add_argument("--version", action="version", version=EDITOR_VERSION)
    return ap


def select_questions(questions: Sequence[Question], args: argparse.Namespace) -> List[Question]:
    selected = filter_by_exams(questions, args.exam)
    selected = filter_by_image_mode(selected, args.images)
    selected = filter_by_topics(selected, args.topic)
    selected = filter_by_quality(
        selected,
        topic_confidence_max=args.max_topic_conf,
        answer_confidence_max=args.max_answer_conf,
        only_recommend_change=args.only_recommend_change,
        only_needs_maintenance=args.only_needs_maintenance,
    )
    selected = filter_by_traffic_level(selected, args.level)
    return search_questions(selected, args.search, in_answers=args.search_in_answers)


def _conf(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:.2f}"


def _format_question_line(q: Question) -> str:
    correct = ",".join(Question.answer_label(i) for i in q.correct_indices()) or "-"
    return (
        f"[{q.maintenance_traffic_level:<6}] {q.id} | {q.exam_name or '-'} {q.exam_year or ''} | "
        f"{q.topic or '-'} | correct={correct} | topicConf={_conf(q.topic_confidence)} "
        f"answerConf={_conf(q.answer_confidence)}"
        + (" | aiChangedAnswers" if q.ai_changed_answers else "")
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    session = EditorSession()
    questions = session.load_files(args.input)

    if args.topics:
        if os.path.exists(args.topics):
            try:
                session.load_topic_file(args.topics)
            except MalformedTaxonomy as exc:
                print(f"Topic tree could not be read: {exc}")
                return 2
        elif args.topics != CONFIG["TOPICS_PATH"]:
            raise FileNotFoundError(f"--topics file not found: {args.topics}")

    if args.show_topics and session.topic_catalog is not None:
        print(format_topic_catalog(session.topic_catalog))

    selected = select_questions(questions, args)

    if args.replace:
        search_text, replace_text = args.replace
        changed = bulk_replace(selected, search_text, replace_text)
        print(f"Bulk replace applied to {changed} question(s).")

    if args.images_zip:
        if os.path.exists(args.images_zip):
            store = QuestionImageStore.from_zip(args.images_zip)
            for q in selected:
                missing = store.missing_refs(q)
                if missing:
                    print(f"{q.id}: missing images {', '.join(missing)}")
        elif args.images_zip != CONFIG["IMAGES_ZIP_PATH"]:
            raise FileNotFoundError(f"--images-zip file not found: {args.images_zip}")

    if args.list:
        for q in selected:
            print(_format_question_line(q))

    counts = count_by_traffic_level(selected)
    print(
        f"Loaded {len(questions)} question(s) from {len(session.files)} file(s); selected {len(selected)} "
        f"(green={counts['green']} yellow={counts['yellow']} red={counts['red']})."
    )

    if args.write:
        written = session.save(output_dir=args.output_dir, suffix=args.suffix)
        if session.invalid_topics:
            print(f"{len(session.invalid_topics)} question(s) had topics outside the catalog (cleared).")
        print(f"Finished. Output: {', '.join(written)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
