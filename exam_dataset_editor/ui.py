"""Streamlit UI for browsing, filtering and editing exam datasets locally.

Run with ``streamlit run exam_dataset_editor/ui.py``.
"""

import os
from typing import List, Optional

import streamlit as st

from exam_dataset_editor.config import CONFIG
from exam_dataset_editor.dataset import EditorSession
from exam_dataset_editor.filters import (
    bulk_replace,
    count_by_traffic_level,
    exam_names,
    filter_by_exams,
    filter_by_image_mode,
    filter_by_quality,
    filter_by_topics,
    filter_by_traffic_level,
    search_questions,
    sub_topic_token,
    super_topic_token,
)
from exam_dataset_editor.image_store import QuestionImageStore
from exam_dataset_editor.models import Answer, Question
from exam_dataset_editor.normalizer import refresh_traffic_light
from exam_dataset_editor.topic_catalog import MalformedTaxonomy, find_topic_tree_file

_LEVEL_ICONS = {"green": "🟢", "yellow": "🟡", "red": "🔴"}


def _resolve_path(*, folder: str, filename: str) -> str:
    folder = (folder or "").strip()
    filename = (filename or "").strip()

    if not filename:
        return ""
    if os.path.isabs(filename):
        return filename
    if folder:
        return os.path.join(folder, filename)
    return filename


def _default_topics_path(folder: str) -> str:
    if folder and os.path.isdir(folder):
        found = find_topic_tree_file(os.listdir(folder))
        if found:
            return os.path.join(folder, found)
    return _resolve_path(folder=folder, filename=CONFIG["TOPICS_PATH"])


def _session() -> Optional[EditorSession]:
    return st.session_state.get("editor_session")


def _image_store() -> Optional[QuestionImageStore]:
    return st.session_state.get("image_store")


def _load_dataset(input_paths: List[str], topics_path: str, images_zip: str) -> None:
    session = EditorSession()
    try:
        session.load_files(input_paths)
    except (OSError, ValueError) as exc:
        st.error(f"Datensatz konnte nicht geladen werden: {exc}")
        return

    if topics_path and os.path.exists(topics_path):
        try:
            if session.load_topic_file(topics_path) is None:
                st.warning("Themenstruktur wurde gefunden, enthält aber keine erkennbaren Über-/Unterthemen.")
        except MalformedTaxonomy as exc:
            st.warning(f"Themenstruktur konnte nicht gelesen werden: {exc}")

    store = None
    if images_zip and os.path.exists(images_zip):
        store = QuestionImageStore.from_zip(images_zip)

    st.session_state["editor_session"] = session
    st.session_state["image_store"] = store
    st.session_state["dirty"] = False
    st.success(f"{len(session.questions)} Fragen aus {len(session.files)} Datei(en) geladen.")


def _sidebar_sources() -> None:
    with st.sidebar:
        st.header("Datensatz")
        folder = st.text_input("Datenordner", value=st.session_state.get("data_folder", os.getcwd()))
        st.session_state["data_folder"] = folder

        inputs_raw = st.text_area(
            "Export-JSON (eine Datei pro Zeile)",
            value=_resolve_path(folder=folder, filename=CONFIG["INPUT_PATH"]),
        )
        topics_path = st.text_input("Themenstruktur JSON", value=_default_topics_path(folder))
        images_zip = st.text_input(
            "Fragenbilder ZIP",
            value=_resolve_path(folder=folder, filename=CONFIG["IMAGES_ZIP_PATH"]),
        )
        if st.button("📂 Laden", key="load_dataset"):
            paths = [_resolve_path(folder=folder, filename=line) for line in inputs_raw.splitlines() if line.strip()]
            _load_dataset(paths, topics_path.strip(), images_zip.strip())


def _sidebar_filters(session: EditorSession) -> List[Question]:
    questions = session.questions
    with st.sidebar:
        st.header("Filter")
        exams = st.multiselect("Prüfungen", exam_names(questions))

        topic_tokens: List[str] = []
        if session.topic_catalog is not None:
            supers = st.multiselect("Überthemen", session.topic_catalog.super_topics)
            topic_tokens.extend(super_topic_token(s) for s in supers)
            sub_options = [
                sub_topic_token(s, sub)
                for s in session.topic_catalog.super_topics
                for sub in session.topic_catalog.sub_topics_by_super.get(s, [])
            ]
            subs = st.multiselect("Unterthemen", sub_options, format_func=lambda t: t.split("::", 1)[1].replace("::", " > "))
            topic_tokens.extend(subs)

        image_mode = st.radio("Bilder", ["all", "with", "without"], horizontal=True)
        query = st.text_input("Suche (Begriffe mit ; trennen)")
        in_answers = st.checkbox("Auch in Antworten suchen")
        topic_max = st.slider("Themen-Konfidenz ≤", 0.0, 1.0, 1.0, 0.01)
        answer_max = st.slider("Antwort-Konfidenz ≤", 0.0, 1.0, 1.0, 0.01)
        only_change = st.checkbox("Nur Änderungsempfehlungen")
        only_maintenance = st.checkbox("Nur Wartung nötig")
        levels = st.multiselect("Ampel", ["green", "yellow", "red"], format_func=lambda lv: f"{_LEVEL_ICONS[lv]} {lv}")

    selected = filter_by_exams(questions, exams)
    selected = filter_by_image_mode(selected, image_mode)
    selected = filter_by_topics(selected, topic_tokens)
    selected = filter_by_quality(
        selected,
        topic_confidence_max=topic_max,
        answer_confidence_max=answer_max,
        only_recommend_change=only_change,
        only_needs_maintenance=only_maintenance,
    )
    selected = filter_by_traffic_level(selected, levels)
    return search_questions(selected, query, in_answers=in_answers)


def _topic_inputs(session: EditorSession, q: Question) -> None:
    catalog = session.topic_catalog
    if catalog is None:
        super_topic = st.text_input("Überthema", value=q.super_topic, key=f"super_{q.id}")
        sub_topic = st.text_input("Unterthema", value=q.sub_topic, key=f"sub_{q.id}")
    else:
        super_options = [""] + catalog.super_topics
        super_topic = st.selectbox(
            "Überthema", super_options,
            index=super_options.index(q.super_topic) if q.super_topic in super_options else 0,
            key=f"super_{q.id}",
        )
        sub_options = [""] + catalog.sub_topics_for(super_topic)
        sub_topic = st.selectbox(
            "Unterthema", sub_options,
            index=sub_options.index(q.sub_topic) if q.sub_topic in sub_options else 0,
            key=f"sub_{q.id}",
        )
        if q.super_topic and q.super_topic not in catalog.super_topics:
            st.caption(f"⚠️ Überthema „{q.super_topic}“ ist nicht in der Themenstruktur.")
    st.session_state[f"topic_parts_{q.id}"] = (super_topic, sub_topic)


def _question_editor(session: EditorSession, q: Question) -> None:
    st.subheader(f"{_LEVEL_ICONS.get(q.maintenance_traffic_level, '')} {q.id}")
    st.caption(
        f"Ampel: {q.maintenance_traffic_label} · Themen-Konfidenz: {q.topic_confidence if q.topic_confidence is not None else '–'}"
        f" · Antwort-Konfidenz: {q.answer_confidence if q.answer_confidence is not None else '–'}"
        + (" · Lösung von KI geändert" if q.ai_changed_answers else "")
    )
    if q.topic_reason:
        st.info(f"Themenbegründung ({q.topic_source or 'KI'}): {q.topic_reason}")
    if q.answer_reason:
        st.info(f"Lösungshinweis ({q.answer_source or 'KI'}): {q.answer_reason}")
    if q.maintenance_reason:
        st.warning(f"Wartung: {q.maintenance_reason}")

    store = _image_store()
    if store is not None:
        for entry in store.entries_for_question(q):
            st.image(store.read(entry), caption=entry.stem)
        missing = store.missing_refs(q)
        if missing:
            st.caption(f"Fehlende Bilder: {', '.join(missing)}")

    _topic_inputs(session, q)

    with st.form(key=f"edit_{q.id}"):
        cols = st.columns([3, 1])
        exam_name = cols[0].text_input("Prüfung", value=q.exam_name)
        exam_year = cols[1].text_input("Jahr", value=q.exam_year)
        text = st.text_area("Frage", value=q.text)

        answer_rows = []
        for idx, answer in enumerate(q.answers):
            a_cols = st.columns([1, 8])
            correct = a_cols[0].checkbox(Question.answer_label(idx), value=answer.is_correct, key=f"correct_{q.id}_{idx}")
            answer_text = a_cols[1].text_input(f"Antwort {Question.answer_label(idx)}", value=answer.text,
                                               key=f"answer_{q.id}_{idx}", label_visibility="collapsed")
            answer_rows.append((answer.id, answer_text, correct))
        new_answer = st.text_input("Neue Antwort (optional)")

        explanation = st.text_area("Erklärung", value=q.explanation)
        needs_review = st.checkbox("Überarbeitung nötig", value=q.needs_review)
        maintenance_note = st.text_input("Manuelle Wartungsnotiz", value=q.manual_maintenance_note)
        answer_note = st.text_input("Manueller Lösungshinweis", value=q.manual_answer_note)
        topic_note = st.text_input("Manuelle Themenbegründung", value=q.manual_topic_note)
        submitted = st.form_submit_button("💾 Übernehmen")

    if not submitted:
        return

    q.exam_name = exam_name.strip()
    q.exam_year = exam_year.strip()
    q.text = text.strip()
    q.explanation = explanation.strip()
    q.answers = [Answer(id=a_id, text=a_text.strip(), is_correct=bool(a_correct)) for a_id, a_text, a_correct in answer_rows]
    if new_answer.strip():
        q.answers.append(Answer(id=f"ans_{q.id}_{len(q.answers)}", text=new_answer.strip()))
    super_topic, sub_topic = st.session_state.get(f"topic_parts_{q.id}", (q.super_topic, q.sub_topic))
    q.set_topic_parts(super_topic, sub_topic)
    q.needs_review = needs_review
    q.set_manual_override("maintenance", maintenance_note)
    q.set_manual_override("answer", answer_note)
    q.set_manual_override("topic", topic_note)
    q.manual_edited = True
    refresh_traffic_light(q)
    st.session_state["dirty"] = True
    st.success("Änderungen übernommen (noch nicht gespeichert).")


def _save_panel(session: EditorSession, selected: List[Question]) -> None:
    with st.expander("🔁 Suchen/Ersetzen in Trefferliste"):
        search_text = st.text_input("Suchen", key="bulk_search")
        replace_text = st.text_input("Ersetzen durch", key="bulk_replace")
        if st.button("Ersetzen", key="bulk_apply"):
            if not search_text:
                st.warning("Bitte einen Suchtext für Ersetzen eingeben.")
            else:
                changed = bulk_replace(selected, search_text, replace_text)
                st.session_state["dirty"] = changed > 0 or st.session_state.get("dirty", False)
                st.info(f"Suchen/Ersetzen auf {changed} Frage(n) angewendet.")

    cols = st.columns(2)
    output_dir = cols[0].text_input("Ausgabeordner (leer = neben Original)", value=CONFIG["OUTPUT_DIR"])
    suffix = cols[1].text_input("Dateisuffix (leer = Original überschreiben)", value=CONFIG["OUTPUT_SUFFIX"])
    if st.button("💾 Speichern", key="save_dataset"):
        written = session.save(output_dir=output_dir.strip(), suffix=suffix)
        st.session_state["dirty"] = False
        if session.invalid_topics:
            st.warning(f"{len(session.invalid_topics)} Frage(n) mit Themen außerhalb der Themenstruktur wurden geleert.")
        st.success("Gespeichert: " + ", ".join(written))


def main() -> None:
    st.set_page_config(page_title="Exam Dataset Editor", layout="wide")
    st.title("Exam Dataset Editor")

    _sidebar_sources()
    session = _session()
    if session is None:
        st.info("Bitte links einen Datensatz laden.")
        return

    selected = _sidebar_filters(session)
    counts = count_by_traffic_level(selected)
    st.caption(
        f"{len(selected)} von {len(session.questions)} Fragen · "
        f"🟢 {counts['green']} · 🟡 {counts['yellow']} · 🔴 {counts['red']}"
        + (" · ungespeicherte Änderungen" if st.session_state.get("dirty") else "")
    )

    if selected:
        by_id = {q.id: q for q in selected}
        chosen = st.selectbox(
            "Frage",
            list(by_id),
            format_func=lambda qid: f"{_LEVEL_ICONS.get(by_id[qid].maintenance_traffic_level, '')} {qid} · {by_id[qid].text[:80]}",
        )
        _question_editor(session, by_id[chosen])

    st.divider()
    _save_panel(session, selected)


if __name__ == "__main__":
    main()
