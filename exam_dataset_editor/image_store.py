"""Image lookup for question-linked image ZIP archives."""

from __future__ import annotations

import mimetypes
import os
import zipfile
from dataclasses import dataclass
from typing import Dict, List, Optional

from exam_dataset_editor.models import Question


@dataclass(frozen=True)
class ImageEntry:
    archive_path: str
    stem: str
    question_id: str
    mime_type: str


class QuestionImageStore:
    """Index of a ZIP's images by reference (file name or stem) and question id."""

    def __init__(self, zip_path: str, entries: List[ImageEntry]):
        self.zip_path = zip_path
        self._entries = entries
        self._by_ref: Dict[str, ImageEntry] = {}
        self._by_question_id: Dict[str, List[ImageEntry]] = {}
        for entry in entries:
            self._by_ref.setdefault(entry.stem, entry)
            self._by_ref.setdefault(os.path.basename(entry.archive_path), entry)
            self._by_ref.setdefault(entry.archive_path, entry)
            if entry.question_id:
                self._by_question_id.setdefault(entry.question_id, []).append(entry)

        for values in self._by_question_id.values():
            values.sort(key=lambda item: item.stem)

    @classmethod
    def from_zip(cls, zip_path: str) -> "QuestionImageStore":
        if not os.path.exists(zip_path):
            raise FileNotFoundError(f"Images ZIP not found: {zip_path}")

        entries: List[ImageEntry] = []
        with zipfile.ZipFile(zip_path) as zf:
            for name in zf.namelist():
                if name.endswith("/"):
                    continue
                filename = os.path.basename(name)
                stem, ext = os.path.splitext(filename)
                if not ext:
                    continue
                entries.append(ImageEntry(
                    archive_path=name,
                    stem=stem,
                    question_id=_extract_question_id(stem),
                    mime_type=mimetypes.types_map.get(ext.lower(), "application/octet-stream"),
                ))
        return cls(zip_path=zip_path, entries=entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, ref: str) -> Optional[ImageEntry]:
        ref = (ref or "").strip()
        return self._by_ref.get(ref) or self._by_ref.get(os.path.splitext(ref)[0])

    def read(self, entry: ImageEntry) -> bytes:
        with zipfile.ZipFile(self.zip_path) as zf:
            return zf.read(entry.archive_path)

    def entries_for_question(self, question: Question) -> List[ImageEntry]:
        """Referenced images first (in reference order), then unreferenced ones named after the id."""
        selected: Dict[str, ImageEntry] = {}
        for ref in question.image_files:
            entry = self.find(ref)
            if entry is not None:
                selected.setdefault(entry.archive_path, entry)
        for entry in self._by_question_id.get(question.id, []):
            selected.setdefault(entry.archive_path, entry)
        return list(selected.values())

    def missing_refs(self, question: Question) -> List[str]:
        return [ref for ref in question.image_files if self.find(ref) is None]


def _extract_question_id(stem: str) -> str:
    # expected pattern: img_<question_id>_<index>
    if stem.startswith("img_"):
        remainder = stem[4:]
        if "_" in remainder:
            return remainder.rsplit("_", 1)[0]
    return ""
