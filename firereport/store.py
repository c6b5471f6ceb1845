"""File-backed case store.

Layout under the data directory:
  cases/<id>.json        one Case document per file
  uploads/<id>/...       initial report and audio note files
  index.csv              one row per created case
"""
import csv
import json
import os
import shutil
import tempfile
import threading
import time
import uuid
from typing import List, Optional

from .logger import timed
from .models import AudioNote, Case, CaseStatus, FieldNote, TranscriptAnalysis
from .report_prompt import read_initial_report_text
from .utils import safe_filename, utc_now_iso

INDEX_HEADER = ["id", "title", "location", "status", "created_at"]
SORT_FIELDS = ("created_at", "updated_at", "title", "location", "status")
STATUS_FILTERS = ("all", "Open", "InProgress", "Completed", "Closed")


class CaseNotFoundError(KeyError):
    def __init__(self, case_id: str):
        super().__init__(case_id)
        self.case_id = case_id

    def __str__(self) -> str:
        return f"Case not found: {self.case_id}"


class CaseStore:
    def __init__(self, root: str):
        self.root = root
        self.cases_dir = os.path.join(root, "cases")
        self.uploads_dir = os.path.join(root, "uploads")
        self.index_csv = os.path.join(root, "index.csv")
        self._lock = threading.Lock()
        os.makedirs(self.cases_dir, exist_ok=True)
        os.makedirs(self.uploads_dir, exist_ok=True)
        if not os.path.exists(self.index_csv):
            with open(self.index_csv, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(INDEX_HEADER)

    # ---- paths ----

    def _case_path(self, case_id: str) -> str:
        # ids are generated as uuid4 hex; anything else cannot exist on disk
        if not case_id or safe_filename(case_id) != case_id:
            raise CaseNotFoundError(case_id)
        return os.path.join(self.cases_dir, f"{case_id}.json")

    def abspath(self, rel_path: str) -> str:
        return os.path.join(self.root, rel_path)

    def read_initial_report(self, case: Case) -> str:
        """Text of the case's uploaded report, or a placeholder the prompt can carry."""
        return read_initial_report_text(self.abspath(case.initial_report_path), case.initial_report_path)

    def _save_upload(self, case_id: str, filename: str, data: bytes) -> str:
        case_dir = os.path.join(self.uploads_dir, case_id)
        os.makedirs(case_dir, exist_ok=True)
        name = f"{int(time.time() * 1000)}_{safe_filename(filename)}"
        with open(os.path.join(case_dir, name), "wb") as f:
            f.write(data)
        return os.path.relpath(os.path.join(case_dir, name), self.root)

    # ---- documents ----

    def _write(self, case: Case) -> None:
        path = self._case_path(case.id)
        fd, tmp = tempfile.mkstemp(dir=self.cases_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(case.model_dump(by_alias=True), f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def _read(self, case_id: str) -> Case:
        path = self._case_path(case_id)
        if not os.path.exists(path):
            raise CaseNotFoundError(case_id)
        with open(path, "r", encoding="utf-8") as f:
            return Case.model_validate(json.load(f))

    # ---- operations ----

    def create_case(self, title: str, location: str, report_filename: str, report_bytes: bytes) -> Case:
        case_id = uuid.uuid4().hex
        now = utc_now_iso()
        with timed("Store create_case", case=case_id), self._lock:
            report_path = self._save_upload(case_id, report_filename, report_bytes)
            case = Case(
                id=case_id,
                title=title,
                location=location,
                initial_report_path=report_path,
                created_at=now,
                updated_at=now,
            )
            try:
                self._write(case)
            except Exception:
                shutil.rmtree(os.path.join(self.uploads_dir, case_id), ignore_errors=True)
                raise
            with open(self.index_csv, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow([case.id, case.title, case.location, case.status, case.created_at])
        return case

    def get_case(self, case_id: str) -> Case:
        return self._read(case_id)

    def list_cases(
        self,
        search: str = "",
        status: str = "all",
        sort_field: str = "created_at",
        sort_order: str = "desc",
    ) -> List[Case]:
        if sort_field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {sort_field}")
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort order: {sort_order}")
        if status not in STATUS_FILTERS:
            raise ValueError(f"Unsupported status filter: {status}")

        cases: List[Case] = []
        for name in os.listdir(self.cases_dir):
            if not name.endswith(".json"):
                continue
            try:
                cases.append(self._read(name[: -len(".json")]))
            except CaseNotFoundError:
                # removed between listdir and read
                continue

        q = (search or "").strip().lower()
        if q:
            cases = [
                c for c in cases
                if q in c.title.lower() or q in c.location.lower() or q in c.status.lower()
            ]
        if status != "all":
            cases = [c for c in cases if c.status == status]

        def sort_key(c: Case):
            value = getattr(c, sort_field)
            return value.lower() if sort_field in ("title", "location") else value

        cases.sort(key=sort_key, reverse=(sort_order == "desc"))
        return cases

    def update_case(
        self,
        case_id: str,
        title: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[CaseStatus] = None,
    ) -> Case:
        changes = {k: v for k, v in (("title", title), ("location", location), ("status", status)) if v is not None}
        return self._update(case_id, **changes)

    def _update(self, case_id: str, **changes) -> Case:
        with self._lock:
            case = self._read(case_id)
            changes["updated_at"] = utc_now_iso()
            updated = case.model_copy(update=changes)
            self._write(updated)
        return updated

    def delete_case(self, case_id: str) -> None:
        with self._lock:
            path = self._case_path(case_id)
            if not os.path.exists(path):
                raise CaseNotFoundError(case_id)
            os.remove(path)
            shutil.rmtree(os.path.join(self.uploads_dir, case_id), ignore_errors=True)

    def add_note(self, case_id: str, content: str) -> FieldNote:
        note = FieldNote(id=uuid.uuid4().hex, content=content, created_at=utc_now_iso())
        with self._lock:
            case = self._read(case_id)
            updated = case.model_copy(update={"notes": case.notes + [note], "updated_at": note.created_at})
            self._write(updated)
        return note

    def save_audio(self, case_id: str, filename: str, data: bytes) -> str:
        """Store the raw audio for a case; returns its path relative to the data dir."""
        self._read(case_id)
        with self._lock:
            return self._save_upload(case_id, filename, data)

    def add_audio_note(
        self,
        case_id: str,
        audio_path: str,
        transcript: Optional[str],
        analysis: Optional[TranscriptAnalysis] = None,
        error: Optional[str] = None,
    ) -> AudioNote:
        if error is not None:
            status = "error"
        elif transcript is not None:
            status = "completed"
        else:
            status = "pending"
        note = AudioNote(
            id=uuid.uuid4().hex,
            audio_path=audio_path,
            created_at=utc_now_iso(),
            transcript=transcript,
            transcription_status=status,
            error=error,
            analysis=analysis,
        )
        with self._lock:
            case = self._read(case_id)
            updated = case.model_copy(
                update={"audio_notes": case.audio_notes + [note], "updated_at": note.created_at}
            )
            self._write(updated)
        return note

    def set_final_report(self, case_id: str, report: str, status: CaseStatus) -> Case:
        return self._update(case_id, final_report_content=report, status=status)
