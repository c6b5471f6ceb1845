import csv
import os

import pytest

from firereport.analysis import analyze
from firereport.store import CaseNotFoundError, CaseStore


def _make(store, title, location="1 Main St", status=None):
    case = store.create_case(title, location, "report.txt", b"Initial contact report")
    if status:
        case = store.update_case(case.id, status=status)
    return case


def test_create_and_get(tmp_path):
    store = CaseStore(str(tmp_path))
    case = store.create_case("Structure Fire at Elm Street", "123 Elm Street", "../../contact report.txt", b"hello")

    assert case.status == "Open"
    assert case.created_at == case.updated_at
    assert case.initial_report_path.startswith(os.path.join("uploads", case.id))
    assert ".." not in case.initial_report_path
    with open(store.abspath(case.initial_report_path), "rb") as f:
        assert f.read() == b"hello"

    assert store.get_case(case.id) == case

    with open(store.index_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["id", "title", "location", "status", "created_at"]
    assert rows[1][:4] == [case.id, "Structure Fire at Elm Street", "123 Elm Street", "Open"]


def test_missing_case(tmp_path):
    store = CaseStore(str(tmp_path))
    with pytest.raises(CaseNotFoundError):
        store.get_case("does-not-exist")
    with pytest.raises(CaseNotFoundError):
        store.get_case("../index")
    with pytest.raises(CaseNotFoundError):
        store.delete_case("nope")


def test_list_search_filter_sort(tmp_path):
    store = CaseStore(str(tmp_path))
    a = _make(store, "Barn fire", "Farm Road")
    b = _make(store, "Apartment smoke", "Elm Street", status="Completed")
    c = _make(store, "Car fire", "Highway 9", status="InProgress")

    titles = [x.title for x in store.list_cases(sort_field="title", sort_order="asc")]
    assert titles == ["Apartment smoke", "Barn fire", "Car fire"]

    assert [x.id for x in store.list_cases(search="FIRE", sort_field="title", sort_order="asc")] == [a.id, c.id]
    assert [x.id for x in store.list_cases(search="elm")] == [b.id]
    assert [x.id for x in store.list_cases(search="inprogress")] == [c.id]
    assert [x.id for x in store.list_cases(status="Completed")] == [b.id]

    by_location = [x.location for x in store.list_cases(sort_field="location", sort_order="desc")]
    assert by_location == ["Highway 9", "Farm Road", "Elm Street"]

    with pytest.raises(ValueError):
        store.list_cases(sort_field="nope")
    with pytest.raises(ValueError):
        store.list_cases(status="Archived")


def test_notes_and_audio_notes(tmp_path):
    store = CaseStore(str(tmp_path))
    case = _make(store, "Kitchen fire")

    note = store.add_note(case.id, "Arrived 14:02, smoke from eaves")
    path = store.save_audio(case.id, "note.webm", b"\x00\x01")
    analysis = analyze("Engine 4 arrived. Heavy smoke observed.")
    audio = store.add_audio_note(case.id, path, "Engine 4 arrived. Heavy smoke observed.", analysis=analysis)
    failed = store.add_audio_note(case.id, path, None, error="Failed to transcribe: bad header")

    assert audio.transcription_status == "completed"
    assert failed.transcription_status == "error"

    stored = store.get_case(case.id)
    assert [n.content for n in stored.notes] == [note.content]
    assert [n.id for n in stored.audio_notes] == [audio.id, failed.id]
    assert stored.audio_notes[0].analysis == analysis
    assert stored.updated_at >= case.updated_at


def test_final_report_and_delete(tmp_path):
    store = CaseStore(str(tmp_path))
    case = _make(store, "Shed fire")

    updated = store.set_final_report(case.id, "## Final Fire Incident Report", "InProgress")
    assert updated.final_report_content == "## Final Fire Incident Report"
    assert updated.status == "InProgress"
    assert store.get_case(case.id).status == "InProgress"

    store.delete_case(case.id)
    assert store.list_cases() == []
    assert not os.path.exists(os.path.join(store.uploads_dir, case.id))


def test_read_initial_report(tmp_path):
    store = CaseStore(str(tmp_path))
    case = store.create_case("Barn fire", "Route 9", "contact.txt", b"Caller reported smoke at 02:14.")
    assert store.read_initial_report(case) == "Caller reported smoke at 02:14."

    os.remove(store.abspath(case.initial_report_path))
    missing = store.read_initial_report(case)
    assert missing == f"[Initial report file at {case.initial_report_path} could not be retrieved from storage]"

    pdf = store.create_case("Barn fire", "Route 9", "contact.pdf", b"%PDF-1.7")
    assert "PDF content extraction is not yet implemented" in store.read_initial_report(pdf)
