from firereport.analysis import analyze
from firereport.models import AudioNote, Case, FieldNote
from firereport.report_prompt import (
    NO_AUDIO_NOTES,
    NO_TEXT_NOTES,
    build_report_prompt,
    compose_audio_section,
    read_initial_report_text,
)
from firereport.template_loader import load_report_template

NOW = "2026-10-17T14:05:09+00:00"


def _case(**kw):
    base = dict(
        id="abc123",
        title="Structure Fire at Elm Street",
        location="123 Elm Street",
        initial_report_path="uploads/abc123/report.txt",
        created_at=NOW,
        updated_at=NOW,
    )
    base.update(kw)
    return Case(**base)


def test_template_loads_all_sections():
    template = load_report_template()
    headings = [s["heading"] for s in template["sections"]]
    assert headings[0] == "Incident Overview"
    assert "Recommendations" in headings
    assert all(s["points"] for s in template["sections"])


def test_initial_report_by_file_type(tmp_path):
    txt = tmp_path / "contact.txt"
    txt.write_text("Caller reported smoke from the garage.", encoding="utf-8")
    assert read_initial_report_text(str(txt)) == "Caller reported smoke from the garage."

    pdf = tmp_path / "contact.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    assert "PDF content extraction is not yet implemented" in read_initial_report_text(str(pdf))

    docx = tmp_path / "contact.docx"
    docx.write_bytes(b"PK\x03\x04")
    assert "Word document detected" in read_initial_report_text(str(docx))

    binary = tmp_path / "contact.bin"
    binary.write_bytes(b"\xff\xfe\xfa")
    assert "File type not supported" in read_initial_report_text(str(binary))

    missing = read_initial_report_text(str(tmp_path / "gone.txt"), "uploads/x/gone.txt")
    assert missing == "[Initial report file at uploads/x/gone.txt could not be retrieved from storage]"


def test_audio_section_includes_extracted_details():
    transcript = "Engine 7 arrived. Heavy smoke observed."
    notes = [
        AudioNote(id="1", audio_path="a.webm", created_at=NOW, transcript=transcript,
                  transcription_status="completed", analysis=analyze(transcript)),
        AudioNote(id="2", audio_path="b.webm", created_at=NOW, transcription_status="error", error="boom"),
    ]
    section = compose_audio_section(notes)
    assert section.startswith("AUDIO TRANSCRIPTION AND ANALYSIS:\n[Audio Note 14:05:09]: Engine 7 arrived.")
    assert "[Extracted Details]: Actions identified: arrived; Equipment mentioned: engine, Engine 7; Hazards: smoke" in section
    assert "boom" not in section
    assert compose_audio_section([]) == ""


def test_prompt_with_no_notes_uses_placeholders():
    prompt = build_report_prompt(_case(), "Initial text here", load_report_template())
    assert "Case ID: abc123" in prompt
    assert "Case Title: Structure Fire at Elm Street" in prompt
    assert "Case Location: 123 Elm Street" in prompt
    assert "INITIAL REPORT CONTENT:\nInitial text here" in prompt
    assert "ADDITIONAL FIELD NOTES (TEXT):\n" + NO_TEXT_NOTES in prompt
    assert "ADDITIONAL FIELD NOTES (AUDIO TRANSCRIPT):\n" + NO_AUDIO_NOTES in prompt
    assert "## Final Fire Incident Report: [Title]" in prompt
    assert "### Conclusion & Outcome\n- Time fire was declared under control" in prompt


def test_prompt_with_notes():
    case = _case(notes=[
        FieldNote(id="n1", content="Hydrant on north side was frozen.", created_at=NOW),
        FieldNote(id="n2", content="Owner on scene.", created_at=NOW),
    ])
    prompt = build_report_prompt(case, "", load_report_template())
    assert "ADDITIONAL FIELD NOTES (TEXT):\nHydrant on north side was frozen.\n\nOwner on scene." in prompt
    assert NO_TEXT_NOTES not in prompt
