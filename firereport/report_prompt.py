"""Assembly of the final-report prompt from a case and its notes."""
import os
from typing import Any, Dict, List, Optional, Sequence

from .analysis import format_details_for_prompt
from .models import AudioNote, Case
from .utils import format_hms, truncate_center

MAX_CONTEXT_CHARS = int(os.environ.get("LLM_MAX_CONTEXT_CHARS", "24000"))

NO_TEXT_NOTES = "No additional text notes provided."
NO_AUDIO_NOTES = "No audio notes recorded."


def read_initial_report_text(path: Optional[str], display_path: Optional[str] = None) -> str:
    """Best-effort text of the uploaded initial report.

    Never raises: anything that cannot be read becomes a bracketed note the
    LLM is told about, so the report can still be generated from field notes.
    """
    shown = display_path or path
    if not path or not os.path.exists(path):
        return f"[Initial report file at {shown} could not be retrieved from storage]"

    name = path.lower()
    if name.endswith(".pdf"):
        return (
            f"[PDF file detected at {shown}. PDF content extraction is not yet implemented. "
            "Please ensure initial report information is included in the additional field notes for now.]"
        )
    if name.endswith(".docx") or name.endswith(".doc"):
        return (
            f"[Word document detected at {shown}. Document content extraction is not yet implemented. "
            "Please ensure initial report information is included in the additional field notes for now.]"
        )

    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        return (
            f"[Error processing initial report file: {e}. "
            "Please include initial report details in additional field notes.]"
        )

    if name.endswith(".txt") or name.endswith(".md"):
        return raw.decode("utf-8", errors="replace")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return (
            f"[File type not supported for automatic content extraction: {os.path.basename(name)}. "
            "Please ensure initial report information is included in the additional field notes.]"
        )


def compose_notes_section(case: Case) -> str:
    return "\n\n".join(n.content.strip() for n in case.notes if n.content.strip())


def compose_audio_section(audio_notes: Sequence[AudioNote]) -> str:
    blocks: List[str] = []
    for note in audio_notes:
        if not note.transcript:
            continue
        block = f"[Audio Note {format_hms(note.created_at)}]: {note.transcript}"
        if note.analysis is not None:
            details = format_details_for_prompt(note.analysis)
            if details:
                block += f"\n[Extracted Details]: {details}"
        blocks.append(block)
    if not blocks:
        return ""
    return "AUDIO TRANSCRIPTION AND ANALYSIS:\n" + "\n\n".join(blocks)


def _outline(template: Dict[str, Any]) -> str:
    lines = [template["title_heading"], ""]
    for section in template["sections"]:
        lines.append(f"### {section['heading']}")
        lines.extend(f"- {p}" for p in section["points"])
        lines.append("")
    return "\n".join(lines).rstrip()


def build_report_prompt(
    case: Case,
    initial_report_text: str,
    template: Dict[str, Any],
    notes_text: Optional[str] = None,
    audio_text: Optional[str] = None,
) -> str:
    if notes_text is None:
        notes_text = compose_notes_section(case)
    if audio_text is None:
        audio_text = compose_audio_section(case.audio_notes)

    budget = MAX_CONTEXT_CHARS // 3
    return "\n\n".join([
        template["persona"].strip(),
        "CASE INFORMATION:\n"
        f"Case ID: {case.id}\n"
        f"Case Title: {case.title}\n"
        f"Case Location: {case.location}",
        "INITIAL REPORT CONTENT:\n" + truncate_center(initial_report_text, budget),
        "ADDITIONAL FIELD NOTES (TEXT):\n" + (truncate_center(notes_text, budget) or NO_TEXT_NOTES),
        "ADDITIONAL FIELD NOTES (AUDIO TRANSCRIPT):\n" + (truncate_center(audio_text, budget) or NO_AUDIO_NOTES),
        "INSTRUCTIONS:\n" + template["instructions"].strip(),
        "Please format the report with clear sections using markdown headers:\n\n" + _outline(template),
        template["closing"].strip(),
    ])
