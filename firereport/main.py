import os
import asyncio
from typing import List, Optional

from dotenv import load_dotenv

# env must be loaded before the modules below read their settings
load_dotenv()

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .analysis import analyze
from .logger import timed, warn
from .models import (
    AnalyzeRequest,
    AudioNote,
    Case,
    CaseUpdate,
    FieldNote,
    NoteRequest,
    ReportResponse,
    ReportUpdate,
    TranscriptAnalysis,
)
from .report_generator import ReportGenerationError, generate_report
from .report_prompt import build_report_prompt
from .store import CaseNotFoundError, CaseStore
from .template_loader import DEFAULT_TEMPLATE_PATH, load_report_template
from .transcribe import transcribe_audio
from .utils import trim_ws

PACKAGE_DIR = os.path.dirname(__file__)
DATA_DIR = os.environ.get("DATA_DIR", "data")
REPORT_TEMPLATE_PATH = os.environ.get("REPORT_TEMPLATE_PATH", DEFAULT_TEMPLATE_PATH)

app = FastAPI(title="Fire Incident Reports")

app.mount("/static", StaticFiles(directory=os.path.join(PACKAGE_DIR, "static")), name="static")
templates = Jinja2Templates(directory=os.path.join(PACKAGE_DIR, "templates"))

report_template = load_report_template(REPORT_TEMPLATE_PATH)

_store: Optional[CaseStore] = None


def get_store() -> CaseStore:
    global _store
    if _store is None:
        _store = CaseStore(DATA_DIR)
    return _store


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@app.exception_handler(CaseNotFoundError)
async def case_not_found(request: Request, exc: CaseNotFoundError):
    return _error(str(exc), 404)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse)
def index(request: Request, store: CaseStore = Depends(get_store)):
    cases = store.list_cases()
    return templates.TemplateResponse(request, "index.html", {"cases": cases})


@app.post("/analyze", response_model=TranscriptAnalysis)
def analyze_transcript(body: AnalyzeRequest):
    with timed("Transcript analysis", chars=len(body.transcript)):
        return analyze(body.transcript)


# ----------------- cases -----------------

@app.get("/cases", response_model=List[Case])
def list_cases(
    q: str = "",
    status: str = "all",
    sort: str = "created_at",
    order: Optional[str] = None,
    store: CaseStore = Depends(get_store),
):
    # dates newest first, text fields A-Z unless asked otherwise
    if order is None:
        order = "desc" if sort.endswith("_at") else "asc"
    try:
        return store.list_cases(search=q, status=status, sort_field=sort, sort_order=order)
    except ValueError as e:
        return _error(str(e), 400)


MISSING_CASE_FIELDS = "All fields are required, including the initial report file."


async def _create_from_form(
    store: CaseStore, title: str, location: str, initial_report: Optional[UploadFile]
) -> Optional[Case]:
    """Create a case from submitted form fields; None when any field is missing."""
    title, location = title.strip(), location.strip()
    if not title or not location or initial_report is None or not initial_report.filename:
        return None
    data = await initial_report.read()
    return store.create_case(title, location, initial_report.filename, data)


@app.post("/cases", response_model=Case, status_code=201)
async def create_case(
    title: str = Form(""),
    location: str = Form(""),
    initial_report: UploadFile | None = File(None, description="Initial contact report"),
    store: CaseStore = Depends(get_store),
):
    case = await _create_from_form(store, title, location, initial_report)
    if case is None:
        return _error(MISSING_CASE_FIELDS, 400)
    return case


@app.post("/cases/form", response_class=HTMLResponse)
async def create_case_from_page(
    request: Request,
    title: str = Form(""),
    location: str = Form(""),
    initial_report: UploadFile | None = File(None),
    store: CaseStore = Depends(get_store),
):
    # browser form on the index page: back to the listing instead of JSON
    case = await _create_from_form(store, title, location, initial_report)
    if case is None:
        return templates.TemplateResponse(
            request, "index.html", {"cases": store.list_cases(), "error": MISSING_CASE_FIELDS}, status_code=400
        )
    return RedirectResponse("/", status_code=303)


@app.get("/cases/{case_id}", response_model=Case)
def get_case(case_id: str, store: CaseStore = Depends(get_store)):
    return store.get_case(case_id)


@app.patch("/cases/{case_id}", response_model=Case)
def update_case(case_id: str, body: CaseUpdate, store: CaseStore = Depends(get_store)):
    if body.title is not None and not body.title.strip():
        return _error("Title cannot be empty.", 400)
    if body.location is not None and not body.location.strip():
        return _error("Location cannot be empty.", 400)
    return store.update_case(
        case_id,
        title=body.title.strip() if body.title is not None else None,
        location=body.location.strip() if body.location is not None else None,
        status=body.status,
    )


@app.delete("/cases/{case_id}", status_code=204)
def delete_case(case_id: str, store: CaseStore = Depends(get_store)):
    store.delete_case(case_id)
    return Response(status_code=204)


# ----------------- field notes -----------------

@app.post("/cases/{case_id}/notes", response_model=FieldNote, status_code=201)
def add_note(case_id: str, body: NoteRequest, store: CaseStore = Depends(get_store)):
    content = trim_ws(body.content)
    if not content:
        return _error("Note content cannot be empty.", 400)
    return store.add_note(case_id, content)


@app.post("/cases/{case_id}/audio-notes", response_model=AudioNote, status_code=201)
async def add_audio_note(
    case_id: str,
    audio: UploadFile | None = File(None, description="Recorded audio note"),
    transcript: str | None = Form(None, description="Final transcript from the browser recognizer"),
    language: str | None = Form(None),
    store: CaseStore = Depends(get_store),
):
    if audio is None or not audio.filename:
        return _error("Missing 'audio' file in multipart/form-data.", 400)

    audio_path = store.save_audio(case_id, audio.filename, await audio.read())

    text = trim_ws(transcript or "") or None
    error = None
    if text is None:
        try:
            with timed("STT", case=case_id):
                loop = asyncio.get_running_loop()
                tr = await loop.run_in_executor(
                    None, lambda: transcribe_audio(store.abspath(audio_path), language=language)
                )
            text = tr["transcript"]
        except Exception as e:
            # kept on the note so the recording can be retried
            warn("STT", f"transcription failed ({e})", case=case_id)
            error = f"Failed to transcribe: {e}"

    analysis = None
    if text is not None:
        with timed("Transcript analysis", chars=len(text)):
            analysis = analyze(text)

    return store.add_audio_note(case_id, audio_path, text, analysis=analysis, error=error)


# ----------------- reports -----------------

@app.post("/cases/{case_id}/generate-report", response_model=ReportResponse)
async def generate_case_report(case_id: str, store: CaseStore = Depends(get_store)):
    case = store.get_case(case_id)

    with timed("Prompt assembly", case=case_id):
        initial_text = store.read_initial_report(case)
        prompt = build_report_prompt(case, initial_text, report_template)

    try:
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, generate_report, prompt)
    except ReportGenerationError as e:
        return _error(str(e), 500)

    # the caller gets the report even if saving the draft fails
    try:
        store.set_final_report(case_id, report, "InProgress")
    except (OSError, CaseNotFoundError) as e:
        warn("Report save", f"could not store generated report ({e})", case=case_id)

    return {"report": report}


@app.put("/cases/{case_id}/report", response_model=Case)
def save_report(case_id: str, body: ReportUpdate, store: CaseStore = Depends(get_store)):
    if not body.report.strip():
        return _error("Report content cannot be empty.", 400)
    return store.set_final_report(case_id, body.report, "Completed")
