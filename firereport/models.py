from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

CaseStatus = Literal["Open", "InProgress", "Completed", "Closed"]
TranscriptionStatus = Literal["pending", "processing", "completed", "error"]

# Public-access owner used when no authenticated user is attached.
NIL_USER_ID = "00000000-0000-0000-0000-000000000000"


class IncidentDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    personnel: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)
    observations: List[str] = Field(default_factory=list)
    time_references: List[str] = Field(default_factory=list, alias="timeReferences")
    hazards: List[str] = Field(default_factory=list)
    witnesses: List[str] = Field(default_factory=list)
    damages: List[str] = Field(default_factory=list)
    weather_conditions: List[str] = Field(default_factory=list, alias="weatherConditions")


class TranscriptAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    incident_details: IncidentDetails = Field(alias="incidentDetails")
    keywords: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    summary: str


class FieldNote(BaseModel):
    id: str
    content: str
    created_at: str


class AudioNote(BaseModel):
    id: str
    audio_path: str
    created_at: str
    transcript: Optional[str] = None
    transcription_status: TranscriptionStatus = "pending"
    error: Optional[str] = None
    analysis: Optional[TranscriptAnalysis] = None


class Case(BaseModel):
    id: str
    title: str
    location: str
    initial_report_path: str
    status: CaseStatus = "Open"
    final_report_content: Optional[str] = None
    created_at: str
    updated_at: str
    user_id: str = NIL_USER_ID
    notes: List[FieldNote] = Field(default_factory=list)
    audio_notes: List[AudioNote] = Field(default_factory=list)


# ---- request bodies ----

class AnalyzeRequest(BaseModel):
    transcript: str = ""


class NoteRequest(BaseModel):
    content: str


class CaseUpdate(BaseModel):
    title: Optional[str] = None
    location: Optional[str] = None
    status: Optional[CaseStatus] = None


class ReportUpdate(BaseModel):
    report: str


class ReportResponse(BaseModel):
    report: str
