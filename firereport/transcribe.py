# firereport/transcribe.py
import os
from typing import Any, Dict, Optional
from faster_whisper import WhisperModel
import ctranslate2

_model = None

WHISPER_MODEL = os.environ.get("WHISPER_MODEL", "small")
WHISPER_DEVICE = os.environ.get("WHISPER_DEVICE", "cpu").lower()
DEFAULT_LANGUAGE = os.environ.get("TRANSCRIBE_LANGUAGE") or None

# Stored as the transcript when the recording has no detectable speech.
NO_SPEECH = "No speech detected"


def _pick_compute_type(device: str) -> str:
    """
    First supported of int8_float16 -> int8 -> float16 -> float32,
    unless WHISPER_COMPUTE names a supported type.
    """
    requested = os.environ.get("WHISPER_COMPUTE", "").strip()
    supported = set(ctranslate2.get_supported_compute_types(device or "cpu"))
    if requested and requested in supported:
        return requested
    for ct in ("int8_float16", "int8", "float16", "float32"):
        if ct in supported:
            return ct
    return "float32"


def _get_model() -> WhisperModel:
    global _model
    if _model is None:
        _model = WhisperModel(WHISPER_MODEL, device=WHISPER_DEVICE, compute_type=_pick_compute_type(WHISPER_DEVICE))
    return _model


def transcribe_audio(file_path: str, language: Optional[str] = None) -> Dict[str, Any]:
    """
    Final transcript of one recorded field note:
      {"transcript": str, "duration": float, "language": str}
    An empty recording yields NO_SPEECH as the transcript.
    """
    model = _get_model()
    segments, info = model.transcribe(
        file_path,
        language=language or DEFAULT_LANGUAGE,
        vad_filter=True,
        beam_size=1,
        best_of=1,
        temperature=0.0,
    )
    parts = [(s.text or "").strip() for s in segments]
    text = " ".join(p for p in parts if p).strip()
    return {
        "transcript": text or NO_SPEECH,
        "duration": float(getattr(info, "duration", 0.0) or 0.0),
        "language": getattr(info, "language", None) or (language or DEFAULT_LANGUAGE or ""),
    }
