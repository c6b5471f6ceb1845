"""Heuristic extraction of incident facts from field-note transcripts.

Every rule is a pure function over the transcript (or its lower-cased form)
returning a list of strings. `analyze` runs all of them and scores how much
structure was found. No I/O and no randomness: the same transcript always
yields the same analysis.
"""
import re
from typing import Iterable, List, Optional, Pattern, Sequence

from .models import IncidentDetails, TranscriptAnalysis
from .utils import WS, split_sentences, split_words, trim_ws

# ASCII word semantics for \b, \w and [a-zA-Z] under IGNORECASE. Blanks between
# words are matched with WS, which also covers NBSP and the Unicode space separators.
_FLAGS = re.IGNORECASE | re.ASCII

# -----------------------------
# Vocabularies (read-only)
# -----------------------------

ACTION_VERBS: Sequence[str] = (
    "arrived", "deployed", "established", "connected", "advanced", "searched",
    "rescued", "evacuated", "extinguished", "ventilated", "overhaul", "secured",
    "controlled", "contained", "suppressed", "cooled", "protected", "removed",
)

EMERGENCY_TERMS: Sequence[str] = (
    "fire", "smoke", "flames", "explosion", "collapse", "injury", "victim",
    "hazmat", "leak", "spill", "emergency", "alarm", "dispatch", "response",
)

EQUIPMENT_TERMS: Sequence[str] = (
    "engine", "truck", "ladder", "rescue", "tanker", "pump", "hose",
    "nozzle", "mask", "scba", "tool", "axe", "halligan", "saw", "extinguisher",
)

HAZARD_TERMS: Sequence[str] = (
    "smoke", "fire", "flames", "explosion", "collapse", "electrical",
    "gas", "chemical", "hazmat", "toxic", "dangerous", "unstable",
)

DAMAGE_TERMS: Sequence[str] = (
    "damage", "destroyed", "burned", "collapsed", "broken", "cracked",
    "flooded", "smoke damage", "water damage", "structural damage",
)

WEATHER_TERMS: Sequence[str] = (
    "wind", "rain", "snow", "fog", "clear", "cloudy", "sunny", "stormy",
    "temperature", "cold", "hot", "humid", "dry",
)

OBSERVATION_KEYWORDS: Sequence[str] = (
    "observed", "saw", "noticed", "found", "discovered", "detected",
)

FALLBACK_SUMMARY = "General incident notes recorded"

# -----------------------------
# Compiled patterns
# -----------------------------

_PERSONNEL_PATTERN = re.compile(
    r"(?:officer|captain|lieutenant|firefighter|paramedic|chief|crew|team|personnel|member)s?"
    + WS + r"+([a-zA-Z]+(?:" + WS + r"+[a-zA-Z]+)*)",
    _FLAGS,
)

_RANK_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"(?:captain|capt\.?)" + WS + r"+([a-zA-Z]+)", _FLAGS),
    re.compile(r"(?:lieutenant|lt\.?)" + WS + r"+([a-zA-Z]+)", _FLAGS),
    re.compile(r"(?:chief)" + WS + r"+([a-zA-Z]+)", _FLAGS),
    re.compile(r"(?:officer)" + WS + r"+([a-zA-Z]+)", _FLAGS),
)

_NUMBERED_UNIT_PATTERN = re.compile(r"(?:engine|truck|unit|rescue)" + WS + r"+(\d+)", _FLAGS)

# Clock times are matched case-sensitively; the AM/PM class spells out both cases.
_CLOCK_TIME_PATTERN = re.compile(r"\b(\d{1,2}:\d{2}(?:" + WS + r"*[AaPp][Mm])?)\b", re.ASCII)

_RELATIVE_TIME_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"\b(upon arrival|on arrival|initially|first|then|next|later|finally)\b", _FLAGS),
    re.compile(r"\b(at \d{4} hours?|at \d{1,2}:\d{2})\b", _FLAGS),
)

_WITNESS_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"witness(?:es)?" + WS + r"+(?:stated|said|reported|indicated)", _FLAGS),
    re.compile(r"(?:bystander|civilian|resident|neighbor)" + WS + r"+(?:stated|said|reported)", _FLAGS),
)


def _whole_word(term: str) -> Pattern[str]:
    return re.compile(rf"\b{re.escape(term)}\b", _FLAGS)


def _word_prefix(term: str) -> Pattern[str]:
    # term at a word boundary, then any continuation of word characters
    return re.compile(rf"\b{re.escape(term)}\w*\b", _FLAGS)


_EQUIPMENT_PATTERNS = [(t, _whole_word(t)) for t in EQUIPMENT_TERMS]
_ACTION_PATTERNS = [_word_prefix(v) for v in ACTION_VERBS]
_HAZARD_PATTERNS = [(t, _word_prefix(t)) for t in HAZARD_TERMS]
_DAMAGE_PATTERNS = [(t, _whole_word(t)) for t in DAMAGE_TERMS]
_WEATHER_PATTERNS = [(t, _word_prefix(t)) for t in WEATHER_TERMS]


def _dedupe(values: Iterable[str]) -> List[str]:
    """Ordered set: keeps the first occurrence of each exact string."""
    seen = set()
    out: List[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def _present_terms(text: str, patterns) -> List[str]:
    return [term for term, pat in patterns if pat.search(text)]


# -----------------------------
# Extraction rules
# -----------------------------

def extract_personnel(text: str) -> List[str]:
    found: List[str] = []
    for m in _PERSONNEL_PATTERN.finditer(text):
        if m.group(1):
            found.append(trim_ws(m.group(1)))

    # rank + name, kept as the full phrase ("Captain Johnson")
    for pat in _RANK_PATTERNS:
        for m in pat.finditer(text):
            if m.group(1):
                found.append(trim_ws(m.group(0)))

    return [p for p in _dedupe(found) if len(p) > 1]


def extract_equipment(text: str) -> List[str]:
    found = _present_terms(text, _EQUIPMENT_PATTERNS)
    found.extend(trim_ws(m.group(0)) for m in _NUMBERED_UNIT_PATTERN.finditer(text))
    return _dedupe(found)


def extract_actions(lower_text: str) -> List[str]:
    found: List[str] = []
    for pat in _ACTION_PATTERNS:
        found.extend(m.group(0) for m in pat.finditer(lower_text))
    return _dedupe(found)


def extract_observations(sentences: Sequence[str]) -> List[str]:
    observations: List[str] = []
    for sentence in sentences:
        lowered = sentence.lower()
        if any(k in lowered for k in OBSERVATION_KEYWORDS):
            observations.append(trim_ws(sentence))
    return observations


def extract_time_references(text: str) -> List[str]:
    found = [m.group(1) for m in _CLOCK_TIME_PATTERN.finditer(text)]
    for pat in _RELATIVE_TIME_PATTERNS:
        found.extend(m.group(1) for m in pat.finditer(text))
    return _dedupe(found)


def extract_hazards(lower_text: str) -> List[str]:
    return _present_terms(lower_text, _HAZARD_PATTERNS)


def extract_witnesses(text: str) -> List[str]:
    witnesses: List[str] = []
    for pat in _WITNESS_PATTERNS:
        witnesses.extend(m.group(0) for m in pat.finditer(text))
    return witnesses


def extract_damages(lower_text: str) -> List[str]:
    return _present_terms(lower_text, _DAMAGE_PATTERNS)


def extract_weather_conditions(lower_text: str) -> List[str]:
    return _present_terms(lower_text, _WEATHER_PATTERNS)


def extract_keywords(lower_text: str) -> List[str]:
    """Plain substring containment, not word-anchored: "fired" counts as "fire"."""
    found = [t for t in EMERGENCY_TERMS if t in lower_text]
    found.extend(v for v in ACTION_VERBS if v in lower_text)
    return _dedupe(found)


# -----------------------------
# Scoring & summary
# -----------------------------

def word_count(transcript: str) -> int:
    return len(split_words(transcript))


def calculate_confidence(transcript: str, details: IncidentDetails) -> float:
    score = 0.0
    max_score = 10.0

    if details.actions:
        score += 2
    if details.personnel:
        score += 1
    if details.equipment:
        score += 1
    if details.time_references:
        score += 1
    if details.hazards:
        score += 2
    if details.observations:
        score += 2
    if details.damages:
        score += 1

    words = word_count(transcript)
    if words > 50:
        score += 0.5
    if words > 100:
        score += 0.5

    return min(score / max_score, 1.0)


def generate_summary(details: IncidentDetails) -> str:
    parts: List[str] = []
    if details.actions:
        parts.append(f"Key actions: {', '.join(details.actions[:3])}")
    if details.hazards:
        parts.append(f"Hazards identified: {', '.join(details.hazards)}")
    if details.equipment:
        parts.append(f"Equipment mentioned: {', '.join(details.equipment[:3])}")
    if details.personnel:
        parts.append(f"Personnel: {', '.join(details.personnel[:2])}")
    if not parts:
        parts.append(FALLBACK_SUMMARY)
    return ". ".join(parts) + "."


# -----------------------------
# Entry points
# -----------------------------

def analyze(transcript: Optional[str]) -> TranscriptAnalysis:
    text = transcript or ""
    lower = text.lower()
    sentences = split_sentences(text)

    details = IncidentDetails(
        personnel=extract_personnel(text),
        equipment=extract_equipment(text),
        actions=extract_actions(lower),
        observations=extract_observations(sentences),
        time_references=extract_time_references(text),
        hazards=extract_hazards(lower),
        witnesses=extract_witnesses(text),
        damages=extract_damages(lower),
        weather_conditions=extract_weather_conditions(lower),
    )

    return TranscriptAnalysis(
        incident_details=details,
        keywords=extract_keywords(lower),
        confidence=calculate_confidence(text, details),
        summary=generate_summary(details),
    )


class TranscriptAnalyzer:
    """Callable facade over `analyze`; holds no per-instance state."""

    def analyze(self, transcript: Optional[str]) -> TranscriptAnalysis:
        return analyze(transcript)

    __call__ = analyze


def format_details_for_prompt(analysis: TranscriptAnalysis) -> str:
    """Render the report-relevant categories as one prompt line.

    Only non-empty categories appear, in the order actions, equipment,
    personnel, hazards. Returns "" when none were found.
    """
    details = analysis.incident_details
    parts: List[str] = []
    if details.actions:
        parts.append(f"Actions identified: {', '.join(details.actions)}")
    if details.equipment:
        parts.append(f"Equipment mentioned: {', '.join(details.equipment)}")
    if details.personnel:
        parts.append(f"Personnel: {', '.join(details.personnel)}")
    if details.hazards:
        parts.append(f"Hazards: {', '.join(details.hazards)}")
    return "; ".join(parts)
