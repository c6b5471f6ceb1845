import os
import re
from datetime import datetime, timezone
from typing import List

# Transcript whitespace: ASCII blanks, Unicode space separators, line and
# paragraph separators, BOM. Unlike str.isspace(), \x1c-\x1f and \x85 are not blanks.
WHITESPACE_CHARS = (
    "\t\n\v\f\r \xa0\u1680"
    + "".join(chr(c) for c in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)
# regex character class for the same set
WS = r"[\t\n\v\f\r \xa0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]"

SENT_SPLIT_RE = re.compile(r"[.!?]+")
_WS_RUN_RE = re.compile(WS + "+")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def trim_ws(text: str) -> str:
    return text.strip(WHITESPACE_CHARS)


def split_words(text: str) -> List[str]:
    """Split on whitespace runs; keeps empty edge pieces, so "" gives [""]."""
    return _WS_RUN_RE.split(text or "")


def split_sentences(text: str) -> List[str]:
    """Split on runs of sentence terminators; drop whitespace-only pieces.

    Pieces keep their surrounding whitespace, callers trim as needed.
    """
    return [p for p in SENT_SPLIT_RE.split(text or "") if trim_ws(p)]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def safe_filename(name: str, default: str = "upload") -> str:
    base = os.path.basename(name or "")
    cleaned = _UNSAFE_FILENAME_RE.sub("_", base).strip("._")
    return cleaned or default


def truncate_center(text: str, max_len: int) -> str:
    """Keep head+tail so the start and the end of long notes both reach the LLM."""
    if not text or max_len <= 0 or len(text) <= max_len:
        return text or ""
    head = max_len * 2 // 3
    tail = max_len - head
    return text[:head] + "\n...\n" + text[-tail:]


def format_hms(iso_ts: str) -> str:
    """HH:MM:SS of an ISO timestamp; the raw string if it does not parse."""
    try:
        return datetime.fromisoformat(iso_ts).strftime("%H:%M:%S")
    except (TypeError, ValueError):
        return iso_ts or ""
