import hashlib
import json
import os
from typing import Optional

from .logger import warn

CACHE_DIR = os.environ.get("LLM_CACHE_DIR", ".cache")


def _ensure_dir() -> None:
    os.makedirs(CACHE_DIR, exist_ok=True)


def make_key(prompt: str, backend: str) -> str:
    return hashlib.sha256((prompt + "::" + (backend or "")).encode("utf-8")).hexdigest()


def get_cached_report(key: str) -> Optional[str]:
    path = os.path.join(CACHE_DIR, f"{key}.json")
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            report = json.load(f).get("report")
    except (OSError, ValueError, AttributeError) as e:
        warn("LLM cache", f"unreadable entry ignored ({e})", key=key[:12])
        return None
    return report if isinstance(report, str) and report.strip() else None


def put_cached_report(key: str, report: str, backend: str) -> None:
    _ensure_dir()
    path = os.path.join(CACHE_DIR, f"{key}.json")
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"backend": backend, "report": report}, f, ensure_ascii=False)
    except OSError as e:
        warn("LLM cache", f"write failed ({e})", key=key[:12])
