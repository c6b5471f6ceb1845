import os
from typing import List, Optional

import requests

from .cache import get_cached_report, make_key, put_cached_report
from .logger import timed, warn

# -------- LLM knobs --------
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434").rstrip("/")
OLLAMA_TIMEOUT = int(os.environ.get("OLLAMA_TIMEOUT", "120"))
OPENAI_TIMEOUT = int(os.environ.get("OPENAI_TIMEOUT", "120"))
OPENAI_MODEL_DEFAULT = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", "0.3"))
MAX_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", "4096"))

SYSTEM_PROMPT = (
    "You write final fire incident reports in markdown. "
    "Use only facts present in the provided material and say so when a section has no information."
)


class ReportGenerationError(RuntimeError):
    pass


# ----------------- Ollama path (local) -----------------

def _ollama_generate(prompt: str, model_name: str) -> Optional[str]:
    r = requests.post(
        f"{OLLAMA_URL}/api/generate",
        json={
            "model": model_name,
            "prompt": prompt,
            "system": SYSTEM_PROMPT,
            "stream": False,
            "options": {
                "temperature": TEMPERATURE,
                "num_predict": MAX_TOKENS,
                "num_ctx": 8192,
            },
        },
        timeout=OLLAMA_TIMEOUT,
    )
    r.raise_for_status()
    out = (r.json().get("response") or "").strip()
    return out or None


# ----------------- OpenAI path -----------------

def _openai_generate(prompt: str, model_name: str) -> Optional[str]:
    from openai import OpenAI
    client = OpenAI(timeout=OPENAI_TIMEOUT)
    resp = client.chat.completions.create(
        model=model_name,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
    )
    out = (resp.choices[0].message.content or "").strip()
    return out or None


def _llm_enabled() -> bool:
    return os.environ.get("USE_LLM", "true").lower() == "true"


def generate_report(prompt: str) -> str:
    """Send the composed prompt to the first configured backend that answers.

    Ollama is tried first when OLLAMA_MODEL is set, then OpenAI when
    OPENAI_API_KEY is set. Answers are cached by prompt hash per backend.
    Raises ReportGenerationError when nothing produced a report.
    """
    if not _llm_enabled():
        raise ReportGenerationError("LLM report generation is disabled (USE_LLM=false).")

    errors: List[str] = []

    model_name = os.environ.get("OLLAMA_MODEL", "").strip()
    if model_name:
        backend = f"ollama:{model_name}"
        key = make_key(prompt, backend)
        cached = get_cached_report(key)
        if cached:
            return cached
        try:
            with timed("LLM report", backend=backend):
                out = _ollama_generate(prompt, model_name)
        except (requests.RequestException, ValueError) as e:
            warn("LLM report", f"Ollama request failed ({e})")
            errors.append(f"ollama: {e}")
        else:
            if out:
                put_cached_report(key, out, backend)
                return out
            errors.append("ollama: empty response")

    if os.environ.get("OPENAI_API_KEY"):
        from openai import OpenAIError
        backend = f"openai:{OPENAI_MODEL_DEFAULT}"
        key = make_key(prompt, backend)
        cached = get_cached_report(key)
        if cached:
            return cached
        try:
            with timed("LLM report", backend=backend):
                out = _openai_generate(prompt, OPENAI_MODEL_DEFAULT)
        except OpenAIError as e:
            warn("LLM report", f"OpenAI request failed ({e})")
            errors.append(f"openai: {e}")
        else:
            if out:
                put_cached_report(key, out, backend)
                return out
            errors.append("openai: empty response")

    if not errors:
        raise ReportGenerationError(
            "No LLM backend configured. Set OLLAMA_MODEL or OPENAI_API_KEY."
        )
    raise ReportGenerationError("Report generation failed: " + "; ".join(errors))
