import pytest
import requests

from firereport import cache, report_generator
from firereport.report_generator import ReportGenerationError, generate_report


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.setattr(cache, "CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("OLLAMA_MODEL", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("USE_LLM", "true")


def test_no_backend_configured():
    with pytest.raises(ReportGenerationError, match="No LLM backend configured"):
        generate_report("prompt")


def test_disabled(monkeypatch):
    monkeypatch.setenv("USE_LLM", "false")
    with pytest.raises(ReportGenerationError, match="disabled"):
        generate_report("prompt")


def test_ollama_answer_is_cached(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama3")
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json))
        return _FakeResponse({"response": "  ## Final Fire Incident Report: Barn  "})

    monkeypatch.setattr(report_generator.requests, "post", fake_post)

    assert generate_report("the prompt") == "## Final Fire Incident Report: Barn"
    assert generate_report("the prompt") == "## Final Fire Incident Report: Barn"
    assert len(calls) == 1
    url, payload = calls[0]
    assert url.endswith("/api/generate")
    assert payload["model"] == "llama3"
    assert payload["prompt"] == "the prompt"
    assert payload["stream"] is False


def test_ollama_failure_without_fallback(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama3")

    def fake_post(url, json=None, timeout=None):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(report_generator.requests, "post", fake_post)
    with pytest.raises(ReportGenerationError, match="ollama: connection refused"):
        generate_report("prompt")


def test_falls_back_to_openai(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "llama3")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(
        report_generator.requests, "post",
        lambda url, json=None, timeout=None: _FakeResponse({"response": ""}),
    )
    seen = []

    def fake_openai(prompt, model_name):
        seen.append(model_name)
        return "Report from OpenAI"

    monkeypatch.setattr(report_generator, "_openai_generate", fake_openai)

    assert generate_report("prompt") == "Report from OpenAI"
    assert seen == [report_generator.OPENAI_MODEL_DEFAULT]
