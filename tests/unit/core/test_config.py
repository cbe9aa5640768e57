"""Tests for environment-driven settings."""

from fintable.core.config import ExportSettings, ExtractionSettings, LLMSettings, SessionSettings


def test_llm_defaults(monkeypatch):
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    monkeypatch.delenv("GEMINI_MAX_RETRIES", raising=False)

    llm = LLMSettings()

    assert llm.gemini_model == "gemini-2.5-flash"
    assert llm.max_retries == 1
    assert llm.page_temperature == 0.1


def test_extraction_defaults():
    extraction = ExtractionSettings()

    assert extraction.render_scale == 1.5
    assert extraction.jpeg_quality == 90
    assert extraction.default_confidence == 0.98
    assert extraction.not_specified_label == "לא צוין"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DB_EXPORT_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("RENDER_SCALE", "2")

    assert ExportSettings().db_export_delay_seconds == 0.25
    assert ExtractionSettings().render_scale == 2.0


def test_session_idle_ttl_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_IDLE_TTL_SECONDS", "120")

    assert SessionSettings().idle_ttl_seconds == 120.0
