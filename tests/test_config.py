from __future__ import annotations

import pytest

from image_multi_editor.config import DEFAULT_IMAGE_MODEL, load_config

ENV_VARS = (
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_IMAGE_MODEL",
    "GEMINI_API_URL",
    "GEMINI_REQUEST_TIMEOUT",
    "GEMINI_TASK_TIMEOUT",
    "GEMINI_MAX_ATTEMPTS",
    "OUTPUT_ROOT_DIR",
    "OUTPUT_INCLUDE_METADATA",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")

    config = load_config(tmp_path / "missing.env")

    assert config.gemini.api_key == "secret"
    assert config.gemini.model == DEFAULT_IMAGE_MODEL
    assert config.gemini.max_attempts == 3
    assert config.output.include_metadata is True
    assert str(config.output.root_dir) == "output"


def test_api_key_fallback(monkeypatch, tmp_path):
    monkeypatch.setenv("API_KEY", "legacy")
    assert load_config(tmp_path / "missing.env").gemini.api_key == "legacy"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_IMAGE_MODEL", "gemini-3-pro-image-preview")
    monkeypatch.setenv("GEMINI_TASK_TIMEOUT", "45")
    monkeypatch.setenv("GEMINI_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("OUTPUT_ROOT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("OUTPUT_INCLUDE_METADATA", "no")

    config = load_config(tmp_path / "missing.env")

    assert config.gemini.model == "gemini-3-pro-image-preview"
    assert config.gemini.task_timeout_seconds == 45.0
    assert config.gemini.max_attempts == 5
    assert config.output.root_dir == tmp_path / "out"
    assert config.output.include_metadata is False


def test_missing_api_key(tmp_path):
    with pytest.raises(RuntimeError, match="gemini/api_key"):
        load_config(tmp_path / "missing.env")


def test_invalid_number(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_MAX_ATTEMPTS", "three")
    with pytest.raises(RuntimeError, match="Invalid integer value"):
        load_config(tmp_path / "missing.env")


def test_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GEMINI_API_KEY=from-dotenv\n", encoding="utf-8")

    assert load_config(env_file).gemini.api_key == "from-dotenv"
