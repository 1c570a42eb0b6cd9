from __future__ import annotations

import pytest

from ai_parallel.agent.utils import (
    derive_model_name,
    extract_model_arg,
    sanitize_environment,
    sanitize_model_name,
)


@pytest.mark.parametrize(
    ("agent_args", "expected"),
    [
        (["--model=gpt-5.1-pro", "--full-auto"], "gpt-5.1-pro"),
        (["--model", "gpt-5.1-pro"], "gpt-5.1-pro"),
        (["--full-auto"], "default"),
        ([], "default"),
        (["--model"], "default"),
        (["--model", "--full-auto"], "default"),
        (["--model="], "default"),
        (["--full-auto", "--model", "o3", "--model=ignored"], "o3"),
        (["--model", "--json", "--model=late"], "default"),
        (["--model=openai/gpt 4o"], "openai-gpt-4o"),
        (["--model=gpt:4+o"], "gpt-4-o"),
    ],
)
def test_derive_model_name(agent_args: list[str], expected: str) -> None:
    assert derive_model_name(agent_args) == expected


def test_extract_model_arg_accepts_single_dash_value() -> None:
    assert extract_model_arg(["--model", "-weird"]) == "-weird"


def test_sanitize_model_name_keeps_allowed_characters() -> None:
    assert sanitize_model_name("A.b_c-9") == "A.b_c-9"
    assert sanitize_model_name("modèle") == "mod-le"


def test_sanitize_environment_strips_virtualenv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIRTUAL_ENV", "/tmp/venv")
    monkeypatch.setenv("PYTHONPATH", "value")
    env = sanitize_environment({"EXTRA": "1"})

    assert "VIRTUAL_ENV" not in env
    assert "PYTHONPATH" not in env
    assert env["EXTRA"] == "1"
