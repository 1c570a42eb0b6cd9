"""Helpers for agent invocation: environment and model-name handling."""

from __future__ import annotations

import os
import re
from typing import Mapping, Sequence

DEFAULT_MODEL_NAME = "default"

_SANITIZED_VARS = {
    "PYTHONHOME",
    "PYTHONPATH",
    "VIRTUAL_ENV",
    "PIP_RESPECT_VIRTUALENV",
}
_UNSAFE_MODEL_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the current environment minus the invoking interpreter's virtualenv."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    if additional:
        env.update(additional)
    return env


def extract_model_arg(agent_args: Sequence[str]) -> str | None:
    """Return the raw ``--model`` value from agent arguments, if any.

    Only the first ``--model`` occurrence is considered. ``--model`` followed by
    another flag (or nothing) yields ``None``.
    """

    for index, arg in enumerate(agent_args):
        if arg.startswith("--model="):
            return arg[len("--model=") :]
        if arg == "--model":
            following = agent_args[index + 1] if index + 1 < len(agent_args) else ""
            if following and not following.startswith("--"):
                return following
            return None
    return None


def sanitize_model_name(raw: str | None) -> str:
    name = raw or DEFAULT_MODEL_NAME
    name = name.replace(" ", "-").replace("/", "-")
    return _UNSAFE_MODEL_CHARS.sub("-", name)


def derive_model_name(agent_args: Sequence[str]) -> str:
    """Derive a branch-safe model name from the agent's ``--model`` argument."""

    return sanitize_model_name(extract_model_arg(agent_args))


__all__ = [
    "DEFAULT_MODEL_NAME",
    "derive_model_name",
    "extract_model_arg",
    "sanitize_environment",
    "sanitize_model_name",
]
