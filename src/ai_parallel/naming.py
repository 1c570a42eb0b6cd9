"""Branch naming grammar: stems, run suffixes and the owned-branch pattern.

Branches created by a run look like ``<stem>-<suffix>-v<index>``, where the
suffix is four characters from ``[a-z0-9]`` and the index is 1-based. Any
branch matching that shape in full is treated as ours on later runs.
"""

from __future__ import annotations

import random
import re
import secrets
import string

SUFFIX_LENGTH = 4
SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
DEFAULT_STEM_PREFIX = "ai-parallel"

_HYPHEN_RUNS = re.compile(r"-{2,}")


def generate_suffix() -> str:
    """Return a fresh 4-character run suffix."""

    try:
        return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
    except (NotImplementedError, OSError):
        # No OS entropy source; fall back to the process-local PRNG.
        return f"{random.getrandbits(16):04x}"[:SUFFIX_LENGTH]


def branch_base_name(model_name: str, name_base: str | None = None) -> str:
    """Return the branch stem: the override if given, else ``ai-parallel-<model>``."""

    base = name_base or f"{DEFAULT_STEM_PREFIX}-{model_name}"
    return _HYPHEN_RUNS.sub("-", base)


def owned_branch_pattern(base: str) -> re.Pattern[str]:
    return re.compile(
        rf"{re.escape(base)}-[a-z0-9]{{{SUFFIX_LENGTH}}}-v[0-9]+"
    )


def is_owned_branch(name: str, base: str) -> bool:
    return owned_branch_pattern(base).fullmatch(name) is not None


__all__ = [
    "DEFAULT_STEM_PREFIX",
    "SUFFIX_ALPHABET",
    "SUFFIX_LENGTH",
    "branch_base_name",
    "generate_suffix",
    "is_owned_branch",
    "owned_branch_pattern",
]
