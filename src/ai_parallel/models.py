"""Data models for runs, branches and worktrees."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import MAX_VARIANTS, MIN_VARIANTS


@dataclass(slots=True, frozen=True)
class BranchRecord:
    """A branch created by an earlier run, ordered by its tip's committer timestamp."""

    name: str
    created_at: int


@dataclass(slots=True, frozen=True)
class WorktreeBinding:
    path: Path
    branch: str | None
    head: str | None = None


@dataclass(slots=True)
class TeardownOutcome:
    """Result of evicting one branch together with its worktree."""

    branch: str
    worktree_path: Path | None = None
    worktree_removed: bool = False
    branch_deleted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class VariantStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED_EXISTING = "skipped_existing"
    RESOLUTION_FAILED = "resolution_failed"
    AGENT_FAILED = "agent_failed"


@dataclass(slots=True)
class VariantOutcome:
    index: int
    branch: str
    status: VariantStatus
    worktree_path: Path | None = None
    returncode: int | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is VariantStatus.COMPLETED


class RunConfig(BaseModel):
    """Immutable per-invocation configuration shared by every stage of a run."""

    model_config = ConfigDict(frozen=True)

    num_variants: int = Field(..., description="Number of variants to provision.")
    base_ref: str = Field(..., description="Branch or commit each variant starts from.")
    prompt: str = Field(..., description="Instruction handed to every agent run.")
    agent_args: tuple[str, ...] = Field(
        default=(), description="Extra arguments forwarded verbatim to the agent."
    )
    name_base: str | None = Field(default=None, description="Optional branch stem override.")
    model_name: str = Field(default="default", description="Sanitized model name.")
    branch_base: str = Field(..., description="Stem shared by all branches of this run family.")
    branch_prefix: str | None = Field(
        default=None, description="Stem plus this run's random suffix."
    )

    @field_validator("num_variants")
    @classmethod
    def _validate_num_variants(cls, value: int) -> int:
        if not MIN_VARIANTS <= value <= MAX_VARIANTS:
            raise ValueError(
                f"num_variants must be between {MIN_VARIANTS} and {MAX_VARIANTS} (got {value})"
            )
        return value

    @field_validator("prompt", "base_ref", "branch_base")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("value must not be empty")
        return value

    def with_prefix(self, suffix: str) -> "RunConfig":
        return self.model_copy(update={"branch_prefix": f"{self.branch_base}-{suffix}"})

    def branch_name(self, index: int) -> str:
        if self.branch_prefix is None:
            raise ValueError("branch prefix has not been generated for this run")
        return f"{self.branch_prefix}-v{index}"


@dataclass(slots=True)
class RunSummary:
    config: RunConfig
    cleanup: list[TeardownOutcome] = field(default_factory=list)
    variants: list[VariantOutcome] = field(default_factory=list)

    def count(self, status: VariantStatus) -> int:
        return sum(1 for outcome in self.variants if outcome.status is status)

    @property
    def attempted(self) -> int:
        return len(self.variants)

    @property
    def evicted(self) -> list[str]:
        return [outcome.branch for outcome in self.cleanup if outcome.branch_deleted]


__all__ = [
    "BranchRecord",
    "RunConfig",
    "RunSummary",
    "TeardownOutcome",
    "VariantOutcome",
    "VariantStatus",
    "WorktreeBinding",
]
