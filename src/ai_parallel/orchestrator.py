"""Variant orchestration: clean up old runs, then provision and run N variants."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol, Sequence

from .agent import AgentRunner
from .agent.utils import derive_model_name
from .config import EVICTION_TRIGGER, MAX_KEEP
from .git.repository import GitError
from .git.worktrees import WorktreeProvisioner
from .models import RunConfig, RunSummary, TeardownOutcome, VariantOutcome, VariantStatus
from .namespace import BranchNamespace, cleanup_old_branches, find_worktree
from .naming import branch_base_name, generate_suffix

logger = logging.getLogger(__name__)


class Repository(BranchNamespace, Protocol):
    def current_branch(self) -> str: ...

    def branch_exists(self, name: str) -> bool: ...


def _run_sync(coro):
    """Execute an async coroutine on a dedicated event loop."""

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def resolve_run_config(
    repo: Repository,
    *,
    prompt: str,
    num_variants: int,
    base_ref: str | None = None,
    name_base: str | None = None,
    agent_args: Sequence[str] = (),
) -> RunConfig:
    """Build the immutable configuration for one invocation."""

    model_name = derive_model_name(agent_args)
    return RunConfig(
        num_variants=num_variants,
        base_ref=base_ref or repo.current_branch(),
        prompt=prompt,
        agent_args=tuple(agent_args),
        name_base=name_base or None,
        model_name=model_name,
        branch_base=branch_base_name(model_name, name_base),
    )


class VariantOrchestrator:
    """Drive one run: Cleaning, Naming, Provisioning for each variant, Done."""

    def __init__(
        self,
        repo: Repository,
        provisioner: WorktreeProvisioner,
        agent: AgentRunner,
        *,
        max_keep: int = MAX_KEEP,
        eviction_trigger: int = EVICTION_TRIGGER,
        suffix_factory: Callable[[], str] = generate_suffix,
    ) -> None:
        self._repo = repo
        self._provisioner = provisioner
        self._agent = agent
        self._max_keep = max_keep
        self._eviction_trigger = eviction_trigger
        self._suffix_factory = suffix_factory

    def clean(self, config: RunConfig) -> list[TeardownOutcome]:
        return cleanup_old_branches(
            self._repo,
            config.branch_base,
            max_keep=self._max_keep,
            trigger=self._eviction_trigger,
        )

    def name(self, config: RunConfig) -> RunConfig:
        return config.with_prefix(self._suffix_factory())

    def run(self, config: RunConfig) -> RunSummary:
        cleanup = self.clean(config)
        config = self.name(config)
        summary = RunSummary(config=config, cleanup=cleanup)

        self._print_banner(config)
        for index in range(1, config.num_variants + 1):
            summary.variants.append(self.provision(config, index))

        self._print_tally(summary)
        print(f"=== Done. Use '{self._provisioner.listing_hint}' to see all worktrees. ===")
        return summary

    def provision(self, config: RunConfig, index: int) -> VariantOutcome:
        """Create one variant's worktree and run the agent in it.

        Worktree creation errors propagate; every other failure is recorded on
        the returned outcome.
        """

        total = config.num_variants
        tag = f"[{index}/{total}]"
        branch = config.branch_name(index)

        if self._repo.branch_exists(branch):
            print(f"{tag} Branch already exists: {branch}. Skipping.")
            return VariantOutcome(index=index, branch=branch, status=VariantStatus.SKIPPED_EXISTING)

        print(f"{tag} Creating worktree for branch: {branch} (from {config.base_ref})")
        self._provisioner.create_worktree(branch, config.base_ref)

        try:
            worktree_path = find_worktree(self._repo, branch)
        except GitError as exc:
            logger.warning("%s Failed to list worktrees for %s: %s", tag, branch, exc)
            return VariantOutcome(
                index=index,
                branch=branch,
                status=VariantStatus.RESOLUTION_FAILED,
                detail=str(exc),
            )
        if worktree_path is None:
            logger.warning("%s Failed to resolve worktree path for %s", tag, branch)
            return VariantOutcome(
                index=index,
                branch=branch,
                status=VariantStatus.RESOLUTION_FAILED,
                detail="worktree path not found after creation",
            )

        print(f"{tag} Starting AI for branch: {branch}")
        try:
            result = _run_sync(self._agent.run(worktree_path, config.prompt, config.agent_args))
        except OSError as exc:
            logger.warning(
                "%s agent could not be started: %s",
                tag,
                exc,
                extra={"branch": branch},
            )
            return VariantOutcome(
                index=index,
                branch=branch,
                status=VariantStatus.AGENT_FAILED,
                worktree_path=worktree_path,
                detail=str(exc),
            )
        print()
        if not result.ok:
            logger.warning(
                "%s agent exited with non-zero status %s",
                tag,
                result.returncode,
                extra={"branch": branch, "returncode": result.returncode},
            )
            return VariantOutcome(
                index=index,
                branch=branch,
                status=VariantStatus.AGENT_FAILED,
                worktree_path=worktree_path,
                returncode=result.returncode,
                detail=result.stderr.strip()[:400] or None,
            )

        return VariantOutcome(
            index=index,
            branch=branch,
            status=VariantStatus.COMPLETED,
            worktree_path=worktree_path,
            returncode=result.returncode,
        )

    @staticmethod
    def _print_banner(config: RunConfig) -> None:
        print("=== ai-parallel runner ===")
        print(f"Base ref     : {config.base_ref}")
        print(f"Model        : {config.model_name}")
        print(f"Branch base  : {config.branch_prefix}")
        print(f"Variants     : {config.num_variants}")
        print(f"Prompt       : {config.prompt}")
        print()

    @staticmethod
    def _print_tally(summary: RunSummary) -> None:
        print(
            f"Summary: {summary.count(VariantStatus.COMPLETED)} completed, "
            f"{summary.count(VariantStatus.SKIPPED_EXISTING)} skipped, "
            f"{summary.count(VariantStatus.RESOLUTION_FAILED)} unresolved, "
            f"{summary.count(VariantStatus.AGENT_FAILED)} agent failures, "
            f"{len(summary.evicted)} old branches evicted"
        )


__all__ = ["Repository", "VariantOrchestrator", "resolve_run_config"]
