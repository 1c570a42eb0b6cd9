"""Discovery, ordering and eviction of branches created by earlier runs.

Nothing is persisted between runs. Ownership is decided purely by the naming
grammar in :mod:`ai_parallel.naming`, recency by each branch tip's committer
timestamp, and worktree bindings are read live from ``git worktree list``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

from .config import EVICTION_TRIGGER, MAX_KEEP
from .git import GitError
from .models import BranchRecord, TeardownOutcome, WorktreeBinding
from .naming import owned_branch_pattern

logger = logging.getLogger(__name__)


class BranchNamespace(Protocol):
    def list_branches(self) -> list[tuple[str, int]]: ...

    def list_worktrees(self) -> list[WorktreeBinding]: ...

    def remove_worktree(self, path: Path, *, force: bool = True) -> None: ...

    def delete_branch(self, name: str, *, force: bool = True) -> None: ...


def list_owned_branches(repo: BranchNamespace, base: str) -> list[BranchRecord]:
    """Return branches named ``<base>-<4 x [a-z0-9]>-v<digits>``, in enumeration order."""

    pattern = owned_branch_pattern(base)
    return [
        BranchRecord(name=name, created_at=created_at)
        for name, created_at in repo.list_branches()
        if pattern.fullmatch(name)
    ]


def find_worktree(repo: BranchNamespace, branch: str) -> Path | None:
    """Return the path of the worktree checked out on ``branch``, if any."""

    for binding in repo.list_worktrees():
        if binding.branch is None:
            continue
        if binding.branch == branch:
            return binding.path
    return None


def select_for_eviction(
    records: Sequence[BranchRecord],
    max_keep: int = MAX_KEEP,
    trigger: int = EVICTION_TRIGGER,
) -> list[BranchRecord]:
    """Pick the oldest records to delete once ``trigger`` is reached.

    Below ``trigger`` nothing is selected. At or above it, everything but the
    ``max_keep`` newest records is selected, oldest first. The sort is stable so
    equal timestamps keep enumeration order.
    """

    if len(records) < trigger:
        return []
    ordered = sorted(records, key=lambda record: record.created_at)
    return ordered[: max(len(ordered) - max_keep, 0)]


def evict(repo: BranchNamespace, record: BranchRecord) -> TeardownOutcome:
    """Remove the branch's worktree (if any) and force-delete the branch.

    Each step is best effort; failures are logged and recorded, never raised.
    """

    outcome = TeardownOutcome(branch=record.name)

    try:
        outcome.worktree_path = find_worktree(repo, record.name)
    except GitError as exc:
        logger.warning("Failed to list worktrees for %s: %s", record.name, exc)
        outcome.errors.append(f"worktree lookup: {exc}")

    if outcome.worktree_path is not None:
        print(f"Removing worktree for {record.name}: {outcome.worktree_path}")
        try:
            repo.remove_worktree(outcome.worktree_path, force=True)
            outcome.worktree_removed = True
        except GitError as exc:
            logger.warning(
                "Failed to remove worktree %s for %s: %s",
                outcome.worktree_path,
                record.name,
                exc,
            )
            outcome.errors.append(f"worktree remove: {exc}")

    print(f"Deleting branch {record.name}")
    try:
        repo.delete_branch(record.name, force=True)
        outcome.branch_deleted = True
    except GitError as exc:
        logger.warning("Failed to delete branch %s: %s", record.name, exc)
        outcome.errors.append(f"branch delete: {exc}")

    return outcome


def cleanup_old_branches(
    repo: BranchNamespace,
    base: str,
    *,
    max_keep: int = MAX_KEEP,
    trigger: int = EVICTION_TRIGGER,
) -> list[TeardownOutcome]:
    """Evict the oldest owned branches under ``base`` once there are too many."""

    records = list_owned_branches(repo, base)
    doomed = select_for_eviction(records, max_keep=max_keep, trigger=trigger)
    if not doomed:
        logger.debug(
            "No cleanup needed",
            extra={"base": base, "owned": len(records), "trigger": trigger},
        )
        return []

    print(
        f"Found {len(records)} existing script branches (base: {base}). "
        f"Deleting {len(doomed)} oldest to keep {max_keep}."
    )
    return [evict(repo, record) for record in doomed]


__all__ = [
    "BranchNamespace",
    "cleanup_old_branches",
    "evict",
    "find_worktree",
    "list_owned_branches",
    "select_for_eviction",
]
