"""Worktree creation backends."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from .repository import GitRepository

logger = logging.getLogger(__name__)


class WorktreeProvisioner(Protocol):
    listing_hint: str

    def create_worktree(self, branch: str, base_ref: str) -> None: ...


class GitWorktreeProvisioner:
    """Create worktrees with plain ``git worktree add`` under a shared root directory."""

    listing_hint = "git worktree list"

    def __init__(self, repo: GitRepository, root: Path | None = None) -> None:
        self._repo = repo
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Path:
        if self._root is None:
            toplevel = self._repo.toplevel()
            self._root = toplevel.parent / f"{toplevel.name}-worktrees"
        return self._root

    def create_worktree(self, branch: str, base_ref: str) -> None:
        # Slashes in branch names would otherwise nest directories.
        path = self.root / branch.replace("/", "-")
        logger.debug("Adding worktree", extra={"branch": branch, "path": str(path)})
        self._repo.add_worktree(path, branch, base_ref)


class GtrWorktreeProvisioner:
    """Create worktrees through the ``git gtr`` extension."""

    listing_hint = "git gtr list"

    def __init__(self, repo: GitRepository) -> None:
        self._repo = repo

    def create_worktree(self, branch: str, base_ref: str) -> None:
        self._repo.run("gtr", "new", branch, "--from", base_ref)


def build_provisioner(
    backend: str, repo: GitRepository, root: Path | None = None
) -> WorktreeProvisioner:
    if backend == "gtr":
        return GtrWorktreeProvisioner(repo)
    if backend == "git":
        return GitWorktreeProvisioner(repo, root)
    raise ValueError(f"Unknown worktree backend '{backend}'")


__all__ = [
    "GitWorktreeProvisioner",
    "GtrWorktreeProvisioner",
    "WorktreeProvisioner",
    "build_provisioner",
]
