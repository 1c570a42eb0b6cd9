"""Git CLI access: branch and worktree queries, worktree creation backends."""

from .repository import (
    GitCommandError,
    GitCommandResult,
    GitError,
    GitNotFoundError,
    GitRepository,
    NotAGitRepositoryError,
    parse_worktree_porcelain,
)
from .worktrees import GitWorktreeProvisioner, GtrWorktreeProvisioner, WorktreeProvisioner, build_provisioner

__all__ = [
    "GitCommandError",
    "GitCommandResult",
    "GitError",
    "GitNotFoundError",
    "GitRepository",
    "GitWorktreeProvisioner",
    "GtrWorktreeProvisioner",
    "NotAGitRepositoryError",
    "WorktreeProvisioner",
    "build_provisioner",
    "parse_worktree_porcelain",
]
