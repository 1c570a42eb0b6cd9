"""Thin synchronous wrapper over the git CLI."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from ..models import WorktreeBinding

_HEADS_PREFIX = "refs/heads/"


class GitError(RuntimeError):
    """Base class for git errors."""


class GitNotFoundError(GitError):
    """Raised when the git executable cannot be located."""


class NotAGitRepositoryError(GitError):
    """Raised when the working directory is not inside a git work tree."""


class GitCommandError(GitError):
    """Raised when a git command exits non-zero."""

    def __init__(self, args: tuple[str, ...], returncode: int, stderr: str) -> None:
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit code {returncode}"
        super().__init__(f"{' '.join(args)} failed: {detail}")


@dataclass(slots=True)
class GitCommandResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def parse_worktree_porcelain(text: str) -> list[WorktreeBinding]:
    """Parse ``git worktree list --porcelain`` output.

    Entries are separated by blank lines. Detached and bare worktrees carry no
    ``branch`` line and come back with ``branch=None``.
    """

    bindings: list[WorktreeBinding] = []
    path: Path | None = None
    branch: str | None = None
    head: str | None = None

    def _flush() -> None:
        if path is not None:
            bindings.append(WorktreeBinding(path=path, branch=branch, head=head))

    for line in text.splitlines():
        if not line.strip():
            _flush()
            path, branch, head = None, None, None
            continue
        if line.startswith("worktree "):
            _flush()
            path, branch, head = Path(line[len("worktree ") :]), None, None
        elif line.startswith("HEAD "):
            head = line[len("HEAD ") :].strip()
        elif line.startswith("branch "):
            ref = line[len("branch ") :].strip()
            branch = ref[len(_HEADS_PREFIX) :] if ref.startswith(_HEADS_PREFIX) else ref
    _flush()
    return bindings


class GitRepository:
    """Execute git commands against the repository containing ``cwd``."""

    def __init__(self, cwd: Path | None = None, executable: Path | None = None) -> None:
        self._cwd = Path(cwd) if cwd is not None else Path.cwd()
        self._executable_path = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def cwd(self) -> Path:
        return self._cwd

    def is_inside_work_tree(self) -> bool:
        result = self._invoke("rev-parse", "--is-inside-work-tree", check=False)
        return result.ok and result.stdout.strip() == "true"

    def ensure_work_tree(self) -> None:
        if not self.is_inside_work_tree():
            raise NotAGitRepositoryError(f"{self._cwd} is not inside a git work tree")

    def toplevel(self) -> Path:
        return Path(self._invoke("rev-parse", "--show-toplevel").stdout.strip())

    def current_branch(self) -> str:
        return self._invoke("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def branch_exists(self, name: str) -> bool:
        result = self._invoke("show-ref", "--verify", "--quiet", f"{_HEADS_PREFIX}{name}", check=False)
        return result.ok

    def list_branches(self) -> list[tuple[str, int]]:
        """Return ``(branch, committer unix timestamp)`` for every local branch."""

        result = self._invoke(
            "for-each-ref",
            "--format=%(refname) %(committerdate:unix)",
            "refs/heads",
        )
        branches: list[tuple[str, int]] = []
        for line in result.stdout.splitlines():
            ref, _, stamp = line.strip().rpartition(" ")
            if not ref.startswith(_HEADS_PREFIX):
                continue
            try:
                created_at = int(stamp)
            except ValueError:
                created_at = 0
            branches.append((ref[len(_HEADS_PREFIX) :], created_at))
        return branches

    def list_worktrees(self) -> list[WorktreeBinding]:
        result = self._invoke("worktree", "list", "--porcelain")
        return parse_worktree_porcelain(result.stdout)

    def add_worktree(self, path: Path, branch: str, base_ref: str) -> None:
        self._invoke("worktree", "add", "-b", branch, str(path), base_ref)

    def remove_worktree(self, path: Path, *, force: bool = True) -> None:
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        self._invoke(*args, str(path))

    def delete_branch(self, name: str, *, force: bool = True) -> None:
        self._invoke("branch", "-D" if force else "-d", name)

    def run(self, *args: str, check: bool = True) -> GitCommandResult:
        """Run an arbitrary git subcommand, e.g. an extension such as ``gtr``."""

        return self._invoke(*args, check=check)

    def _invoke(self, *args: str, check: bool = True) -> GitCommandResult:
        cmd = (str(self._executable_path), *args)
        process = subprocess.run(
            cmd,
            cwd=str(self._cwd),
            capture_output=True,
            text=True,
            errors="replace",
        )
        result = GitCommandResult(
            args=("git", *args),
            returncode=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
        )
        if check and not result.ok:
            raise GitCommandError(result.args, result.returncode, result.stderr)
        return result


__all__ = [
    "GitCommandError",
    "GitCommandResult",
    "GitError",
    "GitNotFoundError",
    "GitRepository",
    "NotAGitRepositoryError",
    "parse_worktree_porcelain",
]
