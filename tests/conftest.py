from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from ai_parallel.git import GitCommandError
from ai_parallel.models import WorktreeBinding


class FakeRepository:
    """In-memory stand-in for GitRepository."""

    def __init__(
        self,
        branches: dict[str, int] | None = None,
        worktrees: list[WorktreeBinding] | None = None,
        *,
        current: str = "main",
        root: Path = Path("/repo"),
    ) -> None:
        self.branches: dict[str, int] = dict(branches or {})
        self.worktrees: list[WorktreeBinding] = list(worktrees or [])
        self.current = current
        self.root = root
        self.clock = 1_700_000_000
        self.removed: list[Path] = []
        self.deleted: list[str] = []
        self.created: list[tuple[Path, str, str]] = []
        self.fail_remove: set[Path] = set()
        self.fail_delete: set[str] = set()
        self.fail_add: set[str] = set()
        self.unbound_on_add: set[str] = set()

    def current_branch(self) -> str:
        return self.current

    def toplevel(self) -> Path:
        return self.root

    def branch_exists(self, name: str) -> bool:
        return name in self.branches

    def list_branches(self) -> list[tuple[str, int]]:
        return list(self.branches.items())

    def list_worktrees(self) -> list[WorktreeBinding]:
        return list(self.worktrees)

    def add_worktree(self, path: Path, branch: str, base_ref: str) -> None:
        if branch in self.fail_add:
            raise GitCommandError(("git", "worktree", "add"), 128, "fatal: cannot add")
        self.clock += 1
        self.branches[branch] = self.clock
        self.created.append((path, branch, base_ref))
        if branch not in self.unbound_on_add:
            self.worktrees.append(WorktreeBinding(path=path, branch=branch))

    def remove_worktree(self, path: Path, *, force: bool = True) -> None:
        if path in self.fail_remove:
            raise GitCommandError(("git", "worktree", "remove"), 128, "fatal: locked")
        self.worktrees = [binding for binding in self.worktrees if binding.path != path]
        self.removed.append(path)

    def delete_branch(self, name: str, *, force: bool = True) -> None:
        if name in self.fail_delete or name not in self.branches:
            raise GitCommandError(("git", "branch", "-D", name), 1, f"error: branch '{name}' not found")
        del self.branches[name]
        self.deleted.append(name)


@pytest.fixture
def fake_repo() -> FakeRepository:
    return FakeRepository()


def git(cwd: Path, *args: str, env: dict[str, str] | None = None) -> str:
    process = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
        env={**os.environ, **(env or {})},
    )
    return process.stdout.strip()


def make_branch(repo: Path, name: str, timestamp: int, *, base: str = "main") -> None:
    """Create ``name`` on top of ``base`` with a commit dated ``timestamp``."""

    tree = git(repo, "rev-parse", f"{base}^{{tree}}")
    stamp = f"{timestamp} +0000"
    sha = git(
        repo,
        "commit-tree",
        tree,
        "-p",
        base,
        "-m",
        name,
        env={"GIT_COMMITTER_DATE": stamp, "GIT_AUTHOR_DATE": stamp},
    )
    git(repo, "branch", name, sha)


@pytest.fixture
def git_repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    global_config = tmp_path / "gitconfig"
    global_config.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")

    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")
    git(repo, "config", "user.email", "dev@example.com")
    git(repo, "config", "user.name", "Dev")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("hello\n", encoding="utf-8")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "init")
    return repo
