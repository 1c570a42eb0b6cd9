from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeRepository
from ai_parallel import cli
from ai_parallel.agent.runner import FakeAgentRunner
from ai_parallel.config import ParallelSettings


@pytest.fixture
def settings(tmp_path: Path) -> ParallelSettings:
    return ParallelSettings(worktree_root=tmp_path / "wts")


def test_split_agent_args() -> None:
    assert cli.split_agent_args(["-n", "2", "p", "--", "--model", "x", "--"]) == (
        ["-n", "2", "p"],
        ["--model", "x", "--"],
    )
    assert cli.split_agent_args(["p"]) == (["p"], [])


def test_parse_args_collects_options() -> None:
    args, agent_args = cli.parse_args(["-n", "3", "-b", "main", "-N", "demo", "do it", "--", "--full-auto"])

    assert args.num_variants == 3
    assert args.base_ref == "main"
    assert args.name_base == "demo"
    assert args.prompt == "do it"
    assert agent_args == ["--full-auto"]


@pytest.mark.parametrize(
    "argv",
    [
        ["-n", "0", "p"],
        ["-n", "11", "p"],
        ["-n", "two", "p"],
        ["-n", "-1", "p"],
        [],
        ["-x", "p"],
        ["p", "-n"],
        ["-b"],
        [""],
        ["-n", "2", "  "],
    ],
)
def test_usage_errors_exit_one(
    argv: list[str],
    settings: ParallelSettings,
    fake_repo: FakeRepository,
    capsys: pytest.CaptureFixture[str],
) -> None:
    code = cli.main(argv, settings=settings, repo=fake_repo, agent=FakeAgentRunner())

    assert code == 1
    assert fake_repo.created == []
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "usage: ai-parallel" in err


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_help_exits_zero(flag: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([flag]) == 0
    assert "NUM_VARIANTS" in capsys.readouterr().out


def test_not_a_git_repository(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    settings: ParallelSettings,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))

    code = cli.main(["prompt"], settings=settings, agent=FakeAgentRunner())

    assert code == 1
    assert "inside a git repository" in capsys.readouterr().err


def test_missing_agent_executable(
    settings: ParallelSettings,
    fake_repo: FakeRepository,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    settings = settings.model_copy(update={"agent_path": str(tmp_path / "missing-codex")})

    code = cli.main(["prompt"], settings=settings, repo=fake_repo)

    assert code == 1
    assert "Agent executable not found" in capsys.readouterr().err
    assert fake_repo.created == []


def test_full_run_exits_zero_despite_agent_failures(
    settings: ParallelSettings,
    fake_repo: FakeRepository,
    capsys: pytest.CaptureFixture[str],
) -> None:
    agent = FakeAgentRunner([1, 0])

    code = cli.main(
        ["-n", "2", "-N", "demo", "x", "--", "--model=gpt-5.1-pro"],
        settings=settings,
        repo=fake_repo,
        agent=agent,
    )

    assert code == 0
    created = [branch for _, branch, _ in fake_repo.created]
    assert len(created) == 2
    prefix = created[0][: -len("-v1")]
    assert prefix.startswith("demo-") and len(prefix) == len("demo-") + 4
    assert created == [f"{prefix}-v1", f"{prefix}-v2"]
    assert agent.invocations[0][1] == ("exec", "--json", "--model=gpt-5.1-pro", "x")
    out = capsys.readouterr().out
    assert "Model        : gpt-5.1-pro" in out


def test_unlaunchable_agent_does_not_abort_run(
    settings: ParallelSettings,
    fake_repo: FakeRepository,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    agent_path = tmp_path / "codex"
    agent_path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    agent_path.chmod(0o644)
    settings = settings.model_copy(update={"agent_path": str(agent_path)})

    code = cli.main(["-n", "3", "-N", "demo", "x"], settings=settings, repo=fake_repo)

    assert code == 0
    assert len(fake_repo.created) == 3
    assert caplog.text.count("agent could not be started") == 3
    assert "0 completed, 0 skipped, 0 unresolved, 3 agent failures" in capsys.readouterr().out


def test_default_variant_count_comes_from_settings(
    tmp_path: Path, fake_repo: FakeRepository
) -> None:
    settings = ParallelSettings(worktree_root=tmp_path, default_variants=3)

    assert cli.main(["x"], settings=settings, repo=fake_repo, agent=FakeAgentRunner()) == 0
    assert len(fake_repo.created) == 3


def test_worktree_creation_failure_is_fatal(
    settings: ParallelSettings,
    fake_repo: FakeRepository,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    original = fake_repo.add_worktree

    def failing_add(path, branch, base_ref):
        fake_repo.fail_add.add(branch)
        return original(path, branch, base_ref)

    monkeypatch.setattr(fake_repo, "add_worktree", failing_add)

    code = cli.main(["-n", "2", "x"], settings=settings, repo=fake_repo, agent=FakeAgentRunner())

    assert code == 1
    assert "cannot add" in capsys.readouterr().err


def test_end_to_end_with_real_repository(
    git_repo: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(git_repo)
    agent = FakeAgentRunner()
    settings = ParallelSettings(worktree_root=tmp_path / "wts")

    code = cli.main(["-n", "2", "-N", "demo", "x"], settings=settings, agent=agent)

    assert code == 0
    worktrees = sorted(p.name for p in (tmp_path / "wts").iterdir())
    assert len(worktrees) == 2
    assert all(name.startswith("demo-") for name in worktrees)
    assert [cwd.name for cwd, _ in agent.invocations] == worktrees
