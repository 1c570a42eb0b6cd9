"""Async runner for the agent CLI (``codex exec``)."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .utils import sanitize_environment


class AgentRunnerError(RuntimeError):
    """Base class for agent runner errors."""


class AgentNotFoundError(AgentRunnerError):
    """Raised when the agent CLI executable cannot be located."""


@dataclass(slots=True)
class AgentExecutionResult:
    """Holds the outcome of an agent invocation.

    ``stdout`` and ``stderr`` are empty when output was streamed to the terminal.
    """

    args: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class AgentRunner:
    """Run ``codex exec`` inside a worktree."""

    default_binary = "codex"

    def __init__(
        self,
        executable: Path | None = None,
        *,
        json_output: bool = True,
        capture_output: bool = False,
    ) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._json_output = json_output
        self._capture_output = capture_output

    @classmethod
    def _resolve_executable(cls, explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise AgentNotFoundError(f"Agent executable not found at {candidate}")

        binary = shutil.which(cls.default_binary)
        if binary is None:
            raise AgentNotFoundError(f"{cls.default_binary} executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    def build_args(self, prompt: str, extra_args: Sequence[str] = ()) -> list[str]:
        args: list[str] = ["exec"]
        if self._json_output:
            args.append("--json")
        args.extend(extra_args)
        args.append(prompt)
        return args

    async def run(
        self, cwd: Path, prompt: str, extra_args: Sequence[str] = ()
    ) -> AgentExecutionResult:
        return await self._invoke(Path(cwd), *self.build_args(prompt, extra_args))

    async def _invoke(self, cwd: Path, *args: str) -> AgentExecutionResult:
        cmd = [str(self._executable_path), *args]
        pipe = asyncio.subprocess.PIPE if self._capture_output else None
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdout=pipe,
            stderr=pipe,
            env=sanitize_environment(),
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
        stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")
        return AgentExecutionResult(
            args=tuple(cmd), cwd=cwd, returncode=process.returncode, stdout=stdout, stderr=stderr
        )


class FakeAgentRunner(AgentRunner):
    """Test double that records invocations instead of spawning processes."""

    def __init__(  # type: ignore[override]
        self,
        returncodes: Iterable[int] | None = None,
        *,
        json_output: bool = True,
    ) -> None:
        self._returncodes = list(returncodes or [])
        self._invocations: list[tuple[Path, tuple[str, ...]]] = []
        self._executable_path = Path("/tmp/fake-codex")
        self._json_output = json_output
        self._capture_output = True

    async def _invoke(self, cwd: Path, *args: str) -> AgentExecutionResult:  # type: ignore[override]
        self._invocations.append((cwd, tuple(args)))
        returncode = self._returncodes.pop(0) if self._returncodes else 0
        return AgentExecutionResult(args=tuple(args), cwd=cwd, returncode=returncode)

    @property
    def invocations(self) -> list[tuple[Path, tuple[str, ...]]]:
        return self._invocations


__all__ = [
    "AgentExecutionResult",
    "AgentNotFoundError",
    "AgentRunner",
    "AgentRunnerError",
    "FakeAgentRunner",
]
