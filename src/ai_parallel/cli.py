"""Command line entry point: ``ai-parallel [-n N] [-b REF] [-N NAME] "prompt" [-- agent args]``."""

from __future__ import annotations

import argparse
import logging
import re
import sys
import textwrap
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from . import __version__
from .agent import AgentNotFoundError, AgentRunner
from .config import MAX_VARIANTS, MIN_VARIANTS, ParallelSettings, get_settings
from .git import GitCommandError, GitError, GitRepository, build_provisioner
from .orchestrator import Repository, VariantOrchestrator, resolve_run_config

logger = logging.getLogger(__name__)

_NUMERIC = re.compile(r"[0-9]+")

_EXAMPLES = textwrap.dedent(
    """\
    examples:
      ai-parallel "Improve the UI"
      ai-parallel -n 2 "Tidy up the validation code"
      ai-parallel -b main "Improve error handling" -- --model gpt-5.1-pro
      ai-parallel -N my-parallel "Work non-interactively" -- --model gpt-5.1-pro --full-auto
    """
)


class UsageError(RuntimeError):
    """Raised for invalid command line usage."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def configure_logging(level: str) -> None:
    """Configure root logging for the CLI."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="ai-parallel",
        usage='%(prog)s [-n NUM_VARIANTS] [-b BASE_REF] [-N NAME_BASE] "AI prompt" [-- extra-ai-args...]',
        description=(
            "Create NUM_VARIANTS git worktrees, each on its own branch, and run the "
            "agent with the same prompt in every one of them."
        ),
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("prompt", help="instruction given to every agent run (quote it)")
    parser.add_argument(
        "-n",
        dest="num_variants",
        metavar="NUM_VARIANTS",
        help=f"number of variants ({MIN_VARIANTS}-{MAX_VARIANTS}, default: 4)",
    )
    parser.add_argument(
        "-b",
        dest="base_ref",
        metavar="BASE_REF",
        help="branch or commit to start from (default: current branch)",
    )
    parser.add_argument(
        "-N",
        dest="name_base",
        metavar="NAME_BASE",
        help="branch name stem (default: ai-parallel-{model})",
    )
    parser.add_argument("-h", "--help", action="store_true", help="show this help and exit")
    return parser


def validate_num_variants(raw: str) -> int:
    if not _NUMERIC.fullmatch(raw):
        raise UsageError(f"-n NUM_VARIANTS must be a number (got: {raw})")
    value = int(raw)
    if not MIN_VARIANTS <= value <= MAX_VARIANTS:
        raise UsageError(
            f"NUM_VARIANTS must be between {MIN_VARIANTS} and {MAX_VARIANTS} (got: {raw})"
        )
    return value


def split_agent_args(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first ``--``; everything after it belongs to the agent."""

    args = list(argv)
    if "--" in args:
        marker = args.index("--")
        return args[:marker], args[marker + 1 :]
    return args, []


def parse_args(argv: Sequence[str]) -> tuple[argparse.Namespace, list[str]]:
    own_args, agent_args = split_agent_args(argv)
    parser = build_parser()
    if "-h" in own_args or "--help" in own_args:
        return argparse.Namespace(help=True), agent_args
    namespace = parser.parse_args(own_args)
    if not namespace.prompt.strip():
        raise UsageError("AI prompt must not be empty")
    if namespace.num_variants is not None:
        namespace.num_variants = validate_num_variants(namespace.num_variants)
    return namespace, agent_args


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def main(
    argv: Sequence[str] | None = None,
    *,
    settings: ParallelSettings | None = None,
    repo: Repository | None = None,
    agent: AgentRunner | None = None,
) -> int:
    """Entry point for the ``ai-parallel`` command."""

    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    try:
        args, agent_args = parse_args(argv)
    except UsageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1

    if args.help:
        parser.print_help()
        return 0

    try:
        settings = settings or get_settings()
    except ValidationError as exc:
        return _fail(f"invalid configuration: {exc}")
    configure_logging(settings.log_level)

    if repo is None:
        try:
            git_repo = GitRepository()
            git_repo.ensure_work_tree()
        except GitError as exc:
            return _fail(f"run this command inside a git repository ({exc})")
        repo = git_repo

    if agent is None:
        try:
            agent = AgentRunner(
                Path(settings.agent_path) if settings.agent_path else None,
                json_output=settings.agent_json,
            )
        except AgentNotFoundError as exc:
            return _fail(str(exc))

    provisioner = build_provisioner(settings.worktree_backend, repo, settings.worktree_root)
    orchestrator = VariantOrchestrator(
        repo,
        provisioner,
        agent,
        max_keep=settings.max_keep,
        eviction_trigger=settings.eviction_trigger,
    )

    logger.debug("Starting run", extra={"version": __version__, "argv": argv})
    try:
        config = resolve_run_config(
            repo,
            prompt=args.prompt,
            num_variants=args.num_variants or settings.default_variants,
            base_ref=args.base_ref,
            name_base=args.name_base,
            agent_args=agent_args,
        )
    except ValidationError as exc:
        return _fail(f"invalid run configuration: {exc}")
    except GitCommandError as exc:
        return _fail(str(exc))

    try:
        orchestrator.run(config)
    except GitCommandError as exc:
        return _fail(str(exc))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
