"""Command line interface for ngxbuild."""
from __future__ import annotations

from argparse import ArgumentParser, ArgumentTypeError, Namespace
from pathlib import Path
from typing import Iterable, List, Sequence
import logging
import sys

from .build import BuildEngine, BuildError
from .command_runner import CommandError, RecordingCommandRunner, SubprocessCommandRunner
from .config_loader import ConfigError, load_options_file, merge_argument_lists
from .git_manager import CloneError, GitManager
from .source_spec import parse_spec
from .workspace import SourceSet, SourceSetOrchestrator


DEFAULT_SOURCE = "https://github.com/nginx/nginx.git"
# Fail instead of waiting for credentials on an unreachable or private URL.
GIT_ENVIRONMENT = {"GIT_TERMINAL_PROMPT": "0"}

logger = logging.getLogger(__name__)


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ArgumentTypeError(f"invalid positive integer: '{value}'") from None
    if number < 1:
        raise ArgumentTypeError(f"invalid positive integer: '{value}'")
    return number


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="ngxbuild",
        description="Clone an nginx source tree with its modules and libraries, then build it",
        epilog="SPEC is URL[@REF[,SUBDIR]]; REF defaults to 'master'.",
    )
    parser.add_argument("-s", "--source", default=DEFAULT_SOURCE, metavar="SPEC", help="Primary source to build")
    parser.add_argument(
        "-m",
        "--module",
        dest="modules",
        action="append",
        default=[],
        metavar="SPEC",
        help="Module or library source (repeatable; known libraries become --with-* flags)",
    )
    parser.add_argument(
        "-o",
        "--option",
        dest="options",
        action="append",
        default=[],
        metavar="FLAG",
        help="Raw configure flag, passed verbatim (use --option=--with-foo for flags starting with '-')",
    )
    parser.add_argument("-w", "--workspace", help="Directory receiving the clones (default: current directory)")
    parser.add_argument("-n", "--dont-clone", action="store_true", help="Reuse existing clones instead of cloning")
    parser.add_argument("-k", "--clone-only", action="store_true", help="Stop once all sources are cloned")
    parser.add_argument(
        "-c",
        "--config",
        action="append",
        default=[],
        metavar="FILE",
        help="Read further arguments from FILE (plain text, TOML, JSON or YAML)",
    )
    parser.add_argument("-j", "--jobs", type=_positive_int, help="Parallel compile jobs")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing them")
    parser.add_argument("--show-plan", action="store_true", help="Print the resolved build plan as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    return parser


def expand_config_arguments(parser: ArgumentParser, argv: Sequence[str]) -> List[str]:
    """Prepend the arguments stored in every ``--config FILE`` of ``argv``.

    ``argv`` is parsed with the full parser first so bundled short switches
    (``-vc FILE``) are split exactly as in the final parse. File contents come
    ahead of the command line so that values given on the command line take
    precedence.
    """

    command_line = parser.parse_args(list(argv))
    file_arguments: List[List[str]] = []
    for path in command_line.config:
        arguments = load_options_file(Path(path).expanduser())
        nested, _ = parser.parse_known_args(arguments)
        if nested.config:
            parser.error(f"--config cannot be used inside an options file ({path})")
        file_arguments.append(arguments)
    return merge_argument_lists(file_arguments, argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def _emit_dry_run_output(runner: RecordingCommandRunner, *, workspace: Path) -> None:
    for line in runner.iter_formatted(workspace=workspace):
        print(line)


def main(argv: Iterable[str] | None = None) -> int:
    raw_arguments = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    try:
        arguments = expand_config_arguments(parser, raw_arguments)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    args = parser.parse_args(arguments)

    _configure_logging(args.verbose)
    try:
        return _handle_build(args)
    except (CloneError, BuildError, CommandError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _handle_build(args: Namespace) -> int:
    workspace = Path(args.workspace).expanduser().resolve() if args.workspace else Path.cwd()
    specs = [parse_spec(args.source), *(parse_spec(text) for text in args.modules)]

    runner = _make_runner(args.dry_run)
    orchestrator = SourceSetOrchestrator(
        workspace_root=workspace,
        git_manager=GitManager(runner, environment=GIT_ENVIRONMENT),
        dry_run=args.dry_run,
    )
    source_set = orchestrator.process(specs, suppress_clone=args.dont_clone)
    _log_source_set(source_set)

    if args.clone_only:
        if isinstance(runner, RecordingCommandRunner):
            _emit_dry_run_output(runner, workspace=workspace)
        logger.info("Sources ready in %s", workspace)
        return 0

    engine = BuildEngine(command_runner=runner)
    plan = engine.plan(source_set.primary_dir, [*source_set.flags, *args.options], jobs=args.jobs)
    if args.show_plan:
        print(engine.serialize_plan(plan))

    engine.execute(plan)

    if isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner, workspace=workspace)
    else:
        logger.info("Build finished in %s", plan.source_dir)
    return 0


def _log_source_set(source_set: SourceSet) -> None:
    for entry in source_set.entries:
        logger.debug("%s %s -> %s", entry.role.value, entry.spec, entry.destination)
    logger.info("Primary source: %s", source_set.primary_dir)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
