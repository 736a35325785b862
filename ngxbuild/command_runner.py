"""Process execution for git and the native build toolchain."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
import logging
import os
import shlex
import subprocess


logger = logging.getLogger(__name__)


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in command)


@dataclass
class CommandResult:
    """Outcome of one external process."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a checked command exits with a non-zero status."""

    def __init__(self, result: CommandResult):
        message = f"'{format_command(result.command)}' exited with status {result.returncode}"
        if not result.streamed and result.stderr.strip():
            message = f"{message}: {result.stderr.strip()}"
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Interface shared by the real and the recording runner."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Runs commands through :mod:`subprocess`.

    With ``stream`` set the child inherits stdout/stderr so long clones and
    compiles show progress; otherwise output is captured into the result.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        merged_env: Dict[str, str] | None = None
        if env is not None:
            merged_env = os.environ.copy()
            merged_env.update(env)

        args = [str(part) for part in command]
        logger.debug("run%s: %s (cwd=%s)", f" [{note}]" if note else "", format_command(args), cwd or os.getcwd())
        try:
            process = subprocess.run(
                args,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                capture_output=not stream,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            # Missing executable (no git/make on PATH) or missing cwd.
            result = CommandResult(command=args, returncode=127, stderr=str(exc))
        except OSError as exc:
            # Not executable, or cwd is not a directory; shell convention is 126.
            result = CommandResult(command=args, returncode=126, stderr=str(exc))
        else:
            result = CommandResult(
                command=args,
                returncode=process.returncode,
                stdout=process.stdout or "",
                stderr=process.stderr or "",
                streamed=stream,
            )
        if check and not result.ok:
            raise CommandError(result)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None


class RecordingCommandRunner(CommandRunner):
    """Records commands instead of executing them (``--dry-run``)."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=[str(part) for part in command],
                cwd=str(cwd) if cwd else None,
                note=note,
            )
        )
        return CommandResult(command=list(command), returncode=0)

    def iter_formatted(self, *, workspace: Path | None = None) -> Iterable[str]:
        default_cwd = str(workspace) if workspace else None
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            cwd = record.cwd or default_cwd
            if cwd:
                parts.append(f"(cwd={cwd})")
            parts.append(format_command(record.command))
            yield " ".join(parts)
