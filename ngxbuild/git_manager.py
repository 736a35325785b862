"""Git operations used to materialise sources in the workspace."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping
import logging
import shutil

from .command_runner import CommandResult, CommandRunner


logger = logging.getLogger(__name__)


class CloneError(RuntimeError):
    """A checkout of ``url`` at ``ref`` into ``destination`` did not succeed."""

    def __init__(self, url: str, ref: str, destination: Path, reason: str | None = None) -> None:
        message = f"Unable to clone '{url}' at ref '{ref}' into '{destination}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.url = url
        self.ref = ref
        self.destination = destination


class GitManager:
    def __init__(self, runner: CommandRunner, *, environment: Mapping[str, str] | None = None) -> None:
        self._runner = runner
        self._environment = dict(environment) if environment else None

    def clone_source(
        self,
        *,
        url: str,
        ref: str,
        destination: Path,
        dry_run: bool = False,
    ) -> Path:
        """Replace ``destination`` with a fresh shallow checkout of ``ref``.

        Whatever already lives at ``destination`` is removed first, so running
        twice with the same inputs leaves exactly one clean checkout behind.
        """

        if not dry_run:
            self._remove_existing(url, ref, destination)
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise CloneError(url, ref, destination, str(exc)) from exc

        logger.info("Cloning %s (%s) into %s", url, ref, destination)
        result = self._runner.run(
            self.clone_command(url, ref, destination),
            check=False,
            env=self._environment,
            note=f"clone {destination.name}",
            stream=not dry_run,
        )
        if result.returncode != 0:
            raise CloneError(url, ref, destination, self._failure_reason(result))
        return destination

    @staticmethod
    def clone_command(url: str, ref: str, destination: Path) -> list[str]:
        return [
            "git",
            "clone",
            "--depth",
            "1",
            "--single-branch",
            "--branch",
            ref,
            "--",
            url,
            str(destination),
        ]

    def _remove_existing(self, url: str, ref: str, destination: Path) -> None:
        try:
            if destination.is_symlink() or destination.is_file():
                destination.unlink()
            elif destination.exists():
                logger.debug("Removing previous checkout at %s", destination)
                shutil.rmtree(destination)
        except OSError as exc:
            raise CloneError(url, ref, destination, str(exc)) from exc

    @staticmethod
    def _failure_reason(result: CommandResult) -> str:
        detail = result.stderr.strip()
        if detail:
            return detail.splitlines()[-1]
        return f"git exited with status {result.returncode}"


__all__ = ["CloneError", "GitManager"]
