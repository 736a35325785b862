"""Planning and execution of the clean, configure and compile steps."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence
import json
import logging

from .command_runner import CommandResult, CommandRunner, format_command


logger = logging.getLogger(__name__)


class BuildError(RuntimeError):
    """A configure or compile step did not succeed."""

    def __init__(self, step: "BuildStep", result: CommandResult) -> None:
        super().__init__(
            f"{step.description} failed with exit code {result.returncode}: {format_command(step.command)}"
        )
        self.step = step
        self.result = result


@dataclass(slots=True)
class BuildStep:
    description: str
    command: Sequence[str]
    cwd: Path
    required: bool = True


@dataclass(slots=True)
class BuildPlan:
    source_dir: Path
    flags: List[str]
    steps: List[BuildStep] = field(default_factory=list)


class BuildEngine:
    def __init__(self, *, command_runner: CommandRunner, make: str = "make") -> None:
        self._command_runner = command_runner
        self._make = make

    def plan(self, source_dir: Path, flags: Sequence[str], *, jobs: int | None = None) -> BuildPlan:
        """Lay out the steps for building ``source_dir``.

        ``flags`` is passed to the configure script unchanged and in order, since
        the script lets a later occurrence of an option override an earlier one.
        """

        flag_list = list(flags)
        compile_cmd: List[str] = [self._make]
        if jobs:
            compile_cmd.extend(["-j", str(jobs)])
        steps = [
            BuildStep(
                description="Clean",
                command=[self._make, "clean"],
                cwd=source_dir,
                required=False,
            ),
            BuildStep(
                description="Configure",
                command=[self._configure_script(source_dir), *flag_list],
                cwd=source_dir,
            ),
            BuildStep(
                description="Compile",
                command=compile_cmd,
                cwd=source_dir,
            ),
        ]
        return BuildPlan(source_dir=source_dir, flags=flag_list, steps=steps)

    def execute(self, plan: BuildPlan) -> List[CommandResult]:
        results: List[CommandResult] = []
        for step in plan.steps:
            logger.info("%s: %s", step.description, format_command(step.command))
            result = self._command_runner.run(
                step.command,
                cwd=step.cwd,
                check=False,
                note=step.description.lower(),
                stream=True,
            )
            results.append(result)
            if result.returncode == 0:
                continue
            if not step.required:
                # A fresh checkout has no Makefile yet.
                logger.warning("%s failed with exit code %d; continuing", step.description, result.returncode)
                continue
            raise BuildError(step, result)
        return results

    @staticmethod
    def _configure_script(source_dir: Path) -> str:
        # Release tarballs ship ./configure, git checkouts only auto/configure.
        if (source_dir / "configure").is_file():
            return "./configure"
        return "auto/configure"

    def serialize_plan(self, plan: BuildPlan) -> str:
        data: Dict[str, object] = {
            "source_dir": str(plan.source_dir),
            "flags": list(plan.flags),
            "steps": [
                {
                    "description": step.description,
                    "command": list(step.command),
                    "cwd": str(step.cwd),
                    "required": step.required,
                }
                for step in plan.steps
            ],
        }
        return json.dumps(data, indent=2)


__all__ = ["BuildEngine", "BuildError", "BuildPlan", "BuildStep"]
