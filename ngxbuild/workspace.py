"""Resolution of an ordered list of source specs into a workspace and flags."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple
import logging

from .dependencies import DependencyClassifier
from .git_manager import GitManager
from .source_spec import SourceSpec


logger = logging.getLogger(__name__)

ADD_MODULE_FLAG = "--add-module={path}"


class Role(str, Enum):
    PRIMARY = "primary"
    ADDITIONAL = "additional"
    DEPENDENCY = "dependency"


@dataclass(frozen=True, slots=True)
class WorkspaceEntry:
    spec: SourceSpec
    role: Role
    destination: Path
    flag: str | None = None


@dataclass(frozen=True, slots=True)
class SourceSet:
    """Result of processing a source list: where the primary tree lives and
    which configure flags the remaining entries contribute, in input order."""

    primary_dir: Path
    entries: Tuple[WorkspaceEntry, ...]
    flags: Tuple[str, ...]

    def entries_for(self, role: Role) -> List[WorkspaceEntry]:
        return [entry for entry in self.entries if entry.role is role]


def module_path(destination: Path, configure_subdir: str) -> Path:
    subdir = configure_subdir.rstrip("/\\")
    if not subdir:
        return destination
    return destination / subdir


class SourceSetOrchestrator:
    def __init__(
        self,
        *,
        workspace_root: Path,
        git_manager: GitManager,
        classifier: DependencyClassifier | None = None,
        dry_run: bool = False,
    ) -> None:
        self._workspace_root = workspace_root
        self._git_manager = git_manager
        self._classifier = classifier or DependencyClassifier()
        self._dry_run = dry_run

    def assign_roles(self, specs: Sequence[SourceSpec]) -> List[Tuple[SourceSpec, Role]]:
        if not specs:
            raise ValueError("At least one source (the primary source) is required")
        assigned: List[Tuple[SourceSpec, Role]] = [(specs[0], Role.PRIMARY)]
        for spec in specs[1:]:
            if self._classifier.match(spec.url) is not None:
                assigned.append((spec, Role.DEPENDENCY))
            else:
                assigned.append((spec, Role.ADDITIONAL))
        return assigned

    def process(self, specs: Iterable[SourceSpec], *, suppress_clone: bool = False) -> SourceSet:
        entries = self._plan_entries(list(specs))
        cloned: dict[Path, str] = {}
        for entry in entries:
            if suppress_clone:
                logger.debug("Skipping clone of %s (cloning suppressed)", entry.spec)
                continue
            previous = cloned.get(entry.destination)
            if previous == entry.spec.url:
                logger.debug("%s already cloned into %s", entry.spec, entry.destination)
                continue
            if previous is not None:
                logger.warning("'%s' replaces '%s' in %s", entry.spec.url, previous, entry.destination)
            cloned[entry.destination] = entry.spec.url
            self._git_manager.clone_source(
                url=entry.spec.url,
                ref=entry.spec.ref,
                destination=entry.destination,
                dry_run=self._dry_run,
            )
        return self._build_source_set(entries)

    def _plan_entries(self, specs: Sequence[SourceSpec]) -> List[WorkspaceEntry]:
        entries: List[WorkspaceEntry] = []
        root = self._workspace_root.resolve()
        for spec, role in self.assign_roles(specs):
            destination = self._workspace_root / spec.directory_name
            # Clones remove their destination first; it must stay strictly below the root.
            resolved = destination.resolve()
            if resolved == root or not resolved.is_relative_to(root):
                raise ValueError(f"Source '{spec}' resolves to '{resolved}', outside the workspace '{root}'")
            entries.append(
                WorkspaceEntry(
                    spec=spec,
                    role=role,
                    destination=destination,
                    flag=self._flag_for(spec, role, destination),
                )
            )
        return entries

    def _flag_for(self, spec: SourceSpec, role: Role, destination: Path) -> str | None:
        if role is Role.DEPENDENCY:
            return self._classifier.classify(spec.url, destination)
        if role is Role.ADDITIONAL:
            return ADD_MODULE_FLAG.format(path=module_path(destination, spec.configure_subdir))
        return None

    @staticmethod
    def _build_source_set(entries: List[WorkspaceEntry]) -> SourceSet:
        primary = entries[0]
        flags = tuple(entry.flag for entry in entries if entry.flag is not None)
        return SourceSet(primary_dir=primary.destination, entries=tuple(entries), flags=flags)


__all__ = [
    "ADD_MODULE_FLAG",
    "Role",
    "SourceSet",
    "SourceSetOrchestrator",
    "WorkspaceEntry",
    "module_path",
]
