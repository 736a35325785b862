"""Decoding of ``url@ref,subdir`` source specifications."""
from __future__ import annotations

from dataclasses import dataclass


DEFAULT_REF = "master"
REF_SEPARATOR = "@"
SUBDIR_SEPARATOR = ","
GIT_SUFFIX = ".git"


@dataclass(frozen=True, slots=True)
class SourceSpec:
    """One source to materialise in the workspace.

    ``configure_subdir`` is relative to the cloned tree and only matters for
    additional modules, whose ``config`` file may live below the repository root.
    """

    url: str
    ref: str = DEFAULT_REF
    configure_subdir: str = ""

    def __str__(self) -> str:
        text = f"{self.url}{REF_SEPARATOR}{self.ref}"
        if self.configure_subdir:
            text = f"{text}{SUBDIR_SEPARATOR}{self.configure_subdir}"
        return text

    @property
    def directory_name(self) -> str:
        return directory_name(self.url, self.ref)


def parse_spec(text: str) -> SourceSpec:
    """Decode ``url[@ref[,subdir]]``.

    Never fails: a missing ``@`` or ``,`` simply leaves the defaults in place.
    Everything up to the first ``@`` is the URL, and within the remainder
    everything up to the first ``,`` is the ref.
    """

    url, _, remainder = text.strip().partition(REF_SEPARATOR)
    ref, _, subdir = remainder.partition(SUBDIR_SEPARATOR)
    return SourceSpec(url=url, ref=ref or DEFAULT_REF, configure_subdir=subdir)


def repository_basename(url: str) -> str:
    segment = url.rstrip("/").rsplit("/", 1)[-1]
    if segment.endswith(GIT_SUFFIX):
        segment = segment[: -len(GIT_SUFFIX)]
    return segment


def directory_name(url: str, ref: str) -> str:
    """Workspace directory for ``url`` checked out at ``ref``.

    >>> directory_name("https://example.com/nginx.git", "release-1.12.1")
    'nginx-release-1.12.1'
    """

    return f"{repository_basename(url)}-{ref}"


__all__ = [
    "DEFAULT_REF",
    "SourceSpec",
    "directory_name",
    "parse_spec",
    "repository_basename",
]
