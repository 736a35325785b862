"""Options files: extra command-line arguments read from disk."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence
import json
import shlex
import tomllib

import yaml


ConfigLoader = Callable[[Any], Any]

COMMENT_MARKER = "#"

FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loaders for structured options files."""


class ConfigError(ValueError):
    """Raised when an options file cannot be read or understood."""


def strip_comment(line: str) -> str:
    return line.split(COMMENT_MARKER, 1)[0]


def parse_options_text(text: str) -> List[str]:
    """Split plain-text options into arguments, one or more per line."""

    arguments: List[str] = []
    for number, line in enumerate(text.splitlines(), start=1):
        content = strip_comment(line).strip()
        if not content:
            continue
        try:
            arguments.extend(shlex.split(content))
        except ValueError as exc:
            raise ConfigError(f"line {number}: {exc}") from exc
    return arguments


def normalize_string_list(value: Any, *, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        return [text] if text else []
    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(f"'{field_name}' entries must be strings")
            text = item.strip()
            if text:
                items.append(text)
        return items
    raise ConfigError(f"'{field_name}' must be a string or a list of strings")


def mapping_to_arguments(data: Mapping[str, Any]) -> List[str]:
    """Translate a structured options mapping into command-line arguments."""

    known = {"source", "modules", "options", "workspace", "jobs", "dont_clone", "clone_only"}
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(unknown)}")

    arguments: List[str] = []
    source = data.get("source")
    if source is not None:
        if not isinstance(source, str) or not source.strip():
            raise ConfigError("'source' must be a non-empty string")
        arguments.extend(["--source", source.strip()])
    workspace = data.get("workspace")
    if workspace is not None:
        arguments.extend(["--workspace", str(workspace)])
    for module in normalize_string_list(data.get("modules"), field_name="modules"):
        arguments.extend(["--module", module])
    for option in normalize_string_list(data.get("options"), field_name="options"):
        # "--option=" keeps values that themselves start with "--" intact.
        arguments.append(f"--option={option}")
    jobs = data.get("jobs")
    if jobs is not None:
        if isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1:
            raise ConfigError("'jobs' must be a positive integer")
        arguments.extend(["--jobs", str(jobs)])
    for key, switch in (("dont_clone", "--dont-clone"), ("clone_only", "--clone-only")):
        value = data.get(key, False)
        if not isinstance(value, bool):
            raise ConfigError(f"'{key}' must be a boolean")
        if value:
            arguments.append(switch)
    return arguments


def load_options_file(path: Path) -> List[str]:
    """Read the arguments stored in ``path``.

    TOML, JSON and YAML files hold a mapping (see :func:`mapping_to_arguments`);
    any other file is plain text with ``#`` comments.
    """

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    try:
        if loader is None:
            return parse_options_text(path.read_text(encoding="utf-8"))
        mode = "rb" if suffix == ".toml" else "r"
        kwargs: Dict[str, Any] = {}
        if mode == "r":
            kwargs["encoding"] = "utf-8"
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except OSError as exc:
        raise ConfigError(f"Unable to read options file '{path}': {exc.strerror or exc}") from exc
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Options file '{path}' is not valid: {exc}") from exc
    except ConfigError as exc:
        raise ConfigError(f"Options file '{path}', {exc}") from exc

    if data is None:
        return []
    if not isinstance(data, Mapping):
        raise ConfigError(f"Options file '{path}' must contain a mapping at the root")
    try:
        return mapping_to_arguments(data)
    except ConfigError as exc:
        raise ConfigError(f"Options file '{path}': {exc}") from exc


def merge_argument_lists(file_arguments: Iterable[Sequence[str]], cli_arguments: Sequence[str]) -> List[str]:
    """Options files first, in the order given, then the command line itself."""

    merged: List[str] = []
    for arguments in file_arguments:
        merged.extend(arguments)
    merged.extend(cli_arguments)
    return merged


__all__ = [
    "ConfigError",
    "FILE_LOADERS",
    "load_options_file",
    "mapping_to_arguments",
    "merge_argument_lists",
    "parse_options_text",
    "strip_comment",
]
