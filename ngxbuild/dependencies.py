"""Mapping of well-known library repositories to configure flags."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class DependencyRule:
    name: str
    patterns: Tuple[str, ...]
    flag_template: str

    def matches(self, url: str) -> bool:
        return any(pattern in url for pattern in self.patterns)

    def render(self, destination: Path | str) -> str:
        return self.flag_template.format(path=destination)


# Evaluated top to bottom; the first matching rule wins.
DEFAULT_RULES: Tuple[DependencyRule, ...] = (
    DependencyRule("pcre", ("pcre",), "--with-pcre={path}"),
    DependencyRule("zlib", ("zlib",), "--with-zlib={path}"),
    DependencyRule("libatomic", ("libatomic_ops",), "--with-libatomic={path}"),
    DependencyRule("openssl", ("openssl", "libressl", "boringssl"), "--with-openssl={path}"),
)


class DependencyClassifier:
    def __init__(self, rules: Iterable[DependencyRule] | None = None) -> None:
        self._rules: Sequence[DependencyRule] = tuple(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> Sequence[DependencyRule]:
        return self._rules

    def match(self, url: str) -> DependencyRule | None:
        for rule in self._rules:
            if rule.matches(url):
                return rule
        return None

    def classify(self, url: str, destination: Path | str) -> str | None:
        """Return the configure flag wiring ``url`` in from ``destination``, if any."""

        rule = self.match(url)
        if rule is None:
            return None
        return rule.render(destination)


__all__ = ["DEFAULT_RULES", "DependencyClassifier", "DependencyRule"]
