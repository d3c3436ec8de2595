"""Path and method filters applied before tool derivation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Pattern, Sequence

from .config import Settings


logger = logging.getLogger(__name__)


def compile_patterns(patterns: Iterable[str]) -> List[Pattern[str]]:
    compiled: List[Pattern[str]] = []
    for pattern in patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            logger.warning("Invalid regex pattern: %s (%s)", pattern, exc)
    return compiled


def should_include_path(
    path: str, include: Sequence[Pattern[str]], exclude: Sequence[Pattern[str]]
) -> bool:
    if include and not any(regex.search(path) for regex in include):
        return False
    return not any(regex.search(path) for regex in exclude)


def should_include_method(method: str, include: Sequence[str], exclude: Sequence[str]) -> bool:
    method = method.strip().lower()
    if include and not any(m.strip().lower() == method for m in include):
        return False
    return not any(m.strip().lower() == method for m in exclude)


@dataclass(frozen=True)
class OperationFilter:
    include_paths: List[Pattern[str]] = field(default_factory=list)
    exclude_paths: List[Pattern[str]] = field(default_factory=list)
    include_methods: List[str] = field(default_factory=list)
    exclude_methods: List[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> OperationFilter:
        return cls(
            include_paths=compile_patterns(settings.include_paths()),
            exclude_paths=compile_patterns(settings.exclude_paths()),
            include_methods=settings.include_methods(),
            exclude_methods=settings.exclude_methods(),
        )

    def include_path(self, path: str) -> bool:
        return should_include_path(path, self.include_paths, self.exclude_paths)

    def include_method(self, method: str) -> bool:
        return should_include_method(method, self.include_methods, self.exclude_methods)
