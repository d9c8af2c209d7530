"""Registry of named rule checks that catalog entries can reference."""

from __future__ import annotations

from collections.abc import Iterable

from .models import RuleCheck


class CheckRegistry:
    def __init__(self) -> None:
        self._checks: dict[str, RuleCheck] = {}

    def register(self, name: str, check: RuleCheck) -> None:
        existing = self._checks.get(name)
        if existing is not None and existing is not check:
            raise ValueError(f"Check name already registered: {name}")
        self._checks[name] = check

    def extend(self, checks: Iterable[tuple[str, RuleCheck]]) -> None:
        for name, check in checks:
            self.register(name, check)

    def get(self, name: str) -> RuleCheck | None:
        return self._checks.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._checks)

    def __contains__(self, name: object) -> bool:
        return name in self._checks


default_registry = CheckRegistry()
