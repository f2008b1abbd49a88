"""Selection of controls by id."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

REGEX_SELECTOR = re.compile(r"^/(?P<pattern>.+)/$")


@dataclass(frozen=True)
class ControlFilter:
    """Literal ids and ``/regex/`` patterns; an empty filter selects everything."""

    ids: frozenset[str] = frozenset()
    patterns: tuple[re.Pattern[str], ...] = ()

    @classmethod
    def parse(cls, selectors: Iterable[str]) -> "ControlFilter":
        ids: set[str] = set()
        patterns: list[re.Pattern[str]] = []
        for selector in selectors:
            if match := REGEX_SELECTOR.match(selector):
                patterns.append(re.compile(match["pattern"]))
            elif selector:
                ids.add(selector)
        return cls(frozenset(ids), tuple(patterns))

    @property
    def is_empty(self) -> bool:
        return not self.ids and not self.patterns

    def __call__(self, control_id: str) -> bool:
        if self.is_empty:
            return True
        return control_id in self.ids or any(p.search(control_id) for p in self.patterns)
