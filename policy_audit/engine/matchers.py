"""Value matchers available to assertions."""

import operator
import re
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

Matcher: TypeAlias = Callable[[Any, Any], bool]

OCTAL = re.compile(r"^0[0-7]+$")
OCTAL_DIGITS = re.compile(r"^[0-7]+$")


class UnknownMatcherError(ValueError):
    """Raised for a matcher name that is not defined."""


def as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def octal_pair(actual: Any, expected: Any) -> tuple[int, int] | None:
    """Both values as integers when one of them is a ``0644`` style mode string."""
    values = [actual, expected]
    if not any(isinstance(v, str) and OCTAL.match(v) for v in values):
        return None
    converted: list[int] = []
    for value in values:
        if isinstance(value, str) and OCTAL_DIGITS.match(value):
            converted.append(int(value, 8))
        elif isinstance(value, int) and not isinstance(value, bool):
            converted.append(value)
        else:
            return None
    return converted[0], converted[1]


def loose_equal(actual: Any, expected: Any) -> bool:
    """Comparison used by ``cmp``.

    Mode strings compare as octal, numeric strings as numbers, other strings
    case-insensitively. A single-element list compares as its element.
    """
    if isinstance(actual, list | tuple) and len(actual) == 1:
        actual = actual[0]
    if actual is None or expected is None:
        return actual is expected
    if (pair := octal_pair(actual, expected)) is not None:
        return pair[0] == pair[1]
    left, right = as_number(actual), as_number(expected)
    if left is not None and right is not None:
        return left == right
    if isinstance(actual, str | bool) or isinstance(expected, str | bool):
        return str(actual).lower() == str(expected).lower()
    return bool(actual == expected)


def ordered(compare: Callable[[Any, Any], bool]) -> Matcher:
    """Wrap an ordering operator so numeric strings compare as numbers."""

    def matcher(actual: Any, expected: Any) -> bool:
        if actual is None:
            return False
        left, right = as_number(actual), as_number(expected)
        if left is not None and right is not None:
            return compare(left, right)
        return compare(actual, expected)

    return matcher


def includes(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, str):
        return str(expected) in actual
    if isinstance(actual, Mapping):
        return expected in actual
    return expected in list(actual)


def matches_pattern(actual: Any, expected: Any) -> bool:
    return actual is not None and re.search(str(expected), str(actual)) is not None


MATCHERS: Mapping[str, Matcher] = {
    "exist": lambda actual, _: bool(actual),
    "be": lambda actual, _: bool(actual),
    "eq": lambda actual, expected: bool(actual == expected),
    "cmp": loose_equal,
    "match": matches_pattern,
    "include": includes,
    "be_in": lambda actual, expected: actual in expected,
    "be_gt": ordered(operator.gt),
    "be_ge": ordered(operator.ge),
    "be_lt": ordered(operator.lt),
    "be_le": ordered(operator.le),
}


def get_matcher(name: str) -> Matcher:
    try:
        return MATCHERS[name]
    except KeyError:
        raise UnknownMatcherError(
            f"Unknown matcher '{name}', available: {', '.join(sorted(MATCHERS))}"
        ) from None
