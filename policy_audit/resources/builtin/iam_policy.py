"""The ``iam_policy`` resource: statement queries over an IAM policy document."""

import re
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

import yaml

from policy_audit.resources.base import ResourceContext
from policy_audit.resources.builtin.yaml_config import read_file

EXPECTED_CRITERIA = ("Action", "Effect", "Resource", "Sid")
UNIMPLEMENTED_CRITERIA = ("Condition", "NotAction", "NotPrincipal", "NotResource", "Principal")
REGEX_CRITERION = re.compile(r"^/(?P<pattern>.+)/$")

Criterion: TypeAlias = str | re.Pattern[str] | list[str] | list[re.Pattern[str]]


def as_criterion(value: Any) -> Criterion:
    """``/regex/`` strings become patterns; lists convert element-wise."""
    if isinstance(value, list):
        return [as_criterion(item) for item in value]  # type: ignore[return-value]
    if isinstance(value, str) and (match := REGEX_CRITERION.match(value)):
        return re.compile(match["pattern"])
    return str(value)


def validate_criteria(raw: Mapping[str, Any]) -> dict[str, Criterion]:
    """Check statement criteria and normalize keys to lower case.

    Raises:
        ValueError: For unsupported, unknown or malformed criteria

    """
    for name in UNIMPLEMENTED_CRITERIA:
        if name in raw:
            raise ValueError(f"Criterion '{name}' is not supported for statement queries")
    unknown = [name for name in raw if name not in EXPECTED_CRITERIA]
    if unknown:
        raise ValueError(
            f"Unrecognized criteria {', '.join(unknown)}; "
            f"recognized: {', '.join(EXPECTED_CRITERIA)}"
        )
    if "Effect" in raw and raw["Effect"] not in ("Allow", "Deny"):
        raise ValueError(f"Criterion 'Effect' must be 'Allow' or 'Deny', got {raw['Effect']!r}")
    return {name.lower(): as_criterion(value) for name, value in raw.items()}


def normalize_statement(statement: Mapping[str, Any]) -> dict[str, Any]:
    """Lower-case keys; Action and Resource always lists."""
    normalized = {key.lower(): value for key, value in statement.items()}
    for key in ("action", "resource"):
        if key in normalized and not isinstance(normalized[key], list):
            normalized[key] = [normalized[key]]
    return normalized


def matches_values(values: Sequence[str], check: Criterion) -> bool:
    """A string or pattern must match one value; a list of strings must equal
    the values as a set; a list of patterns must each match every value."""
    if isinstance(check, str):
        return check in values
    if isinstance(check, re.Pattern):
        return any(check.search(v) for v in values)
    if all(isinstance(c, str) for c in check):
        return set(values) == set(check)
    if all(isinstance(c, re.Pattern) for c in check):
        return all(c.search(v) for v in values for c in check)  # type: ignore[union-attr]
    return False


def statement_matches(statement: Mapping[str, Any], criteria: Mapping[str, Criterion]) -> bool:
    if "sid" in criteria:
        sid = criteria["sid"]
        actual = statement.get("sid")
        if isinstance(sid, re.Pattern):
            if actual is None or not sid.search(str(actual)):
                return False
        elif actual != sid:
            return False
    if "effect" in criteria and statement.get("effect") != criteria["effect"]:
        return False
    for key in ("action", "resource"):
        if key in criteria and not matches_values(statement.get(key, []), criteria[key]):
            return False
    return True


class IamPolicyResource:
    """An IAM policy document read from a file on the target or given inline."""

    def __init__(self, label: str, document: Mapping[str, Any]) -> None:
        self.label = label
        self.document = document
        statements = document.get("Statement", [])
        if isinstance(statements, Mapping):
            statements = [statements]
        self.statements = [normalize_statement(s) for s in statements]

    @classmethod
    async def create(
        cls, ctx: ResourceContext, path: str | None = None, *, content: str | None = None
    ) -> "IamPolicyResource":
        if path is not None:
            label, text = path, await read_file(ctx, path)
        elif content is not None:
            label, text = "inline", content
        else:
            raise ValueError("iam_policy requires a path or content")

        document = yaml.safe_load(text)
        if not isinstance(document, Mapping):
            raise ValueError(f"Policy document {label} is not a mapping")
        return cls(label, document)

    async def has_statement(self, criteria: Mapping[str, Any] | None = None) -> bool:
        checks = validate_criteria(criteria or {})
        return any(statement_matches(s, checks) for s in self.statements)

    async def exists(self) -> bool:
        return True

    async def get(self, key: str) -> Any:
        if key == "statement_count":
            return len(self.statements)
        return self.document.get(key)

    def describe(self) -> str:
        return f"Policy {self.label}"
