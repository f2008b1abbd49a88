"""Version constraints on profile dependencies."""

import re

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from policy_audit.errors import ProfileError

PESSIMISTIC = re.compile(r"^~>\s*(?P<version>\S+)$")
EXACT = re.compile(r"^=\s*(?P<version>[^=\s]\S*)$")
BARE = re.compile(r"^\d[\w.+-]*$")


def translate_clause(clause: str) -> str:
    """Rewrite one constraint clause into PEP 440 syntax.

    ``~> 1.2`` becomes ``~=1.2``, ``~> 1`` becomes ``>=1,==1.*``, ``= 1.2``
    and a bare ``1.2`` become ``==1.2``.
    """
    clause = clause.strip()
    if match := PESSIMISTIC.match(clause):
        version = match["version"]
        if "." not in version:
            return f">={version},=={version}.*"
        return f"~={version}"
    if match := EXACT.match(clause):
        return f"=={match['version']}"
    if BARE.match(clause):
        return f"=={clause}"
    return clause.replace(" ", "")


def parse_constraint(constraint: str) -> SpecifierSet:
    """Parse a comma separated constraint.

    Raises:
        ProfileError: If the constraint is not understood

    """
    translated = ",".join(translate_clause(c) for c in constraint.split(",") if c.strip())
    try:
        return SpecifierSet(translated)
    except InvalidSpecifier as e:
        raise ProfileError(f"Invalid version constraint '{constraint}'") from e


def satisfies(version: str, constraint: str | None) -> bool:
    """Check a concrete version against a constraint; no constraint always holds."""
    if not constraint:
        return True
    try:
        parsed = Version(version)
    except InvalidVersion:
        return False
    return parse_constraint(constraint).contains(parsed, prereleases=True)
