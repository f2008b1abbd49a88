"""Models for profile metadata and control documents."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Self, TypeAlias

from pydantic import AliasChoices, Field, field_validator, model_validator

from policy_audit.models.base import Model
from policy_audit.models.platform import PlatformInfo
from policy_audit.profiles.lockfile import LockedDependency

IMPACT_NAMES: Mapping[str, float] = {
    "none": 0.0,
    "low": 0.1,
    "medium": 0.4,
    "high": 0.7,
    "critical": 0.9,
}

SourceKind: TypeAlias = Literal["path", "git", "url", "registry"]
SOURCE_KINDS: Sequence[SourceKind] = ("path", "git", "url", "registry")


class PlatformSupport(Model):
    """One ``supports`` entry; every field given must match."""

    family: str | None = None
    name: str | None = None
    release: str | None = None

    def matches(self, platform: PlatformInfo) -> bool:
        if self.family is not None and not platform.in_family(self.family):
            return False
        if self.name is not None and self.name != platform.name:
            return False
        if self.release is not None:
            wanted = self.release.rstrip("*").rstrip(".")
            if not (platform.release or "").startswith(wanted):
                return False
        return True


class InputSpec(Model):
    """Profile input with its default value."""

    name: str = Field(..., min_length=1)
    value: Any = None
    description: str = ""


class Dependency(Model):
    """A dependency declared in ``profile.yaml``.

    Exactly one source field is set. ``path`` is relative to the declaring
    profile; ``ref`` only applies to ``git``.
    """

    name: str = Field(..., min_length=1)
    version: str | None = Field(default=None, description="Version constraint")
    path: str | None = None
    git: str | None = None
    ref: str | None = Field(
        default=None, validation_alias=AliasChoices("ref", "branch")
    )
    url: str | None = None
    registry: str | None = Field(
        default=None, validation_alias=AliasChoices("registry", "supermarket")
    )
    include_controls: bool = True

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int | float) else value

    @model_validator(mode="after")
    def check_single_source(self) -> Self:
        given = [kind for kind in SOURCE_KINDS if getattr(self, kind) is not None]
        if len(given) != 1:
            raise ValueError(
                f"dependency '{self.name}' needs exactly one of "
                f"{', '.join(SOURCE_KINDS)}; got {', '.join(given) or 'none'}"
            )
        if self.ref is not None and self.git is None:
            raise ValueError(f"dependency '{self.name}': ref requires git")
        return self

    @property
    def kind(self) -> SourceKind:
        return next(kind for kind in SOURCE_KINDS if getattr(self, kind) is not None)

    def locator(self, base_dir: Path) -> str:
        """Fetcher locator; local paths are made absolute against ``base_dir``."""
        match self.kind:
            case "path":
                return str((base_dir / str(self.path)).resolve())
            case "git":
                return f"{self.git}#{self.ref}" if self.ref else str(self.git)
            case "url":
                return str(self.url)
            case "registry":
                return str(self.registry).removeprefix("registry://")

    def source(self, base_dir: Path) -> str:
        """Canonical ``kind:locator`` string recorded in lock files."""
        return f"{self.kind}:{self.locator(base_dir)}"


class ProfileMetadata(Model):
    """Contents of ``profile.yaml``."""

    name: str = Field(..., min_length=1)
    title: str | None = None
    version: str = "0.0.0"
    summary: str | None = None
    maintainer: str | None = None
    supports: Sequence[PlatformSupport] = Field(default_factory=list)
    depends: Sequence[Dependency] = Field(default_factory=list)
    inputs: Sequence[InputSpec] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int | float) else value

    def supports_platform(self, platform: PlatformInfo) -> bool:
        return not self.supports or any(s.matches(platform) for s in self.supports)


class Assertion(Model):
    """One expectation: ``{its?, should | should_not: matcher, expected?}``."""

    its: str | None = None
    matcher: str
    negate: bool = False
    expected: Any = None

    @model_validator(mode="before")
    @classmethod
    def from_should(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or "matcher" in data:
            return data
        data = dict(data)
        if "should" in data and "should_not" in data:
            raise ValueError("use either should or should_not, not both")
        if "should_not" in data:
            data["matcher"] = data.pop("should_not")
            data["negate"] = True
        elif "should" in data:
            data["matcher"] = data.pop("should")
        return data

    @property
    def input_name(self) -> str | None:
        """Name of the profile input the expected value is bound to, if any."""
        if isinstance(self.expected, Mapping) and set(self.expected) == {"input"}:
            return str(self.expected["input"])
        return None


class TestBlock(Model):
    """A resource call with the assertions evaluated against it."""

    __test__ = False

    resource: str = Field(..., min_length=1)
    args: Sequence[Any] = Field(default_factory=list)
    params: Mapping[str, Any] = Field(default_factory=dict)
    where: Mapping[str, Any] = Field(default_factory=dict)
    expect: Sequence[Assertion] = Field(..., min_length=1)

    @field_validator("args", mode="before")
    @classmethod
    def wrap_scalar(cls, value: Any) -> Any:
        if value is None:
            return []
        return value if isinstance(value, list | tuple) else [value]


class Control(Model):
    """A named unit of test blocks."""

    id: str = Field(..., min_length=1)
    title: str | None = None
    desc: str | None = None
    impact: float = Field(default=0.5, ge=0.0, le=1.0)
    tags: Mapping[str, Any] = Field(default_factory=dict)
    tests: Sequence[TestBlock] = Field(default_factory=list)
    code_location: str = ""

    @field_validator("impact", mode="before")
    @classmethod
    def named_impact(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in IMPACT_NAMES:
            return IMPACT_NAMES[value.lower()]
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def tag_list(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return {str(tag): None for tag in value}
        return value


@dataclass(kw_only=True)
class Profile:
    """A loaded profile.

    ``locks`` is filled in during dependency resolution and only read
    afterwards.
    """

    metadata: ProfileMetadata
    controls: Sequence[Control]
    path: Path
    locks: dict[str, LockedDependency] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.metadata.version

    def input_defaults(self) -> Mapping[str, Any]:
        return {spec.name: spec.value for spec in self.metadata.inputs}
