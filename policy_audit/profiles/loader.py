"""Loader for profile directories."""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from policy_audit.errors import ProfileError
from policy_audit.profiles.models import Control, Profile, ProfileMetadata

log = logging.getLogger(__name__)

METADATA_FILE = "profile.yaml"
CONTROLS_DIR = "controls"


def read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in {path}: {e}") from e


def read_metadata(profile_dir: Path) -> ProfileMetadata:
    """Parse ``profile.yaml`` of a profile directory.

    Raises:
        FileNotFoundError: If the profile has no profile.yaml
        ProfileError: If the document is empty, not YAML or fails validation

    """
    path = profile_dir / METADATA_FILE
    if not path.is_file():
        raise FileNotFoundError(f"Profile metadata not found: {path}")

    data = read_yaml(path)
    if data is None:
        raise ProfileError(f"Empty profile metadata: {path}")

    try:
        return ProfileMetadata.model_validate(data)
    except ValidationError as e:
        raise ProfileError(f"Invalid profile metadata schema in {path}: {e}") from e


def control_nodes(path: Path) -> Sequence[tuple[Any, int]]:
    """Parsed controls of one file paired with their 1-based line numbers."""
    text = path.read_text()
    try:
        node = yaml.compose(text, Loader=yaml.SafeLoader)
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in {path}: {e}") from e

    if node is None or data is None:
        return []

    if isinstance(data, dict) and "controls" in data:
        node = next(value for key, value in node.value if key.value == "controls")
        data = data["controls"]
    elif isinstance(data, dict):
        return [(data, node.start_mark.line + 1)]

    if not isinstance(data, list):
        raise ProfileError(f"Invalid control document {path}: expected a list of controls")
    return [(item, item_node.start_mark.line + 1) for item, item_node in zip(data, node.value)]


def load_controls(profile_dir: Path) -> Sequence[Control]:
    """Load ``controls/*.yaml`` in file name order, declaration order inside."""
    controls_dir = profile_dir / CONTROLS_DIR
    if not controls_dir.is_dir():
        return []

    controls: list[Control] = []
    seen: set[str] = set()
    files = sorted([*controls_dir.glob("*.yaml"), *controls_dir.glob("*.yml")])
    for path in files:
        relative = path.relative_to(profile_dir).as_posix()
        for data, line in control_nodes(path):
            if not isinstance(data, dict):
                raise ProfileError(f"Invalid control in {relative}:{line}: expected a mapping")
            try:
                control = Control.model_validate(
                    {**data, "code_location": f"{relative}:{line}"}
                )
            except ValidationError as e:
                raise ProfileError(f"Invalid control schema in {relative}:{line}: {e}") from e
            if control.id in seen:
                raise ProfileError(f"Duplicate control id '{control.id}' in {relative}:{line}")
            seen.add(control.id)
            controls.append(control)
    return controls


async def load_profile(profile_dir: Path) -> Profile:
    """Load a profile directory: metadata plus all control documents.

    Raises:
        FileNotFoundError: If the directory has no profile.yaml
        ProfileError: If any document is invalid

    """
    metadata = read_metadata(profile_dir)
    controls = load_controls(profile_dir)
    log.debug(
        "Loaded profile %s %s (%d controls) from %s",
        metadata.name,
        metadata.version,
        len(controls),
        profile_dir,
    )
    return Profile(metadata=metadata, controls=controls, path=profile_dir)
