"""
Configuration Module for the Tag Ledger

This module contains the defaults and the repository policy used throughout the
application. Policy is read from an optional YAML file at the repository root;
any key missing from the file falls back to the constants below.

Constants:
    DEFAULT_ENVIRONMENTS: Environment names accepted in environment tags
    STATE_WORDS: Reserved state suffixes, never valid as environment names
    DEFAULT_PROTECTED_TYPES: Tag types guarded by the protection gate
    SANCTIONED_WORKFLOWS: CI workflow names allowed to move protected tags
    DEFAULT_ENTRY_POINT: Where operators are sent when a mutation is blocked
    ROOT_SCOPE: Subproject segment used for the root project in scope keys
    GITHUB_REPO: Name of the GitHub repository (from environment)

Classes:
    LedgerConfig: Repository policy for the ledger
"""

import hmac
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import dpath
import yaml

from .exceptions import ConfigError
from .models import TagType

# Constants
DEFAULT_ENVIRONMENTS = ("production", "staging", "canary", "sandbox", "performance")
STATE_WORDS = ("stable", "unstable", "deprecated")
DEFAULT_PROTECTED_TYPES = (TagType.ENVIRONMENT,)
SANCTIONED_WORKFLOWS = ("Tag Assignment",)
DEFAULT_CONFIG_FILE = ".tag-ledger.yaml"
DEFAULT_REMOTE = "origin"
DEFAULT_MAX_ATTEMPTS = 3
ROOT_SCOPE = "."
GITHUB_REPO = os.getenv("GITHUB_REPOSITORY", "owner/repo")
DEFAULT_ENTRY_POINT = f"https://github.com/{GITHUB_REPO}/actions/workflows/tag-assignment.yml"
AUDIT_LOGGER = "tag_ledger.audit"

ENVIRONMENT_NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


@dataclass
class LedgerConfig:
    """Repository policy for the ledger."""

    environments: Tuple[str, ...] = DEFAULT_ENVIRONMENTS
    protected_types: Tuple[TagType, ...] = DEFAULT_PROTECTED_TYPES
    sanctioned_workflows: Tuple[str, ...] = SANCTIONED_WORKFLOWS
    entry_point: str = DEFAULT_ENTRY_POINT
    override_token: Optional[str] = None
    remote: str = DEFAULT_REMOTE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    errors: List[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        self.errors = validate_environments(self.environments)
        if self.max_attempts < 1:
            self.errors.append(f"push.max_attempts must be at least 1, got {self.max_attempts}")
        if self.errors:
            raise ConfigError("; ".join(self.errors))


def validate_environments(environments) -> List[str]:
    """Check the environment allow-list is disjoint from the other grammars.

    Args:
        environments: Candidate environment names

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    for name in environments:
        if not isinstance(name, str) or not ENVIRONMENT_NAME_PATTERN.match(name):
            errors.append(f"Invalid environment name {name!r}: must be lowercase alphanumeric with hyphens")
        elif name in STATE_WORDS:
            errors.append(f"Environment name '{name}' is reserved as a state word")
        elif re.match(r"^v[0-9]", name):
            errors.append(f"Environment name '{name}' would be ambiguous with version tags")
    return errors


def _lookup(data: dict, path: str, default):
    try:
        return dpath.get(data, path, separator=".")
    except KeyError:
        return default


def _lookup_list(data: dict, path: str, default, file_path: Path) -> list:
    value = _lookup(data, path, default)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{path} in {file_path} must be a list, got {type(value).__name__}")
    return list(value)


def load_ledger_config(path: Optional[str] = None) -> LedgerConfig:
    """Load ledger policy from a YAML file.

    Args:
        path: Policy file location; defaults to .tag-ledger.yaml in the working directory

    Returns:
        LedgerConfig built from the file, or defaults if the file doesn't exist

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values
    """
    file_path = Path(path or DEFAULT_CONFIG_FILE)
    if not file_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {path}")
        return LedgerConfig()

    try:
        with file_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{file_path} must contain a mapping at the top level")

    default_types = [t.value for t in DEFAULT_PROTECTED_TYPES]
    type_names = _lookup_list(data, "protection.protected_types", default_types, file_path)
    try:
        protected_types = tuple(TagType(str(name).lower()) for name in type_names)
    except ValueError as e:
        raise ConfigError(f"Invalid protection.protected_types in {file_path}: {e}") from e

    return LedgerConfig(
        environments=tuple(_lookup_list(data, "environments", DEFAULT_ENVIRONMENTS, file_path)),
        protected_types=protected_types,
        sanctioned_workflows=tuple(
            _lookup_list(data, "protection.sanctioned_workflows", SANCTIONED_WORKFLOWS, file_path)
        ),
        entry_point=_lookup(data, "protection.entry_point", DEFAULT_ENTRY_POINT),
        override_token=_lookup(data, "protection.override_token", None),
        remote=_lookup(data, "push.remote", DEFAULT_REMOTE),
        max_attempts=int(_lookup(data, "push.max_attempts", DEFAULT_MAX_ATTEMPTS)),
    )


def is_valid_override(token: Optional[str], config: LedgerConfig) -> bool:
    """Check an administrative override signal against policy.

    When the policy defines an override token, the signal must match it exactly.
    Without one, the legacy ALLOW_PROTECTED_TAG_PUSH=true signal is accepted.
    """
    if not token:
        return False
    if config.override_token:
        # compare_digest only accepts ASCII str, so compare the encoded bytes
        given = str(token).encode("utf-8", "surrogateescape")
        expected = str(config.override_token).encode("utf-8", "surrogateescape")
        return hmac.compare_digest(given, expected)
    return token.strip().lower() == "true"
