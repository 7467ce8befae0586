"""
Tag Classification Module

Pure functions for classifying and composing ledger tag names.
This module contains no side effects - only tag analysis logic.

Grammars (case-sensitive):
    VERSION      [<subproject>/]v<major>.<minor>.<patch>[-<prerelease>]
    STATE        [<subproject>/]v<major>.<minor>.<patch>[-<prerelease>]-<state>
    ENVIRONMENT  [<subproject>/]<environment>

STATE is tried before VERSION, so a trailing "-stable", "-unstable" or
"-deprecated" is always read as a state suffix. Any other trailing segment
stays part of the version's prerelease.
"""

import re
from typing import Iterable, List, Optional, Tuple

from .config import DEFAULT_ENVIRONMENTS, STATE_WORDS
from .exceptions import InvalidFormat
from .models import Semver, TagRecord, TagState, TagType

NUMERIC = r"(0|[1-9][0-9]*)"
IDENTIFIER = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"
PRERELEASE = rf"{IDENTIFIER}(?:\.{IDENTIFIER})*"

VERSION_PATTERN = re.compile(rf"^v{NUMERIC}\.{NUMERIC}\.{NUMERIC}(?:-(?P<prerelease>{PRERELEASE}))?$")
STATE_PATTERN = re.compile(
    rf"^v{NUMERIC}\.{NUMERIC}\.{NUMERIC}(?:-(?P<prerelease>{PRERELEASE}))?"
    rf"-(?P<state>{'|'.join(STATE_WORDS)})$"
)
SUBPROJECT_SEGMENT = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")

VERSION_SHAPE = "v<major>.<minor>.<patch>[-<prerelease>]"


def split_subproject(name: str) -> Tuple[Optional[str], str]:
    """Split a tag name into its subproject prefix and leaf.

    Args:
        name: Full tag name

    Returns:
        (subproject, leaf); subproject is None for root tags
    """
    if "/" not in name:
        return None, name
    subproject, leaf = name.rsplit("/", 1)
    return subproject, leaf


def _subproject_error(subproject: Optional[str]) -> Optional[str]:
    if subproject is None:
        return None
    for segment in subproject.split("/"):
        if not SUBPROJECT_SEGMENT.match(segment):
            return f"subproject segment '{segment}' must be lowercase alphanumeric with inner hyphens"
    return None


def _semver_from_match(match) -> Semver:
    return Semver(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3)),
        prerelease=match.group("prerelease"),
    )


def classify_tag(name: str, environments: Iterable[str] = DEFAULT_ENVIRONMENTS) -> TagRecord:
    """
    Classify a tag name into a typed record.

    Pure function that classifies a tag without any I/O.

    Args:
        name: The tag name, without the refs/tags/ prefix
        environments: Allow-list of environment names

    Returns:
        TagRecord describing the tag

    Raises:
        InvalidFormat: With one reason per grammar alternative attempted
    """
    if not name or not name.strip() or name != name.strip():
        raise InvalidFormat(name, [("ANY", "tag name is empty or has surrounding whitespace")])

    subproject, leaf = split_subproject(name)
    if not leaf:
        raise InvalidFormat(name, [("ANY", "tag name ends with '/'")])
    subproject_error = _subproject_error(subproject)
    if subproject_error:
        raise InvalidFormat(name, [("ANY", subproject_error)])

    attempts: List[Tuple[str, str]] = []

    # State first: a reserved suffix must never be read as a prerelease
    match = STATE_PATTERN.match(leaf)
    if match:
        return TagRecord(
            name=name,
            type=TagType.STATE,
            subproject=subproject,
            semver=_semver_from_match(match),
            state=TagState(match.group("state")),
        )
    attempts.append(("STATE", f"'{leaf}' is not {VERSION_SHAPE}-<{'|'.join(STATE_WORDS)}>"))

    match = VERSION_PATTERN.match(leaf)
    if match:
        return TagRecord(
            name=name,
            type=TagType.VERSION,
            subproject=subproject,
            semver=_semver_from_match(match),
        )
    attempts.append(("VERSION", f"'{leaf}' is not {VERSION_SHAPE}"))

    allowed = tuple(environments)
    if leaf in allowed and leaf not in STATE_WORDS:
        return TagRecord(
            name=name,
            type=TagType.ENVIRONMENT,
            subproject=subproject,
            environment=leaf,
        )
    attempts.append(("ENVIRONMENT", f"'{leaf}' is not one of the configured environments ({', '.join(allowed)})"))

    raise InvalidFormat(name, attempts)


def is_ledger_tag(name: str, environments: Iterable[str] = DEFAULT_ENVIRONMENTS) -> bool:
    """Check whether a name follows one of the ledger grammars."""
    try:
        classify_tag(name, environments)
    except InvalidFormat:
        return False
    return True


def _with_subproject(leaf: str, subproject: Optional[str]) -> str:
    return f"{subproject}/{leaf}" if subproject else leaf


def version_tag_name(semver: Semver, subproject: Optional[str] = None) -> str:
    """Compose the version tag name for a semver."""
    return _with_subproject(f"v{semver}", subproject)


def state_tag_name(semver: Semver, state: TagState, subproject: Optional[str] = None) -> str:
    """Compose the state tag name for a semver."""
    return _with_subproject(f"v{semver}-{state.value}", subproject)


def environment_tag_name(environment: str, subproject: Optional[str] = None) -> str:
    """Compose the environment tag name."""
    return _with_subproject(environment, subproject)
