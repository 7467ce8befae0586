"""Custom exceptions for the tag ledger.

Every error carries the structured detail an operator needs to act on it
(offending tag name, conflicting commits, rollback trace) as attributes, in
addition to a readable message.
"""

from typing import List, Optional, Tuple


class TagLedgerError(Exception):
    """Base class for all tag ledger errors."""


class ConfigError(TagLedgerError):
    """Raised when the ledger policy file is malformed or inconsistent."""


class GitOperationError(TagLedgerError):
    """Raised when an underlying git command fails unexpectedly."""


class InvalidFormat(TagLedgerError):
    """Raised when a tag name matches none of the ledger grammars.

    Attributes:
        name: The rejected tag name
        attempts: (alternative, reason) pairs, one per grammar tried
    """

    def __init__(self, name: str, attempts: List[Tuple[str, str]]):
        self.name = name
        self.attempts = attempts
        details = "; ".join(f"{alternative}: {reason}" for alternative, reason in attempts)
        super().__init__(f"Invalid tag '{name}' ({details})")


class MissingVersionTag(InvalidFormat):
    """Raised when a state tag has no version tag at the same commit."""

    def __init__(self, name: str, version_tag: str, commit: str):
        self.version_tag = version_tag
        self.commit = commit
        super().__init__(
            name,
            [("STATE", f"no version tag '{version_tag}' at commit {commit}")],
        )


class SemverParseError(TagLedgerError, ValueError):
    """Raised when a string is not a semantic version."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid semantic version '{value}': {reason}")


class NotFound(TagLedgerError):
    """Raised when a tag or revision does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Not found: {name}")


class CreateConflict(TagLedgerError):
    """Raised when an immutable tag is re-created at a different commit."""

    def __init__(self, name: str, existing_commit: str, requested_commit: str):
        self.name = name
        self.existing_commit = existing_commit
        self.requested_commit = requested_commit
        super().__init__(
            f"Tag '{name}' already exists at {existing_commit} and is immutable; "
            f"refusing to point it at {requested_commit}"
        )


class ImmutableTagError(TagLedgerError):
    """Raised when a move is attempted on a version or state tag."""

    def __init__(self, name: str, tag_type: str):
        self.name = name
        self.tag_type = tag_type
        super().__init__(f"Tag '{name}' is a {tag_type} tag and cannot be moved")


class ConcurrentUpdateError(TagLedgerError):
    """Raised when a compare-and-swap move keeps losing to concurrent writers."""

    def __init__(self, name: str, attempts: int):
        self.name = name
        self.attempts = attempts
        super().__init__(
            f"Tag '{name}' changed concurrently on each of {attempts} attempts; retry later"
        )


class AmbiguousState(TagLedgerError):
    """Raised when more than one version tag references the deployed commit."""

    def __init__(self, environment_tag: str, commit: str, version_tags: List[str]):
        self.environment_tag = environment_tag
        self.commit = commit
        self.version_tags = version_tags
        super().__init__(
            f"Environment '{environment_tag}' points at {commit}, which carries "
            f"multiple version tags: {', '.join(version_tags)}"
        )


class NoRollbackTarget(TagLedgerError):
    """Raised when no eligible version remains after filtering.

    Attributes:
        trace: The ReasoningTrace explaining why every candidate was dropped
    """

    def __init__(self, subproject: Optional[str], environment: str, trace):
        self.subproject = subproject
        self.environment = environment
        self.trace = trace
        scope = f"{subproject}/{environment}" if subproject else environment
        super().__init__(
            f"No rollback target for {scope}: no stable, unstable or unmarked "
            f"version other than the current deployment"
        )


class ProtectedRefBlocked(TagLedgerError):
    """Raised when the protection gate blocks a tag mutation."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


class OverrideRequired(TagLedgerError):
    """Raised when an administrative operation lacks a valid override token."""

    def __init__(self, name: str, operation: str):
        self.name = name
        self.operation = operation
        super().__init__(
            f"Refusing to {operation} tag '{name}' without an administrative override"
        )


class PushRaceDrift(TagLedgerError):
    """Remote tag differs from what was just pushed.

    Expected under concurrent pipelines and therefore never raised: it is logged
    as a warning and returned alongside a successful push.
    """

    def __init__(self, name: str, intended_commit: str, remote_commit: Optional[str]):
        self.name = name
        self.intended_commit = intended_commit
        self.remote_commit = remote_commit
        super().__init__(
            f"Remote tag '{name}' points at {remote_commit or 'nothing'} "
            f"instead of {intended_commit} after push"
        )
