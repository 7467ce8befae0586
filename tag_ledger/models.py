"""Data models shared by the ledger components."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any
from enum import Enum


class TagType(Enum):
    """Closed set of ledger tag types."""
    VERSION = "version"
    ENVIRONMENT = "environment"
    STATE = "state"


class TagState(Enum):
    """Quality state attached to a version by a state tag."""
    STABLE = "stable"
    UNSTABLE = "unstable"
    DEPRECATED = "deprecated"


class MutationKind(Enum):
    """Kinds of change that can be applied to a tag ref."""
    CREATE = "create"
    MOVE = "move"
    DELETE = "delete"


class LedgerAction(Enum):
    """Operations exposed by the command line entry point."""
    CLASSIFY = "classify"
    RELEASE = "release"
    MARK = "mark"
    DEPLOY = "deploy"
    ROLLBACK = "rollback"
    STATUS = "status"
    DELETE = "delete"
    SCOPE_KEY = "scope-key"
    VALIDATE = "validate"


@dataclass(frozen=True)
class Semver:
    """A parsed semantic version."""
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    @property
    def core(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        if self.prerelease:
            return f"{self.core}-{self.prerelease}"
        return self.core


@dataclass(frozen=True)
class TagRecord:
    """Typed view of a tag name. Everything here is derived from the name."""
    name: str
    type: TagType
    subproject: Optional[str] = None
    semver: Optional[Semver] = None
    environment: Optional[str] = None
    state: Optional[TagState] = None

    @property
    def mutable(self) -> bool:
        return self.type == TagType.ENVIRONMENT


@dataclass(frozen=True)
class Tag:
    """A ledger tag together with the commit it currently references."""
    record: TagRecord
    commit: str

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def type(self) -> TagType:
        return self.record.type

    @property
    def subproject(self) -> Optional[str]:
        return self.record.subproject

    @property
    def semver(self) -> Optional[Semver]:
        return self.record.semver


@dataclass
class PushResult:
    """Outcome of pushing a tag to the remote."""
    name: str
    remote: str
    intended_commit: str
    remote_commit: Optional[str]
    drift: Optional[Exception] = None

    @property
    def drifted(self) -> bool:
        return self.drift is not None


@dataclass(frozen=True)
class ActorContext:
    """Who is attempting a mutation, and through which path."""
    name: str
    via_automation: bool = False
    override_token: Optional[str] = None


@dataclass(frozen=True)
class MutationRequest:
    """A proposed change to a tag ref, as seen by the protection gate."""
    name: str
    commit: Optional[str]
    kind: MutationKind = MutationKind.CREATE


@dataclass(frozen=True)
class AuditRecord:
    """Record emitted whenever a protection override is used."""
    actor: str
    tag: str
    commit: Optional[str]
    kind: MutationKind
    reason: str
    timestamp: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor,
            "tag": self.tag,
            "commit": self.commit,
            "kind": self.kind.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TagMutation:
    """A single tag write planned by the plan builder."""
    name: str
    commit: str
    kind: MutationKind
    message: str
    record: Optional[TagRecord] = None


@dataclass
class LedgerPlan:
    """Complete plan for one ledger operation."""
    action: LedgerAction
    subproject: Optional[str] = None
    environment: Optional[str] = None
    mutations: List[TagMutation] = field(default_factory=list)

    # Read-side results
    record: Optional[TagRecord] = None
    current_version: Optional[Tag] = None
    resolution: Optional[Any] = None
    scope_key: Optional[str] = None
    deployments: Optional[Dict[str, Optional[Tag]]] = None
    duplicate_versions: Dict[str, List[str]] = field(default_factory=dict)

    # Metadata
    push: bool = True
    dry_run: bool = False

    def has_mutations(self) -> bool:
        """Check if the plan writes anything."""
        return bool(self.mutations)


@dataclass
class ExecutionResult:
    """Result of executing a ledger plan."""
    success: bool
    tags_written: List[str] = field(default_factory=list)
    previous_commits: Dict[str, Optional[str]] = field(default_factory=dict)
    pushes: List[PushResult] = field(default_factory=list)
    audit_records: List[AuditRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    dry_run: bool = False
