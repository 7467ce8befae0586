"""
Rollback Resolution Module

Selects the version an environment should be rolled back to. The selection
never guesses: if no eligible candidate remains, NoRollbackTarget is raised.

Algorithm:
    1. Read the environment tag's commit (absent means nothing is deployed).
    2. Enumerate the subproject's version tags.
    3. Drop the version co-located with the current commit.
    4. Partition the rest by their co-located state tag: STABLE,
       UNSTABLE_OR_UNMARKED or DEPRECATED.
    5. Drop DEPRECATED.
    6. Take the highest version in STABLE, or in UNSTABLE_OR_UNMARKED when
       STABLE is empty.

The ReasoningTrace records every step as plain data for report generation.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any

from .exceptions import NoRollbackTarget, NotFound
from .models import Tag, TagState, TagType
from .semver import compare
from .tag_classification import environment_tag_name
from .tag_store import TagStore

logger = logging.getLogger(__name__)


class RollbackPartition(Enum):
    """Candidate buckets, in order of preference."""
    STABLE = "stable"
    UNSTABLE_OR_UNMARKED = "unstable_or_unmarked"
    DEPRECATED = "deprecated"


# When one version carries several state tags, the most pessimistic wins
STATE_PRECEDENCE = (TagState.DEPRECATED, TagState.UNSTABLE, TagState.STABLE)

PARTITION_FOR_STATE = {
    TagState.STABLE: RollbackPartition.STABLE,
    TagState.UNSTABLE: RollbackPartition.UNSTABLE_OR_UNMARKED,
    TagState.DEPRECATED: RollbackPartition.DEPRECATED,
}


@dataclass
class ComparisonStep:
    """One comparison made while picking the highest version."""
    challenger: str
    incumbent: str
    result: int

    def as_dict(self) -> Dict[str, Any]:
        return {"challenger": self.challenger, "incumbent": self.incumbent, "result": self.result}


@dataclass
class ReasoningTrace:
    """Audit trail of a rollback resolution."""
    subproject: Optional[str]
    environment: str
    environment_tag: str
    current_commit: Optional[str] = None
    excluded_current: List[str] = field(default_factory=list)
    partitions: Dict[RollbackPartition, List[str]] = field(
        default_factory=lambda: {partition: [] for partition in RollbackPartition}
    )
    states: Dict[str, Optional[str]] = field(default_factory=dict)
    partition_used: Optional[RollbackPartition] = None
    comparisons: List[ComparisonStep] = field(default_factory=list)
    winner: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "subproject": self.subproject,
            "environment": self.environment,
            "environment_tag": self.environment_tag,
            "current_commit": self.current_commit,
            "excluded_current": list(self.excluded_current),
            "partitions": {partition.value: list(names) for partition, names in self.partitions.items()},
            "states": dict(self.states),
            "dropped": list(self.partitions[RollbackPartition.DEPRECATED]),
            "partition_used": self.partition_used.value if self.partition_used else None,
            "comparisons": [step.as_dict() for step in self.comparisons],
            "winner": self.winner,
        }


@dataclass
class RollbackResolution:
    """The chosen rollback target."""
    target: Tag
    commit: str
    trace: ReasoningTrace


def classify_candidate(version: Tag, state_tags: List[Tag]) -> Optional[TagState]:
    """Return the effective state of a version from its co-located state tags."""
    states = {
        tag.record.state
        for tag in state_tags
        if tag.commit == version.commit and tag.semver == version.semver
    }
    for state in STATE_PRECEDENCE:
        if state in states:
            return state
    return None


class RollbackResolver:
    """Resolves rollback targets from the tag ledger."""

    def __init__(self, store: TagStore):
        self.store = store

    def resolve(self, subproject: Optional[str], environment: str) -> RollbackResolution:
        """
        Pick the version to roll an environment back to.

        Args:
            subproject: Subproject namespace, None for the root project
            environment: Environment name from the allow-list

        Returns:
            RollbackResolution with the target tag, its commit and the trace

        Raises:
            InvalidFormat: If the environment is not in the allow-list
            NoRollbackTarget: If no eligible candidate remains
        """
        env_tag = environment_tag_name(environment, subproject)
        self.store.classify(env_tag)
        trace = ReasoningTrace(subproject=subproject, environment=environment, environment_tag=env_tag)

        try:
            trace.current_commit = self.store.points_at(env_tag)
        except NotFound:
            logger.info(f"{env_tag} has never been deployed; every version is a candidate")

        tags = self.store.tags_in_subproject(subproject)
        versions = [tag for tag in tags if tag.type == TagType.VERSION]
        state_tags = [tag for tag in tags if tag.type == TagType.STATE]

        for version in versions:
            if trace.current_commit and version.commit == trace.current_commit:
                trace.excluded_current.append(version.name)
                continue

            state = classify_candidate(version, state_tags)
            partition = PARTITION_FOR_STATE[state] if state else RollbackPartition.UNSTABLE_OR_UNMARKED
            trace.states[version.name] = state.value if state else None
            trace.partitions[partition].append(version.name)

        by_name = {version.name: version for version in versions}
        for partition in (RollbackPartition.STABLE, RollbackPartition.UNSTABLE_OR_UNMARKED):
            candidates = [by_name[name] for name in trace.partitions[partition]]
            if not candidates:
                continue
            trace.partition_used = partition
            winner = self._pick_highest(candidates, trace)
            trace.winner = winner.name
            logger.info(
                f"Rollback target for {env_tag}: {winner.name} at {winner.commit} "
                f"(from {partition.value}, {len(candidates)} candidate(s))"
            )
            return RollbackResolution(target=winner, commit=winner.commit, trace=trace)

        raise NoRollbackTarget(subproject, environment, trace)

    @staticmethod
    def _pick_highest(candidates: List[Tag], trace: ReasoningTrace) -> Tag:
        best = candidates[0]
        for challenger in candidates[1:]:
            result = compare(challenger.semver, best.semver)
            trace.comparisons.append(ComparisonStep(challenger.name, best.name, result))
            if result > 0:
                best = challenger
        return best
