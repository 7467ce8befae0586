"""Tests for rollback target resolution."""

import json

import pytest

from tag_ledger.exceptions import InvalidFormat, NoRollbackTarget
from tag_ledger.models import Semver, TagState
from tag_ledger.rollback import (
    RollbackPartition,
    RollbackResolver,
    classify_candidate,
)


@pytest.fixture
def ledger(store, make_commit):
    """Three releases: X deprecated, Y stable, Z unmarked; production at Z."""
    commits = {}
    for version in ("1.0.0", "1.1.0", "1.2.0"):
        commits[version] = make_commit(version)
        store.create(f"v{version}", commits[version], f"Release v{version}")
    store.create("v1.0.0-deprecated", commits["1.0.0"], "Mark deprecated")
    store.create("v1.1.0-stable", commits["1.1.0"], "Mark stable")
    store.move("production", commits["1.2.0"])
    return commits


class TestResolve:
    """Test the partition-then-maximise selection."""

    def test_prefers_stable_over_newer_unmarked(self, store, ledger):
        resolution = RollbackResolver(store).resolve(None, "production")

        assert resolution.target.name == "v1.1.0"
        assert resolution.commit == ledger["1.1.0"]
        assert resolution.trace.partition_used == RollbackPartition.STABLE
        assert resolution.trace.excluded_current == ["v1.2.0"]
        assert resolution.trace.partitions[RollbackPartition.DEPRECATED] == ["v1.0.0"]

    def test_highest_stable_wins(self, store, ledger, make_commit):
        commit = make_commit("1.1.1")
        store.create("v1.1.1", commit, "Release")
        store.create("v1.1.1-stable", commit, "Mark stable")

        resolution = RollbackResolver(store).resolve(None, "production")

        assert resolution.target.semver == Semver(1, 1, 1)
        assert resolution.trace.comparisons

    def test_falls_back_to_unstable_or_unmarked(self, store, make_commit):
        for version in ("2.0.0", "2.1.0", "2.2.0"):
            store.create(f"api/v{version}", make_commit(version), "Release")
        store.create("api/v2.1.0-unstable", store.points_at("api/v2.1.0"), "Mark unstable")
        store.move("api/staging", store.points_at("api/v2.2.0"))

        resolution = RollbackResolver(store).resolve("api", "staging")

        assert resolution.target.name == "api/v2.1.0"
        assert resolution.trace.partition_used == RollbackPartition.UNSTABLE_OR_UNMARKED

    def test_release_beats_its_prerelease(self, store, make_commit):
        store.create("v3.0.0-rc.1", make_commit("rc"), "Release")
        store.create("v3.0.0", make_commit("final"), "Release")
        store.move("canary", make_commit("next"))

        resolution = RollbackResolver(store).resolve(None, "canary")

        assert resolution.target.name == "v3.0.0"

    def test_never_deployed_environment(self, store, make_commit):
        store.create("v1.0.0", make_commit("a"), "Release")
        store.create("v1.1.0", make_commit("b"), "Release")

        resolution = RollbackResolver(store).resolve(None, "sandbox")

        assert resolution.target.name == "v1.1.0"
        assert resolution.trace.current_commit is None
        assert resolution.trace.excluded_current == []

    def test_subprojects_are_isolated(self, store, ledger, make_commit):
        store.create("web/v9.0.0", make_commit("web"), "Release")

        resolution = RollbackResolver(store).resolve(None, "production")

        assert resolution.target.name == "v1.1.0"


class TestNoTarget:
    """Test failure when nothing eligible remains."""

    def test_only_current_and_deprecated(self, store, make_commit):
        old = make_commit("old")
        store.create("v1.0.0", old, "Release")
        store.create("v1.0.0-deprecated", old, "Mark deprecated")
        current = make_commit("current")
        store.create("v2.0.0", current, "Release")
        store.move("production", current)

        with pytest.raises(NoRollbackTarget) as exc_info:
            RollbackResolver(store).resolve(None, "production")

        trace = exc_info.value.trace
        assert trace.winner is None
        assert trace.excluded_current == ["v2.0.0"]
        assert trace.as_dict()["dropped"] == ["v1.0.0"]

    def test_no_versions_at_all(self, store, make_commit):
        make_commit()
        with pytest.raises(NoRollbackTarget):
            RollbackResolver(store).resolve("api", "staging")

    def test_unknown_environment(self, store, make_commit):
        make_commit()
        with pytest.raises(InvalidFormat):
            RollbackResolver(store).resolve(None, "qa")


class TestTrace:
    """Test the reasoning trace."""

    def test_trace_is_serializable(self, store, ledger):
        trace = RollbackResolver(store).resolve(None, "production").trace.as_dict()

        assert json.loads(json.dumps(trace)) == trace
        assert trace["winner"] == "v1.1.0"
        assert trace["partition_used"] == "stable"
        assert trace["states"] == {"v1.0.0": "deprecated", "v1.1.0": "stable"}
        assert trace["partitions"]["unstable_or_unmarked"] == []
        assert trace["environment_tag"] == "production"


class TestClassifyCandidate:
    """Test effective state selection."""

    def test_most_pessimistic_state_wins(self, store, make_commit):
        commit = make_commit()
        version = store.create("v1.0.0", commit, "Release")
        stable = store.create("v1.0.0-stable", commit, "Mark")
        deprecated = store.create("v1.0.0-deprecated", commit, "Mark")

        assert classify_candidate(version, [stable]) == TagState.STABLE
        assert classify_candidate(version, [stable, deprecated]) == TagState.DEPRECATED
        assert classify_candidate(version, []) is None
