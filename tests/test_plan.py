"""Tests for plan building and execution."""

from unittest.mock import patch

import pytest

from tag_ledger.environment import EnvironmentConfig
from tag_ledger.exceptions import MissingVersionTag, NotFound, PushRaceDrift
from tag_ledger.models import ActorContext, LedgerAction, MutationKind, PushResult
from tag_ledger.plan_builder import prepare_plan
from tag_ledger.plan_executor import execute_plan
from tag_ledger.protection import ProtectionGate

AUTOMATION = ActorContext(name="github-actions", via_automation=True)
DEVELOPER = ActorContext(name="dev")


def make_config(**env):
    env.setdefault("PUSH", "false")
    return EnvironmentConfig.from_env(env)


class TestPreparePlan:
    """Test plan building (reads only)."""

    def test_release(self, store, make_commit):
        commit = make_commit()

        plan = prepare_plan(make_config(ACTION="release", VERSION="1.2.0", SUBPROJECT="api"), store)

        [mutation] = plan.mutations
        assert mutation.name == "api/v1.2.0"
        assert mutation.commit == commit
        assert mutation.kind == MutationKind.CREATE
        assert mutation.message.startswith("Release api/v1.2.0")
        assert store.query() == []

    def test_custom_message(self, store, make_commit):
        make_commit()
        plan = prepare_plan(make_config(ACTION="release", VERSION="1.2.0", MESSAGE="Hotfix"), store)
        assert plan.mutations[0].message == "Hotfix"

    def test_mark_uses_version_commit(self, store, make_commit):
        commit = make_commit("release")
        store.create("v1.0.0", commit, "Release")
        make_commit("later")

        plan = prepare_plan(make_config(ACTION="mark", VERSION="1.0.0", STATE="unstable"), store)

        assert plan.mutations[0].name == "v1.0.0-unstable"
        assert plan.mutations[0].commit == commit

    def test_mark_missing_version(self, store, make_commit):
        make_commit()
        with pytest.raises(MissingVersionTag):
            prepare_plan(make_config(ACTION="mark", VERSION="1.0.0", STATE="stable"), store)

    def test_deploy_version(self, store, make_commit):
        commit = make_commit("release")
        store.create("v1.0.0", commit, "Release")
        previous = make_commit("old")
        store.move("staging", previous)

        plan = prepare_plan(make_config(ACTION="deploy", VERSION="1.0.0", ENVIRONMENT="staging"), store)

        [mutation] = plan.mutations
        assert mutation.kind == MutationKind.MOVE
        assert mutation.commit == commit
        assert f"Previous commit: {previous}" in mutation.message
        assert plan.scope_key == "./staging"

    def test_deploy_unknown_version(self, store, make_commit):
        make_commit()
        with pytest.raises(NotFound):
            prepare_plan(make_config(ACTION="deploy", VERSION="9.9.9", ENVIRONMENT="staging"), store)

    def test_rollback(self, store, make_commit):
        store.create("v1.0.0", make_commit("one"), "Release")
        store.move("production", make_commit("two"))

        plan = prepare_plan(make_config(ACTION="rollback", ENVIRONMENT="production"), store)

        assert plan.resolution.target.name == "v1.0.0"
        assert plan.mutations[0].commit == plan.resolution.commit
        assert plan.mutations[0].message.startswith("Roll back production")

    def test_read_only_actions(self, store, make_commit):
        make_commit()
        for env in (
            {"ACTION": "classify", "TAG_NAME": "v1.0.0"},
            {"ACTION": "status", "ENVIRONMENT": "staging"},
            {"ACTION": "scope-key", "ENVIRONMENT": "staging"},
        ):
            assert not prepare_plan(make_config(**env), store).has_mutations()

    def test_status_without_environment(self, store, make_commit):
        commit = make_commit()
        store.create("v1.0.0", commit, "Release")
        store.move("canary", commit)

        plan = prepare_plan(make_config(ACTION="status"), store)

        assert plan.deployments["canary"].name == "v1.0.0"
        assert plan.deployments["production"] is None
        assert plan.record is None

    def test_validate(self, store, make_commit):
        commit = make_commit()
        store.create("api/v1.0.0", commit, "Release")
        store.create("api/v1.0.1", commit, "Release")
        store.create("v2.0.0", commit, "Release")

        plan = prepare_plan(make_config(ACTION="validate", SUBPROJECT="api"), store)

        assert plan.duplicate_versions == {commit: ["api/v1.0.0", "api/v1.0.1"]}
        assert not plan.has_mutations()

    def test_delete(self, store, make_commit):
        commit = make_commit()
        store.create("v1.0.0", commit, "Release")

        plan = prepare_plan(make_config(ACTION="delete", TAG_NAME="v1.0.0"), store)

        assert plan.mutations[0].kind == MutationKind.DELETE
        assert plan.mutations[0].commit == commit


class TestExecutePlan:
    """Test plan execution."""

    def test_deploy_through_automation(self, store, make_commit):
        commit = make_commit()
        plan = prepare_plan(make_config(ACTION="deploy", ENVIRONMENT="production"), store)

        result = execute_plan(plan, store, ProtectionGate(store.config), AUTOMATION)

        assert result.success
        assert result.tags_written == ["production"]
        assert result.previous_commits == {"production": None}
        assert store.points_at("production") == commit

    def test_blocked_deploy_writes_nothing(self, store, make_commit):
        make_commit()
        plan = prepare_plan(make_config(ACTION="deploy", ENVIRONMENT="production"), store)

        result = execute_plan(plan, store, ProtectionGate(store.config), DEVELOPER)

        assert not result.success
        assert "Protected environment tag 'production'" in result.errors[0]
        assert store.query("production") == []

    def test_override_is_audited(self, store, make_commit):
        make_commit()
        plan = prepare_plan(make_config(ACTION="deploy", ENVIRONMENT="production"), store)
        admin = ActorContext(name="admin", override_token="true")

        result = execute_plan(plan, store, ProtectionGate(store.config), admin)

        assert result.success
        [audit] = result.audit_records
        assert audit.actor == "admin"
        assert audit.kind == MutationKind.MOVE

    def test_drift_is_a_warning(self, store, make_commit):
        commit = make_commit()
        plan = prepare_plan(make_config(ACTION="release", VERSION="1.0.0", PUSH="true"), store)
        drift = PushRaceDrift("v1.0.0", commit, "f" * 40)
        pushed = PushResult("v1.0.0", "origin", commit, "f" * 40, drift=drift)

        with patch.object(store, "push", return_value=pushed) as mock_push:
            result = execute_plan(plan, store, ProtectionGate(store.config), DEVELOPER)

        assert result.success
        mock_push.assert_called_once_with("v1.0.0")
        assert result.warnings == [str(drift)]

    def test_duplicate_versions_fail_the_run(self, store, make_commit):
        commit = make_commit()
        store.create("v1.0.0", commit, "Release")
        store.create("v1.0.1", commit, "Release")
        plan = prepare_plan(make_config(ACTION="validate"), store)

        result = execute_plan(plan, store, ProtectionGate(store.config), DEVELOPER)

        assert not result.success
        assert result.errors == [f"Commit {commit} carries multiple version tags: v1.0.0, v1.0.1"]

    def test_nothing_to_execute(self, store, make_commit):
        make_commit()
        plan = prepare_plan(make_config(ACTION="status", ENVIRONMENT="staging"), store)

        result = execute_plan(plan, store, ProtectionGate(store.config), DEVELOPER)

        assert result.success
        assert plan.action == LedgerAction.STATUS
        assert result.tags_written == []
