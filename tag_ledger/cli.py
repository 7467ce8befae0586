#!/usr/bin/env python3

"""
Tag Ledger CLI

Entry point for the release, state, deployment and rollback workflows.
All ledger logic lives in the planning and execution modules; this shell
reads the environment, wires the clients and reports results.
"""

import json
import os
import sys

from .environment import EnvironmentConfig
from .config import load_ledger_config
from .exceptions import TagLedgerError
from .git_operations import setup_git_client
from .models import LedgerAction, LedgerPlan, ExecutionResult
from .plan_builder import prepare_plan
from .plan_executor import execute_plan
from .protection import ProtectionGate, actor_from_env
from .tag_store import TagStore
from .utils import setup_logging, write_github_outputs


def main():
    """Main entry point - planning/execution pipeline."""
    setup_logging()
    try:
        # Step 1: Parse environment
        config = EnvironmentConfig.from_env(os.environ)

        # Step 2: Validate configuration
        errors = config.validate()
        if errors:
            for error in errors:
                print(f"Error: {error}")
            sys.exit(1)

        print(f"Action: {config.action.value}")
        if config.subproject:
            print(f"Subproject: {config.subproject}")
        print(f"Dry run: {config.dry_run}")
        print(f"Push: {config.push}")

        if config.target_path != ".":
            print(f"Changing to target directory: {config.target_path}")
            os.chdir(config.target_path)

        # Step 3: Setup clients
        ledger_config = load_ledger_config(config.config_file or None)
        repo, github_repo = setup_git_client(config.github_token, config.github_repository)
        store = TagStore(repo, ledger_config, github_repo, dry_run=config.dry_run)
        gate = ProtectionGate(ledger_config)
        actor = actor_from_env(os.environ, ledger_config)

        # Step 4: Prepare plan (reads tags, resolves targets)
        try:
            plan = prepare_plan(config, store)
        except TagLedgerError as e:
            print(f"Error: {e}")
            _write_trace(config, getattr(e, "trace", None))
            sys.exit(1)

        _print_plan(plan)

        # Step 5: Execute plan (gate, write, push)
        result = execute_plan(plan, store, gate, actor)

        _write_outputs(config, plan, result)
        _write_trace(config, plan.resolution.trace if plan.resolution else None)

        for warning in result.warnings:
            print(f"Warning: {warning}")

        if not result.success:
            for error in result.errors:
                print(f"Error: {error}")
            sys.exit(1)

        for name in result.tags_written:
            print(f"Updated tag: {name}")
        print("Tag ledger operation completed")
    except TagLedgerError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}")
        sys.exit(1)


def _print_plan(plan: LedgerPlan):
    if plan.action == LedgerAction.CLASSIFY:
        record = plan.record
        print(f"Tag {record.name}: {record.type.value}")
        print(f"  Subproject: {record.subproject or '(root)'}")
        if record.semver:
            print(f"  Version: {record.semver}")
        if record.environment:
            print(f"  Environment: {record.environment}")
        if record.state:
            print(f"  State: {record.state.value}")
        print(f"  Mutable: {record.mutable}")
    if plan.scope_key:
        print(f"Conflict scope key: {plan.scope_key}")
    if plan.deployments is not None:
        scope = plan.subproject or "(root)"
        print(f"Deployments for {scope}:")
        for environment, current in plan.deployments.items():
            deployed = f"{current.name} ({current.commit})" if current else "(nothing deployed)"
            print(f"  {environment}: {deployed}")
    elif plan.action == LedgerAction.STATUS:
        current = plan.current_version
        if current:
            print(f"Current version in {plan.record.name}: {current.name} ({current.commit})")
        else:
            print(f"Nothing deployed to {plan.record.name}")
    if plan.action == LedgerAction.VALIDATE and not plan.duplicate_versions:
        print("Tag ledger is consistent: no commit carries more than one version tag")
    if plan.resolution:
        trace = plan.resolution.trace
        print(f"Rollback target: {plan.resolution.target.name} ({plan.resolution.commit})")
        print(f"  Chosen from: {trace.partition_used.value}")
        if trace.excluded_current:
            print(f"  Excluded as current: {', '.join(trace.excluded_current)}")
    for mutation in plan.mutations:
        print(f"Planned {mutation.kind.value}: {mutation.name} -> {mutation.commit}")


def _write_outputs(config: EnvironmentConfig, plan: LedgerPlan, result: ExecutionResult):
    mutation = plan.mutations[0] if plan.mutations else None
    outputs = {
        "tag_name": plan.record.name if plan.record else None,
        "commit_sha": mutation.commit if mutation else None,
        "previous_commit": result.previous_commits.get(mutation.name) if mutation else None,
        "scope_key": plan.scope_key,
        "rollback_target": plan.resolution.target.name if plan.resolution else None,
        "duplicate_versions": str(len(plan.duplicate_versions)),
        "success": str(result.success).lower(),
    }
    write_github_outputs(config.github_output, outputs)


def _write_trace(config: EnvironmentConfig, trace):
    if not config.trace_file or trace is None:
        return
    with open(config.trace_file, "w", encoding="utf-8") as f:
        json.dump(trace.as_dict(), f, indent=2)
    print(f"Rollback trace written to {config.trace_file}")


if __name__ == "__main__":
    main()
