#!/usr/bin/env python3

"""
Pre-push hook for the tag ledger.

Git runs the hook as `pre-push <remote> <url>` and writes one line per ref
update to stdin:

    <local ref> <local sha> <remote ref> <remote sha>

Every tag update goes through the ProtectionGate; any BLOCK aborts the push.
Like the gate itself this only protects clones that have the hook installed.
"""

import logging
import os
import sys
from typing import Iterable, List, Optional, TextIO

from .config import load_ledger_config
from .models import ActorContext, MutationKind, MutationRequest
from .protection import GateDecision, ProtectionGate, actor_from_env
from .utils import setup_logging

logger = logging.getLogger(__name__)

TAG_PREFIX = "refs/tags/"


def _is_zero(sha: str) -> bool:
    return not sha.strip("0")


def parse_pre_push_lines(lines: Iterable[str]) -> List[MutationRequest]:
    """Turn pre-push stdin lines into mutation requests for tag refs.

    Branch updates are ignored.
    """
    requests = []
    for line in lines:
        parts = line.split()
        if len(parts) != 4:
            continue
        local_ref, local_sha, remote_ref, remote_sha = parts
        if not remote_ref.startswith(TAG_PREFIX):
            continue

        name = remote_ref[len(TAG_PREFIX):]
        if _is_zero(local_sha):
            requests.append(MutationRequest(name=name, commit=None, kind=MutationKind.DELETE))
        elif _is_zero(remote_sha):
            requests.append(MutationRequest(name=name, commit=local_sha, kind=MutationKind.CREATE))
        else:
            requests.append(MutationRequest(name=name, commit=local_sha, kind=MutationKind.MOVE))
    return requests


def check_push(requests: List[MutationRequest], gate: ProtectionGate, actor: ActorContext) -> List[GateDecision]:
    """Evaluate every requested tag update and return the blocked ones."""
    blocked = []
    for request in requests:
        decision = gate.evaluate(request, actor)
        if not decision.allowed:
            blocked.append(decision)
    return blocked


def main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None) -> int:
    """Hook entry point. Returns the process exit code."""
    setup_logging(logging.WARNING)
    argv = sys.argv[1:] if argv is None else argv
    stdin = sys.stdin if stdin is None else stdin

    remote = argv[0] if argv else "(unknown remote)"
    requests = parse_pre_push_lines(stdin)
    if not requests:
        return 0

    config = load_ledger_config(os.environ.get("CONFIG_FILE") or None)
    gate = ProtectionGate(config)
    actor = actor_from_env(os.environ, config)

    logger.info(f"Validating {len(requests)} tag update(s) pushed to {remote}")
    blocked = check_push(requests, gate, actor)
    for decision in blocked:
        print(decision.message, file=sys.stderr)

    if blocked:
        print(f"Push rejected: {len(blocked)} protected tag update(s) blocked", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
