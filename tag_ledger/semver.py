"""
Semantic Version Module

Pure functions for parsing and ordering semantic versions.

Precedence follows semver: major, minor and patch compare numerically; a
release outranks any prerelease of the same core; prerelease identifiers
compare field by field (numeric fields numerically and below alphanumeric
ones, alphanumeric fields lexically), and a shorter field list sorts first
when all shared fields are equal.
"""

import functools
import re
from typing import Optional, Tuple

from .exceptions import SemverParseError
from .models import Semver
from .tag_classification import PRERELEASE

SEMVER_PATTERN = re.compile(r"^v?(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)(?:-(" + PRERELEASE + r"))?\Z")


def parse_semver(value: str) -> Semver:
    """Parse "1.2.3", "v1.2.3" or "1.2.3-rc.1" into a Semver.

    Raises:
        SemverParseError: If the string is not a semantic version
    """
    if not isinstance(value, str) or not value:
        raise SemverParseError(str(value), "empty version")

    match = SEMVER_PATTERN.match(value)
    if not match:
        if re.match(r"^v?[0-9]+\.[0-9]+\.[0-9]+", value) and re.search(r"(^v?|\.)0[0-9]", value.split("-", 1)[0]):
            raise SemverParseError(value, "numeric fields must not have leading zeros")
        raise SemverParseError(value, "expected <major>.<minor>.<patch>[-<prerelease>]")

    return Semver(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3)),
        prerelease=match.group(4),
    )


def _is_numeric(identifier: str) -> bool:
    return identifier.isascii() and identifier.isdigit()


def _compare_identifiers(left: str, right: str) -> int:
    left_numeric, right_numeric = _is_numeric(left), _is_numeric(right)
    if left_numeric and right_numeric:
        left_value, right_value = int(left), int(right)
    elif left_numeric:
        return -1
    elif right_numeric:
        return 1
    else:
        left_value, right_value = left, right
    return (left_value > right_value) - (left_value < right_value)


def compare_prerelease(left: Optional[str], right: Optional[str]) -> int:
    """Compare two prerelease strings; None means "no prerelease"."""
    if left == right:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1

    left_fields, right_fields = left.split("."), right.split(".")
    for left_field, right_field in zip(left_fields, right_fields):
        result = _compare_identifiers(left_field, right_field)
        if result:
            return result
    return (len(left_fields) > len(right_fields)) - (len(left_fields) < len(right_fields))


def compare(left: Semver, right: Semver) -> int:
    """
    Compare two versions by semver precedence.

    Returns:
        -1 if left < right, 0 if equal, 1 if left > right
    """
    left_core: Tuple[int, int, int] = (left.major, left.minor, left.patch)
    right_core: Tuple[int, int, int] = (right.major, right.minor, right.patch)
    if left_core != right_core:
        return 1 if left_core > right_core else -1
    return compare_prerelease(left.prerelease, right.prerelease)


semver_key = functools.cmp_to_key(compare)

