"""Unit tests for semantic version parsing and precedence."""

import itertools

import pytest

from tag_ledger.exceptions import SemverParseError
from tag_ledger.models import Semver
from tag_ledger.semver import compare, compare_prerelease, parse_semver, semver_key

# Ascending precedence, as listed by semver.org
ORDERED = [
    "1.0.0-alpha",
    "1.0.0-alpha.1",
    "1.0.0-alpha.beta",
    "1.0.0-beta",
    "1.0.0-beta.2",
    "1.0.0-beta.11",
    "1.0.0-rc.1",
    "1.0.0",
    "1.0.1",
    "1.2.0",
    "2.0.0",
    "10.0.0",
]


class TestParse:
    """Test version parsing."""

    def test_with_and_without_prefix(self):
        assert parse_semver("1.2.3") == Semver(1, 2, 3)
        assert parse_semver("v1.2.3") == Semver(1, 2, 3)

    def test_prerelease(self):
        assert parse_semver("1.2.3-rc.1") == Semver(1, 2, 3, "rc.1")
        assert str(parse_semver("v1.2.3-rc.1")) == "1.2.3-rc.1"

    def test_leading_zeros_rejected(self):
        with pytest.raises(SemverParseError) as exc_info:
            parse_semver("1.02.3")
        assert "leading zeros" in exc_info.value.reason

    @pytest.mark.parametrize("value", ["", "1.2", "1.2.3.4", "a.b.c", "1.2.3-", "1.2.3-rc..1", "1.2.3+build"])
    def test_invalid(self, value):
        with pytest.raises(SemverParseError):
            parse_semver(value)

    @pytest.mark.parametrize("value", ["1١.0.0", "1.0.0-١", "1.2.3\n"])
    def test_only_ascii_digits(self, value):
        with pytest.raises(SemverParseError):
            parse_semver(value)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_semver("nope")


class TestCompare:
    """Test precedence rules."""

    def test_release_beats_prerelease(self):
        assert compare(parse_semver("1.0.0"), parse_semver("1.0.0-rc.1")) == 1
        assert compare(parse_semver("1.0.0-rc.1"), parse_semver("1.0.0")) == -1

    def test_numeric_fields_compare_numerically(self):
        assert compare(parse_semver("1.0.0-beta.11"), parse_semver("1.0.0-beta.2")) == 1
        assert compare(parse_semver("1.10.0"), parse_semver("1.9.0")) == 1

    def test_numeric_below_alphanumeric(self):
        assert compare_prerelease("1", "alpha") == -1
        assert compare_prerelease("alpha", "1") == 1

    def test_non_ascii_digits_are_not_numeric(self):
        assert compare_prerelease("١", "1") == 1
        assert compare(Semver(1, 0, 0, "١"), Semver(1, 0, 0, "1")) != 0

    def test_shorter_field_list_first(self):
        assert compare_prerelease("alpha", "alpha.1") == -1

    def test_equal_to_itself(self):
        for value in ORDERED:
            assert compare(parse_semver(value), parse_semver(value)) == 0

    def test_strict_total_order(self):
        versions = [parse_semver(value) for value in ORDERED]
        for (i, left), (j, right) in itertools.product(enumerate(versions), repeat=2):
            expected = (i > j) - (i < j)
            assert compare(left, right) == expected
            assert compare(right, left) == -expected

    def test_sort_key(self):
        shuffled = [parse_semver(value) for value in reversed(ORDERED)]
        assert [str(v) for v in sorted(shuffled, key=semver_key)] == ORDERED
