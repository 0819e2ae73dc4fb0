"""Tests for story format version handling."""

import pytest

from chapbook_analyzer.core.errors import VersionFormatError
from chapbook_analyzer.core.versions import (
    compare_versions,
    extension_is_ignored,
    is_available,
    is_deprecated,
    parse_version,
)


class TestParseVersion:
    def test_components(self) -> None:
        assert parse_version("2.1.17") == (2, 1, 17)

    @pytest.mark.parametrize("version", ["2.x", "two", "2..1", "2.0.0-beta"])
    def test_strict_rejects_non_numeric(self, version: str) -> None:
        with pytest.raises(VersionFormatError, match="must be a number like '2.0.0'"):
            parse_version(version)

    def test_lenient_uses_leading_digits(self) -> None:
        assert parse_version("2.0.0-beta", strict=False) == (2, 0, 0)
        assert parse_version("2.x", strict=False) == (2, 0)


class TestCompareVersions:
    def test_shorter_sorts_first(self) -> None:
        assert compare_versions("2.0", "2.0.1") < 0

    def test_numeric_not_lexical(self) -> None:
        assert compare_versions("2.10", "2.9") > 0

    def test_equal(self) -> None:
        assert compare_versions("1.2.3", "1.2.3") == 0


class TestVersionWindows:
    def test_before_since(self) -> None:
        assert not is_available("2.1", None, "2.0.1")

    def test_at_since(self) -> None:
        assert is_available("2.1", None, "2.1")

    def test_at_removed(self) -> None:
        assert not is_available(None, "2.0", "2.0")

    def test_before_removed(self) -> None:
        assert is_available(None, "2.0", "1.9")

    def test_deprecated(self) -> None:
        assert is_deprecated("1.0", "1.0")
        assert is_deprecated("1.0", "2.0")
        assert not is_deprecated("2.0", "1.9")
        assert not is_deprecated(None, "2.0")


class TestExtensionIsIgnored:
    def test_newer_format_ignores_extension(self) -> None:
        assert extension_is_ignored("1.0.0", "2.0.0")

    def test_same_version(self) -> None:
        assert not extension_is_ignored("2.0.0", "2.0.0")

    def test_extension_for_newer_format(self) -> None:
        assert not extension_is_ignored("2.1.0", "2.0.0")

    def test_invalid_extension_version(self) -> None:
        with pytest.raises(VersionFormatError):
            extension_is_ignored("abc", "2.0.0")
