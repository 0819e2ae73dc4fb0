"""
Story format version handling.

Versions are dot-separated non-negative integers ("2.0.1"). Comparison is
component-wise, left to right, so "2.0" sorts before "2.0.1".
"""

from __future__ import annotations

import re

from .errors import VersionFormatError

_LEADING_INT = re.compile(r"^\s*(\d+)")


def parse_version(version: str, strict: bool = True) -> tuple[int, ...]:
    """
    Split a version string into integer components.

    Args:
        version: Version such as "2.1.17"
        strict: If True, every component must be a non-negative integer. If
            False, each component contributes its leading digits (or 0), which
            tolerates pre-release tags like "2.0.0-beta".

    Raises:
        VersionFormatError: If strict and any component isn't numeric
    """
    parts = version.split(".")
    if strict:
        if not all(p.isdigit() and p.isascii() for p in parts):
            raise VersionFormatError(f"Version '{version}' must be a number like '2.0.0'")
        return tuple(int(p) for p in parts)

    result = []
    for part in parts:
        m = _LEADING_INT.match(part)
        result.append(int(m.group(1)) if m else 0)
    return tuple(result)


def compare_versions(a: str, b: str) -> int:
    """
    Compare two story format versions.

    Returns:
        Negative if a < b, zero if equal, positive if a > b
    """
    va = parse_version(a, strict=False)
    vb = parse_version(b, strict=False)
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def is_available(since: str | None, removed: str | None, version: str) -> bool:
    """True if a function introduced in `since` and dropped in `removed` exists in `version`."""
    if since is not None and compare_versions(version, since) < 0:
        return False
    if removed is not None and compare_versions(version, removed) >= 0:
        return False
    return True


def is_deprecated(deprecated: str | None, version: str) -> bool:
    if deprecated is None:
        return False
    return compare_versions(version, deprecated) >= 0


def extension_is_ignored(extension_version: str, format_version: str) -> bool:
    """
    Decide whether an ``engine.extend()`` block is skipped by the running format.

    An extension is ignored when the story format is newer than the version
    the extension declares.

    Raises:
        VersionFormatError: If the extension's version isn't dot-separated integers
    """
    declared = parse_version(extension_version, strict=True)
    current = parse_version(format_version, strict=False)
    return current > declared
