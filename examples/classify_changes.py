#!/usr/bin/env python3
"""Example: Decide the version increment between two chain directories.

This script shows how the pieces of tokenkit fit together without the CLI:
extract change records from two snapshots, classify them and apply the
increment to a template version.
"""

from tokenkit.diff import diff_directories, classify_changes
from tokenkit.versioning import Version


def classify(before_dir: str, after_dir: str, current: str = "1.0.0"):
    """Print the change events and the next version.

    Args:
        before_dir: Baseline chains directory
        after_dir: New chains directory
        current: Current published version
    """
    changes = diff_directories(before_dir, after_dir)
    result = classify_changes(changes)

    print(f"✓ {len(changes)} chain files changed")
    for event in result.events:
        print(f"  [{event.bump.value}] {event.file}: {event.summary}")

    version = Version.parse(current)
    if result.bump:
        print(f"\nVersion: {version} -> {version.bump(result.bump)}")
    else:
        print(f"\nVersion: {version} (no semantic changes)")

    return result


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 3:
        print("Usage: python classify_changes.py <before_chains_dir> <after_chains_dir> [current_version]")
        print("\nExample:")
        print("  python classify_changes.py old/chains chains 1.4.2")
        sys.exit(1)

    classify(*sys.argv[1:4])
