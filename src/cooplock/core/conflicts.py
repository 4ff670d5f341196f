"""Hierarchical conflict detection between resource paths.

Locking a directory implicitly locks everything below it, and locking a path
blocks locking any of its ancestor directories.
"""

from collections.abc import Iterable

from ..constants import PATH_DELIMITER


def is_child_path(child: str, parent: str) -> bool:
    """Check if `child` lies below the `parent` directory."""
    prefix = parent if parent.endswith(PATH_DELIMITER) else parent + PATH_DELIMITER
    return child.startswith(prefix)


def paths_conflict(first: str, second: str) -> bool:
    """Check if two paths are equal or one is an ancestor of the other."""
    return first == second or is_child_path(first, second) or is_child_path(second, first)


def conflicts(existing: Iterable[Iterable[str]], candidate: Iterable[str]) -> bool:
    """Check if any candidate path overlaps an already locked path.

    Args:
        existing: Resource sets of the current lock records
        candidate: Resources requested by a new lock

    Returns:
        True if at least one pair of paths conflicts
    """
    candidate = list(candidate)
    return any(
        paths_conflict(locked, requested)
        for resources in existing
        for locked in resources
        for requested in candidate
    )
