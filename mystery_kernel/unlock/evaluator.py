"""
Unlock Evaluator — decides whether a gated entity is accessible.

Places, characters and clues all gate on the same rule: every listed flag
must be present and true. An empty condition list is always satisfied.
"""

from typing import Iterable, Mapping


def is_unlocked(conditions: Iterable[str], flags: Mapping[str, bool]) -> bool:
    """Return True when every condition names a flag set to True."""
    return all(flags.get(name) is True for name in conditions)


def missing_conditions(conditions: Iterable[str], flags: Mapping[str, bool]) -> list:
    """Flags still blocking access, in declaration order."""
    return [name for name in conditions if flags.get(name) is not True]
