"""Set arithmetic between expected and remote membership."""

from typing import AbstractSet, Iterable

from risklist_sync.models.reconciler import ListDiff


def sets_equal(a: AbstractSet[str], b: AbstractSet[str]) -> bool:
    """Order-independent equality; a size mismatch short-circuits."""
    if len(a) != len(b):
        return False
    return all(item in b for item in a)


def compute_diff(expected: Iterable[str], actual: Iterable[str]) -> ListDiff:
    """to_add = expected - actual, to_remove = actual - expected."""
    expected_set = set(expected)
    actual_set = set(actual)
    return ListDiff(
        to_add=sorted(expected_set - actual_set),
        to_remove=sorted(actual_set - expected_set),
    )
