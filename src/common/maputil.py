from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, Iterator, List, Mapping, Tuple, TypeVar


V = TypeVar("V")


def sorted_items(m: Mapping[str, V]) -> Iterator[Tuple[str, V]]:
    """Iterate `(key, value)` pairs of `m` ordered by key.

    Staged items are always visited in name order so that diff, apply and
    listing output is reproducible between runs.
    """
    for k in sorted(m.keys()):
        yield k, m[k]


def ordered(m: Mapping[str, V]) -> "OrderedDict[str, V]":
    return OrderedDict(sorted_items(m))


def sorted_set(values: Iterable[str]) -> List[str]:
    # Remove keys are modelled as a set; serialize them sorted and de-duplicated
    return sorted(set(values))


__all__ = ["sorted_items", "ordered", "sorted_set"]
