"""Display-name ordering of classes (Nursery < Prep < Class 1 < Class 2 ...)."""

import re
from typing import Iterable, List, TypeVar

_DIGITS = re.compile(r"\d+")

T = TypeVar("T")


def order_key(name: str) -> int:
    """Nursery -> -2, Prep -> -1, otherwise the first run of digits in the name, else 0."""
    if not name or not isinstance(name, str):
        return 0
    lower = name.lower()
    if "nursery" in lower:
        return -2
    if "prep" in lower:
        return -1
    match = _DIGITS.search(name)
    return int(match.group()) if match else 0


def sort_by_order(items: Iterable[T], name_of=lambda item: item.name) -> List[T]:
    """Stable sort by order_key. Classes with equal keys keep their input order."""
    return sorted(items, key=lambda item: order_key(name_of(item)))
