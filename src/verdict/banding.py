from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def band(value: float, bands: Sequence[tuple[float, T]], default: T, *, strict: bool = False) -> T:
    """Return the label of the first band whose floor ``value`` reaches.

    ``bands`` is ordered from the highest floor down. With ``strict`` the value
    must exceed the floor rather than meet it.
    """
    for floor, label in bands:
        if value > floor or (not strict and value == floor):
            return label
    return default
