"""Errors raised by the tax and invoice-splitting core."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from .schemas import TransactionGroup


class InvalidInput(ValueError):
    """Negative amounts or out-of-range percentages handed to the core."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems) or "invalid input")


class UnsplittableGroup(Exception):
    """A fuel group above the threshold that cannot be cut by quantity."""

    def __init__(self, group: "TransactionGroup", reason: str) -> None:
        self.group = group
        self.reason = reason
        super().__init__(f"{group.product_name or group.product_id}: {reason}")
