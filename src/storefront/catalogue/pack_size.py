"""Pack sizes a product can be sold in.

A line item is always sold either as a ``Single`` base unit or as a ``Pack``
of several base units (a box of 12, a case of 24). Stock is counted in base
units, so a pack consumes ``unit_count`` units per quantity ordered.
"""

from dataclasses import dataclass

SINGLE_KEY = "single"


@dataclass(frozen=True)
class Single:
    """One base unit. Used when no enabled variant matches the requested key."""

    key: str = SINGLE_KEY
    label: str = "Single"
    price: float | None = None

    @property
    def unit_count(self) -> int:
        return 1


@dataclass(frozen=True)
class Pack:
    """A bundle of ``unit_count`` base units sold as one purchasable item."""

    key: str
    unit_count: int
    label: str = ""
    price: float | None = None

    def __post_init__(self):
        if self.unit_count < 2:
            raise ValueError(f"A pack holds at least 2 units, got {self.unit_count}")


PackSize = Single | Pack


def pack_size_for(key: str, unit_count: int, label: str | None = None, price: float | None = None) -> PackSize:
    """Build the pack size matching a configured variant."""
    if unit_count <= 1:
        return Single(key=key or SINGLE_KEY, label=label or "Single", price=price)
    return Pack(key=key, unit_count=unit_count, label=label or f"Box of {unit_count}", price=price)
