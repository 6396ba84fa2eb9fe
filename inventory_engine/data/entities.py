# inventory_engine/data/entities.py

"""
Reference data supplied by the catalog, sales-history and inventory
collaborators. The engine only reads these records.
"""

from dataclasses import dataclass
from datetime import date
from typing import Hashable, Optional


def month_start(day: date) -> date:
    """First day of the calendar month containing `day`."""
    return date(day.year, day.month, 1)


@dataclass(frozen=True)
class Item:
    """
    Catalog entry.

    Attributes:
        item_id: Catalog identity
        title: Display title
        unit_price: Unit sell price
        publication_date: Drives age-based obsolescence heuristics
        category: Optional category code (request filter)
        publisher: Optional publisher name (request filter)
    """
    item_id: Hashable
    title: str
    unit_price: float
    publication_date: Optional[date] = None
    category: Optional[str] = None
    publisher: Optional[str] = None

    def __post_init__(self):
        if self.unit_price < 0:
            raise ValueError(
                f"unit_price must be >= 0 for item {self.item_id}"
            )


@dataclass(frozen=True)
class DemandObservation:
    """Quantity of one item sold in one calendar month."""
    item_id: Hashable
    month: date
    quantity: int

    def __post_init__(self):
        # Any day inside the month is accepted; store the month key
        object.__setattr__(self, 'month', month_start(self.month))
        if self.quantity < 0:
            raise ValueError(
                f"quantity must be >= 0 for item {self.item_id}"
            )


@dataclass(frozen=True)
class InventorySnapshot:
    """Current on-hand quantity and last sale for one item."""
    item_id: Hashable
    store_stock: int = 0
    warehouse_stock: int = 0
    last_sold_date: Optional[date] = None

    @property
    def total_stock(self) -> int:
        return self.store_stock + self.warehouse_stock
