# inventory_engine/data/providers.py

"""
Collaborator interfaces and in-memory implementations.

The engine never owns catalog, sales or stock data. It reads them through
these interfaces; the surrounding application supplies implementations
backed by its database. The in-memory versions here back the CSV loader,
the command line and the tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Dict, Hashable, Iterable, List, Optional

from inventory_engine.data.entities import (
    DemandObservation,
    InventorySnapshot,
    Item,
    month_start,
)
from inventory_engine.exceptions import ItemNotFoundError

logger = logging.getLogger(__name__)


class CatalogProvider(ABC):
    """Catalog lookups."""

    @abstractmethod
    def get_item(self, item_id: Hashable) -> Item:
        """
        Look up one item.

        Raises:
            ItemNotFoundError: If the id is unknown
        """

    @abstractmethod
    def list_items(self) -> List[Item]:
        """All catalog items in a stable order."""


class DemandHistoryProvider(ABC):
    """Historical monthly demand."""

    @abstractmethod
    def get_demand(
        self,
        item_id: Hashable,
        start: date,
        end: date
    ) -> List[DemandObservation]:
        """
        Observations for months in [start, end), ordered by month.

        May be empty. Never raises for an unknown item.
        """


class InventoryProvider(ABC):
    """Current stock snapshot."""

    @abstractmethod
    def get_snapshot(self, item_id: Hashable) -> Optional[InventorySnapshot]:
        """Snapshot for the item, or None when nothing is on record."""

    def current_stock(self, item_id: Hashable) -> int:
        """Store + warehouse quantity; 0 when no snapshot exists."""
        snapshot = self.get_snapshot(item_id)
        return snapshot.total_stock if snapshot else 0


class TrendProvider(ABC):
    """Optional popularity-trend collaborator for stock targets."""

    @abstractmethod
    def trend_factor(self, item: Item, as_of: date) -> float:
        """Multiplier around 1.0 (>1 rising popularity, <1 falling)."""


class PerformanceMonitor(ABC):
    """Optional sink for analysis performance metrics."""

    @abstractmethod
    def record(self, metrics) -> None:
        """Receive the PerformanceMetrics of one completed analysis."""


class InMemoryCatalog(CatalogProvider):

    def __init__(self, items: Iterable[Item] = ()):
        self._items: Dict[Hashable, Item] = {}
        for item in items:
            self._items[item.item_id] = item

    def add(self, item: Item) -> None:
        self._items[item.item_id] = item

    def get_item(self, item_id: Hashable) -> Item:
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None

    def list_items(self) -> List[Item]:
        return list(self._items.values())

    def __len__(self):
        return len(self._items)


class InMemoryDemandHistory(DemandHistoryProvider):
    """Observations grouped per item; safe for concurrent readers."""

    def __init__(self, observations: Iterable[DemandObservation] = ()):
        self._by_item: Dict[Hashable, List[DemandObservation]] = defaultdict(list)
        self._lock = threading.Lock()
        self.extend(observations)

    def extend(self, observations: Iterable[DemandObservation]) -> None:
        with self._lock:
            for obs in observations:
                self._by_item[obs.item_id].append(obs)
            for series in self._by_item.values():
                series.sort(key=lambda o: o.month)

    def get_demand(
        self,
        item_id: Hashable,
        start: date,
        end: date
    ) -> List[DemandObservation]:
        start, end = month_start(start), month_start(end)
        with self._lock:
            series = list(self._by_item.get(item_id, ()))
        return [obs for obs in series if start <= obs.month < end]


class InMemoryInventory(InventoryProvider):

    def __init__(self, snapshots: Iterable[InventorySnapshot] = ()):
        self._snapshots = {s.item_id: s for s in snapshots}

    def put(self, snapshot: InventorySnapshot) -> None:
        self._snapshots[snapshot.item_id] = snapshot

    def get_snapshot(self, item_id: Hashable) -> Optional[InventorySnapshot]:
        return self._snapshots.get(item_id)
