from inventory_engine.data.entities import (
    DemandObservation,
    InventorySnapshot,
    Item,
)
from inventory_engine.data.providers import (
    CatalogProvider,
    DemandHistoryProvider,
    InMemoryCatalog,
    InMemoryDemandHistory,
    InMemoryInventory,
    InventoryProvider,
    PerformanceMonitor,
    TrendProvider,
)
from inventory_engine.data.extract import CsvDataLoader, DataBundle

__all__ = [
    'CatalogProvider',
    'CsvDataLoader',
    'DataBundle',
    'DemandHistoryProvider',
    'DemandObservation',
    'InMemoryCatalog',
    'InMemoryDemandHistory',
    'InMemoryInventory',
    'InventoryProvider',
    'InventorySnapshot',
    'Item',
    'PerformanceMonitor',
    'TrendProvider',
]
