# inventory_engine/data/extract.py

import os
import logging
from dataclasses import dataclass
from typing import Dict

import pandas as pd

from inventory_engine.data.entities import DemandObservation, InventorySnapshot, Item
from inventory_engine.data.providers import (
    InMemoryCatalog,
    InMemoryDemandHistory,
    InMemoryInventory,
)

logger = logging.getLogger(__name__)


@dataclass
class DataBundle:
    catalog: InMemoryCatalog
    history: InMemoryDemandHistory
    inventory: InMemoryInventory


def _optional_date(value):
    return None if pd.isna(value) else value.date()


def _plain(value):
    # numpy scalar -> python scalar so ids hash and print like catalog ids
    return value.item() if hasattr(value, 'item') else value


def _optional_str(value):
    return None if pd.isna(value) else str(value)


class CsvDataLoader:
    """
    Reads items.csv, demand.csv and inventory.csv from one directory.

    items.csv:     item_id, title, unit_price[, publication_date, category, publisher]
    demand.csv:    item_id, month, quantity
    inventory.csv: item_id, store_stock, warehouse_stock[, last_sold_date]
    """

    def __init__(self, data_path: str):
        self.data_path = data_path
        self.frames: Dict[str, pd.DataFrame] = {}

    def extract_all(self) -> Dict[str, pd.DataFrame]:
        logger.info(f"Extracting data from {self.data_path}...")
        self.frames['items'] = self._read('items.csv', ['publication_date'])
        self.frames['demand'] = self._read('demand.csv', ['month'])
        self.frames['inventory'] = self._read('inventory.csv', ['last_sold_date'])
        return self.frames

    def _read(self, filename: str, date_cols) -> pd.DataFrame:
        path = os.path.join(self.data_path, filename)
        header = pd.read_csv(path, nrows=0).columns
        df = pd.read_csv(
            path,
            parse_dates=[c for c in date_cols if c in header]
        )
        logger.info(f"  {filename}: {len(df):,} rows")
        return df

    def load(self) -> DataBundle:
        frames = self.frames or self.extract_all()
        items_df = frames['items']

        items = [
            Item(
                item_id=_plain(row.item_id),
                title=str(row.title),
                unit_price=float(row.unit_price),
                publication_date=_optional_date(getattr(row, 'publication_date', None)),
                category=_optional_str(getattr(row, 'category', None)),
                publisher=_optional_str(getattr(row, 'publisher', None)),
            )
            for row in items_df.itertuples(index=False)
        ]
        observations = [
            DemandObservation(_plain(row.item_id), row.month.date(), int(row.quantity))
            for row in frames['demand'].itertuples(index=False)
        ]
        snapshots = [
            InventorySnapshot(
                item_id=_plain(row.item_id),
                store_stock=int(row.store_stock),
                warehouse_stock=int(row.warehouse_stock),
                last_sold_date=_optional_date(getattr(row, 'last_sold_date', None)),
            )
            for row in frames['inventory'].itertuples(index=False)
        ]

        return DataBundle(
            catalog=InMemoryCatalog(items),
            history=InMemoryDemandHistory(observations),
            inventory=InMemoryInventory(snapshots),
        )
