"""Shared fixtures: a small bookstore catalog with one year of demand."""

import os
from datetime import date

import pytest

from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import DemandObservation, InventorySnapshot, Item
from inventory_engine.data.monthly import add_months
from inventory_engine.data.providers import (
    InMemoryCatalog,
    InMemoryDemandHistory,
    InMemoryInventory,
)

AS_OF = date(2024, 7, 15)
WINDOW_START = date(2023, 7, 1)


def _monthly(item_id, quantity, months=12, start=WINDOW_START):
    return [
        DemandObservation(item_id, add_months(start, i), quantity)
        for i in range(months)
    ]


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def items():
    return [
        Item(1, 'Python Basics', 40.0, date(2023, 3, 1), 'programming', 'TechPress'),
        Item(2, 'Data Science Handbook', 60.0, date(2018, 5, 1), 'data', 'DataHouse'),
        Item(3, 'Legacy COBOL', 30.0, date(2005, 1, 1), 'programming', 'OldBooks'),
        Item(4, 'New Releases Sampler', 25.0),
    ]


@pytest.fixture
def catalog(items):
    return InMemoryCatalog(items)


@pytest.fixture
def history():
    observations = (
        _monthly(1, 20)
        + _monthly(2, 10)
        + [DemandObservation(3, date(2023, 7, 20), 5)]
    )
    return InMemoryDemandHistory(observations)


@pytest.fixture
def inventory():
    return InMemoryInventory([
        InventorySnapshot(1, store_stock=5, warehouse_stock=3, last_sold_date=date(2024, 7, 1)),
        InventorySnapshot(2, store_stock=200, warehouse_stock=0, last_sold_date=date(2024, 7, 10)),
        InventorySnapshot(3, store_stock=40, warehouse_stock=20, last_sold_date=date(2023, 7, 20)),
    ])


@pytest.fixture
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith('INVENTORY_'):
            monkeypatch.delenv(name)
    yield
    # load_dotenv writes straight into os.environ
    for name in list(os.environ):
        if name.startswith('INVENTORY_'):
            os.environ.pop(name)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / '.env'
    path.write_text('')
    return str(path)
