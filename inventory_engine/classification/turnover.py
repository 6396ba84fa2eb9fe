# inventory_engine/classification/turnover.py

"""
Turnover, Lifecycle and Dead-Stock Disposal
Maps ABC/XYZ classes to turnover speed and plans disposal of slow stock.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Hashable, Mapping, Optional, Sequence

import pandas as pd

from inventory_engine.classification.demand_classifier import Classification
from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import InventorySnapshot, Item
from inventory_engine.data.providers import InventoryProvider
from inventory_engine.rounding import round_float

logger = logging.getLogger(__name__)

NEVER_SOLD_DAYS = 365


class TurnoverSpeed(str, Enum):
    FAST = 'FAST'
    MEDIUM = 'MEDIUM'
    SLOW = 'SLOW'
    DEAD = 'DEAD'


class LifecycleStage(str, Enum):
    EMERGING = 'EMERGING'
    GROWTH = 'GROWTH'
    MATURE = 'MATURE'
    DECLINING = 'DECLINING'


class DisposalAction(str, Enum):
    LIQUIDATE = 'LIQUIDATE'
    BULK_SALE = 'BULK_SALE'
    RETURN = 'RETURN'
    DISCOUNT_SALE = 'DISCOUNT_SALE'


TURNOVER_BY_CATEGORY: Mapping[str, TurnoverSpeed] = {
    'AX': TurnoverSpeed.FAST, 'AY': TurnoverSpeed.FAST,
    'BX': TurnoverSpeed.MEDIUM, 'BY': TurnoverSpeed.MEDIUM,
    'CX': TurnoverSpeed.SLOW, 'CY': TurnoverSpeed.SLOW,
    'AZ': TurnoverSpeed.DEAD, 'BZ': TurnoverSpeed.DEAD, 'CZ': TurnoverSpeed.DEAD,
}


@dataclass(frozen=True)
class DisposalPlan:
    priority: str
    action: DisposalAction
    recovery_rate: float


def turnover_speed(combined_category: Optional[str]) -> TurnoverSpeed:
    return TURNOVER_BY_CATEGORY.get(combined_category or '', TurnoverSpeed.MEDIUM)


def lifecycle_stage(publication_date: Optional[date], as_of: date) -> LifecycleStage:
    """Stage from the publication year difference; MATURE when undated."""
    if publication_date is None:
        return LifecycleStage.MATURE
    years = as_of.year - publication_date.year
    if years <= 1:
        return LifecycleStage.EMERGING
    if years <= 3:
        return LifecycleStage.GROWTH
    if years <= 7:
        return LifecycleStage.MATURE
    return LifecycleStage.DECLINING


def lifecycle_distribution(items: Sequence[Item], as_of: date) -> Dict[str, int]:
    counts = Counter(lifecycle_stage(i.publication_date, as_of) for i in items)
    return {stage.value: counts.get(stage, 0) for stage in LifecycleStage}


def days_since_last_sale(last_sold: Optional[date], as_of: date) -> int:
    if last_sold is None:
        return NEVER_SOLD_DAYS
    return max(0, (as_of - last_sold).days)


def disposal_plan(days_idle: int, stage: LifecycleStage, stock: int) -> DisposalPlan:
    if days_idle >= 180 and stage == LifecycleStage.DECLINING:
        return DisposalPlan('HIGH', DisposalAction.LIQUIDATE, 0.20)
    if days_idle >= 150 or stock > 50:
        return DisposalPlan('HIGH', DisposalAction.BULK_SALE, 0.55)
    if days_idle >= 120 or stage == LifecycleStage.MATURE:
        return DisposalPlan('MEDIUM', DisposalAction.RETURN, 0.92)
    return DisposalPlan('MEDIUM', DisposalAction.DISCOUNT_SALE, 0.75)


class TurnoverAnalyzer:
    """Finds dead stock and proposes how to clear it."""

    def __init__(
        self,
        inventory: InventoryProvider,
        settings: Optional[EngineSettings] = None
    ):
        self.inventory = inventory
        self.settings = settings or EngineSettings()

    def is_dead_stock(self, snapshot: Optional[InventorySnapshot], as_of: date) -> bool:
        """Never sold, or last sold before the dead-stock cutoff."""
        if snapshot is None or snapshot.last_sold_date is None:
            return True
        cutoff = as_of - timedelta(days=self.settings.dead_stock_days)
        return snapshot.last_sold_date < cutoff

    def analyze(
        self,
        items: Sequence[Item],
        classifications: Sequence[Classification],
        as_of: date
    ) -> pd.DataFrame:
        """
        Dead-stock report with turnover speed and disposal plan.

        Args:
            items: Items to inspect
            classifications: ABC/XYZ results for the same date (items
                without one get the default MEDIUM speed)
            as_of: Analysis date

        Returns:
            One row per dead-stock item holding stock, ordered by days idle
        """
        categories: Dict[Hashable, str] = {
            c.item_id: c.combined_category for c in classifications
        }

        rows = []
        for item in items:
            try:
                snapshot = self.inventory.get_snapshot(item.item_id)
                stock = snapshot.total_stock if snapshot else 0
                if stock <= 0 or not self.is_dead_stock(snapshot, as_of):
                    continue

                idle = days_since_last_sale(snapshot.last_sold_date if snapshot else None, as_of)
                stage = lifecycle_stage(item.publication_date, as_of)
                plan = disposal_plan(idle, stage, stock)
                stock_value = stock * item.unit_price

                rows.append({
                    'item_id': item.item_id,
                    'title': item.title,
                    'current_stock': stock,
                    'stock_value': round_float(stock_value, 2),
                    'days_since_last_sale': idle,
                    'combined_category': categories.get(item.item_id),
                    'turnover_speed': turnover_speed(categories.get(item.item_id)).value,
                    'lifecycle_stage': stage.value,
                    'priority': plan.priority,
                    'action': plan.action.value,
                    'recovery_rate': plan.recovery_rate,
                    'expected_recovery': round_float(stock_value * plan.recovery_rate, 2),
                })
            except Exception as e:
                logger.warning(f"Failed to assess dead stock for item {item.item_id}: {e}")

        dead_df = pd.DataFrame(rows, columns=[
            'item_id', 'title', 'current_stock', 'stock_value',
            'days_since_last_sale', 'combined_category', 'turnover_speed',
            'lifecycle_stage', 'priority', 'action', 'recovery_rate',
            'expected_recovery'
        ])
        if len(dead_df):
            dead_df = dead_df.sort_values(
                'days_since_last_sale', ascending=False, kind='stable'
            ).reset_index(drop=True)

        logger.info(
            f"  Dead stock items: {len(dead_df)} | "
            f"value at risk: {dead_df['stock_value'].sum():,.2f}"
        )
        return dead_df
