# inventory_engine/optimization/stock_policy.py

"""
Stock Policy Calculator

Derives the complete stock policy of an item:
1. Demand statistics over the trailing 12 months
2. Economic order quantity (with catalog adjustments)
3. Safety stock and reorder point
4. Optimal stock level, scaled by obsolescence, trend and seasonality
5. Stock status and, when a reorder is due, the recommended order with
   its estimated cost and revenue

This is the main entry point for per-item stock targets; the purchase-set
selection in order_optimizer.py consumes its output.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import DemandObservation, Item
from inventory_engine.data.monthly import monthly_demand, trailing_window
from inventory_engine.data.providers import (
    CatalogProvider,
    DemandHistoryProvider,
    InventoryProvider,
    TrendProvider,
)
from inventory_engine.optimization.reorder_point import ReorderPointCalculator
from inventory_engine.optimization.safety_stock import SafetyStockCalculator
from inventory_engine.rounding import round_float, round_int, to_decimal

logger = logging.getLogger(__name__)

UNDERSTOCK_RATIO = 0.8
OVERSTOCK_RATIO = 1.2


class StockStatus(str, Enum):
    REORDER_NEEDED = 'REORDER_NEEDED'
    UNDERSTOCK = 'UNDERSTOCK'
    OPTIMAL = 'OPTIMAL'
    OVERSTOCK = 'OVERSTOCK'


class Recommendation(str, Enum):
    INCREASE = 'INCREASE'
    DECREASE = 'DECREASE'
    MAINTAIN = 'MAINTAIN'


@dataclass(frozen=True)
class StockPolicy:
    """
    Stock targets and status of one item.

    The validity window is [valid_from, valid_to); valid_to is None while
    the policy is the current one.
    """
    item_id: Hashable
    title: str = ''
    unit_price: float = 0.0
    economic_order_quantity: int = 1
    safety_stock: int = 0
    reorder_point: int = 0
    optimal_stock_level: int = 0
    current_stock: int = 0
    stock_status: StockStatus = StockStatus.OPTIMAL
    average_monthly_demand: float = 0.0
    demand_std: float = 0.0
    obsolescence_factor: float = 1.0
    trend_factor: float = 1.0
    seasonality_factor: float = 1.0
    recommended_order_quantity: Optional[int] = None
    estimated_cost: Optional[float] = None
    estimated_revenue: Optional[float] = None
    unit_weight: float = 1.0
    valid_from: date = field(default_factory=date.today)
    valid_to: Optional[date] = None

    def is_valid_on(self, day: date) -> bool:
        return self.valid_from <= day and (self.valid_to is None or day < self.valid_to)


def classify_stock_status(current: int, optimal: int, reorder_point: int) -> StockStatus:
    """
    C <= R → REORDER_NEEDED, C < 0.8·O → UNDERSTOCK,
    C > 1.2·O → OVERSTOCK, otherwise OPTIMAL.
    """
    if current <= reorder_point:
        return StockStatus.REORDER_NEEDED
    if current < optimal * UNDERSTOCK_RATIO:
        return StockStatus.UNDERSTOCK
    if current > optimal * OVERSTOCK_RATIO:
        return StockStatus.OVERSTOCK
    return StockStatus.OPTIMAL


def recommend(current: int, optimal: int) -> Recommendation:
    if current < optimal * UNDERSTOCK_RATIO:
        return Recommendation.INCREASE
    if current > optimal * OVERSTOCK_RATIO:
        return Recommendation.DECREASE
    return Recommendation.MAINTAIN


class StockPolicyCalculator:
    """
    Complete stock policy system.

    Combines SafetyStockCalculator and ReorderPointCalculator with the
    age, trend and seasonality adjustments.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        catalog: Optional[CatalogProvider] = None,
        history: Optional[DemandHistoryProvider] = None,
        inventory: Optional[InventoryProvider] = None,
        trend_provider: Optional[TrendProvider] = None
    ):
        """
        Initialize the calculator.

        Args:
            settings: Engine settings (costs, lead time, Z-score)
            catalog: Needed by calculate_item
            history: Needed by calculate_item and the batch methods
            inventory: Current stock; items without a snapshot hold 0
            trend_provider: Optional trend collaborator; 1.0 when absent
        """
        self.settings = settings or EngineSettings()
        self.catalog = catalog
        self.history = history
        self.inventory = inventory
        self.trend_provider = trend_provider

        s = self.settings
        self.ss_calculator = SafetyStockCalculator(
            z_score=s.service_level_z,
            lead_time_weeks=s.lead_time_weeks,
            std_ratio=s.demand_std_ratio,
            std_floor=s.demand_std_floor,
            min_std_observations=s.min_std_observations
        )
        self.rop_calculator = ReorderPointCalculator(
            ordering_cost=s.ordering_cost,
            holding_cost_rate=s.holding_cost_rate,
            lead_time_weeks=s.lead_time_weeks,
            volume_discount_threshold=s.volume_discount_threshold,
            volume_discount_multiplier=s.volume_discount_multiplier,
            new_item_years=s.new_item_years,
            new_item_multiplier=s.new_item_multiplier,
            high_value_price=s.high_value_price,
            high_value_multiplier=s.high_value_multiplier
        )

    # ------------------------------------------------------------------
    # Adjustment factors
    # ------------------------------------------------------------------

    @staticmethod
    def obsolescence_factor(item: Item, as_of: date) -> float:
        """Age-banded multiplier from the publication year difference."""
        if item.publication_date is None:
            return 0.9
        years_old = as_of.year - item.publication_date.year
        if years_old <= 1:
            return 1.0
        if years_old <= 3:
            return 0.95
        if years_old <= 5:
            return 0.85
        return 0.70

    def trend_factor(self, item: Item, as_of: date) -> float:
        if self.trend_provider is None:
            return 1.0
        return float(self.trend_provider.trend_factor(item, as_of))

    def seasonality_factor(self, as_of: date) -> float:
        return float(self.settings.stock_seasonality_factors.get(as_of.month, 1.0))

    # ------------------------------------------------------------------
    # Core calculation
    # ------------------------------------------------------------------

    def demand_statistics(
        self,
        history: Iterable[DemandObservation],
        as_of: date
    ) -> Tuple[float, float]:
        """
        Average monthly demand and its standard deviation.

        The average spreads the window's total over every month of the
        window, months without sales included.
        """
        history = list(history)
        months = self.settings.analysis_period_months
        observed = monthly_demand(history, as_of, months)
        average = float(observed.sum()) / months
        std = self.ss_calculator.demand_std(observed.to_numpy(), average)
        return average, std

    def calculate(
        self,
        item: Item,
        history: Iterable[DemandObservation],
        current_stock: int,
        as_of: Optional[date] = None
    ) -> StockPolicy:
        """
        Calculate the stock policy of one item.

        Args:
            item: Catalog item
            history: The item's demand observations
            current_stock: On-hand quantity (store + warehouse)
            as_of: Calculation date (default today)

        Returns:
            StockPolicy with status and, when C <= ROP, the recommended order
        """
        as_of = as_of or date.today()
        s = self.settings

        average, std = self.demand_statistics(
            (obs for obs in history if obs.item_id == item.item_id), as_of
        )

        # EOQ
        eoq = self.rop_calculator.economic_order_quantity(
            annual_demand=average * 12,
            unit_price=item.unit_price,
            publication_date=item.publication_date,
            as_of=as_of
        )

        # Safety stock and reorder point
        safety_stock = self.ss_calculator.method_standard(demand_std=std)
        reorder_point = self.rop_calculator.calculate_reorder_point(
            average_monthly_demand=average,
            safety_stock=safety_stock
        )

        # Optimal level
        obsolescence = self.obsolescence_factor(item, as_of)
        trend = self.trend_factor(item, as_of)
        seasonality = self.seasonality_factor(as_of)
        multiplier = to_decimal(obsolescence) * to_decimal(trend) * to_decimal(seasonality)
        optimal = round_int((eoq + safety_stock) * multiplier)

        status = classify_stock_status(current_stock, optimal, reorder_point)

        recommended = cost = revenue = None
        if status == StockStatus.REORDER_NEEDED:
            recommended = max(eoq, optimal - current_stock)
            price = to_decimal(item.unit_price)
            cost = round_float(price * to_decimal(s.cost_ratio) * recommended, 2)
            revenue = round_float(price * recommended, 2)

        policy = StockPolicy(
            item_id=item.item_id,
            title=item.title,
            unit_price=item.unit_price,
            economic_order_quantity=eoq,
            safety_stock=safety_stock,
            reorder_point=reorder_point,
            optimal_stock_level=optimal,
            current_stock=current_stock,
            stock_status=status,
            average_monthly_demand=average,
            demand_std=std,
            obsolescence_factor=obsolescence,
            trend_factor=trend,
            seasonality_factor=seasonality,
            recommended_order_quantity=recommended,
            estimated_cost=cost,
            estimated_revenue=revenue,
            valid_from=as_of,
        )

        logger.debug(
            f"Item {item.item_id}: optimal={optimal}, current={current_stock}, "
            f"reorder={reorder_point}, status={status.value}"
        )
        return policy

    def calculate_item(self, item_id: Hashable, as_of: Optional[date] = None) -> StockPolicy:
        """
        Look the item up and calculate its policy from the collaborators.

        Raises:
            ItemNotFoundError: Unknown item id
        """
        if self.catalog is None:
            raise ValueError("StockPolicyCalculator was created without a catalog provider")
        as_of = as_of or date.today()
        item = self.catalog.get_item(item_id)
        return self.calculate(item, self._history_for(item_id, as_of),
                              self._current_stock(item_id), as_of)

    def calculate_batch(
        self,
        items: Sequence[Item],
        as_of: Optional[date] = None
    ) -> List[StockPolicy]:
        """Policies for many items; failing items are logged and skipped."""
        as_of = as_of or date.today()
        policies = []
        for item in items:
            try:
                policies.append(self.calculate(
                    item, self._history_for(item.item_id, as_of),
                    self._current_stock(item.item_id), as_of
                ))
            except Exception as e:
                logger.warning(f"Failed to calculate stock policy for item {item.item_id}: {e}")
        return policies

    def calculate_optimal_levels(
        self,
        items: Sequence[Item],
        as_of: Optional[date] = None
    ) -> pd.DataFrame:
        """
        Optimal stock levels for all items.

        Returns:
            DataFrame with one row per item, including an
            INCREASE/DECREASE/MAINTAIN recommendation and annual costs
        """
        logger.info(f"Calculating optimal levels for {len(items)} items...")
        policies = self.calculate_batch(items, as_of)
        levels_df = self.policies_to_frame(policies)

        if len(levels_df):
            logger.info(f"  Items needing reorder: "
                        f"{(levels_df['stock_status'] == StockStatus.REORDER_NEEDED.value).sum()}")
            logger.info(f"  Total annual holding cost: "
                        f"{levels_df['annual_holding_cost'].sum():,.2f}")
        return levels_df

    def policies_to_frame(self, policies: Sequence[StockPolicy]) -> pd.DataFrame:
        rows = []
        for p in policies:
            costs = self.rop_calculator.calculate_total_costs(
                annual_demand=p.average_monthly_demand * 12,
                order_quantity=p.economic_order_quantity,
                safety_stock=p.safety_stock,
                unit_price=p.unit_price
            )
            rows.append({
                'item_id': p.item_id,
                'title': p.title,
                'current_stock': p.current_stock,
                'optimal_stock': p.optimal_stock_level,
                'safety_stock': p.safety_stock,
                'reorder_point': p.reorder_point,
                'economic_order_quantity': p.economic_order_quantity,
                'stock_status': p.stock_status.value,
                'recommendation': recommend(p.current_stock, p.optimal_stock_level).value,
                'recommended_order_quantity': p.recommended_order_quantity,
                'estimated_cost': p.estimated_cost,
                'estimated_revenue': p.estimated_revenue,
                'calculation_method': 'EOQ',
                'lead_time_days': self.settings.lead_time_days,
                **costs
            })
        return pd.DataFrame(rows, columns=[
            'item_id', 'title', 'current_stock', 'optimal_stock', 'safety_stock',
            'reorder_point', 'economic_order_quantity', 'stock_status',
            'recommendation', 'recommended_order_quantity', 'estimated_cost',
            'estimated_revenue', 'calculation_method', 'lead_time_days',
            'orders_per_year', 'annual_ordering_cost', 'annual_holding_cost',
            'inventory_turnover'
        ])

    def _history_for(self, item_id: Hashable, as_of: date) -> List[DemandObservation]:
        if self.history is None:
            return []
        start, end = trailing_window(as_of, self.settings.analysis_period_months)
        return self.history.get_demand(item_id, start, end)

    def _current_stock(self, item_id: Hashable) -> int:
        if self.inventory is None:
            return 0
        return self.inventory.current_stock(item_id)


class PolicyHistory:
    """
    Policy versions per item.

    Versions are kept in valid_from order with adjacent [from, to)
    windows; saving closes the preceding version at the new valid_from.
    """

    def __init__(self):
        self._policies: Dict[Hashable, List[StockPolicy]] = defaultdict(list)
        self._lock = threading.Lock()

    def save(self, policy: StockPolicy) -> StockPolicy:
        """
        Store a policy version in valid_from order.

        The predecessor is closed at the new valid_from. A version saved
        before an existing later one is closed at that later valid_from.

        Returns:
            The stored version
        """
        with self._lock:
            versions = self._policies[policy.item_id]
            position = len(versions)
            while position > 0 and versions[position - 1].valid_from > policy.valid_from:
                position -= 1

            if position < len(versions):
                successor_from = versions[position].valid_from
                if policy.valid_to is None or policy.valid_to > successor_from:
                    policy = replace(policy, valid_to=successor_from)

            if position > 0:
                previous = versions[position - 1]
                if previous.valid_to is None or previous.valid_to > policy.valid_from:
                    versions[position - 1] = replace(previous, valid_to=policy.valid_from)

            versions.insert(position, policy)
        return policy

    def history(self, item_id: Hashable) -> List[StockPolicy]:
        with self._lock:
            return list(self._policies.get(item_id, ()))

    def current_policy(self, item_id: Hashable, on: Optional[date] = None) -> Optional[StockPolicy]:
        on = on or date.today()
        for policy in reversed(self.history(item_id)):
            if policy.is_valid_on(on):
                return policy
        return None

    def items_needing_reorder(
        self,
        inventory: InventoryProvider,
        on: Optional[date] = None
    ) -> List[StockPolicy]:
        """
        Current policies whose item is at or below its reorder point now.

        Status is re-evaluated against today's stock, not the stock at
        calculation time.
        """
        with self._lock:
            item_ids = list(self._policies)

        due = []
        for item_id in item_ids:
            policy = self.current_policy(item_id, on)
            if policy is None:
                continue
            stock = inventory.current_stock(item_id)
            status = classify_stock_status(stock, policy.optimal_stock_level, policy.reorder_point)
            if status == StockStatus.REORDER_NEEDED:
                due.append(replace(policy, current_stock=stock, stock_status=status))
        return due
