# inventory_engine/optimization/reorder_point.py

"""
Reorder Point & Economic Order Quantity

Determines WHEN to reorder (reorder point) and HOW MUCH (EOQ).

When inventory falls to the reorder point, a new order should be
triggered to arrive before stockout occurs.

EOQ gets three catalog-specific adjustments on top of the textbook
formula, applied multiplicatively in this order:
- × 1.2 when the base EOQ exceeds 50 units (volume-discount pricing)
- × 0.8 when the item was published within the last year (uncertain demand)
- × 0.9 when the unit price exceeds the high-value threshold
"""

import numpy as np
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from inventory_engine.optimization.safety_stock import WEEKS_PER_MONTH
from inventory_engine.rounding import round_int

logger = logging.getLogger(__name__)


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year - years, day=28)


class ReorderPointCalculator:
    """
    Calculates reorder points and order quantities.

    Output: actionable order sizes and trigger levels for purchasing.
    """

    def __init__(
        self,
        ordering_cost: float = 50.0,
        holding_cost_rate: float = 0.25,
        lead_time_weeks: float = 2.0,
        volume_discount_threshold: float = 50.0,
        volume_discount_multiplier: float = 1.2,
        new_item_years: int = 1,
        new_item_multiplier: float = 0.8,
        high_value_price: float = 100.0,
        high_value_multiplier: float = 0.9
    ):
        """
        Initialize ReorderPointCalculator.

        Args:
            ordering_cost: Fixed cost per purchase order
            holding_cost_rate: Annual holding cost as a share of unit price
            lead_time_weeks: Supplier lead time
            volume_discount_threshold: Base EOQ above which orders grow
            volume_discount_multiplier: EOQ multiplier for large orders
            new_item_years: Age (years) below which an item counts as new
            new_item_multiplier: EOQ multiplier for new items
            high_value_price: Unit price above which an item is high value
            high_value_multiplier: EOQ multiplier for high-value items
        """
        self.ordering_cost = ordering_cost
        self.holding_cost_rate = holding_cost_rate
        self.lead_time_weeks = lead_time_weeks
        self.volume_discount_threshold = volume_discount_threshold
        self.volume_discount_multiplier = volume_discount_multiplier
        self.new_item_years = new_item_years
        self.new_item_multiplier = new_item_multiplier
        self.high_value_price = high_value_price
        self.high_value_multiplier = high_value_multiplier

    def holding_cost(self, unit_price: float, holding_cost_rate: Optional[float] = None) -> float:
        """Annual holding cost per unit."""
        rate = self.holding_cost_rate if holding_cost_rate is None else holding_cost_rate
        return unit_price * rate

    def calculate_eoq(
        self,
        annual_demand: float,
        unit_price: float,
        ordering_cost: Optional[float] = None,
        holding_cost_rate: Optional[float] = None
    ) -> float:
        """
        Calculate the textbook Economic Order Quantity.

        Formula: EOQ = √(2 × D × S / H)

        The EOQ balances two competing costs:
        - Ordering cost (fixed per order): favors FEWER, LARGER orders
        - Holding cost (per unit per year): favors MORE, SMALLER orders

        Args:
            annual_demand: Expected annual demand (D)
            unit_price: Unit sell price; H = price × holding cost rate
            ordering_cost: Fixed cost per order (S)
            holding_cost_rate: Override of the holding cost rate

        Returns:
            Unadjusted, unrounded EOQ (0 when demand or H is not positive)
        """
        s = self.ordering_cost if ordering_cost is None else ordering_cost
        h = self.holding_cost(unit_price, holding_cost_rate)

        if annual_demand <= 0 or h <= 0:
            return 0.0

        return float(np.sqrt((2 * annual_demand * s) / h))

    def apply_adjustments(
        self,
        base_eoq: float,
        unit_price: float,
        publication_date: Optional[date],
        as_of: date
    ) -> Tuple[float, List[str]]:
        """
        Apply the catalog-specific EOQ multipliers.

        Returns:
            (adjusted EOQ, names of the adjustments applied)
        """
        adjusted = base_eoq
        applied = []

        if base_eoq > self.volume_discount_threshold:
            adjusted *= self.volume_discount_multiplier
            applied.append('volume_discount')

        if publication_date is not None and \
                publication_date > years_before(as_of, self.new_item_years):
            adjusted *= self.new_item_multiplier
            applied.append('new_item')

        if unit_price > self.high_value_price:
            adjusted *= self.high_value_multiplier
            applied.append('high_value')

        return adjusted, applied

    def economic_order_quantity(
        self,
        annual_demand: float,
        unit_price: float,
        publication_date: Optional[date],
        as_of: date,
        ordering_cost: Optional[float] = None,
        holding_cost_rate: Optional[float] = None
    ) -> int:
        """Adjusted EOQ rounded half-up, at least 1 unit."""
        base = self.calculate_eoq(annual_demand, unit_price, ordering_cost, holding_cost_rate)
        adjusted, _ = self.apply_adjustments(base, unit_price, publication_date, as_of)
        return max(1, round_int(adjusted))

    def calculate_reorder_point(
        self,
        average_monthly_demand: float,
        safety_stock: int,
        lead_time_weeks: Optional[float] = None
    ) -> int:
        """
        Calculate the Reorder Point.

        Formula: ROP = round(avg_monthly_demand × LT_weeks / 4) + SS

        Args:
            average_monthly_demand: Average monthly demand
            safety_stock: Calculated safety stock
            lead_time_weeks: Supplier lead time

        Returns:
            Reorder point (units, at least 1)
        """
        lt = self.lead_time_weeks if lead_time_weeks is None else lead_time_weeks

        # Demand during lead time
        demand_during_lt = average_monthly_demand * (lt / WEEKS_PER_MONTH)

        return max(1, round_int(demand_during_lt) + safety_stock)

    def calculate_total_costs(
        self,
        annual_demand: float,
        order_quantity: float,
        safety_stock: float,
        unit_price: float
    ) -> Dict[str, float]:
        """
        Calculate annual inventory costs of an order policy.

        Components:
        1. Ordering cost: (Annual_Demand / Order_Quantity) × Cost_per_Order
        2. Holding cost: (Order_Quantity/2 + Safety_Stock) × Annual_Holding_Cost

        Returns:
            Dictionary of cost components
        """
        if order_quantity <= 0 or annual_demand <= 0:
            return {
                'orders_per_year': 0.0,
                'annual_ordering_cost': 0.0,
                'annual_holding_cost': float(safety_stock * self.holding_cost(unit_price)),
                'inventory_turnover': 0.0,
            }

        n_orders = annual_demand / order_quantity
        ordering_cost = n_orders * self.ordering_cost

        # Average inventory = cycle stock + safety stock
        avg_inventory = (order_quantity / 2) + safety_stock
        holding_cost = avg_inventory * self.holding_cost(unit_price)

        return {
            'orders_per_year': float(n_orders),
            'annual_ordering_cost': float(ordering_cost),
            'annual_holding_cost': float(holding_cost),
            'inventory_turnover': float(annual_demand / avg_inventory),
        }
