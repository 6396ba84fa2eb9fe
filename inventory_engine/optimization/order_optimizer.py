# inventory_engine/optimization/order_optimizer.py

"""
Order Optimizer

Selects which items to purchase from the stock policies under a budget,
an item-count cap and a weight cap.

Selection is greedy: candidates are ranked by the priority focus and
admitted one by one while every running total stays within its cap.
A skipped candidate does not stop the scan; later (cheaper) candidates
can still fit.

Objectives:
- PROFIT: highest (revenue - cost) / cost first
- CASH_FLOW: profit ratio weighted by urgency (reorder 2.0, understock 1.5)
- RISK_MINIMIZATION: lowest risk first (obsolescence, off-season, critical stock)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from inventory_engine.config.settings import EngineSettings
from inventory_engine.optimization.stock_policy import StockPolicy, StockStatus
from inventory_engine.rounding import round_float
from inventory_engine.schemas import OptimizationConstraints, PriorityFocus

logger = logging.getLogger(__name__)

URGENCY_MULTIPLIERS = {
    StockStatus.REORDER_NEEDED: 2.0,
    StockStatus.UNDERSTOCK: 1.5,
}


@dataclass
class OptimizationResult:
    """Outcome of one optimizer run. `selected` keeps admission order."""
    selected: List[StockPolicy] = field(default_factory=list)
    total_cost: float = 0.0
    total_revenue: float = 0.0
    total_profit: float = 0.0
    total_items: int = 0
    optimization_score: float = 0.0
    constraint_violations: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def profit_margin(self) -> float:
        if self.total_revenue <= 0:
            return 0.0
        return round_float(self.total_profit / self.total_revenue, 4)


def is_viable(candidate: StockPolicy) -> bool:
    """Understocked items, and any item that already has an order quantity."""
    return (
        candidate.stock_status in (StockStatus.REORDER_NEEDED, StockStatus.UNDERSTOCK)
        or (candidate.recommended_order_quantity is not None
            and candidate.recommended_order_quantity > 0)
    )


def profit_ratio(candidate: StockPolicy) -> float:
    """(revenue - cost) / cost, 0 without a positive estimated cost."""
    cost = candidate.estimated_cost
    revenue = candidate.estimated_revenue
    if cost is None or revenue is None or cost <= 0:
        return 0.0
    return round_float((revenue - cost) / cost, 4)


def cash_flow_score(candidate: StockPolicy) -> float:
    return profit_ratio(candidate) * URGENCY_MULTIPLIERS.get(candidate.stock_status, 1.0)


def risk_score(candidate: StockPolicy) -> float:
    """Lower is safer."""
    score = 1.0
    score += 1.0 - candidate.obsolescence_factor
    if candidate.seasonality_factor < 0.9:
        score += 0.5
    if candidate.stock_status == StockStatus.REORDER_NEEDED:
        score += 0.3
    return score


class OrderOptimizer:
    """
    Greedy constrained purchase-set selection.

    Example:
        >>> optimizer = OrderOptimizer()
        >>> result = optimizer.optimize(policies, OptimizationConstraints(max_budget=20000))
        >>> [p.item_id for p in result.selected]
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def default_constraints(self) -> OptimizationConstraints:
        return OptimizationConstraints.from_settings(self.settings)

    def rank(
        self,
        candidates: Sequence[StockPolicy],
        focus: PriorityFocus
    ) -> List[StockPolicy]:
        """Stable sort of the candidates for the given focus."""
        if focus == PriorityFocus.CASH_FLOW:
            return sorted(candidates, key=cash_flow_score, reverse=True)
        if focus == PriorityFocus.RISK_MINIMIZATION:
            return sorted(candidates, key=risk_score)
        return sorted(candidates, key=profit_ratio, reverse=True)

    def optimize(
        self,
        candidates: Sequence[StockPolicy],
        constraints: Optional[OptimizationConstraints] = None
    ) -> OptimizationResult:
        """
        Select the purchase set.

        Args:
            candidates: Stock policies (typically from StockPolicyCalculator)
            constraints: Caps and focus; settings defaults when omitted

        Returns:
            OptimizationResult whose total cost never exceeds max_budget
        """
        constraints = constraints or self.default_constraints()
        logger.info(f"Starting order optimization for {len(candidates)} candidates "
                    f"(focus={constraints.priority_focus.value})")

        viable = [c for c in candidates if is_viable(c)]
        logger.info(f"  Viable candidates: {len(viable)}")

        ranked = self.rank(viable, constraints.priority_focus)
        result = self._select(ranked, constraints)

        result.optimization_score = self.score(result, constraints)
        result.constraint_violations = self.validate(result, constraints)

        logger.info(
            f"Optimization complete: {len(result.selected)} items selected, "
            f"cost {result.total_cost:,.2f}, profit {result.total_profit:,.2f}, "
            f"score {result.optimization_score:.1f}"
        )
        return result

    def _select(
        self,
        ranked: Sequence[StockPolicy],
        constraints: OptimizationConstraints
    ) -> OptimizationResult:
        selected = []
        total_cost = 0.0
        total_revenue = 0.0
        total_items = 0
        total_weight = 0.0

        for candidate in ranked:
            quantity = candidate.recommended_order_quantity
            if quantity is None:
                quantity = 1
            cost = candidate.estimated_cost or 0.0
            revenue = candidate.estimated_revenue or 0.0
            weight = candidate.unit_weight * quantity

            if (total_cost + cost <= constraints.max_budget
                    and total_items + quantity <= constraints.max_items
                    and total_weight + weight <= constraints.max_weight):
                selected.append(candidate)
                total_cost += cost
                total_revenue += revenue
                total_items += quantity
                total_weight += weight

        return OptimizationResult(
            selected=selected,
            total_cost=total_cost,
            total_revenue=total_revenue,
            total_profit=total_revenue - total_cost,
            total_items=total_items,
            metrics={
                'total_weight': total_weight,
                'utilization_rate': len(selected) / len(ranked) if ranked else 0.0,
                'budget_utilization': round_float(total_cost / constraints.max_budget, 4),
            }
        )

    @staticmethod
    def score(result: OptimizationResult, constraints: OptimizationConstraints) -> float:
        """
        Optimization score in [0, 100].

        Formula: margin × 100 + budget utilization × 20 - 10 × violations
        """
        if result.total_revenue == 0:
            return 0.0
        budget_utilization = round_float(result.total_cost / constraints.max_budget, 4)
        score = result.profit_margin * 100
        score += budget_utilization * 20
        score -= len(result.constraint_violations) * 10
        return max(0.0, min(100.0, score))

    @staticmethod
    def validate(result: OptimizationResult, constraints: OptimizationConstraints) -> List[str]:
        violations = []
        if result.total_cost > constraints.max_budget:
            violations.append('Budget constraint exceeded')
        if result.total_items > constraints.max_items:
            violations.append('Item count constraint exceeded')
        if result.total_revenue > 0 and result.profit_margin < constraints.min_profit_margin:
            violations.append('Minimum profit margin constraint not met')
        return violations

    def analyze_constraint_sensitivity(
        self,
        candidates: Sequence[StockPolicy],
        constraints: Optional[OptimizationConstraints] = None
    ) -> Dict[str, Dict[str, float]]:
        """
        What a 20% larger budget would buy.

        Returns:
            {'budget_plus_20_percent': {'additional_profit', 'additional_items'}}
        """
        constraints = constraints or self.default_constraints()
        relaxed = constraints.model_copy(update={'max_budget': constraints.max_budget * 1.2})

        base = self.optimize(candidates, constraints)
        wider = self.optimize(candidates, relaxed)

        return {
            'budget_plus_20_percent': {
                'additional_profit': round_float(wider.total_profit - base.total_profit, 2),
                'additional_items': wider.total_items - base.total_items,
            }
        }

    @staticmethod
    def to_frame(result: OptimizationResult) -> pd.DataFrame:
        """Purchase list in admission order."""
        rows = [{
            'item_id': p.item_id,
            'title': p.title,
            'stock_status': p.stock_status.value,
            'order_quantity': p.recommended_order_quantity or 1,
            'estimated_cost': p.estimated_cost or 0.0,
            'estimated_revenue': p.estimated_revenue or 0.0,
            'profit_ratio': profit_ratio(p),
        } for p in result.selected]
        return pd.DataFrame(rows, columns=[
            'item_id', 'title', 'stock_status', 'order_quantity',
            'estimated_cost', 'estimated_revenue', 'profit_ratio'
        ])
