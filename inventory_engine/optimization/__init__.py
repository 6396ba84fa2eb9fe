from inventory_engine.optimization.safety_stock import SafetyStockCalculator
from inventory_engine.optimization.reorder_point import ReorderPointCalculator
from inventory_engine.optimization.stock_policy import (
    PolicyHistory,
    Recommendation,
    StockPolicy,
    StockPolicyCalculator,
    StockStatus,
    classify_stock_status,
)
from inventory_engine.optimization.order_optimizer import OptimizationResult, OrderOptimizer

__all__ = [
    'OptimizationResult',
    'OrderOptimizer',
    'PolicyHistory',
    'Recommendation',
    'ReorderPointCalculator',
    'SafetyStockCalculator',
    'StockPolicy',
    'StockPolicyCalculator',
    'StockStatus',
    'classify_stock_status',
]
