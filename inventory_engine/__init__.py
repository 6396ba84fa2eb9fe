"""
inventory_engine - inventory decision support.

Demand forecasting, ABC/XYZ classification, stock policies and
constrained purchase optimization, composed by AnalysisOrchestrator.
"""

from inventory_engine.config.settings import EngineSettings
from inventory_engine.exceptions import (
    ConfigurationError,
    ExecutorSaturatedError,
    IntegratedAnalysisError,
    InventoryEngineError,
    ItemNotFoundError,
)
from inventory_engine.schemas import AnalysisRequest, OptimizationConstraints, PriorityFocus
from inventory_engine.classification.demand_classifier import DemandClassifier
from inventory_engine.forecasting.forecast_engine import ForecastEngine
from inventory_engine.optimization.order_optimizer import OrderOptimizer
from inventory_engine.optimization.stock_policy import StockPolicyCalculator
from inventory_engine.orchestration.analysis_orchestrator import AnalysisOrchestrator

__version__ = '0.1.0'

__all__ = [
    'AnalysisOrchestrator',
    'AnalysisRequest',
    'ConfigurationError',
    'DemandClassifier',
    'EngineSettings',
    'ExecutorSaturatedError',
    'ForecastEngine',
    'IntegratedAnalysisError',
    'InventoryEngineError',
    'ItemNotFoundError',
    'OptimizationConstraints',
    'OrderOptimizer',
    'PriorityFocus',
    'StockPolicyCalculator',
]
