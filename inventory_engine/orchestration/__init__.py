from inventory_engine.orchestration.result_cache import ResultCache
from inventory_engine.orchestration.executor import BoundedExecutor
from inventory_engine.orchestration.analysis_orchestrator import (
    PHASE_ADVANCED_ANALYSIS,
    PHASE_BASE_REPORT,
    PHASE_FORECASTING,
    PHASE_OPTIMIZATION,
    AnalysisOrchestrator,
    IntegratedResult,
    PerformanceMetrics,
    StockRecommendation,
    recommendation_for,
)

__all__ = [
    'PHASE_ADVANCED_ANALYSIS',
    'PHASE_BASE_REPORT',
    'PHASE_FORECASTING',
    'PHASE_OPTIMIZATION',
    'AnalysisOrchestrator',
    'BoundedExecutor',
    'IntegratedResult',
    'PerformanceMetrics',
    'ResultCache',
    'StockRecommendation',
    'recommendation_for',
]
