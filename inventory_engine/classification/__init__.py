from inventory_engine.classification.demand_classifier import (
    AbcClass,
    Classification,
    COMBINED_CATEGORIES,
    DemandClassifier,
    XyzClass,
)
from inventory_engine.classification.turnover import (
    DisposalAction,
    DisposalPlan,
    LifecycleStage,
    TurnoverAnalyzer,
    TurnoverSpeed,
    disposal_plan,
    lifecycle_distribution,
    lifecycle_stage,
    turnover_speed,
)

__all__ = [
    'AbcClass',
    'COMBINED_CATEGORIES',
    'Classification',
    'DemandClassifier',
    'DisposalAction',
    'DisposalPlan',
    'LifecycleStage',
    'TurnoverAnalyzer',
    'TurnoverSpeed',
    'XyzClass',
    'disposal_plan',
    'lifecycle_distribution',
    'lifecycle_stage',
    'turnover_speed',
]
