from inventory_engine.forecasting.base_forecaster import (
    Algorithm,
    BaseForecaster,
    ForecastAccuracy,
    ForecastResult,
)
from inventory_engine.forecasting.algorithms import (
    ExponentialSmoothingForecaster,
    LinearRegressionForecaster,
    MovingAverageForecaster,
    SeasonalAdjustedForecaster,
)
from inventory_engine.forecasting.ensemble_model import DEFAULT_WEIGHTS, EnsembleForecaster
from inventory_engine.forecasting.forecast_store import ForecastStore
from inventory_engine.forecasting.model_evaluator import ForecastEvaluator
from inventory_engine.forecasting.forecast_engine import ForecastEngine

__all__ = [
    'Algorithm',
    'BaseForecaster',
    'DEFAULT_WEIGHTS',
    'EnsembleForecaster',
    'ExponentialSmoothingForecaster',
    'ForecastAccuracy',
    'ForecastEngine',
    'ForecastEvaluator',
    'ForecastResult',
    'ForecastStore',
    'LinearRegressionForecaster',
    'MovingAverageForecaster',
    'SeasonalAdjustedForecaster',
]
