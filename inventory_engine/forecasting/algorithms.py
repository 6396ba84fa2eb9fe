# inventory_engine/forecasting/algorithms.py

"""
Monthly Demand Forecasting Algorithms

Four classic statistical forecasters, each working on the trailing
monthly demand of a single item:

1. Moving Average        - mean of the last 6 months
2. Exponential Smoothing - alpha = 0.3 over the last 12 months
3. Linear Regression     - OLS trend over the last 12 months
4. Seasonal Adjusted     - moving average × month-of-year factor

Short histories never raise. Each algorithm falls back to a 1-unit,
lower-confidence prediction when it lacks the data it needs.
"""

from datetime import date
from typing import Mapping, Optional, Tuple
import logging

import numpy as np

from inventory_engine.config.settings import FORECAST_SEASONAL_FACTORS
from inventory_engine.forecasting.base_forecaster import Algorithm, BaseForecaster
from inventory_engine.rounding import round_half_up, round_int

logger = logging.getLogger(__name__)


class MovingAverageForecaster(BaseForecaster):
    """Average monthly demand × horizon."""

    algorithm = Algorithm.MOVING_AVERAGE
    window_months = 6
    confidence = 0.70

    def _predict(self, values, as_of, horizon_months):
        average = float(np.mean(values)) if values.size else 0.0
        return average * horizon_months, self.confidence


class ExponentialSmoothingForecaster(BaseForecaster):
    """
    Simple exponential smoothing.

    Formula: S_t = α × x_t + (1 - α) × S_{t-1}, with S_0 = window mean
    """

    algorithm = Algorithm.EXPONENTIAL_SMOOTHING
    window_months = 12
    confidence = 0.75
    empty_confidence = 0.60

    def __init__(self, alpha: float = 0.3):
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha

    def _predict(self, values, as_of, horizon_months):
        if values.size == 0:
            return 1.0, self.empty_confidence

        smoothed = float(np.mean(values))
        for value in values:
            smoothed = self.alpha * value + (1 - self.alpha) * smoothed

        return smoothed * horizon_months, self.confidence


class LinearRegressionForecaster(BaseForecaster):
    """
    Ordinary least squares trend on (time index, demand).

    Time indices are 1..n for the observed months; the prediction is the
    fitted line evaluated at n + horizon.
    """

    algorithm = Algorithm.LINEAR_REGRESSION
    window_months = 12
    confidence = 0.65
    fallback_confidence = 0.50
    min_points = 3

    def _predict(self, values, as_of, horizon_months):
        n = values.size
        if n < self.min_points:
            return 1.0, self.fallback_confidence

        x = np.arange(1, n + 1, dtype=np.float64)
        sum_x = x.sum()
        sum_y = values.sum()
        sum_xy = (x * values).sum()
        sum_x2 = (x ** 2).sum()

        slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x ** 2)
        intercept = (sum_y - slope * sum_x) / n

        return intercept + slope * (n + horizon_months), self.confidence


class SeasonalAdjustedForecaster(BaseForecaster):
    """
    Moving-average prediction scaled by a month-keyed seasonal factor.

    The factor is looked up for the month of the forecast date; months
    missing from the table use 1.0.
    """

    algorithm = Algorithm.SEASONAL_ADJUSTED
    window_months = 6
    confidence = 0.80

    def __init__(
        self,
        seasonal_factors: Optional[Mapping[int, float]] = None,
        base: Optional[MovingAverageForecaster] = None
    ):
        self.seasonal_factors = (
            seasonal_factors if seasonal_factors is not None
            else FORECAST_SEASONAL_FACTORS
        )
        self.base = base or MovingAverageForecaster()
        self.window_months = self.base.window_months

    def seasonal_factor(self, as_of: date) -> float:
        return float(self.seasonal_factors.get(as_of.month, 1.0))

    def _predict(self, values, as_of, horizon_months):
        base_value, _ = self.base._predict(values, as_of, horizon_months)
        base_prediction = max(1, round_int(base_value))
        adjusted = round_half_up(base_prediction * self.seasonal_factor(as_of))
        return float(adjusted), self.confidence


def default_forecasters(
    seasonal_factors: Optional[Mapping[int, float]] = None
) -> Tuple[BaseForecaster, ...]:
    """The four base algorithms in ensemble order."""
    return (
        MovingAverageForecaster(),
        ExponentialSmoothingForecaster(),
        LinearRegressionForecaster(),
        SeasonalAdjustedForecaster(seasonal_factors),
    )
