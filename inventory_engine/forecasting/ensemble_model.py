# inventory_engine/forecasting/ensemble_model.py

"""
Ensemble Forecasting Model

Blends the four base algorithm predictions into one forecast.

Why ensemble?
- Moving average reacts slowly but is robust to noise
- Exponential smoothing tracks recent level shifts
- Linear regression extrapolates trends (and overshoots on noise)
- Seasonal adjustment captures calendar effects

Weighted average with fixed weights:

    moving_average        0.25
    exponential_smoothing 0.30
    linear_regression     0.25
    seasonal_adjusted     0.20

The blend divides by the sum of the weights of the algorithms actually
present. Weights of absent algorithms are dropped, never redistributed
to the remaining ones.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Hashable, List, Mapping, Optional, Sequence
import logging

from inventory_engine.forecasting.base_forecaster import Algorithm, ForecastResult
from inventory_engine.rounding import round_int

logger = logging.getLogger(__name__)


DEFAULT_WEIGHTS: Mapping[Algorithm, float] = {
    Algorithm.MOVING_AVERAGE: 0.25,
    Algorithm.EXPONENTIAL_SMOOTHING: 0.30,
    Algorithm.LINEAR_REGRESSION: 0.25,
    Algorithm.SEASONAL_ADJUSTED: 0.20,
}


@dataclass
class ModelPrediction:
    """
    Container for one base algorithm's contribution to the blend.

    Attributes:
        algorithm: Base algorithm
        predicted_demand: Its prediction
        weight: Ensemble weight applied
    """
    algorithm: Algorithm
    predicted_demand: int
    weight: float

    @property
    def weighted_value(self) -> float:
        return self.predicted_demand * self.weight


class EnsembleForecaster:
    """
    Weighted-average ensemble over base forecast results.
    """

    algorithm = Algorithm.ENSEMBLE
    confidence = 0.85

    def __init__(self, weights: Optional[Mapping] = None):
        """
        Initialize EnsembleForecaster.

        Args:
            weights: Optional {algorithm: weight}; keys may be Algorithm
                members or their names. Defaults to DEFAULT_WEIGHTS.
        """
        raw = weights if weights is not None else DEFAULT_WEIGHTS
        self.weights: Dict[Algorithm, float] = {}

        for name, weight in raw.items():
            algorithm = Algorithm.parse(name)
            if algorithm == Algorithm.ENSEMBLE:
                raise ValueError("The ensemble cannot weight itself")
            if weight < 0:
                raise ValueError(f"Negative weight for {algorithm.value}")
            self.weights[algorithm] = float(weight)

    def contributions(
        self,
        results: Sequence[ForecastResult]
    ) -> List[ModelPrediction]:
        """Weighted base predictions, skipping algorithms without a weight."""
        return [
            ModelPrediction(r.algorithm, r.predicted_demand, self.weights[r.algorithm])
            for r in results
            if r.algorithm in self.weights
        ]

    def blend(self, results: Sequence[ForecastResult]) -> int:
        """
        Weighted average of the present base predictions.

        Returns:
            round(Σ wᵢ·pᵢ / Σ wᵢ), floored at 1. With no weighted input the
            result is the 1-unit floor.
        """
        parts = self.contributions(results)
        total_weight = sum(p.weight for p in parts)
        if total_weight <= 0:
            return 1

        weighted_sum = sum(p.weighted_value for p in parts)
        return max(1, round_int(weighted_sum / total_weight))

    def combine(
        self,
        item_id: Hashable,
        results: Sequence[ForecastResult],
        forecast_date: date,
        horizon_months: int = 1
    ) -> ForecastResult:
        """Build the ENSEMBLE ForecastResult from base results."""
        missing = [a.value for a in self.weights if a not in {r.algorithm for r in results}]
        if missing:
            logger.debug(
                f"Ensemble for item {item_id} without {', '.join(missing)}"
            )

        return ForecastResult(
            item_id=item_id,
            forecast_date=forecast_date,
            algorithm=self.algorithm,
            predicted_demand=self.blend(results),
            confidence=self.confidence,
            horizon_months=horizon_months,
        )
