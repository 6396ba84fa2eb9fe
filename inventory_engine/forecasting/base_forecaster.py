# inventory_engine/forecasting/base_forecaster.py

"""
Abstract Base Forecaster
Defines the interface that every demand forecasting algorithm implements,
plus the records the forecasting package produces.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Hashable, Sequence, Tuple
import logging

import numpy as np

from inventory_engine.data.entities import DemandObservation
from inventory_engine.data.monthly import monthly_demand
from inventory_engine.rounding import round_int

logger = logging.getLogger(__name__)


class Algorithm(str, Enum):
    MOVING_AVERAGE = 'MOVING_AVERAGE'
    EXPONENTIAL_SMOOTHING = 'EXPONENTIAL_SMOOTHING'
    LINEAR_REGRESSION = 'LINEAR_REGRESSION'
    SEASONAL_ADJUSTED = 'SEASONAL_ADJUSTED'
    ENSEMBLE = 'ENSEMBLE'

    @classmethod
    def parse(cls, value) -> 'Algorithm':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown algorithm: {value}") from None


@dataclass(frozen=True)
class ForecastResult:
    """
    One algorithm's demand prediction for one item.

    Attributes:
        item_id: Forecast item
        forecast_date: Date the forecast period starts (the as-of date)
        algorithm: Producing algorithm
        predicted_demand: Units expected over the horizon (always >= 1)
        confidence: Fixed per algorithm, lower when history is too short
        horizon_months: Length of the forecast period
        created_at: When the run produced this record
    """
    item_id: Hashable
    forecast_date: date
    algorithm: Algorithm
    predicted_demand: int
    confidence: float
    horizon_months: int = 1
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def key(self) -> Tuple[Hashable, Algorithm, date]:
        return (self.item_id, self.algorithm, self.forecast_date)


@dataclass(frozen=True)
class ForecastAccuracy:
    """Error summary of stored forecasts for one algorithm and window."""
    algorithm: Algorithm
    mae: float
    mape: float
    rmse: float
    from_date: date
    to_date: date
    n_forecasts: int = 0


class BaseForecaster(ABC):
    """
    Abstract base class for monthly demand forecasters.

    Subclasses implement _predict() on the trailing monthly series and
    return a raw (unrounded) prediction plus its confidence. forecast()
    takes care of windowing, half-up rounding and the floor of 1 unit,
    so every algorithm honours the same output contract.
    """

    algorithm: Algorithm
    window_months: int = 12
    confidence: float = 0.5

    # Observed months only; a month without observations is unknown,
    # not zero demand
    fill_missing_months: bool = False

    def window(
        self,
        observations: Sequence[DemandObservation],
        as_of: date
    ) -> np.ndarray:
        series = monthly_demand(
            observations, as_of, self.window_months,
            fill_missing=self.fill_missing_months
        )
        return series.to_numpy(dtype=np.float64)

    @abstractmethod
    def _predict(
        self,
        values: np.ndarray,
        as_of: date,
        horizon_months: int
    ) -> Tuple[float, float]:
        """
        Raw prediction for the horizon.

        Args:
            values: Monthly demand in the trailing window, oldest first
            as_of: Forecast date
            horizon_months: Months to forecast

        Returns:
            (prediction, confidence)
        """
        pass

    def forecast(
        self,
        item_id: Hashable,
        observations: Sequence[DemandObservation],
        as_of: date,
        horizon_months: int = 1
    ) -> ForecastResult:
        """Produce this algorithm's ForecastResult for one item."""
        values = self.window(observations, as_of)
        raw, confidence = self._predict(values, as_of, horizon_months)

        if not np.isfinite(raw):
            logger.warning(
                f"{self.algorithm.value} produced a non-finite value for "
                f"item {item_id}; using the 1-unit floor"
            )
            raw = 0.0

        return ForecastResult(
            item_id=item_id,
            forecast_date=as_of,
            algorithm=self.algorithm,
            predicted_demand=max(1, round_int(raw)),
            confidence=confidence,
            horizon_months=horizon_months,
        )
