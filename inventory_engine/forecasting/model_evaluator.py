# inventory_engine/forecasting/model_evaluator.py

"""
Forecast Accuracy Evaluation

Compares stored predictions with the demand actually observed in the
forecast month.

Metrics:
- MAE:  mean absolute error, in units
- MAPE: mean absolute percentage error; a month with zero actual demand
        contributes 0 to the average instead of dividing by zero
- RMSE: root mean squared error, penalises large misses

All three are rounded half-up to 2 decimals.
"""

import logging
from datetime import date
from typing import Dict

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from inventory_engine.forecasting.base_forecaster import Algorithm, ForecastAccuracy
from inventory_engine.rounding import round_float

logger = logging.getLogger(__name__)


class ForecastEvaluator:
    """Error metrics for paired actual / predicted demand."""

    def __init__(self, y_true, y_pred):
        """
        Args:
            y_true: Observed demand
            y_pred: Predicted demand, same order
        """
        self.y_true = np.asarray(y_true, dtype=np.float64)
        self.y_pred = np.asarray(y_pred, dtype=np.float64)
        if self.y_true.shape != self.y_pred.shape:
            raise ValueError(
                f"Shape mismatch: {self.y_true.shape} vs {self.y_pred.shape}"
            )

    def calculate_all_metrics(self) -> Dict[str, float]:
        if self.y_true.size == 0:
            return {'mae': 0.0, 'mape': 100.0, 'rmse': 0.0}

        mae = mean_absolute_error(self.y_true, self.y_pred)
        rmse = np.sqrt(mean_squared_error(self.y_true, self.y_pred))

        pct_errors = np.zeros_like(self.y_true)
        non_zero = self.y_true > 0
        pct_errors[non_zero] = (
            np.abs(self.y_pred[non_zero] - self.y_true[non_zero])
            / self.y_true[non_zero] * 100
        )
        mape = pct_errors.mean()

        return {
            'mae': round_float(mae, 2),
            'mape': round_float(mape, 2),
            'rmse': round_float(rmse, 2),
        }

    def to_accuracy(
        self,
        algorithm: Algorithm,
        from_date: date,
        to_date: date
    ) -> ForecastAccuracy:
        metrics = self.calculate_all_metrics()
        return ForecastAccuracy(
            algorithm=algorithm,
            mae=metrics['mae'],
            mape=metrics['mape'],
            rmse=metrics['rmse'],
            from_date=from_date,
            to_date=to_date,
            n_forecasts=int(self.y_true.size),
        )
