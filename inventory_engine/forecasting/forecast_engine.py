# inventory_engine/forecasting/forecast_engine.py

"""
Forecast Engine

Runs every base algorithm for an item, blends them into the ensemble
forecast, records the run and evaluates past runs against observed demand.

    history ──► MA / ES / LR / SEASONAL ──► ENSEMBLE ──► ForecastStore
                                                            │
    observed demand ◄───────────────────────────────────────┘
          └──► evaluate_accuracy (MAE / MAPE / RMSE)
"""

import logging
import math
from datetime import date
from typing import Hashable, Iterable, List, Optional, Sequence

import pandas as pd

from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import DemandObservation, Item
from inventory_engine.data.monthly import add_months, month_total, trailing_window
from inventory_engine.data.providers import CatalogProvider, DemandHistoryProvider
from inventory_engine.forecasting.algorithms import default_forecasters
from inventory_engine.forecasting.base_forecaster import (
    Algorithm,
    BaseForecaster,
    ForecastAccuracy,
    ForecastResult,
)
from inventory_engine.forecasting.ensemble_model import EnsembleForecaster
from inventory_engine.forecasting.forecast_store import ForecastStore
from inventory_engine.forecasting.model_evaluator import ForecastEvaluator

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30

# Ensemble bounds reported by the batch forecast
LOWER_BOUND_RATIO = 0.8
UPPER_BOUND_RATIO = 1.2


def horizon_days_to_months(horizon_days: int) -> int:
    return max(1, math.ceil(horizon_days / DAYS_PER_MONTH))


class ForecastEngine:
    """
    Multi-algorithm demand forecasting for catalog items.

    The catalog and history collaborators are only needed for the lookup
    based entry points (forecast_item, evaluate_accuracy,
    generate_ensemble_forecasts); forecast() works on history passed in.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        catalog: Optional[CatalogProvider] = None,
        history: Optional[DemandHistoryProvider] = None,
        store: Optional[ForecastStore] = None,
        forecasters: Optional[Sequence[BaseForecaster]] = None,
        ensemble: Optional[EnsembleForecaster] = None
    ):
        """
        Initialize ForecastEngine.

        Args:
            settings: Engine settings (seasonal table, analysis window)
            catalog: Catalog collaborator
            history: Historical demand collaborator
            store: Where forecast runs are recorded
            forecasters: Base algorithms (defaults to the four standard ones)
            ensemble: Ensemble blender (defaults to the fixed weights)
        """
        self.settings = settings or EngineSettings()
        self.catalog = catalog
        self.history = history
        self.store = store if store is not None else ForecastStore()
        self.forecasters = tuple(
            forecasters or default_forecasters(self.settings.forecast_seasonal_factors)
        )
        self.ensemble = ensemble or EnsembleForecaster()

    @property
    def history_months(self) -> int:
        """Longest trailing window any base algorithm looks at."""
        return max(f.window_months for f in self.forecasters)

    def forecast(
        self,
        item,
        history: Iterable[DemandObservation],
        as_of: date,
        horizon_months: int = 1,
        record: bool = True
    ) -> List[ForecastResult]:
        """
        Forecast one item with every algorithm plus the ensemble.

        Args:
            item: Item (or bare item id)
            history: The item's demand observations (may be empty)
            as_of: Forecast date; only months before it are used
            horizon_months: Months to forecast
            record: Save the run to the forecast store

        Returns:
            One ForecastResult per base algorithm, ENSEMBLE last
        """
        if horizon_months < 1:
            raise ValueError(f"horizon_months must be >= 1, got {horizon_months}")

        item_id = item.item_id if isinstance(item, Item) else item
        observations = [obs for obs in history if obs.item_id == item_id]

        results = [
            forecaster.forecast(item_id, observations, as_of, horizon_months)
            for forecaster in self.forecasters
        ]
        results.append(
            self.ensemble.combine(item_id, results, as_of, horizon_months)
        )

        if record:
            self.store.save_run(results)

        logger.debug(
            f"Item {item_id}: " + ', '.join(
                f"{r.algorithm.value}={r.predicted_demand}" for r in results
            )
        )
        return results

    def forecast_item(
        self,
        item_id: Hashable,
        as_of: date,
        horizon_months: int = 1
    ) -> List[ForecastResult]:
        """
        Look the item up and forecast it from the history collaborator.

        Raises:
            ItemNotFoundError: Unknown item id
        """
        item = self._require_catalog().get_item(item_id)
        return self.forecast(item, self._history_for(item_id, as_of), as_of, horizon_months)

    def evaluate_accuracy(
        self,
        algorithm,
        from_date: date,
        to_date: date
    ) -> ForecastAccuracy:
        """
        Compare stored forecasts with observed demand.

        Each forecast made for a date in [from_date, to_date] is compared
        with the item's observed quantity in that date's calendar month.

        Args:
            algorithm: Algorithm (or name) to evaluate
            from_date: First forecast date included
            to_date: Last forecast date included

        Returns:
            ForecastAccuracy; MAE 0, MAPE 100, RMSE 0 when no forecasts exist
        """
        algorithm = Algorithm.parse(algorithm)
        forecasts = self.store.find(algorithm, from_date, to_date)

        logger.info(
            f"Evaluating {algorithm.value} on {len(forecasts)} forecasts "
            f"from {from_date} to {to_date}"
        )

        if not forecasts:
            return ForecastAccuracy(algorithm, 0.0, 100.0, 0.0, from_date, to_date, 0)

        history = self._require_history()
        actuals = []
        for f in forecasts:
            month = f.forecast_date.replace(day=1)
            observed = history.get_demand(f.item_id, month, add_months(month, 1))
            actuals.append(month_total(observed, month))

        evaluator = ForecastEvaluator(actuals, [f.predicted_demand for f in forecasts])
        return evaluator.to_accuracy(algorithm, from_date, to_date)

    def generate_ensemble_forecasts(
        self,
        items: Sequence[Item],
        as_of: date,
        horizon_days: int = 30
    ) -> pd.DataFrame:
        """
        Ensemble forecast for a batch of items.

        Items that fail are logged and skipped; the batch always completes.

        Args:
            items: Items to forecast
            as_of: Forecast date
            horizon_days: Horizon in days (rounded up to whole months)

        Returns:
            DataFrame with one ENSEMBLE row per forecast item
        """
        horizon_months = horizon_days_to_months(horizon_days)
        logger.info(
            f"Generating ensemble forecasts for {len(items)} items "
            f"({horizon_days} days → {horizon_months} months)"
        )

        rows = []
        run_results: List[ForecastResult] = []
        for item in items:
            try:
                results = self.forecast(
                    item, self._history_for(item.item_id, as_of),
                    as_of, horizon_months, record=False
                )
            except Exception as e:
                logger.warning(f"Failed to generate forecast for item {item.item_id}: {e}")
                continue

            run_results.extend(results)
            ensemble = results[-1]
            rows.append({
                'item_id': item.item_id,
                'title': item.title,
                'forecast_date': ensemble.forecast_date,
                'horizon_days': horizon_days,
                'algorithm': ensemble.algorithm.value,
                'predicted_demand': ensemble.predicted_demand,
                'confidence': ensemble.confidence,
                'lower_bound': ensemble.predicted_demand * LOWER_BOUND_RATIO,
                'upper_bound': ensemble.predicted_demand * UPPER_BOUND_RATIO,
            })

        if run_results:
            self.store.save_run(run_results)

        forecasts_df = pd.DataFrame(rows, columns=[
            'item_id', 'title', 'forecast_date', 'horizon_days', 'algorithm',
            'predicted_demand', 'confidence', 'lower_bound', 'upper_bound'
        ])

        if len(forecasts_df):
            logger.info(
                f"  Forecast items: {len(forecasts_df)} | "
                f"total predicted demand: {forecasts_df['predicted_demand'].sum():,}"
            )
        return forecasts_df

    def _history_for(self, item_id: Hashable, as_of: date) -> List[DemandObservation]:
        start, end = trailing_window(as_of, self.history_months)
        return self._require_history().get_demand(item_id, start, end)

    def _require_catalog(self) -> CatalogProvider:
        if self.catalog is None:
            raise ValueError("ForecastEngine was created without a catalog provider")
        return self.catalog

    def _require_history(self) -> DemandHistoryProvider:
        if self.history is None:
            raise ValueError("ForecastEngine was created without a history provider")
        return self.history
