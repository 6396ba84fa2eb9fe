# inventory_engine/forecasting/forecast_store.py

"""
Forecast Store

Keeps the latest forecast per (item, algorithm, forecast date) so past
predictions can be compared with observed demand later.

Provides:
- Run tracking (each save_run call is one numbered run)
- Supersession: a newer run replaces the record with the same key
- Window queries by algorithm for accuracy evaluation
- DataFrame export for reporting
"""

import logging
import threading
from datetime import date, datetime
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import pandas as pd

from inventory_engine.forecasting.base_forecaster import Algorithm, ForecastResult

logger = logging.getLogger(__name__)

ForecastKey = Tuple[Hashable, Algorithm, date]


class ForecastStore:
    """
    In-process store of forecast results.

    Safe to share between the orchestrator's worker threads.
    """

    def __init__(self):
        self._records: Dict[ForecastKey, ForecastResult] = {}
        self._run_of: Dict[ForecastKey, int] = {}
        self._runs: List[Dict] = []
        self._lock = threading.Lock()

    @property
    def latest_run(self) -> Optional[int]:
        with self._lock:
            return len(self._runs) or None

    def save_run(self, results: Iterable[ForecastResult]) -> int:
        """
        Record one forecast run.

        Args:
            results: Forecasts produced by the run

        Returns:
            Run number (1-based)
        """
        results = list(results)
        with self._lock:
            run = len(self._runs) + 1
            superseded = 0
            for result in results:
                if result.key in self._records:
                    superseded += 1
                self._records[result.key] = result
                self._run_of[result.key] = run
            self._runs.append({
                'run': run,
                'saved_at': datetime.now().isoformat(),
                'n_forecasts': len(results),
                'superseded': superseded,
            })

        logger.debug(
            f"Forecast run {run}: {len(results)} records "
            f"({superseded} superseded)"
        )
        return run

    def get(
        self,
        item_id: Hashable,
        algorithm,
        forecast_date: date
    ) -> Optional[ForecastResult]:
        with self._lock:
            return self._records.get((item_id, Algorithm.parse(algorithm), forecast_date))

    def find(
        self,
        algorithm,
        from_date: date,
        to_date: date
    ) -> List[ForecastResult]:
        """Forecasts of one algorithm with from_date <= forecast_date <= to_date."""
        algorithm = Algorithm.parse(algorithm)
        with self._lock:
            records = list(self._records.values())
        return sorted(
            (
                r for r in records
                if r.algorithm == algorithm and from_date <= r.forecast_date <= to_date
            ),
            key=lambda r: (r.forecast_date, str(r.item_id))
        )

    def runs(self) -> List[Dict]:
        with self._lock:
            return [dict(run) for run in self._runs]

    def to_frame(self) -> pd.DataFrame:
        with self._lock:
            rows = [
                {
                    'item_id': r.item_id,
                    'forecast_date': r.forecast_date,
                    'algorithm': r.algorithm.value,
                    'predicted_demand': r.predicted_demand,
                    'confidence': r.confidence,
                    'horizon_months': r.horizon_months,
                    'run': self._run_of[key],
                }
                for key, r in self._records.items()
            ]
        return pd.DataFrame(
            rows,
            columns=['item_id', 'forecast_date', 'algorithm', 'predicted_demand',
                     'confidence', 'horizon_months', 'run']
        )

    def __len__(self):
        with self._lock:
            return len(self._records)
