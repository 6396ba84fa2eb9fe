# inventory_engine/data/monthly.py

"""
Monthly demand aggregation.

The trailing window of N months for an as-of date is the N complete
calendar months before the as-of month. For as_of = 2024-07-15 and N = 6
the window is 2024-01 .. 2024-06.
"""

from datetime import date
from typing import Iterable, List, Tuple

import numpy as np
import pandas as pd

from inventory_engine.data.entities import DemandObservation, month_start


def add_months(day: date, months: int) -> date:
    """Shift a month key by a (possibly negative) number of months."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def trailing_window(as_of: date, months: int) -> Tuple[date, date]:
    """[start, end) month keys of the trailing window."""
    end = month_start(as_of)
    return add_months(end, -months), end


def month_range(start: date, months: int) -> List[date]:
    return [add_months(start, i) for i in range(months)]


def monthly_demand(
    observations: Iterable[DemandObservation],
    as_of: date,
    months: int,
    fill_missing: bool = False
) -> pd.Series:
    """
    Total quantity per month inside the trailing window.

    Args:
        observations: Demand observations for a single item
        as_of: Analysis / forecast date
        months: Window length in months
        fill_missing: Report months without observations as zero demand.
            When False only observed months are returned.

    Returns:
        Series of float quantities indexed by month key, ascending
    """
    start, end = trailing_window(as_of, months)
    rows = [
        (obs.month, obs.quantity) for obs in observations
        if start <= obs.month < end
    ]
    frame = pd.DataFrame(rows, columns=['month', 'quantity'])
    series = frame.groupby('month')['quantity'].sum().sort_index()

    if fill_missing:
        series = series.reindex(month_range(start, months), fill_value=0)

    return series.astype(float)


def month_total(
    observations: Iterable[DemandObservation],
    month: date
) -> int:
    """Observed quantity for the calendar month containing `month`."""
    key = month_start(month)
    return int(sum(obs.quantity for obs in observations if obs.month == key))


def population_cv(values: np.ndarray) -> float:
    """Coefficient of variation (population std / mean); 0 for empty or zero-mean input."""
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return 0.0
    mean = values.mean()
    if mean == 0:
        return 0.0
    return float(np.std(values) / mean)
