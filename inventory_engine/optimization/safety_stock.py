# inventory_engine/optimization/safety_stock.py

"""
Safety Stock Calculator

Calculates the buffer stock that absorbs demand variability while a
replenishment order is on its way, based on:
- Monthly demand variability (σ)
- Supplier lead time (in weeks; a month is treated as 4 weeks)
- Desired service level (Z-score)

Without proper safety stock, stockouts are inevitable.
"""

import numpy as np
import logging
from typing import Optional

from scipy import stats

from inventory_engine.rounding import round_int

logger = logging.getLogger(__name__)

WEEKS_PER_MONTH = 4.0


class SafetyStockCalculator:
    """
    Calculates safety stock with the standard method:

        SS = Z × σ_demand × √(lead_time_weeks / 4)

    σ_demand is the population standard deviation of monthly demand when
    enough months have been observed. For items with a shorter history it
    is approximated as a fixed share (30%) of average monthly demand, never
    below one unit.
    """

    # Z-scores for common service levels
    Z_SCORES = {
        0.85: 1.036,
        0.90: 1.282,
        0.95: 1.645,
        0.97: 1.881,
        0.98: 2.054,
        0.99: 2.326,
        0.995: 2.576,
        0.999: 3.090
    }

    def __init__(
        self,
        z_score: float = 1.65,
        lead_time_weeks: float = 2.0,
        std_ratio: float = 0.30,
        std_floor: float = 1.0,
        min_std_observations: int = 12
    ):
        """
        Initialize SafetyStockCalculator.

        Args:
            z_score: Service-level factor (1.65 ≈ 95% service level)
            lead_time_weeks: Supplier lead time
            std_ratio: σ approximation as a share of average demand
            std_floor: Lower bound of the approximated σ
            min_std_observations: Observed months needed for a real σ
        """
        self.z_score = z_score
        self.lead_time_weeks = lead_time_weeks
        self.std_ratio = std_ratio
        self.std_floor = std_floor
        self.min_std_observations = min_std_observations

    @classmethod
    def get_z_score(cls, service_level: float) -> float:
        """
        Get z-score for a given service level.

        Uses lookup table for common values, scipy for others.

        Args:
            service_level: Desired probability (e.g., 0.95)

        Returns:
            Z-score value
        """
        if not 0 < service_level < 1:
            raise ValueError(f"service_level must be in (0, 1), got {service_level}")

        if service_level in cls.Z_SCORES:
            return cls.Z_SCORES[service_level]

        # Use inverse normal CDF for custom service levels
        return float(stats.norm.ppf(service_level))

    def demand_std(
        self,
        observed_monthly: np.ndarray,
        average_demand: float
    ) -> float:
        """
        Monthly demand standard deviation.

        Args:
            observed_monthly: Quantities of the months that have observations
            average_demand: Average monthly demand over the analysis window

        Returns:
            Population σ of the observed months when there are at least
            min_std_observations of them, otherwise the approximation
        """
        observed_monthly = np.asarray(observed_monthly, dtype=np.float64)
        if observed_monthly.size >= self.min_std_observations:
            return float(np.std(observed_monthly))
        return max(self.std_floor, average_demand * self.std_ratio)

    def method_standard(
        self,
        demand_std: float,
        lead_time_weeks: Optional[float] = None,
        z_score: Optional[float] = None
    ) -> int:
        """
        Standard Safety Stock Method.

        Formula: SS = Z × σ × √(LT_weeks / 4)

        Assumptions:
        - Lead time is constant (no variability)
        - Demand follows normal distribution

        Args:
            demand_std: Standard deviation of monthly demand
            lead_time_weeks: Supplier lead time in weeks
            z_score: Service-level factor

        Returns:
            Safety stock quantity (units, at least 1)
        """
        lt = self.lead_time_weeks if lead_time_weeks is None else lead_time_weeks
        z = self.z_score if z_score is None else z_score

        safety_stock = z * demand_std * np.sqrt(lt / WEEKS_PER_MONTH)

        return max(1, round_int(float(safety_stock)))
