# inventory_engine/config/settings.py

"""
Engine Settings

All business constants used by the engine (costs, service level, lead time,
classification thresholds, default optimization constraints, cache TTLs and
executor sizing) live here instead of being scattered through the
calculators.

Values come from environment variables, optionally loaded from a .env file:

  INVENTORY_ORDERING_COST=75
  INVENTORY_MAX_BUDGET=20000
  INVENTORY_CACHE_TTL_DASHBOARD_DATA=30

Seasonal lookup tables are read-only mappings created once at import and
shared by every concurrent analysis run.
"""

import os
import logging
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from inventory_engine.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# Demand multipliers applied to forecasts, keyed by calendar month (1-12)
FORECAST_SEASONAL_FACTORS: Mapping[int, float] = MappingProxyType({
    1: 1.1, 2: 1.0, 3: 1.3, 4: 1.2, 5: 1.0, 6: 0.9,
    7: 1.1, 8: 1.2, 9: 1.4, 10: 1.3, 11: 1.2, 12: 1.0,
})

# Stock target multipliers by calendar month; missing months use 1.0
STOCK_SEASONALITY_FACTORS: Mapping[int, float] = MappingProxyType({
    1: 1.1, 2: 1.1, 6: 0.9, 7: 0.9, 9: 1.3, 10: 1.3,
})

DEFAULT_CACHE_TTLS: Mapping[str, int] = MappingProxyType({
    'base_inventory_report': 300,
    'advanced_analysis': 900,
    'forecast_analysis': 1800,
    'integrated_analysis': 600,
    'performance_metrics': 120,
    'dashboard_data': 60,
})

DEFAULT_CACHE_TTL = 300


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class EngineSettings:
    """
    Immutable engine configuration.

    Attributes are grouped by the component that consumes them. Create one
    instance per process (usually via from_env) and pass it to every
    component; nothing mutates it afterwards.
    """

    # Stock policy
    ordering_cost: float = 50.0
    holding_cost_rate: float = 0.25
    service_level_z: float = 1.65
    lead_time_weeks: float = 2.0
    lead_time_days: int = 7
    volume_discount_threshold: float = 50.0
    volume_discount_multiplier: float = 1.2
    new_item_years: int = 1
    new_item_multiplier: float = 0.8
    high_value_price: float = 100.0
    high_value_multiplier: float = 0.9
    cost_ratio: float = 0.70
    demand_std_ratio: float = 0.30
    demand_std_floor: float = 1.0
    min_std_observations: int = 12

    # Classification
    analysis_period_months: int = 12
    min_sales_threshold: float = 100.0
    abc_a_threshold: float = 0.20
    abc_b_threshold: float = 0.80
    xyz_x_threshold: float = 0.5
    xyz_y_threshold: float = 1.0
    dead_stock_days: int = 90

    # Default optimization constraints
    max_budget: float = 50000.0
    max_items: int = 100
    max_weight: float = 1000.0
    min_profit_margin: float = 0.15
    priority_focus: str = 'PROFIT'

    # Execution
    executor_max_workers: int = 8
    executor_queue_capacity: int = 100
    executor_shutdown_wait_seconds: float = 60.0
    thread_name_prefix: str = 'IntegratedAnalysis-'

    # Cache
    cache_ttls: Mapping[str, int] = field(
        default_factory=lambda: DEFAULT_CACHE_TTLS
    )
    default_cache_ttl: int = DEFAULT_CACHE_TTL
    cache_single_flight: bool = False

    # Lookup tables
    forecast_seasonal_factors: Mapping[int, float] = field(
        default_factory=lambda: FORECAST_SEASONAL_FACTORS
    )
    stock_seasonality_factors: Mapping[int, float] = field(
        default_factory=lambda: STOCK_SEASONALITY_FACTORS
    )

    log_level: str = 'INFO'

    def __post_init__(self):
        # Freeze caller-supplied tables
        for name in ('cache_ttls', 'forecast_seasonal_factors',
                     'stock_seasonality_factors'):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, _frozen(value))

        if self.executor_max_workers < 1:
            raise ConfigurationError("executor_max_workers must be >= 1")
        if self.executor_queue_capacity < 0:
            raise ConfigurationError("executor_queue_capacity must be >= 0")
        if not 0 < self.abc_a_threshold <= self.abc_b_threshold <= 1:
            raise ConfigurationError(
                "ABC thresholds must satisfy 0 < A <= B <= 1"
            )
        if not 0 <= self.xyz_x_threshold <= self.xyz_y_threshold:
            raise ConfigurationError(
                "XYZ thresholds must satisfy 0 <= X <= Y"
            )

    def cache_ttl(self, region: str) -> int:
        """TTL in seconds for a cache region (falls back to the default)."""
        return self.cache_ttls.get(region, self.default_cache_ttl)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'EngineSettings':
        """
        Build settings from INVENTORY_* environment variables.

        Args:
            env_file: Optional .env path. When omitted, load_dotenv searches
                the working directory tree as usual. Variables already set
                in the environment take precedence.

        Returns:
            EngineSettings instance

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        load_dotenv(env_file)

        overrides: Dict[str, object] = {}
        for f in fields(cls):
            if f.name in _NON_ENV_FIELDS:
                continue
            raw = os.environ.get(f'INVENTORY_{f.name.upper()}')
            if raw is None or raw.strip() == '':
                continue
            overrides[f.name] = _parse(f.name, raw, type(f.default))

        ttls = dict(DEFAULT_CACHE_TTLS)
        for region in DEFAULT_CACHE_TTLS:
            raw = os.environ.get(f'INVENTORY_CACHE_TTL_{region.upper()}')
            if raw:
                ttls[region] = _parse(f'cache_ttl_{region}', raw, int)
        overrides['cache_ttls'] = ttls

        settings = cls(**overrides)
        logger.debug(f"Loaded engine settings ({len(overrides)} overrides)")
        return settings


_NON_ENV_FIELDS = {
    'cache_ttls', 'forecast_seasonal_factors', 'stock_seasonality_factors'
}

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def _parse(name: str, raw: str, target: type):
    raw = raw.strip()
    try:
        if target is bool:
            lowered = raw.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(raw)
        if target is int:
            return int(raw)
        if target is float:
            return float(raw)
        return raw
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}"
        ) from exc


def configure_logging(level: Optional[str] = None) -> None:
    """Root logging setup used by command line entry points."""
    logging.basicConfig(
        level=getattr(logging, (level or 'INFO').upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
