# inventory_engine/schemas.py

"""
Pydantic schemas for engine inputs.

Pydantic ensures:
- Constraint profiles and analysis requests have correct types and ranges
- Invalid input fails early with a clear ValidationError
- Both objects are immutable once built, so they can be shared between
  worker threads and used to derive cache keys
"""

import logging
from datetime import date
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class PriorityFocus(str, Enum):
    PROFIT = 'PROFIT'
    CASH_FLOW = 'CASH_FLOW'
    RISK_MINIMIZATION = 'RISK_MINIMIZATION'


class OptimizationConstraints(BaseModel):
    """Caps and objective for one purchase-set optimization."""

    max_budget: float = Field(
        50000.0,
        gt=0,
        description="Maximum total purchase cost"
    )
    max_items: int = Field(
        100,
        ge=0,
        description="Maximum number of copies across the selection"
    )
    max_weight: float = Field(
        1000.0,
        ge=0,
        description="Maximum total weight (1 unit per copy by default)"
    )
    min_profit_margin: float = Field(
        0.15,
        ge=0,
        le=1,
        description="Minimum (revenue - cost) / revenue of the selection"
    )
    priority_focus: PriorityFocus = Field(
        PriorityFocus.PROFIT,
        description="PROFIT, CASH_FLOW or RISK_MINIMIZATION"
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [{
                "max_budget": 20000,
                "max_items": 50,
                "max_weight": 500,
                "min_profit_margin": 0.2,
                "priority_focus": "CASH_FLOW"
            }]
        }
    }

    @field_validator('priority_focus', mode='before')
    @classmethod
    def _known_focus(cls, value):
        if isinstance(value, PriorityFocus):
            return value
        try:
            return PriorityFocus(str(value).upper())
        except ValueError:
            logger.warning(f"Unknown priority focus {value!r}, using PROFIT")
            return PriorityFocus.PROFIT

    @classmethod
    def from_settings(cls, settings) -> 'OptimizationConstraints':
        return cls(
            max_budget=settings.max_budget,
            max_items=settings.max_items,
            max_weight=settings.max_weight,
            min_profit_margin=settings.min_profit_margin,
            priority_focus=settings.priority_focus,
        )


class AnalysisRequest(BaseModel):
    """What a caller sends to run an integrated analysis."""

    category: Optional[str] = Field(
        None,
        description="Restrict to one catalog category. None = all."
    )
    publisher: Optional[str] = Field(
        None,
        description="Restrict to one publisher. None = all."
    )
    item_ids: Optional[List[Union[int, str]]] = Field(
        None,
        description="Restrict to these items. None = all."
    )
    forecast_horizon: int = Field(
        30,
        ge=1,
        le=365,
        description="Forecast horizon in days"
    )
    include_optimization: bool = Field(
        True,
        description="Select a purchase set from the stock policies?"
    )
    include_real_time_data: bool = False
    analysis_types: Optional[List[str]] = Field(
        None,
        description="Phases requested, e.g. ['forecasting']. None = all."
    )
    async_execution: bool = False
    max_execution_time_seconds: float = Field(
        60.0,
        gt=0,
        description="Timeout applied by run_with_timeout"
    )
    cache_strategy: str = Field(
        'default',
        pattern='^(default|bypass)$',
        description="'bypass' skips the result cache"
    )
    analysis_date: date = Field(default_factory=date.today)
    constraints: Optional[OptimizationConstraints] = None

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [{
                "category": "programming",
                "forecast_horizon": 30,
                "include_optimization": True,
                "analysis_date": "2024-07-01"
            }]
        }
    }

    @field_validator('analysis_types')
    @classmethod
    def _normalize_types(cls, value):
        if value is None:
            return None
        return sorted({t.strip().lower() for t in value if t and t.strip()})

    def should_include_forecasting(self) -> bool:
        return (
            self.analysis_types is None
            or 'forecasting' in self.analysis_types
            or self.include_optimization
        )

    def scope_key(self) -> str:
        """Fingerprint of the item selection and date only."""
        parts = [
            self.category or '*',
            self.publisher or '*',
            ','.join(sorted(str(i) for i in set(self.item_ids))) if self.item_ids is not None else '*',
            self.analysis_date.isoformat(),
        ]
        return '|'.join(parts)

    def cache_key(self) -> str:
        """Normalized fingerprint; equal requests produce equal keys."""
        key = 'integrated_analysis'
        if self.category is not None:
            key += f'_cat:{self.category}'
        if self.publisher is not None:
            key += f'_pub:{self.publisher}'
        if self.item_ids is not None:
            key += '_items:' + ','.join(sorted(str(i) for i in set(self.item_ids)))
        if self.analysis_types is not None:
            key += '_types:' + ','.join(self.analysis_types)
        key += f'_horizon:{self.forecast_horizon}'
        key += f'_opt:{self.include_optimization}'
        if self.constraints is not None:
            c = self.constraints
            key += (
                f'_budget:{c.max_budget}_maxitems:{c.max_items}'
                f'_weight:{c.max_weight}_margin:{c.min_profit_margin}'
                f'_focus:{c.priority_focus.value}'
            )
        key += f'_date:{self.analysis_date.isoformat()}'
        return key
