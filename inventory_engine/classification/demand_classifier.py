# inventory_engine/classification/demand_classifier.py

"""
ABC / XYZ Demand Classification

ABC ranks items by their share of sales value over the trailing 12 months:
    A - the items that make up the first 20% of cumulative sales value
    B - the items entering between 20% and 80%
    C - the long tail

XYZ ranks items by demand volatility, the coefficient of variation (CV)
of monthly demand over the same window:
    X - CV < 0.5          (stable, easy to forecast)
    Y - 0.5 <= CV < 1.0   (variable)
    Z - CV >= 1.0         (erratic)

The combined label (AX .. CZ) drives turnover-speed and disposal decisions
downstream (see turnover.py).
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import pandas as pd

from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import Item
from inventory_engine.data.monthly import monthly_demand, population_cv, trailing_window
from inventory_engine.data.providers import CatalogProvider, DemandHistoryProvider
from inventory_engine.rounding import round_half_up, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


class AbcClass(str, Enum):
    A = 'A'
    B = 'B'
    C = 'C'


class XyzClass(str, Enum):
    X = 'X'
    Y = 'Y'
    Z = 'Z'


COMBINED_CATEGORIES = tuple(a.value + x.value for a in AbcClass for x in XyzClass)


@dataclass(frozen=True)
class Classification:
    """
    ABC/XYZ result for one item on one analysis date.

    Attributes:
        item_id: Classified item
        abc_class: Sales-contribution class
        xyz_class: Demand-variability class
        sales_contribution: Percentage of total sales value (0-100)
        coefficient_of_variation: CV of monthly demand (>= 0)
        analysis_date: As-of date of the run
        sales_value: Sales value over the window
    """
    item_id: Hashable
    abc_class: AbcClass
    xyz_class: XyzClass
    sales_contribution: float
    coefficient_of_variation: float
    analysis_date: date
    sales_value: float = 0.0

    @property
    def combined_category(self) -> str:
        return self.abc_class.value + self.xyz_class.value


class DemandClassifier:
    """Computes ABC and XYZ classes for a set of items."""

    def __init__(
        self,
        history: DemandHistoryProvider,
        catalog: Optional[CatalogProvider] = None,
        settings: Optional[EngineSettings] = None
    ):
        self.history = history
        self.catalog = catalog
        self.settings = settings or EngineSettings()

    def xyz_class(self, cv: float) -> XyzClass:
        if cv < self.settings.xyz_x_threshold:
            return XyzClass.X
        if cv < self.settings.xyz_y_threshold:
            return XyzClass.Y
        return XyzClass.Z

    def abc_classes(
        self,
        contributions: Sequence[Tuple[Hashable, Decimal]]
    ) -> Dict[Hashable, AbcClass]:
        """
        Assign ABC classes from percentage contributions.

        Items are ranked by contribution, descending; equal contributions
        keep their input order. An item belongs to the band in which its
        share starts: A while the cumulative share before it is below the
        A threshold, B while it is below the B threshold, else C. The top
        item is therefore always A, and an item whose share ends exactly
        on a threshold stays in the lower-numbered band (10%, 10% → A, A).

        Args:
            contributions: (item_id, percentage) pairs

        Returns:
            {item_id: AbcClass}
        """
        a_limit = to_decimal(self.settings.abc_a_threshold) * HUNDRED
        b_limit = to_decimal(self.settings.abc_b_threshold) * HUNDRED

        ranked = sorted(contributions, key=lambda pair: pair[1], reverse=True)

        classes: Dict[Hashable, AbcClass] = {}
        cumulative = Decimal(0)
        for item_id, pct in ranked:
            if cumulative < a_limit:
                classes[item_id] = AbcClass.A
            elif cumulative < b_limit:
                classes[item_id] = AbcClass.B
            else:
                classes[item_id] = AbcClass.C
            cumulative += pct

        return classes

    def _item_statistics(self, item: Item, as_of: date) -> Tuple[Decimal, float]:
        months = self.settings.analysis_period_months
        start, end = trailing_window(as_of, months)
        observations = self.history.get_demand(item.item_id, start, end)

        monthly = monthly_demand(observations, as_of, months, fill_missing=True)
        sales_value = to_decimal(float(monthly.sum())) * to_decimal(item.unit_price)
        cv = float(round_half_up(population_cv(monthly.to_numpy()), 4))
        return sales_value, cv

    def classify(
        self,
        items: Sequence[Item],
        as_of: date
    ) -> List[Classification]:
        """
        Classify items as of a date.

        Items below the minimum sales value are left out. An item whose
        history cannot be aggregated is logged and skipped; the run
        continues with the rest.

        Args:
            items: Items to classify
            as_of: Analysis date; the window is the 12 months before it

        Returns:
            One Classification per included item, in input order
        """
        if as_of is None:
            raise ValueError("Analysis date cannot be None")

        logger.info(f"Starting ABC/XYZ analysis of {len(items)} items for {as_of}")

        threshold = to_decimal(self.settings.min_sales_threshold)
        sales: Dict[Hashable, Decimal] = {}
        variability: Dict[Hashable, float] = {}
        included: List[Item] = []

        for item in items:
            try:
                value, cv = self._item_statistics(item, as_of)
            except Exception as e:
                logger.warning(f"Failed to analyse item {item.item_id}: {e}")
                continue
            if value >= threshold:
                sales[item.item_id] = value
                variability[item.item_id] = cv
                included.append(item)

        total = sum(sales.values(), Decimal(0))
        if total <= 0:
            logger.warning(f"Total sales value is zero for the period ending {as_of}")
            return []

        contributions = {
            item_id: round_half_up(value / total, 4) * HUNDRED
            for item_id, value in sales.items()
        }
        abc = self.abc_classes([(item.item_id, contributions[item.item_id]) for item in included])

        results = [
            Classification(
                item_id=item.item_id,
                abc_class=abc[item.item_id],
                xyz_class=self.xyz_class(variability[item.item_id]),
                sales_contribution=float(contributions[item.item_id]),
                coefficient_of_variation=variability[item.item_id],
                analysis_date=as_of,
                sales_value=float(sales[item.item_id]),
            )
            for item in included
        ]

        logger.info(f"Completed ABC/XYZ analysis for {len(results)} items")
        return results

    def classify_catalog(self, as_of: date) -> List[Classification]:
        """Classify every catalog item."""
        if self.catalog is None:
            raise ValueError("DemandClassifier was created without a catalog provider")
        return self.classify(self.catalog.list_items(), as_of)

    @staticmethod
    def group_by_category(
        classifications: Sequence[Classification]
    ) -> Dict[str, List[Classification]]:
        """All nine combined categories AX..CZ, empty ones included."""
        groups: Dict[str, List[Classification]] = {c: [] for c in COMBINED_CATEGORIES}
        for classification in classifications:
            groups[classification.combined_category].append(classification)
        return groups

    @staticmethod
    def to_frame(classifications: Sequence[Classification]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    'item_id': c.item_id,
                    'abc_class': c.abc_class.value,
                    'xyz_class': c.xyz_class.value,
                    'combined_category': c.combined_category,
                    'sales_contribution': c.sales_contribution,
                    'coefficient_of_variation': c.coefficient_of_variation,
                    'sales_value': c.sales_value,
                    'analysis_date': c.analysis_date,
                }
                for c in classifications
            ],
            columns=['item_id', 'abc_class', 'xyz_class', 'combined_category',
                     'sales_contribution', 'coefficient_of_variation',
                     'sales_value', 'analysis_date']
        )
