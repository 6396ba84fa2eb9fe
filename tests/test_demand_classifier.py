"""ABC/XYZ classification."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from inventory_engine.classification import AbcClass, DemandClassifier, XyzClass
from inventory_engine.classification.demand_classifier import COMBINED_CATEGORIES
from inventory_engine.data.entities import DemandObservation, Item
from inventory_engine.data.providers import InMemoryDemandHistory


class TestAbcBands:
    """Cumulative-share banding."""

    def _classifier(self):
        return DemandClassifier(InMemoryDemandHistory())

    def test_fifty_thirty_twenty(self):
        classes = self._classifier().abc_classes([
            (1, Decimal('50')), (2, Decimal('30')), (3, Decimal('20')),
        ])
        assert classes == {1: AbcClass.A, 2: AbcClass.B, 3: AbcClass.C}

    def test_input_order_does_not_matter(self):
        classes = self._classifier().abc_classes([
            (3, Decimal('20')), (1, Decimal('50')), (2, Decimal('30')),
        ])
        assert classes == {1: AbcClass.A, 2: AbcClass.B, 3: AbcClass.C}

    def test_share_ending_on_threshold_stays_in_band(self):
        classes = self._classifier().abc_classes([(i, Decimal('10')) for i in range(10)])
        assert [classes[i] for i in range(10)] == (
            [AbcClass.A] * 2 + [AbcClass.B] * 6 + [AbcClass.C] * 2
        )


class TestXyzBands:
    """CV thresholds; the upper bound of each band is exclusive."""

    @pytest.mark.parametrize('cv, expected', [
        (0.0, XyzClass.X),
        (0.49, XyzClass.X),
        (0.50, XyzClass.Y),
        (0.99, XyzClass.Y),
        (1.00, XyzClass.Z),
        (3.2, XyzClass.Z),
    ])
    def test_boundaries(self, cv, expected):
        assert DemandClassifier(InMemoryDemandHistory()).xyz_class(cv) == expected


class TestClassify:
    """classify() over the shared fixture data."""

    def test_classes_and_contributions(self, history, catalog, settings, as_of):
        classifier = DemandClassifier(history, catalog, settings)
        results = {c.item_id: c for c in classifier.classify_catalog(as_of)}

        # Item 4 never sold and falls below the minimum sales value
        assert set(results) == {1, 2, 3}
        assert results[1].combined_category == 'AX'
        assert results[2].combined_category == 'BX'
        assert results[3].combined_category == 'CZ'

        assert results[1].sales_contribution == pytest.approx(56.64)
        assert results[2].sales_contribution == pytest.approx(42.48)
        assert results[3].sales_contribution == pytest.approx(0.88)
        assert results[1].sales_value == pytest.approx(9600.0)
        assert results[3].coefficient_of_variation == pytest.approx(3.3166)

    def test_idempotent(self, history, catalog, settings, as_of):
        classifier = DemandClassifier(history, catalog, settings)
        assert classifier.classify_catalog(as_of) == classifier.classify_catalog(as_of)

    def test_missing_date(self, history, catalog):
        with pytest.raises(ValueError):
            DemandClassifier(history, catalog).classify(catalog.list_items(), None)

    def test_zero_total_sales(self, as_of):
        classifier = DemandClassifier(InMemoryDemandHistory())
        assert classifier.classify([Item(1, 'Unsold', 10.0)], as_of) == []

    def test_zero_price_items_are_skipped_by_threshold(self, as_of):
        history = InMemoryDemandHistory([DemandObservation(1, date(2024, 6, 1), 50)])
        classifier = DemandClassifier(history)
        assert classifier.classify([Item(1, 'Free sample', 0.0)], as_of) == []

    def test_failing_item_does_not_abort_batch(self, history, items, as_of):
        flaky = MagicMock(wraps=history)

        def get_demand(item_id, start, end):
            if item_id == 2:
                raise RuntimeError("timeout")
            return history.get_demand(item_id, start, end)

        flaky.get_demand.side_effect = get_demand
        results = DemandClassifier(flaky).classify(items, as_of)
        assert {c.item_id for c in results} == {1, 3}

    def test_group_by_category_has_all_nine(self, history, catalog, as_of):
        classifications = DemandClassifier(history, catalog).classify_catalog(as_of)
        groups = DemandClassifier.group_by_category(classifications)

        assert tuple(groups) == COMBINED_CATEGORIES
        assert [c.item_id for c in groups['AX']] == [1]
        assert groups['AY'] == []

    def test_to_frame(self, history, catalog, as_of):
        classifications = DemandClassifier(history, catalog).classify_catalog(as_of)
        frame = DemandClassifier.to_frame(classifications)
        assert list(frame['combined_category']) == ['AX', 'BX', 'CZ']
        assert DemandClassifier.to_frame([]).empty
