"""Safety stock, EOQ, reorder point and the stock policy calculator."""

from datetime import date

import numpy as np
import pytest

from inventory_engine.data.entities import InventorySnapshot, Item
from inventory_engine.data.providers import InMemoryInventory, TrendProvider
from inventory_engine.exceptions import ItemNotFoundError
from inventory_engine.optimization import (
    PolicyHistory,
    ReorderPointCalculator,
    SafetyStockCalculator,
    StockPolicy,
    StockPolicyCalculator,
    StockStatus,
    classify_stock_status,
)


class FixedTrend(TrendProvider):

    def __init__(self, factor):
        self.factor = factor

    def trend_factor(self, item, as_of):
        return self.factor


class TestSafetyStock:

    def test_standard_method(self):
        calc = SafetyStockCalculator()
        # 1.65 × 10 × √0.5 = 11.67
        assert calc.method_standard(10.0) == 12

    def test_floor_of_one_unit(self):
        assert SafetyStockCalculator().method_standard(0.0) == 1

    def test_std_needs_a_full_year(self):
        calc = SafetyStockCalculator()
        assert calc.demand_std(np.array([10, 30] * 6), 20.0) == pytest.approx(10.0)
        assert calc.demand_std(np.array([10, 30]), 20.0) == pytest.approx(6.0)
        assert calc.demand_std(np.array([]), 0.5) == 1.0

    def test_z_score_lookup(self):
        assert SafetyStockCalculator.get_z_score(0.95) == 1.645
        assert SafetyStockCalculator.get_z_score(0.80) == pytest.approx(0.8416, abs=1e-4)
        with pytest.raises(ValueError):
            SafetyStockCalculator.get_z_score(1.5)


class TestEconomicOrderQuantity:

    def test_textbook_formula(self):
        assert ReorderPointCalculator().calculate_eoq(1200, 20) == pytest.approx(np.sqrt(24000))

    def test_doubling_holding_rate_lowers_eoq(self):
        calc = ReorderPointCalculator()
        base = calc.calculate_eoq(1200, 20, holding_cost_rate=0.25)
        doubled = calc.calculate_eoq(1200, 20, holding_cost_rate=0.50)
        assert doubled < base
        assert doubled == pytest.approx(base / np.sqrt(2))

        as_of = date(2024, 7, 15)
        assert calc.economic_order_quantity(1200, 20, None, as_of, holding_cost_rate=0.50) < \
            calc.economic_order_quantity(1200, 20, None, as_of, holding_cost_rate=0.25)

    def test_no_demand(self):
        calc = ReorderPointCalculator()
        assert calc.calculate_eoq(0, 20) == 0.0
        assert calc.economic_order_quantity(0, 20, None, date(2024, 7, 15)) == 1

    def test_adjustments(self):
        calc = ReorderPointCalculator()
        as_of = date(2024, 7, 15)

        _, applied = calc.apply_adjustments(60.0, 150.0, date(2024, 1, 1), as_of)
        assert applied == ['volume_discount', 'new_item', 'high_value']

        adjusted, applied = calc.apply_adjustments(40.0, 20.0, date(2023, 7, 15), as_of)
        assert applied == []
        assert adjusted == 40.0

    def test_new_item_on_leap_day(self):
        calc = ReorderPointCalculator()
        _, applied = calc.apply_adjustments(10.0, 10.0, date(2023, 3, 1), date(2024, 2, 29))
        assert applied == ['new_item']

    def test_reorder_point(self):
        calc = ReorderPointCalculator()
        assert calc.calculate_reorder_point(20.0, 5) == 15
        assert calc.calculate_reorder_point(0.0, 0) == 1

    def test_total_costs(self):
        costs = ReorderPointCalculator().calculate_total_costs(240, 48, 2, 40.0)
        assert costs['orders_per_year'] == pytest.approx(5.0)
        assert costs['annual_ordering_cost'] == pytest.approx(250.0)
        assert costs['annual_holding_cost'] == pytest.approx(260.0)


class TestStockStatus:

    @pytest.mark.parametrize('current, optimal, reorder, expected', [
        (50, 100, 60, StockStatus.REORDER_NEEDED),
        (75, 100, 60, StockStatus.UNDERSTOCK),
        (130, 100, 60, StockStatus.OVERSTOCK),
        (95, 100, 60, StockStatus.OPTIMAL),
        (60, 100, 60, StockStatus.REORDER_NEEDED),
        (80, 100, 60, StockStatus.OPTIMAL),
        (120, 100, 60, StockStatus.OPTIMAL),
    ])
    def test_classification(self, current, optimal, reorder, expected):
        assert classify_stock_status(current, optimal, reorder) == expected


class TestStockPolicyCalculator:

    def _calculator(self, settings, catalog, history, inventory, trend=None):
        return StockPolicyCalculator(settings, catalog, history, inventory, trend)

    def test_reorder_needed_policy(self, settings, catalog, history, inventory, as_of):
        policy = self._calculator(settings, catalog, history, inventory).calculate_item(1, as_of)

        assert policy.average_monthly_demand == pytest.approx(20.0)
        assert policy.economic_order_quantity == 49
        assert policy.safety_stock == 1
        assert policy.reorder_point == 11
        assert policy.seasonality_factor == 0.9
        assert policy.obsolescence_factor == 1.0
        assert policy.optimal_stock_level == 45
        assert policy.current_stock == 8
        assert policy.stock_status == StockStatus.REORDER_NEEDED
        assert policy.recommended_order_quantity == 49
        assert policy.estimated_cost == 1372.0
        assert policy.estimated_revenue == 1960.0

    def test_overstock_policy_has_no_order(self, settings, catalog, history, inventory, as_of):
        policy = self._calculator(settings, catalog, history, inventory).calculate_item(2, as_of)

        assert policy.economic_order_quantity == 28
        assert policy.obsolescence_factor == 0.70
        assert policy.optimal_stock_level == 18
        assert policy.stock_status == StockStatus.OVERSTOCK
        assert policy.recommended_order_quantity is None
        assert policy.estimated_cost is None

    def test_sparse_history_uses_std_approximation(self, settings, catalog, history, inventory, as_of):
        policy = self._calculator(settings, catalog, history, inventory).calculate_item(3, as_of)
        assert policy.demand_std == 1.0
        assert policy.reorder_point == 1
        assert policy.optimal_stock_level == 6

    def test_item_without_history_or_stock(self, settings, catalog, history, inventory, as_of):
        policy = self._calculator(settings, catalog, history, inventory).calculate_item(4, as_of)

        assert policy.economic_order_quantity == 1
        assert policy.obsolescence_factor == 0.9
        assert policy.optimal_stock_level == 2
        assert policy.current_stock == 0
        assert policy.stock_status == StockStatus.REORDER_NEEDED
        assert policy.recommended_order_quantity == 2
        assert policy.estimated_cost == 35.0

    def test_trend_provider_scales_optimal_level(self, settings, catalog, history, inventory, as_of):
        calc = self._calculator(settings, catalog, history, inventory, FixedTrend(2.0))
        policy = calc.calculate_item(1, as_of)
        assert policy.trend_factor == 2.0
        assert policy.optimal_stock_level == 90

    @pytest.mark.parametrize('published, expected', [
        (date(2024, 1, 1), 1.0),
        (date(2022, 1, 1), 0.95),
        (date(2019, 1, 1), 0.85),
        (date(2010, 1, 1), 0.70),
        (None, 0.9),
    ])
    def test_obsolescence_factor(self, published, expected):
        item = Item(1, 'Book', 10.0, published)
        assert StockPolicyCalculator.obsolescence_factor(item, date(2024, 7, 15)) == expected

    def test_unknown_item(self, settings, catalog, history, inventory, as_of):
        with pytest.raises(ItemNotFoundError):
            self._calculator(settings, catalog, history, inventory).calculate_item(999, as_of)

    def test_optimal_levels_frame(self, settings, catalog, history, inventory, as_of):
        calc = self._calculator(settings, catalog, history, inventory)
        levels_df = calc.calculate_optimal_levels(catalog.list_items(), as_of)

        assert list(levels_df['item_id']) == [1, 2, 3, 4]
        assert list(levels_df['recommendation']) == ['INCREASE', 'DECREASE', 'DECREASE', 'INCREASE']
        assert (levels_df['calculation_method'] == 'EOQ').all()
        assert (levels_df['lead_time_days'] == 7).all()

    def test_batch_skips_failing_items(self, settings, catalog, history, inventory, as_of):
        calc = self._calculator(settings, catalog, history, inventory)
        bad = Item('bad', 'Broken', 10.0)
        original = calc._current_stock

        def current_stock(item_id):
            if item_id == 'bad':
                raise RuntimeError("inventory service down")
            return original(item_id)

        calc._current_stock = current_stock
        policies = calc.calculate_batch([bad] + catalog.list_items(), as_of)
        assert [p.item_id for p in policies] == [1, 2, 3, 4]


class TestPolicyHistory:

    def test_new_policy_closes_previous(self):
        history = PolicyHistory()
        first = history.save(StockPolicy(1, optimal_stock_level=10, valid_from=date(2024, 1, 1)))
        history.save(StockPolicy(1, optimal_stock_level=20, valid_from=date(2024, 6, 1)))

        versions = history.history(1)
        assert versions[0].valid_to == date(2024, 6, 1)
        assert versions[1].valid_to is None
        assert first.valid_to is None

        assert history.current_policy(1, date(2024, 3, 1)).optimal_stock_level == 10
        assert history.current_policy(1, date(2024, 6, 1)).optimal_stock_level == 20
        assert history.current_policy(1, date(2023, 12, 31)) is None

    def test_earlier_policy_saved_later_keeps_windows_ordered(self):
        history = PolicyHistory()
        history.save(StockPolicy(1, optimal_stock_level=70, valid_from=date(2024, 7, 1)))
        stored = history.save(StockPolicy(1, optimal_stock_level=60, valid_from=date(2024, 6, 1)))

        windows = [(p.valid_from, p.valid_to) for p in history.history(1)]
        assert windows == [
            (date(2024, 6, 1), date(2024, 7, 1)),
            (date(2024, 7, 1), None),
        ]
        assert stored.valid_to == date(2024, 7, 1)
        assert history.current_policy(1, date(2024, 7, 10)).optimal_stock_level == 70
        assert history.current_policy(1, date(2024, 6, 15)).optimal_stock_level == 60

    def test_policy_saved_between_versions(self):
        history = PolicyHistory()
        history.save(StockPolicy(1, optimal_stock_level=10, valid_from=date(2024, 1, 1)))
        history.save(StockPolicy(1, optimal_stock_level=30, valid_from=date(2024, 9, 1)))
        history.save(StockPolicy(1, optimal_stock_level=20, valid_from=date(2024, 5, 1)))

        windows = [(p.valid_from, p.valid_to) for p in history.history(1)]
        assert windows == [
            (date(2024, 1, 1), date(2024, 5, 1)),
            (date(2024, 5, 1), date(2024, 9, 1)),
            (date(2024, 9, 1), None),
        ]
        assert history.current_policy(1, date(2024, 4, 30)).optimal_stock_level == 10
        assert history.current_policy(1, date(2024, 5, 1)).optimal_stock_level == 20

    def test_items_needing_reorder_uses_current_stock(self):
        history = PolicyHistory()
        history.save(StockPolicy(1, reorder_point=10, optimal_stock_level=30,
                                 current_stock=50, valid_from=date(2024, 1, 1)))
        history.save(StockPolicy(2, reorder_point=10, optimal_stock_level=30,
                                 current_stock=5, valid_from=date(2024, 1, 1)))

        inventory = InMemoryInventory([
            InventorySnapshot(1, store_stock=4),
            InventorySnapshot(2, store_stock=25),
        ])
        due = history.items_needing_reorder(inventory, date(2024, 7, 1))

        assert [p.item_id for p in due] == [1]
        assert due[0].current_stock == 4
        assert due[0].stock_status == StockStatus.REORDER_NEEDED
