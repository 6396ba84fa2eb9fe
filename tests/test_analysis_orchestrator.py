"""Integrated analysis: sync and async paths, caching and failures."""

import threading
from unittest.mock import MagicMock

import pytest

from inventory_engine.exceptions import ExecutorSaturatedError, IntegratedAnalysisError
from inventory_engine.optimization import Recommendation
from inventory_engine.orchestration import (
    PHASE_ADVANCED_ANALYSIS,
    PHASE_BASE_REPORT,
    PHASE_FORECASTING,
    PHASE_OPTIMIZATION,
    AnalysisOrchestrator,
    BoundedExecutor,
    PerformanceMetrics,
)
from inventory_engine.schemas import AnalysisRequest, OptimizationConstraints


@pytest.fixture
def orchestrator(settings, catalog, history, inventory):
    with AnalysisOrchestrator(settings, catalog, history, inventory) as orch:
        yield orch


def _request(as_of, **kwargs):
    return AnalysisRequest(analysis_date=as_of, **kwargs)


class TestConstruction:

    def test_providers_are_required(self, settings, catalog, history):
        with pytest.raises(ValueError):
            AnalysisOrchestrator(settings, catalog, history, None)


class TestSynchronousRun:

    def test_full_analysis(self, orchestrator, as_of):
        result = orchestrator.run(_request(as_of))

        assert result.status == 'COMPLETED'
        assert result.analysis_date == as_of
        assert result.base_report['kpis'] == {
            'total_items': 4,
            'total_units': 268,
            'total_stock_value': 14120.0,
            'out_of_stock_items': 1,
        }

        recommendations = {r.item_id: r.recommendation
                           for r in result.optimization['recommendations']}
        assert recommendations == {
            1: Recommendation.MAINTAIN,
            2: Recommendation.MAINTAIN,
            3: Recommendation.DECREASE,
        }

        purchase = result.optimization['optimization_result']
        assert [p.item_id for p in purchase.selected] == [1, 4]
        assert list(result.optimization['purchase_list']['item_id']) == [1, 4]

        assert len(result.forecasting['stock_policies']) == 4
        assert list(result.advanced_analysis['dead_stock']['item_id']) == [3]
        assert result.performance_metrics.items_analyzed == 4

    def test_phase_times_recorded(self, orchestrator, as_of):
        result = orchestrator.run(_request(as_of))
        assert set(result.performance_metrics.phase_times_ms) == {
            PHASE_BASE_REPORT, PHASE_ADVANCED_ANALYSIS, PHASE_FORECASTING, PHASE_OPTIMIZATION,
        }
        assert result.execution_time_ms >= 0

    def test_forecasting_skipped_when_not_requested(self, orchestrator, as_of):
        request = _request(as_of, analysis_types=['classification'], include_optimization=False)
        result = orchestrator.run(request)

        assert result.forecasting is None
        assert PHASE_FORECASTING not in result.performance_metrics.phase_times_ms
        assert result.optimization['optimization_result'] is None
        assert result.optimization['purchase_list'] is None
        assert len(result.optimization['recommendations']) == 3

    def test_custom_constraints(self, orchestrator, as_of):
        constraints = OptimizationConstraints(max_budget=100, min_profit_margin=0)
        result = orchestrator.run(_request(as_of, constraints=constraints))
        purchase = result.optimization['optimization_result']
        assert [p.item_id for p in purchase.selected] == [4]

    def test_repeat_request_is_served_from_cache(self, orchestrator, as_of):
        first = orchestrator.run(_request(as_of))
        second = orchestrator.run(_request(as_of))
        assert first is second

    def test_bypass_recomputes(self, orchestrator, as_of):
        first = orchestrator.run(_request(as_of))
        second = orchestrator.run(_request(as_of, cache_strategy='bypass'))
        assert first.analysis_id != second.analysis_id
        assert second.base_report['kpis'] == first.base_report['kpis']

    def test_phase_failure_is_wrapped(self, settings, catalog, history, inventory, as_of):
        broken = MagicMock(wraps=inventory)
        broken.get_snapshot.side_effect = RuntimeError("inventory service down")

        with AnalysisOrchestrator(settings, catalog, history, broken) as orch:
            with pytest.raises(IntegratedAnalysisError) as exc_info:
                orch.run(_request(as_of))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.request_key == _request(as_of).cache_key()

    def test_failed_runs_are_not_cached(self, settings, catalog, history, inventory, as_of):
        calls = []

        def list_items():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("catalog down")
            return catalog.list_items()

        flaky = MagicMock(wraps=catalog)
        flaky.list_items.side_effect = list_items

        with AnalysisOrchestrator(settings, flaky, history, inventory) as orch:
            with pytest.raises(IntegratedAnalysisError):
                orch.run(_request(as_of))
            result = orch.run(_request(as_of))

        assert result.base_report['kpis']['total_items'] == 4


class TestItemSelection:

    def test_category_is_case_insensitive(self, orchestrator, as_of):
        items = orchestrator.select_items(_request(as_of, category='PROGRAMMING'))
        assert [i.item_id for i in items] == [1, 3]

    def test_publisher(self, orchestrator, as_of):
        items = orchestrator.select_items(_request(as_of, publisher='datahouse'))
        assert [i.item_id for i in items] == [2]

    def test_item_ids_compare_as_text(self, orchestrator, as_of):
        items = orchestrator.select_items(_request(as_of, item_ids=['2', 4]))
        assert [i.item_id for i in items] == [2, 4]

    def test_filtered_run(self, orchestrator, as_of):
        result = orchestrator.run(_request(as_of, category='programming'))
        assert result.base_report['kpis']['total_items'] == 2
        assert result.performance_metrics.items_analyzed == 2


class TestAsynchronousRun:

    def test_matches_synchronous_result(self, settings, catalog, history, inventory, as_of):
        with AnalysisOrchestrator(settings, catalog, history, inventory) as sync_orch:
            expected = sync_orch.run(_request(as_of))
        with AnalysisOrchestrator(settings, catalog, history, inventory) as async_orch:
            actual = async_orch.run_async(_request(as_of)).result(timeout=30)

        assert actual.base_report['kpis'] == expected.base_report['kpis']
        assert [p.item_id for p in actual.optimization['optimization_result'].selected] == \
            [p.item_id for p in expected.optimization['optimization_result'].selected]
        assert set(actual.performance_metrics.phase_times_ms) == \
            set(expected.performance_metrics.phase_times_ms)

    def test_cache_hit_returns_completed_future(self, orchestrator, as_of):
        result = orchestrator.run(_request(as_of))
        future = orchestrator.run_async(_request(as_of))
        assert future.done()
        assert future.result() is result

    def test_async_result_is_cached(self, orchestrator, as_of):
        result = orchestrator.run_async(_request(as_of)).result(timeout=30)
        assert orchestrator.run(_request(as_of)) is result

    def test_phase_failure_fails_future(self, settings, catalog, history, inventory, as_of):
        broken = MagicMock(wraps=inventory)
        broken.get_snapshot.side_effect = RuntimeError("inventory service down")

        with AnalysisOrchestrator(settings, catalog, history, broken) as orch:
            future = orch.run_async(_request(as_of))
            with pytest.raises(IntegratedAnalysisError) as exc_info:
                future.result(timeout=30)

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_selection_failure_fails_future(self, settings, catalog, history, inventory, as_of):
        broken = MagicMock(wraps=catalog)
        broken.list_items.side_effect = RuntimeError("catalog down")

        with AnalysisOrchestrator(settings, broken, history, inventory) as orch:
            future = orch.run_async(_request(as_of))
            assert isinstance(future.exception(timeout=30), IntegratedAnalysisError)

    def test_saturated_executor_rejects(self, settings, catalog, history, inventory, as_of):
        executor = BoundedExecutor(max_workers=1, queue_capacity=0)
        release = threading.Event()
        executor.submit(release.wait, 5)
        try:
            orch = AnalysisOrchestrator(settings, catalog, history, inventory, executor=executor)
            future = orch.run_async(_request(as_of))
            assert isinstance(future.exception(timeout=5), ExecutorSaturatedError)
        finally:
            release.set()
            executor.shutdown()

    def test_run_with_timeout(self, orchestrator, as_of):
        result = orchestrator.run_with_timeout(_request(as_of, max_execution_time_seconds=30))
        assert result.status == 'COMPLETED'


class TestDashboardAndMetrics:

    def test_dashboard(self, orchestrator, as_of):
        dashboard = orchestrator.dashboard(_request(as_of))

        assert dashboard['total_items'] == 4
        assert dashboard['out_of_stock_items'] == 1
        assert dashboard['dead_stock_items'] == 1
        assert dashboard['dead_stock_value'] == 1800.0
        assert dashboard['category_counts']['AX'] == 1
        assert orchestrator.dashboard(_request(as_of)) is dashboard

    def test_performance_monitor_receives_metrics(self, settings, catalog, history, inventory, as_of):
        monitor = MagicMock()
        with AnalysisOrchestrator(settings, catalog, history, inventory,
                                  performance_monitor=monitor) as orch:
            orch.run(_request(as_of))

        monitor.record.assert_called_once()
        metrics = monitor.record.call_args[0][0]
        assert isinstance(metrics, PerformanceMetrics)
        assert metrics.items_analyzed == 4

    def test_failing_monitor_does_not_fail_the_run(self, settings, catalog, history, inventory, as_of):
        monitor = MagicMock()
        monitor.record.side_effect = RuntimeError("metrics backend down")
        with AnalysisOrchestrator(settings, catalog, history, inventory,
                                  performance_monitor=monitor) as orch:
            assert orch.run(_request(as_of)).status == 'COMPLETED'

    def test_performance_summary(self, orchestrator, as_of):
        orchestrator.run(_request(as_of))
        summary = orchestrator.performance_summary()
        assert summary['runs'] == 1
        assert summary['cache']['size'] >= 1

    def test_context_manager_shuts_executor_down(self, settings, catalog, history, inventory):
        with AnalysisOrchestrator(settings, catalog, history, inventory) as orch:
            pass
        assert orch.executor.is_shutdown
