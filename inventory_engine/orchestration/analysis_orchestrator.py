# inventory_engine/orchestration/analysis_orchestrator.py

"""
Integrated Analysis Orchestrator

Composes every engine component into one analysis:

    Phase 1: Base inventory report    (stock on hand, value, KPIs)
    Phase 2: Advanced analysis        (ABC/XYZ, dead stock, lifecycle)
    Phase 3: Forecasting              (ensemble forecasts + stock policies)
    Phase 4: Optimization             (recommendations + purchase set)

run() executes the phases in order on the calling thread. run_async()
submits phases 1-3 to the bounded executor and starts phase 4 when the
last of them completes; the returned Future resolves to the same
IntegratedResult the synchronous path produces.

Results are cached per request fingerprint. Any phase failure fails the
whole run with IntegratedAnalysisError.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import Future, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence

import pandas as pd

from inventory_engine.classification.demand_classifier import Classification, DemandClassifier
from inventory_engine.classification.turnover import TurnoverAnalyzer, lifecycle_distribution
from inventory_engine.config.settings import EngineSettings
from inventory_engine.data.entities import Item
from inventory_engine.data.providers import (
    CatalogProvider,
    DemandHistoryProvider,
    InventoryProvider,
    PerformanceMonitor,
    TrendProvider,
)
from inventory_engine.exceptions import ExecutorSaturatedError, IntegratedAnalysisError
from inventory_engine.forecasting.forecast_engine import ForecastEngine
from inventory_engine.optimization.order_optimizer import OptimizationResult, OrderOptimizer
from inventory_engine.optimization.stock_policy import Recommendation, StockPolicyCalculator
from inventory_engine.orchestration.executor import BoundedExecutor
from inventory_engine.orchestration.result_cache import ResultCache
from inventory_engine.rounding import round_float
from inventory_engine.schemas import AnalysisRequest

logger = logging.getLogger(__name__)

PHASE_BASE_REPORT = 'phase1_base_report'
PHASE_ADVANCED_ANALYSIS = 'phase2_advanced_analysis'
PHASE_FORECASTING = 'phase3_forecasting'
PHASE_OPTIMIZATION = 'phase4_optimization'

_NOT_CACHED = object()

STATUS_COMPLETED = 'COMPLETED'


@dataclass(frozen=True)
class StockRecommendation:
    item_id: Hashable
    combined_category: str
    recommendation: Recommendation


@dataclass
class PerformanceMetrics:
    total_execution_time_ms: float = 0.0
    phase_times_ms: Dict[str, float] = field(default_factory=dict)
    cache_hit_rate: float = 0.0
    items_analyzed: int = 0


@dataclass
class IntegratedResult:
    """Everything one integrated analysis produced."""
    analysis_id: str
    status: str
    analysis_date: date
    base_report: Dict[str, Any]
    advanced_analysis: Dict[str, Any]
    forecasting: Optional[Dict[str, Any]]
    optimization: Dict[str, Any]
    performance_metrics: PerformanceMetrics
    execution_time_ms: float = 0.0


def recommendation_for(classification: Classification) -> Recommendation:
    """AX → MAINTAIN, CZ → DECREASE, other A → INCREASE, else MAINTAIN."""
    category = classification.combined_category
    if category == 'AX':
        return Recommendation.MAINTAIN
    if category == 'CZ':
        return Recommendation.DECREASE
    if category.startswith('A'):
        return Recommendation.INCREASE
    return Recommendation.MAINTAIN


class AnalysisOrchestrator:
    """
    Entry point for integrated inventory analysis.

    Example:
        >>> with AnalysisOrchestrator(settings, catalog, history, inventory) as orchestrator:
        ...     result = orchestrator.run(AnalysisRequest(category='programming'))
        ...     future = orchestrator.run_async(AnalysisRequest(include_optimization=False))
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        catalog: Optional[CatalogProvider] = None,
        history: Optional[DemandHistoryProvider] = None,
        inventory: Optional[InventoryProvider] = None,
        trend_provider: Optional[TrendProvider] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        cache: Optional[ResultCache] = None,
        executor: Optional[BoundedExecutor] = None
    ):
        """
        Initialize the orchestrator and its components.

        Args:
            settings: Engine settings shared by every component
            catalog: Catalog collaborator
            history: Historical demand collaborator
            inventory: Current inventory collaborator
            trend_provider: Optional trend collaborator for stock policies
            performance_monitor: Optional sink for run metrics
            cache: Result cache (a new one from settings by default)
            executor: Worker pool for run_async (created from settings by default)
        """
        if catalog is None or history is None or inventory is None:
            raise ValueError("catalog, history and inventory providers are required")

        self.settings = settings or EngineSettings()
        self.catalog = catalog
        self.history = history
        self.inventory = inventory
        self.performance_monitor = performance_monitor
        self.cache = cache or ResultCache(self.settings)
        self.executor = executor or BoundedExecutor.from_settings(self.settings)

        self.forecast_engine = ForecastEngine(self.settings, catalog, history)
        self.classifier = DemandClassifier(history, catalog, self.settings)
        self.turnover = TurnoverAnalyzer(inventory, self.settings)
        self.policy_calculator = StockPolicyCalculator(
            self.settings, catalog, history, inventory, trend_provider
        )
        self.optimizer = OrderOptimizer(self.settings)

        self._runs = 0
        self._total_time_ms = 0.0
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Item selection
    # ------------------------------------------------------------------

    def select_items(self, request: AnalysisRequest) -> List[Item]:
        """Catalog items matching the request's category, publisher and id filters."""
        items = self.catalog.list_items()
        if request.category is not None:
            wanted = request.category.lower()
            items = [i for i in items if i.category is not None and i.category.lower() == wanted]
        if request.publisher is not None:
            wanted = request.publisher.lower()
            items = [i for i in items if i.publisher is not None and i.publisher.lower() == wanted]
        if request.item_ids is not None:
            ids = {str(i) for i in request.item_ids}
            items = [i for i in items if str(i.item_id) in ids]
        return items

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def base_report(self, items: Sequence[Item], as_of: date) -> Dict[str, Any]:
        """Phase 1: inventory summary and KPIs."""
        rows = []
        for item in items:
            snapshot = self.inventory.get_snapshot(item.item_id)
            store = snapshot.store_stock if snapshot else 0
            warehouse = snapshot.warehouse_stock if snapshot else 0
            rows.append({
                'item_id': item.item_id,
                'title': item.title,
                'category': item.category,
                'publisher': item.publisher,
                'unit_price': item.unit_price,
                'store_stock': store,
                'warehouse_stock': warehouse,
                'total_stock': store + warehouse,
                'stock_value': round_float((store + warehouse) * item.unit_price, 2),
                'last_sold_date': snapshot.last_sold_date if snapshot else None,
            })

        inventory_df = pd.DataFrame(rows, columns=[
            'item_id', 'title', 'category', 'publisher', 'unit_price',
            'store_stock', 'warehouse_stock', 'total_stock', 'stock_value',
            'last_sold_date'
        ])

        kpis = {
            'total_items': len(inventory_df),
            'total_units': int(inventory_df['total_stock'].sum()),
            'total_stock_value': round_float(float(inventory_df['stock_value'].sum()), 2),
            'out_of_stock_items': int((inventory_df['total_stock'] <= 0).sum()),
        }
        logger.info(
            f"  Base report: {kpis['total_items']} items, {kpis['total_units']} units, "
            f"value {kpis['total_stock_value']:,.2f}"
        )
        return {'as_of': as_of, 'inventory': inventory_df, 'kpis': kpis}

    def advanced_analysis(self, items: Sequence[Item], as_of: date) -> Dict[str, Any]:
        """Phase 2: ABC/XYZ classification, dead stock and lifecycle distribution."""
        classifications = self.classifier.classify(items, as_of)
        groups = DemandClassifier.group_by_category(classifications)
        return {
            'classifications': classifications,
            'classification_frame': DemandClassifier.to_frame(classifications),
            'category_counts': {category: len(members) for category, members in groups.items()},
            'dead_stock': self.turnover.analyze(items, classifications, as_of),
            'lifecycle_distribution': lifecycle_distribution(items, as_of),
        }

    def forecasting(
        self,
        items: Sequence[Item],
        as_of: date,
        horizon_days: int
    ) -> Dict[str, Any]:
        """Phase 3: ensemble forecasts and stock policies."""
        forecasts = self.forecast_engine.generate_ensemble_forecasts(items, as_of, horizon_days)
        policies = self.policy_calculator.calculate_batch(items, as_of)
        return {
            'forecasts': forecasts,
            'stock_policies': policies,
            'stock_levels': self.policy_calculator.policies_to_frame(policies),
        }

    def optimization(
        self,
        request: AnalysisRequest,
        advanced: Dict[str, Any],
        forecasting: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Phase 4: category recommendations and, if requested, the purchase set."""
        recommendations = [
            StockRecommendation(c.item_id, c.combined_category, recommendation_for(c))
            for c in advanced['classifications']
        ]

        result: Optional[OptimizationResult] = None
        if request.include_optimization and forecasting is not None:
            constraints = request.constraints or self.optimizer.default_constraints()
            result = self.optimizer.optimize(forecasting['stock_policies'], constraints)

        return {
            'recommendations': recommendations,
            'optimization_result': result,
            'purchase_list': OrderOptimizer.to_frame(result) if result is not None else None,
        }

    # ------------------------------------------------------------------
    # Synchronous path
    # ------------------------------------------------------------------

    def run(self, request: AnalysisRequest) -> IntegratedResult:
        """
        Run the integrated analysis on the calling thread.

        Raises:
            IntegratedAnalysisError: Any phase failed (chained to the cause)
        """
        key = request.cache_key()
        if request.cache_strategy == 'bypass':
            return self._execute(request)
        return self.cache.get_or_compute(
            'integrated_analysis', key, lambda: self._execute(request)
        )

    def _execute(self, request: AnalysisRequest) -> IntegratedResult:
        key = request.cache_key()
        logger.info("=" * 60)
        logger.info(f"INTEGRATED ANALYSIS ({request.analysis_date})")
        logger.info("=" * 60)

        start = time.perf_counter()
        phase_times: Dict[str, float] = {}
        try:
            items = self.select_items(request)
            as_of = request.analysis_date

            logger.info("Step 1: Base inventory report...")
            base = self._timed(phase_times, PHASE_BASE_REPORT,
                               lambda: self._cached_phase('base_inventory_report', request,
                                                          lambda: self.base_report(items, as_of)))

            logger.info("Step 2: Advanced analysis...")
            advanced = self._timed(phase_times, PHASE_ADVANCED_ANALYSIS,
                                   lambda: self._cached_phase('advanced_analysis', request,
                                                              lambda: self.advanced_analysis(items, as_of)))

            forecasting = None
            if request.should_include_forecasting():
                logger.info("Step 3: Forecasting and stock policies...")
                forecasting = self._timed(phase_times, PHASE_FORECASTING,
                                          lambda: self._cached_forecasting(request, items))

            logger.info("Step 4: Optimization...")
            optimization = self._timed(phase_times, PHASE_OPTIMIZATION,
                                       lambda: self.optimization(request, advanced, forecasting))
        except IntegratedAnalysisError:
            raise
        except Exception as exc:
            logger.exception(f"Integrated analysis failed for {key}")
            raise IntegratedAnalysisError(f"Integrated analysis failed: {exc}", key) from exc

        return self._assemble(request, items, base, advanced, forecasting,
                              optimization, phase_times, start)

    # ------------------------------------------------------------------
    # Asynchronous path
    # ------------------------------------------------------------------

    def run_async(self, request: AnalysisRequest) -> Future:
        """
        Run phases 1-3 in parallel and phase 4 after all of them.

        Returns:
            Future resolving to IntegratedResult, or failing with
            IntegratedAnalysisError. A cache hit returns a completed Future.
        """
        key = request.cache_key()
        result_future: Future = Future()

        if request.cache_strategy != 'bypass':
            cached = self.cache.get('integrated_analysis', key, _NOT_CACHED)
            if cached is not _NOT_CACHED:
                logger.info(f"Cache hit for {key}")
                result_future.set_result(cached)
                return result_future

        start = time.perf_counter()
        try:
            items = self.select_items(request)
        except Exception as exc:
            logger.exception(f"Integrated analysis failed for {key}")
            result_future.set_exception(
                IntegratedAnalysisError(f"Integrated analysis failed: {exc}", key)
            )
            return result_future

        as_of = request.analysis_date
        phase_times: Dict[str, float] = {}
        tasks: Dict[str, Callable[[], Any]] = {
            PHASE_BASE_REPORT: lambda: self._cached_phase(
                'base_inventory_report', request, lambda: self.base_report(items, as_of)),
            PHASE_ADVANCED_ANALYSIS: lambda: self._cached_phase(
                'advanced_analysis', request, lambda: self.advanced_analysis(items, as_of)),
        }
        if request.should_include_forecasting():
            tasks[PHASE_FORECASTING] = lambda: self._cached_forecasting(request, items)

        outputs: Dict[str, Any] = {}
        state = {'remaining': len(tasks), 'failed': False}
        lock = threading.Lock()

        def fail(exc: BaseException) -> None:
            with lock:
                if state['failed']:
                    return
                state['failed'] = True
            if isinstance(exc, IntegratedAnalysisError):
                error = exc
            else:
                logger.error(f"Integrated analysis failed for {key}", exc_info=exc)
                error = IntegratedAnalysisError(f"Integrated analysis failed: {exc}", key)
                error.__cause__ = exc
            result_future.set_exception(error)

        def join(phase: str, future: Future) -> None:
            exc = future.exception()
            if exc is not None:
                fail(exc)
                return
            with lock:
                outputs[phase] = future.result()
                state['remaining'] -= 1
                last = state['remaining'] == 0 and not state['failed']
            if not last:
                return
            try:
                optimization = self._timed(
                    phase_times, PHASE_OPTIMIZATION,
                    lambda: self.optimization(request, outputs[PHASE_ADVANCED_ANALYSIS],
                                              outputs.get(PHASE_FORECASTING))
                )
                result = self._assemble(
                    request, items, outputs[PHASE_BASE_REPORT],
                    outputs[PHASE_ADVANCED_ANALYSIS], outputs.get(PHASE_FORECASTING),
                    optimization, phase_times, start
                )
                if request.cache_strategy != 'bypass':
                    self.cache.put('integrated_analysis', key, result)
            except Exception as exc:
                fail(exc)
                return
            result_future.set_result(result)

        for phase, task in tasks.items():
            try:
                future = self.executor.submit(self._timed, phase_times, phase, task)
            except ExecutorSaturatedError as exc:
                exc.request_key = key
                fail(exc)
                break
            future.add_done_callback(lambda f, p=phase: join(p, f))

        return result_future

    def run_with_timeout(self, request: AnalysisRequest) -> IntegratedResult:
        """
        run_async bounded by request.max_execution_time_seconds.

        Raises:
            IntegratedAnalysisError: Failure or timeout
        """
        future = self.run_async(request)
        try:
            return future.result(timeout=request.max_execution_time_seconds)
        except FuturesTimeoutError as exc:
            raise IntegratedAnalysisError(
                f"Integrated analysis timed out after {request.max_execution_time_seconds}s",
                request.cache_key()
            ) from exc

    # ------------------------------------------------------------------
    # Dashboard / metrics
    # ------------------------------------------------------------------

    def dashboard(self, request: Optional[AnalysisRequest] = None) -> Dict[str, Any]:
        """Lightweight KPI summary (stock, ABC mix, dead stock)."""
        request = request or AnalysisRequest()

        def compute() -> Dict[str, Any]:
            items = self.select_items(request)
            base = self.base_report(items, request.analysis_date)
            advanced = self.advanced_analysis(items, request.analysis_date)
            dead = advanced['dead_stock']
            return {
                **base['kpis'],
                'category_counts': advanced['category_counts'],
                'dead_stock_items': len(dead),
                'dead_stock_value': round_float(float(dead['stock_value'].sum()), 2),
                'analysis_date': request.analysis_date,
            }

        if request.cache_strategy == 'bypass':
            return compute()
        return self.cache.get_or_compute('dashboard_data', request.scope_key(), compute)

    def performance_summary(self) -> Dict[str, Any]:
        """Run count, average run time and cache statistics."""
        def compute() -> Dict[str, Any]:
            with self._stats_lock:
                runs, total = self._runs, self._total_time_ms
            return {
                'runs': runs,
                'average_execution_time_ms': round_float(total / runs, 2) if runs else 0.0,
                'cache': self.cache.stats(),
            }
        return self.cache.get_or_compute('performance_metrics', 'summary', compute)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _timed(phase_times: Dict[str, float], phase: str, fn: Callable[[], Any]) -> Any:
        started = time.perf_counter()
        value = fn()
        phase_times[phase] = (time.perf_counter() - started) * 1000
        return value

    def _cached_phase(
        self,
        region: str,
        request: AnalysisRequest,
        compute: Callable[[], Dict[str, Any]]
    ) -> Dict[str, Any]:
        if request.cache_strategy == 'bypass':
            return compute()
        return self.cache.get_or_compute(region, request.scope_key(), compute)

    def _cached_forecasting(self, request: AnalysisRequest, items: Sequence[Item]) -> Dict[str, Any]:
        def compute() -> Dict[str, Any]:
            return self.forecasting(items, request.analysis_date, request.forecast_horizon)

        if request.cache_strategy == 'bypass':
            return compute()
        key = f"{request.scope_key()}|horizon:{request.forecast_horizon}"
        return self.cache.get_or_compute('forecast_analysis', key, compute)

    def _assemble(
        self,
        request: AnalysisRequest,
        items: Sequence[Item],
        base: Dict[str, Any],
        advanced: Dict[str, Any],
        forecasting: Optional[Dict[str, Any]],
        optimization: Dict[str, Any],
        phase_times: Dict[str, float],
        start: float
    ) -> IntegratedResult:
        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics = PerformanceMetrics(
            total_execution_time_ms=elapsed_ms,
            phase_times_ms=dict(phase_times),
            cache_hit_rate=self.cache.hit_rate,
            items_analyzed=len(items),
        )
        result = IntegratedResult(
            analysis_id=uuid.uuid4().hex,
            status=STATUS_COMPLETED,
            analysis_date=request.analysis_date,
            base_report=base,
            advanced_analysis=advanced,
            forecasting=forecasting,
            optimization=optimization,
            performance_metrics=metrics,
            execution_time_ms=elapsed_ms,
        )

        with self._stats_lock:
            self._runs += 1
            self._total_time_ms += elapsed_ms
        self._report(metrics)

        logger.info(f"✅ Integrated analysis completed in {elapsed_ms:.1f} ms "
                    f"({len(items)} items)")
        return result

    def _report(self, metrics: PerformanceMetrics) -> None:
        if self.performance_monitor is None:
            return
        try:
            self.performance_monitor.record(metrics)
        except Exception as e:
            logger.warning(f"Performance monitor rejected metrics: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
        return False
