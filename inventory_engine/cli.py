# inventory_engine/cli.py

"""
Run one integrated analysis over CSV inputs.

Usage:
    python -m inventory_engine.cli --data-dir data/ --date 2024-07-01 --budget 20000
"""

import argparse
import logging
from datetime import date
from typing import List, Optional

from inventory_engine.config.settings import EngineSettings, configure_logging
from inventory_engine.data.extract import CsvDataLoader
from inventory_engine.exceptions import InventoryEngineError
from inventory_engine.orchestration.analysis_orchestrator import AnalysisOrchestrator, IntegratedResult
from inventory_engine.schemas import AnalysisRequest, OptimizationConstraints, PriorityFocus

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Inventory decision-support analysis')
    parser.add_argument('--data-dir', required=True,
                        help='Directory holding items.csv, demand.csv and inventory.csv')
    parser.add_argument('--date', type=date.fromisoformat, default=None,
                        help='Analysis date (YYYY-MM-DD, default today)')
    parser.add_argument('--horizon', type=int, default=30, help='Forecast horizon in days')
    parser.add_argument('--budget', type=float, default=None, help='Purchase budget')
    parser.add_argument('--focus', choices=[f.value for f in PriorityFocus], default=None,
                        help='Optimization objective')
    parser.add_argument('--async', dest='run_async', action='store_true',
                        help='Run phases 1-3 in parallel')
    parser.add_argument('--env-file', default=None, help='Optional .env file with INVENTORY_* settings')
    return parser


def print_summary(result: IntegratedResult) -> None:
    kpis = result.base_report['kpis']
    print("=" * 60)
    print(f" INTEGRATED INVENTORY ANALYSIS  {result.analysis_date}")
    print("=" * 60)
    print(f"Items analysed:       {kpis['total_items']}")
    print(f"Units on hand:        {kpis['total_units']}")
    print(f"Stock value:          {kpis['total_stock_value']:,.2f}")
    print(f"Out of stock items:   {kpis['out_of_stock_items']}")
    print()

    counts = result.advanced_analysis['category_counts']
    print("ABC/XYZ mix:          " + "  ".join(f"{k}={v}" for k, v in counts.items()))
    print(f"Dead stock items:     {len(result.advanced_analysis['dead_stock'])}")

    if result.forecasting is not None:
        forecasts = result.forecasting['forecasts']
        print(f"Forecast demand:      {int(forecasts['predicted_demand'].sum()) if len(forecasts) else 0}")

    optimization = result.optimization['optimization_result']
    if optimization is not None:
        print()
        print(f"Selected for purchase: {len(optimization.selected)} items "
              f"({optimization.total_items} copies)")
        print(f"Total cost:           {optimization.total_cost:,.2f}")
        print(f"Total profit:         {optimization.total_profit:,.2f}")
        print(f"Optimization score:   {optimization.optimization_score:.1f}")
        for violation in optimization.constraint_violations:
            print(f"  ! {violation}")
        purchase_list = result.optimization['purchase_list']
        if len(purchase_list):
            print()
            print(purchase_list.to_string(index=False))

    print()
    print(f"Execution time:       {result.execution_time_ms:.1f} ms")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = EngineSettings.from_env(args.env_file)
    except InventoryEngineError as e:
        print(f"Configuration error: {e}")
        return 2
    configure_logging(settings.log_level)

    bundle = CsvDataLoader(args.data_dir).load()

    constraints = None
    if args.budget is not None or args.focus is not None:
        constraints = OptimizationConstraints(
            max_budget=args.budget if args.budget is not None else settings.max_budget,
            max_items=settings.max_items,
            max_weight=settings.max_weight,
            min_profit_margin=settings.min_profit_margin,
            priority_focus=args.focus or settings.priority_focus,
        )

    request = AnalysisRequest(
        forecast_horizon=args.horizon,
        analysis_date=args.date or date.today(),
        async_execution=args.run_async,
        constraints=constraints,
    )

    with AnalysisOrchestrator(settings, bundle.catalog, bundle.history, bundle.inventory) as orchestrator:
        try:
            if request.async_execution:
                result = orchestrator.run_with_timeout(request)
            else:
                result = orchestrator.run(request)
        except InventoryEngineError as e:
            logger.error(f"Analysis failed: {e}")
            return 1

    print_summary(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
