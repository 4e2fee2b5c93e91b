"""
Command-line utility to run the full planning pipeline.

Validates inventory rows, computes EOQs, optimizes warehouse → store
distribution, lays out the resulting network and logs the aggregated report.

Usage:
    python scripts/run_pipeline.py [--csv records.csv --costs costs.csv
                                    [--capacities capacities.csv] [--distances distances.csv]]
                                   [--verify-lp] [-v]

Capacities and lane matrices may be CSV or JSON (see stockflow.data.file_loader).
Without --csv, the built-in sample records, capacities and costs are used.
With --csv, --costs is required; warehouses without a capacity are unconstrained.

Examples:
    # Run on the built-in sample data
    python scripts/run_pipeline.py

    # Run on uploaded records and cross-check the optimum with an LP solver
    python scripts/run_pipeline.py --csv data/inventory.csv --costs data/costs.csv \\
        --capacities data/capacities.json --verify-lp
"""

import argparse
import logging
import sys

import pandas as pd

from stockflow.data import (
    SAMPLE_CAPACITIES,
    load_capacities,
    load_lane_matrix,
    sample_cost_matrix,
    sample_distances,
    sample_rows,
)
from stockflow.exceptions import InfeasibleProblem, StockflowError
from stockflow.network import LayoutConfig
from stockflow.optimization import TransportationLPModel, costs_agree
from stockflow.workflows import PlanningSession

logger = logging.getLogger("run_pipeline")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run EOQ, distribution optimization and network layout",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=None,
        help="CSV file with item_id, store_id, warehouse_id, demand, order_cost, "
             "holding_cost, inventory_level columns (default: built-in sample data)",
    )
    parser.add_argument(
        "--capacities",
        type=str,
        default=None,
        help="CSV (warehouse_id, capacity) or JSON warehouse capacities",
    )
    parser.add_argument(
        "--costs",
        type=str,
        default=None,
        help="CSV or JSON warehouse → store unit cost matrix (required with --csv)",
    )
    parser.add_argument(
        "--distances",
        type=str,
        default=None,
        help="CSV or JSON warehouse → store distance matrix",
    )
    parser.add_argument(
        "--layout-iterations",
        type=int,
        default=50,
        help="Maximum layout simulation steps (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Layout seed for separating coincident nodes",
    )
    parser.add_argument(
        "--verify-lp",
        action="store_true",
        help="Cross-check the optimal cost with the reference LP",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def load_network(args: argparse.Namespace):
    """Capacities, costs and distances from the given files, or the sample network without --csv."""
    if args.csv:
        capacities = load_capacities(args.capacities) if args.capacities else None
        costs = load_lane_matrix(args.costs)
        distances = load_lane_matrix(args.distances, field='distances') if args.distances else None
    else:
        capacities = load_capacities(args.capacities) if args.capacities else dict(SAMPLE_CAPACITIES)
        costs = load_lane_matrix(args.costs) if args.costs else sample_cost_matrix()
        distances = (load_lane_matrix(args.distances, field='distances') if args.distances
                     else sample_distances())
    return capacities, costs, distances


def main(argv=None):
    """Main entry point for the pipeline CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.csv and not args.costs:
        parser.error("--costs is required with --csv")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        capacities, costs, distances = load_network(args)
    except (FileNotFoundError, StockflowError) as e:
        logger.error(f"Cannot load network: {e}")
        return 1

    layout_config = LayoutConfig(max_iterations=args.layout_iterations, seed=args.seed)

    with PlanningSession(layout_config=layout_config) as session:
        if args.csv:
            report = session.load_dataframe(pd.read_csv(args.csv))
        else:
            report = session.load_rows(sample_rows())

        for rejection in report.rejections:
            logger.warning(str(rejection))
        if not report.records:
            logger.error("No valid records to plan")
            return 1

        try:
            session.compute_eoq()
            surface = session.analyze_sensitivity(0)
            logger.info(f"Sensitivity of {surface.record.item_id}/{surface.record.store_id}:\n{surface.pivot()}")

            handle = session.start_optimization(capacities, costs, distances=distances)
            outcome = handle.outcome()
            if not outcome.ok:
                if isinstance(outcome.error, InfeasibleProblem):
                    logger.error(f"Cannot supply all stores: shortfall {outcome.error.shortfall:,.2f} units")
                    return 2
                raise outcome.error

            session.layout()
        except StockflowError as e:
            logger.error(f"Pipeline failed: {type(e).__name__}: {e}")
            return 1

        snapshot = session.snapshot
        logger.info(f"Report:\n{snapshot.report}")
        logger.info(f"Assignment:\n{snapshot.optimization.assignment.to_dataframe()}")
        for node in snapshot.graph.nodes:
            logger.info(f"  {node.key}: ({node.x:.1f}, {node.y:.1f})")

        if args.verify_lp:
            lp_result = TransportationLPModel(snapshot.problem).solve()
            if not costs_agree(lp_result, snapshot.optimization.total_cost):
                logger.error(f"LP cross-check failed: {lp_result} vs {snapshot.optimization.total_cost:,.2f}")
                return 1
            logger.info(f"LP cross-check passed: {lp_result}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
