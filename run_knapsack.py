"""
Command-line runner: load an item catalog, anneal, print the knapsack.

    python run_knapsack.py item_set_small.json --max-weight 5 --seed 7

Defaults come from config.get_annealing_config() (KNAPSACK_* variables / .env).
"""

import sys
import time
import logging
import argparse
from typing import List, Optional, Sequence

from config import get_annealing_config, optional_int
from knapsack_data_generator import CatalogFormatError, Item, load_items_json
from simulated_annealing import InfeasibleConfigurationError, anneal


logger = logging.getLogger("knapsack.cli")


def show_knapsack(solution: Sequence[int], items: Sequence[Item]) -> None:
    """Print the items flagged in `solution`."""
    print("List of items included in knapsack:")
    count = 0
    for included, item in zip(solution, items):
        if included:
            count += 1
            print(f" - {item.name} (Weight: {item.weight:f}, Value: {item.value})")
    print("- " * 31)
    print(f"Total items included: {count}")


def build_parser() -> argparse.ArgumentParser:
    cfg = get_annealing_config()
    parser = argparse.ArgumentParser(description="0/1 knapsack by simulated annealing")
    parser.add_argument("items_file", nargs="?", default=cfg.items_file,
                        help="JSON catalog: [{name, weight, value}, ...]")
    parser.add_argument("--max-weight", type=float, default=cfg.max_weight)
    parser.add_argument("--max-temp", type=float, default=cfg.max_temp)
    parser.add_argument("--min-temp", type=float, default=cfg.min_temp)
    parser.add_argument("--cooling-rate", type=float, default=cfg.cooling_rate)
    parser.add_argument("--seed", type=int, default=cfg.seed)
    parser.add_argument("--max-init-attempts", type=optional_int, default=cfg.max_init_attempts,
                        help="initialization draws before giving up; \"none\" for unbounded")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    try:
        parser = build_parser()
    except ValueError as exc:
        print(f"Error in configuration: {exc}", file=sys.stderr)
        return 1
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        items = load_items_json(args.items_file)
    except CatalogFormatError as exc:
        print(f"Error while reading the file: {exc}", file=sys.stderr)
        return 1

    if not 0 < args.cooling_rate < 1:
        logger.warning("cooling rate %s outside (0, 1): the search may never stop", args.cooling_rate)
    if args.min_temp >= args.max_temp:
        logger.warning("min temp %s >= max temp %s: no search iterations", args.min_temp, args.max_temp)

    start = time.perf_counter()
    try:
        result = anneal(
            items,
            args.max_weight,
            args.max_temp,
            args.min_temp,
            args.cooling_rate,
            seed=args.seed,
            max_init_attempts=args.max_init_attempts,
        )
    except InfeasibleConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Best solution: {result.best_solution}")
    show_knapsack(result.best_solution, items)
    print(f"Total value: {result.best_value}")
    print(f"Execution time: {time.perf_counter() - start:.6f}s")
    print("-" * 61)
    logger.info("iterations=%d rejected=%d", result.iterations, result.rejected_candidates)
    return 0


if __name__ == "__main__":
    sys.exit(main())
