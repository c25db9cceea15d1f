"""Compensation analysis CLI.

Reads a network snapshot from CSV or Excel, classifies the downline of one
distributor by generation and level, and prints commission, roll-over and
dilution tables. Optionally writes the tables to an Excel workbook.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from compdesk.core.classification import classify_generations, classify_levels
from compdesk.core.commission import aggregate
from compdesk.core.dilution import analyze_dilution
from compdesk.core.formatting import format_money
from compdesk.core.network import build_tree
from compdesk.core.ranks import parse_rank
from compdesk.core.reporting import (
    build_dilution_table,
    build_generation_table,
    build_level_table,
    build_rollover_table,
    export_report,
    print_table,
)
from compdesk.core.rollover import analyze_rollover
from compdesk.core.simulator import NewFrontals, simulate
from compdesk.errors import CompensationError
from compdesk.importers.network_importer import load_network_frame, parse_network_rows

logger = logging.getLogger("compensation")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description="Analyze the compensation of one distributor's network.")
    parser.add_argument("--input", required=True, help="Path to the network snapshot CSV or Excel file.")
    parser.add_argument("--root", required=True, type=int, help="Distributor id to analyze.")
    parser.add_argument("--currency", default="MXN", help="Currency code for printed amounts (default: MXN).")
    parser.add_argument(
        "--rank",
        default=None,
        help="Override the root's rank for roll-over (e.g. Platino).",
    )
    parser.add_argument(
        "--simulate-frontals",
        metavar="COUNT:POINTS",
        default=None,
        help="Also simulate adding COUNT new frontals with POINTS each.",
    )
    parser.add_argument("--out", default=None, help="Optional path of an Excel workbook to write the tables to.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics while loading.")
    return parser.parse_args(argv)


def _parse_frontals(value: str) -> NewFrontals:
    try:
        count_text, points_text = value.split(":", 1)
        return NewFrontals(count=int(count_text), points_per_frontal=int(points_text))
    except ValueError as exc:
        raise SystemExit("--simulate-frontals must look like COUNT:POINTS, e.g. 3:1000") from exc


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point."""

    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    rows, errors = parse_network_rows(load_network_frame(input_path))
    for error in errors:
        print(f"[WARNING] {error}")

    root_rank = None
    if args.rank:
        root_rank, recognized = parse_rank(args.rank)
        if not recognized:
            raise SystemExit(f"Unknown rank {args.rank!r}")

    try:
        tree = build_tree(rows, args.root)
        generations = classify_generations(tree)
        levels = classify_levels(tree)
        breakdown = aggregate(tree, generations, levels)
        rollover = analyze_rollover(tree, root_rank)
        dilution = analyze_dilution(tree, generations, levels, breakdown)
    except CompensationError as exc:
        raise SystemExit(exc.message) from exc

    for message in tree.diagnostics:
        print(f"[WARNING] {message}")

    frames = {
        "Generations": build_generation_table(breakdown),
        "Levels": build_level_table(breakdown),
        "RollOver": build_rollover_table(rollover),
        "Dilution": build_dilution_table(dilution),
    }

    print(
        f"{tree.root.full_name} ({tree.root.name_plan}): {tree.downline_size} distributors, "
        f"total commission {format_money(breakdown.total, args.currency)}"
    )
    print_table("Commission by generation", frames["Generations"])
    print_table("Commission by level", frames["Levels"])
    print_table("Roll-over by frontal", frames["RollOver"])
    print_table("Dilution chains", frames["Dilution"])
    print(f"\nHealth score: {dilution.health_score} ({dilution.health_band})")

    if args.simulate_frontals:
        try:
            result = simulate(tree, root_rank, _parse_frontals(args.simulate_frontals), baseline=breakdown)
        except CompensationError as exc:
            raise SystemExit(exc.message) from exc
        print(f"\n{result.scenario.description}: {result.title}")

    if args.out:
        path = export_report(frames, Path(args.out))
        print(f"\nReport written to {path}")


if __name__ == "__main__":
    main()
