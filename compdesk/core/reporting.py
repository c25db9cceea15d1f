"""Tabular reports of an analyzed network for the command line and workbook export."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pandas as pd

from compdesk.core.commission import CommissionBreakdown
from compdesk.core.dilution import DilutionAnalysis
from compdesk.core.formatting import money, rate_percent
from compdesk.core.ranks import generation_rate, level_rate
from compdesk.core.rollover import RollOverAnalysis

GENERATION_COLUMNS = ["Generation", "Rate %", "Distributors", "Business Points", "Commission", "% of Total"]
LEVEL_COLUMNS = ["Level", "Level Rate %", "Distributors", "Business Points", "Commission", "% of Total"]
ROLLOVER_COLUMNS = [
    "Frontal",
    "Name",
    "Rank",
    "Gross Points",
    "Max Allowed",
    "Roll-over",
    "Effective Points",
]
DILUTION_COLUMNS = ["Chain", "Plata+", "Rank", "Affected", "Shift", "Commission Lost"]


def build_generation_table(breakdown: CommissionBreakdown) -> pd.DataFrame:
    rows: List[dict] = []
    for generation, cell in breakdown.by_generation.items():
        rows.append(
            {
                "Generation": f"G{generation}",
                "Rate %": rate_percent(generation_rate(generation)),
                "Distributors": cell.count,
                "Business Points": cell.total_points,
                "Commission": money(cell.total_commission),
                "% of Total": float(cell.percentage_of_total),
            }
        )
    return pd.DataFrame(rows, columns=GENERATION_COLUMNS)


def build_level_table(breakdown: CommissionBreakdown) -> pd.DataFrame:
    rows: List[dict] = []
    for level, cell in breakdown.by_level.items():
        rows.append(
            {
                "Level": f"ML{level}",
                "Level Rate %": rate_percent(level_rate(level)),
                "Distributors": cell.count,
                "Business Points": cell.total_points,
                "Commission": money(cell.total_commission),
                "% of Total": float(cell.percentage_of_total),
            }
        )
    return pd.DataFrame(rows, columns=LEVEL_COLUMNS)


def build_rollover_table(analysis: RollOverAnalysis) -> pd.DataFrame:
    rows = [
        {
            "Frontal": leg.leg_id,
            "Name": leg.full_name,
            "Rank": leg.name_plan,
            "Gross Points": leg.gross_points,
            "Max Allowed": money(leg.max_allowed) if leg.max_allowed is not None else None,
            "Roll-over": money(leg.roll_over),
            "Effective Points": money(leg.effective_points),
        }
        for leg in analysis.legs
    ]
    return pd.DataFrame(rows, columns=ROLLOVER_COLUMNS)


def build_dilution_table(analysis: DilutionAnalysis) -> pd.DataFrame:
    rows: List[dict] = []
    for chain in analysis.chains:
        shifts = sorted({f"G{item.generation_before}→G{item.generation_after}" for item in chain.affected})
        rows.append(
            {
                "Chain": chain.chain_id,
                "Plata+": chain.plata_name,
                "Rank": chain.plata_plan,
                "Affected": chain.affected_count,
                "Shift": ", ".join(shifts),
                "Commission Lost": money(chain.total_commission_lost),
            }
        )
    return pd.DataFrame(rows, columns=DILUTION_COLUMNS)


def export_report(frames: Dict[str, pd.DataFrame], output_path: Path) -> Path:
    """Write one sheet per table to an Excel workbook."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for sheet_name, frame in frames.items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return output_path


def print_table(title: str, frame: pd.DataFrame) -> None:
    """Print a titled table to stdout in a human-friendly layout."""

    print(f"\n{title}")
    if frame.empty:
        print("(none)")
        return
    print(frame.to_string(index=False))


__all__ = [
    "build_generation_table",
    "build_level_table",
    "build_rollover_table",
    "build_dilution_table",
    "export_report",
    "print_table",
]
