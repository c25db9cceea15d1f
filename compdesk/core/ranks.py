"""Rank ladder and the fixed commission and roll-over tables."""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Optional, Tuple


class Rank(IntEnum):
    DISTRIBUIDOR = 0
    BRONCE = 1
    PLATA = 2
    ORO = 3
    PLATINO = 4
    DIAMANTE = 5
    DOBLE_DIAMANTE = 6
    TRIPLE_DIAMANTE = 7
    SIRIUS = 8

    @property
    def display_name(self) -> str:
        return RANK_DISPLAY_NAMES[self]

    @property
    def is_plata_plus(self) -> bool:
        return self >= Rank.PLATA


RANK_DISPLAY_NAMES = {
    Rank.DISTRIBUIDOR: "Distribuidor",
    Rank.BRONCE: "Bronce",
    Rank.PLATA: "Plata",
    Rank.ORO: "Oro",
    Rank.PLATINO: "Platino",
    Rank.DIAMANTE: "Diamante",
    Rank.DOBLE_DIAMANTE: "Doble Diamante",
    Rank.TRIPLE_DIAMANTE: "Triple Diamante",
    Rank.SIRIUS: "Sirius",
}

_RANK_ALIASES = {
    "azul": Rank.SIRIUS,
    "sirius/azul": Rank.SIRIUS,
}

MAX_GENERATION = 4
MAX_LEVEL = 3

GENERATION_RATES = {
    0: Decimal("0.04"),
    1: Decimal("0.05"),
    2: Decimal("0.05"),
    3: Decimal("0.02"),
    4: Decimal("0.02"),
}

LEVEL_RATES = {
    1: Decimal("0.15"),
    2: Decimal("0.05"),
    3: Decimal("0.05"),
}

# Generations paying the higher band; the health score is their commission share.
NEAR_GENERATIONS = (0, 1, 2)
FAR_GENERATIONS = (3, 4)


@dataclass(frozen=True)
class RollOverRequirement:
    v_grupal_required: int
    rollover_percent: Decimal  # e.g. Decimal("50") for 50%

    @property
    def max_per_leg(self) -> Decimal:
        return Decimal(self.v_grupal_required) * self.rollover_percent / Decimal("100")


# Ranks absent from this table have no group volume requirement: legs are uncapped.
ROLLOVER_REQUIREMENTS = {
    Rank.PLATA: RollOverRequirement(2500, Decimal("60")),
    Rank.ORO: RollOverRequirement(5000, Decimal("60")),
    Rank.PLATINO: RollOverRequirement(10000, Decimal("50")),
    Rank.DIAMANTE: RollOverRequirement(20000, Decimal("50")),
    Rank.DOBLE_DIAMANTE: RollOverRequirement(40000, Decimal("40")),
    Rank.TRIPLE_DIAMANTE: RollOverRequirement(80000, Decimal("40")),
    Rank.SIRIUS: RollOverRequirement(150000, Decimal("35")),
}


def _normalize_key(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.strip().lower().replace("_", " ").split())


_RANK_LOOKUP = {_normalize_key(name): rank for rank, name in RANK_DISPLAY_NAMES.items()}
_RANK_LOOKUP.update({_normalize_key(rank.name): rank for rank in Rank})
_RANK_LOOKUP.update({_normalize_key(alias): rank for alias, rank in _RANK_ALIASES.items()})


def parse_rank(value) -> Tuple[Rank, bool]:
    """Resolve a plan name to a Rank.

    Returns ``(rank, recognized)``. Missing or unknown names resolve to
    Distribuidor with ``recognized`` False so callers can flag the row.
    """

    if isinstance(value, Rank):
        return value, True
    if value is None:
        return Rank.DISTRIBUIDOR, False
    key = _normalize_key(str(value))
    if not key:
        return Rank.DISTRIBUIDOR, False
    rank = _RANK_LOOKUP.get(key)
    if rank is None:
        return Rank.DISTRIBUIDOR, False
    return rank, True


def generation_rate(generation: int) -> Decimal:
    return GENERATION_RATES[min(max(generation, 0), MAX_GENERATION)]


def level_rate(level: int) -> Decimal:
    return LEVEL_RATES[min(max(level, 1), MAX_LEVEL)]


def rollover_requirement(rank: Rank) -> Optional[RollOverRequirement]:
    return ROLLOVER_REQUIREMENTS.get(rank)


__all__ = [
    "Rank",
    "RANK_DISPLAY_NAMES",
    "GENERATION_RATES",
    "LEVEL_RATES",
    "MAX_GENERATION",
    "MAX_LEVEL",
    "NEAR_GENERATIONS",
    "FAR_GENERATIONS",
    "RollOverRequirement",
    "ROLLOVER_REQUIREMENTS",
    "parse_rank",
    "generation_rate",
    "level_rate",
    "rollover_requirement",
]
