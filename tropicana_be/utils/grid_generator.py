import random
import secrets
from typing import List, Optional

from ..models import REELS, ROWS, Symbol
from .symbol_table import DEFAULT_SYMBOL_TABLE, SymbolTable


def make_rng(seed: Optional[int] = None) -> random.Random:
    """
    Returns the random source used for symbol and jackpot draws.
    A seeded Mersenne Twister when a seed is given (simulations, tests),
    otherwise the OS-backed secrets.SystemRandom.
    """
    if seed is None:
        return secrets.SystemRandom()
    return random.Random(seed)


class SymbolGenerator:
    """Draws single symbols by cumulative-weight sampling over a SymbolTable."""

    def __init__(self, symbol_table: SymbolTable = DEFAULT_SYMBOL_TABLE, rng: Optional[random.Random] = None):
        self.symbol_table = symbol_table
        self.rng = rng if rng is not None else make_rng()

    def draw(self) -> Symbol:
        r = self.rng.random()
        for symbol, threshold in self.symbol_table.cumulative_weights:
            if r <= threshold:
                return symbol
        # Only reachable when the table's weights sum below 1.0
        return self.symbol_table.fallback


class GridBuilder:
    """Builds a REELS x ROWS grid, one independent draw per cell."""

    def __init__(self, generator: SymbolGenerator, reels: int = REELS, rows: int = ROWS):
        if reels <= 0 or rows <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {reels}x{rows}.")
        self.generator = generator
        self.reels = reels
        self.rows = rows

    def build(self) -> List[List[Symbol]]:
        return [[self.generator.draw() for _ in range(self.rows)] for _ in range(self.reels)]
