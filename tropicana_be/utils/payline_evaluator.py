from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ..models import MIN_MATCH_COUNT, LineWin, Symbol

# (reel_index, row_index) per reel, in payline index order
PAYLINES: Tuple[Tuple[Tuple[int, int], ...], ...] = (
    ((0, 0), (1, 0), (2, 0), (3, 0), (4, 0)),  # top row
    ((0, 1), (1, 1), (2, 1), (3, 1), (4, 1)),  # middle row
    ((0, 2), (1, 2), (2, 2), (3, 2), (4, 2)),  # bottom row
    ((0, 0), (1, 1), (2, 2), (3, 1), (4, 0)),  # V
    ((0, 2), (1, 1), (2, 0), (3, 1), (4, 2)),  # inverted V
)


@dataclass
class EvaluationResult:
    line_wins: List[LineWin] = field(default_factory=list)
    scatter_count: int = 0

    @property
    def line_total(self) -> Decimal:
        return sum((lw.amount for lw in self.line_wins), Decimal(0))

    @property
    def winning_lines(self) -> List[int]:
        return [lw.payline_index for lw in self.line_wins]


def line_symbols(grid: Sequence[Sequence[Symbol]], payline) -> List[Symbol]:
    return [grid[reel][row] for reel, row in payline]


def calculate_line_win(symbols: Sequence[Symbol], bet: int, wild_substitutes: bool = False) -> Optional[Tuple[Symbol, int, Decimal]]:
    """
    Returns (symbol, count, amount) for the first symbol on the line that
    reaches MIN_MATCH_COUNT, or None.

    Wild symbols never count toward a match unless wild_substitutes is set,
    in which case the line's wilds are added to every standard symbol's count.
    Distinct symbols are checked in order of first appearance on the line and
    the first match decides the line, even if it pays nothing (Scatter).
    """
    counts = Counter(s for s in symbols if not s.is_wild)
    wild_count = len(symbols) - sum(counts.values()) if wild_substitutes else 0

    for symbol, count in counts.items():
        effective = count + wild_count if not symbol.is_scatter else count
        if effective >= MIN_MATCH_COUNT:
            amount = Decimal(symbol.value) * bet * effective / 100
            return symbol, effective, amount
    return None


def count_scatters(grid: Sequence[Sequence[Symbol]]) -> int:
    return sum(1 for reel in grid for symbol in reel if symbol.is_scatter)


class PaylineEvaluator:
    def __init__(self, paylines=PAYLINES, wild_substitutes: bool = False):
        self.paylines = paylines
        self.wild_substitutes = wild_substitutes

    def evaluate(self, grid: Sequence[Sequence[Symbol]], bet: int) -> EvaluationResult:
        result = EvaluationResult(scatter_count=count_scatters(grid))
        for index, payline in enumerate(self.paylines):
            match = calculate_line_win(line_symbols(grid, payline), bet, self.wild_substitutes)
            if match is None:
                continue
            symbol, count, amount = match
            if amount > 0:
                result.line_wins.append(LineWin(index, symbol.id, count, amount))
        return result
