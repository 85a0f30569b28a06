"""Deterministic grids and random sources shared by the engine tests."""
from unittest.mock import Mock

from tropicana_be.utils.symbol_table import DEFAULT_SYMBOL_TABLE

# Row-major layouts (3 rows x 5 reels); build_grid converts to grid[reel][row].
NO_WIN_ROWS = [
    ['cocktail', 'coconut', 'pineapple', 'hibiscus', 'beach'],
    ['sunglasses', 'surfer', 'cocktail', 'coconut', 'pineapple'],
    ['hibiscus', 'beach', 'sunglasses', 'surfer', 'cocktail'],
]

# Three cocktails on the top row pay on line 0 only: 200 * bet * 3 / 100
TOP_ROW_COCKTAIL_ROWS = [
    ['cocktail', 'cocktail', 'cocktail', 'hibiscus', 'beach'],
    NO_WIN_ROWS[1],
    NO_WIN_ROWS[2],
]

# Four scatters, no paying line (the V line holds three scatters, which pay nothing)
FOUR_SCATTER_ROWS = [
    ['diamond', 'coconut', 'hibiscus', 'beach', 'diamond'],
    ['surfer', 'diamond', 'sunglasses', 'coconut', 'pineapple'],
    ['pineapple', 'hibiscus', 'beach', 'diamond', 'surfer'],
]

THREE_SCATTER_ROWS = [
    ['diamond', 'coconut', 'hibiscus', 'beach', 'diamond'],
    ['surfer', 'diamond', 'sunglasses', 'coconut', 'pineapple'],
    ['pineapple', 'hibiscus', 'beach', 'cocktail', 'surfer'],
]


def build_grid(rows, symbol_table=DEFAULT_SYMBOL_TABLE):
    reels = len(rows[0])
    return [[symbol_table[rows[row][reel]] for row in range(len(rows))] for reel in range(reels)]


class FakeGridBuilder:
    """Returns the given grids in order, repeating the last one."""

    def __init__(self, *row_layouts):
        self.grids = [build_grid(rows) for rows in row_layouts]
        self.calls = 0

    def build(self):
        grid = self.grids[min(self.calls, len(self.grids) - 1)]
        self.calls += 1
        return grid


def fixed_rng(value):
    rng = Mock()
    rng.random.return_value = value
    return rng


def no_jackpot_rng():
    return fixed_rng(0.5)


def jackpot_rng():
    return fixed_rng(0.0)
