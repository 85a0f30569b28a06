"""
Static symbol registry for the Club Tropicana slot.

The table order matters: the generator scans symbols in this order when
accumulating weights, and the seven standard symbols come first.
"""
from decimal import Decimal
from itertools import accumulate
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import Symbol, SymbolCategory

WILD_SYMBOL_ID = 'star'
SCATTER_SYMBOL_ID = 'diamond'

STANDARD_SYMBOLS = (
    Symbol('cocktail', 'Cocktail', '\U0001F379', 200, 0.05),
    Symbol('coconut', 'Coconut', '\U0001F965', 150, 0.08),
    Symbol('pineapple', 'Pineapple', '\U0001F34D', 100, 0.12),
    Symbol('hibiscus', 'Hibiscus', '\U0001F33A', 80, 0.15),
    Symbol('beach', 'Beach', '\U0001F3D6️', 60, 0.18),
    Symbol('sunglasses', 'Sunglasses', '\U0001F576️', 40, 0.22),
    Symbol('surfer', 'Surfer', '\U0001F3C4', 30, 0.20),
)

SPECIAL_SYMBOLS = (
    Symbol(WILD_SYMBOL_ID, 'Wild', '⭐', 0, 0.03, SymbolCategory.WILD),
    Symbol(SCATTER_SYMBOL_ID, 'Scatter', '\U0001F48E', 0, 0.02, SymbolCategory.SCATTER),
)


class SymbolTable:
    """Immutable, ordered collection of symbols with cumulative weights."""

    def __init__(self, symbols: Iterable[Symbol]):
        self._symbols: Tuple[Symbol, ...] = tuple(symbols)
        if not self._symbols:
            raise ValueError("A symbol table needs at least one symbol.")
        self._by_id: Dict[str, Symbol] = {}
        for symbol in self._symbols:
            if symbol.id in self._by_id:
                raise ValueError(f"Duplicate symbol id '{symbol.id}' in symbol table.")
            if not 0 <= symbol.weight <= 1:
                raise ValueError(f"Weight for symbol '{symbol.id}' must be in [0, 1], got {symbol.weight}.")
            self._by_id[symbol.id] = symbol

        standards = self.standard_symbols
        if not standards:
            raise ValueError("A symbol table needs at least one standard symbol.")
        self._fallback = standards[-1]

        # Decimal keeps 0.05 + ... + 0.20 at exactly 1.00
        weights = (Decimal(str(symbol.weight)) for symbol in self._symbols)
        self._cumulative: Tuple[Tuple[Symbol, Decimal], ...] = tuple(
            zip(self._symbols, accumulate(weights))
        )

    def __iter__(self):
        return iter(self._symbols)

    def __len__(self):
        return len(self._symbols)

    def __contains__(self, symbol) -> bool:
        return isinstance(symbol, Symbol) and self._by_id.get(symbol.id) == symbol

    def __repr__(self):
        return f"<SymbolTable {[s.id for s in self._symbols]}>"

    def get(self, symbol_id: str) -> Optional[Symbol]:
        return self._by_id.get(symbol_id)

    def __getitem__(self, symbol_id: str) -> Symbol:
        return self._by_id[symbol_id]

    @property
    def symbols(self) -> Tuple[Symbol, ...]:
        return self._symbols

    @property
    def standard_symbols(self) -> List[Symbol]:
        return [s for s in self._symbols if s.category is SymbolCategory.STANDARD]

    @property
    def wild(self) -> Optional[Symbol]:
        return next((s for s in self._symbols if s.is_wild), None)

    @property
    def scatter(self) -> Optional[Symbol]:
        return next((s for s in self._symbols if s.is_scatter), None)

    @property
    def fallback(self) -> Symbol:
        """Returned when a draw runs past the last cumulative threshold."""
        return self._fallback

    @property
    def cumulative_weights(self) -> Tuple[Tuple[Symbol, Decimal], ...]:
        return self._cumulative

    @property
    def standard_weight_total(self) -> Decimal:
        return sum((Decimal(str(s.weight)) for s in self.standard_symbols), Decimal(0))


def default_symbol_table() -> SymbolTable:
    """
    The shipped table. Standard weights sum to exactly 1.0, so the cumulative
    scan always stops on a standard symbol and Wild/Scatter are never drawn.
    """
    return SymbolTable(STANDARD_SYMBOLS + SPECIAL_SYMBOLS)


def rebalanced_symbol_table() -> SymbolTable:
    """
    Standard weights scaled down so Wild and Scatter keep their displayed
    weights (0.03 and 0.02) and can actually land on the reels.
    """
    special_total = sum(Decimal(str(s.weight)) for s in SPECIAL_SYMBOLS)
    scale = Decimal(1) - special_total
    scaled = tuple(
        Symbol(s.id, s.name, s.icon, s.value, float(Decimal(str(s.weight)) * scale), s.category)
        for s in STANDARD_SYMBOLS
    )
    return SymbolTable(scaled + SPECIAL_SYMBOLS)


DEFAULT_SYMBOL_TABLE = default_symbol_table()
