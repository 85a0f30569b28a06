"""
In-memory game state for the Club Tropicana slot.

Nothing here is persisted: a process owns exactly one wallet, one bonus state
and one jackpot pool, all held by the SlotEngine service.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

# --- Game rules ---
REELS = 5
ROWS = 3
ALLOWED_BETS = (1, 5, 10, 25, 50, 100)
DEFAULT_BET = 10
DEFAULT_BALANCE = Decimal(1000)

MIN_MATCH_COUNT = 3
SCATTER_TRIGGER_COUNT = 3
SCATTER_PAY_FACTOR = 5
FREE_SPINS_PER_TRIGGER = 10

JACKPOT_SEED = Decimal(50000)
JACKPOT_PROBABILITY = 0.001


class SymbolCategory(str, Enum):
    STANDARD = 'standard'
    WILD = 'wild'
    SCATTER = 'scatter'


@dataclass(frozen=True)
class Symbol:
    id: str
    name: str
    icon: str
    value: int
    weight: float
    category: SymbolCategory = SymbolCategory.STANDARD

    @property
    def is_wild(self) -> bool:
        return self.category is SymbolCategory.WILD

    @property
    def is_scatter(self) -> bool:
        return self.category is SymbolCategory.SCATTER

    def __repr__(self):
        return f"<Symbol {self.id} ({self.category.value})>"


@dataclass
class WalletState:
    balance: Decimal = DEFAULT_BALANCE
    bet: int = DEFAULT_BET
    last_win: Decimal = Decimal(0)
    total_wins: Decimal = Decimal(0)

    def reset(self):
        self.balance = DEFAULT_BALANCE
        self.bet = DEFAULT_BET
        self.last_win = Decimal(0)
        self.total_wins = Decimal(0)


@dataclass
class BonusState:
    active: bool = False
    free_spins_remaining: int = 0
    multiplier: int = 1

    def reset(self):
        self.active = False
        self.free_spins_remaining = 0
        self.multiplier = 1


@dataclass
class JackpotState:
    pool: Decimal = JACKPOT_SEED


@dataclass
class AutoSpinState:
    requested: int = 0
    remaining: int = 0
    active: bool = False
    bet: Optional[int] = None
    spins_completed: int = 0
    stop_reason: Optional[str] = None


@dataclass(frozen=True)
class LineWin:
    payline_index: int
    symbol_id: str
    count: int
    amount: Decimal


@dataclass
class SpinOutcome:
    """Everything the presentation layer needs to render one settled spin."""
    spin_number: int
    grid: List[List[Symbol]]
    bet: int
    was_free_spin: bool
    line_wins: List[LineWin] = field(default_factory=list)
    scatter_count: int = 0
    scatter_win: Decimal = Decimal(0)
    bonus_triggered: bool = False
    multiplier: int = 1
    base_win: Decimal = Decimal(0)     # lines + scatter, before multiplier
    win_amount: Decimal = Decimal(0)   # after multiplier, excludes jackpot
    jackpot_won: bool = False
    jackpot_amount: Decimal = Decimal(0)
    balance_after: Decimal = Decimal(0)
    free_spins_remaining: int = 0
    bonus_active: bool = False

    @property
    def winning_lines(self) -> List[int]:
        return [lw.payline_index for lw in self.line_wins]

    @property
    def total_credited(self) -> Decimal:
        return self.win_amount + self.jackpot_amount

    def grid_ids(self) -> List[List[str]]:
        return [[symbol.id for symbol in reel] for reel in self.grid]

    def __repr__(self):
        return (f"<SpinOutcome #{self.spin_number} bet={self.bet} win={self.win_amount} "
                f"lines={self.winning_lines} jackpot={self.jackpot_amount}>")
