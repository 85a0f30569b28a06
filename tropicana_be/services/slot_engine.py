"""
Slot Engine Service
Owns the single player's wallet, bonus state and jackpot pool and funnels
every mutation through the SpinController, one spin at a time.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from ..exceptions import ConcurrentSpinException
from ..models import ALLOWED_BETS, BonusState, JackpotState, SpinOutcome, WalletState
from ..utils.grid_generator import GridBuilder, SymbolGenerator, make_rng
from ..utils.payline_evaluator import PaylineEvaluator
from ..utils.spin_handler import SpinController, validate_bet_amount
from ..utils.symbol_table import SymbolTable, default_symbol_table, rebalanced_symbol_table
from .bonus_service import BonusStateMachine
from .jackpot_service import JackpotTracker

logger = logging.getLogger(__name__)


@dataclass
class EngineSnapshot:
    wallet: WalletState
    bonus: BonusState
    jackpot: JackpotState
    last_outcome: Optional[SpinOutcome]


class SlotEngine:
    """Manages the game state and serializes spins and resets"""

    def __init__(self, controller: SpinController, symbol_table: SymbolTable,
                 wallet: Optional[WalletState] = None, bonus: Optional[BonusState] = None,
                 jackpot: Optional[JackpotState] = None):
        self.controller = controller
        self.symbol_table = symbol_table
        self.wallet = wallet or WalletState()
        self.bonus = bonus or BonusState()
        self.jackpot = jackpot or JackpotState()
        self.last_outcome: Optional[SpinOutcome] = None

        self._in_flight = threading.Lock()   # one spin or reset at a time
        self._state_lock = threading.RLock() # consistent reads of the three states
        self._listeners: List[Callable[[str, Optional[SpinOutcome]], None]] = []

    @classmethod
    def from_config(cls, config) -> 'SlotEngine':
        """
        Builds an engine from a Flask config mapping (or any dict).

        Recognised keys: SLOT_RNG_SEED, SLOT_REBALANCED_WEIGHTS,
        SLOT_WILD_SUBSTITUTES.
        """
        rng = make_rng(config.get('SLOT_RNG_SEED'))
        symbol_table = rebalanced_symbol_table() if config.get('SLOT_REBALANCED_WEIGHTS') else default_symbol_table()
        controller = SpinController(
            grid_builder=GridBuilder(SymbolGenerator(symbol_table, rng)),
            evaluator=PaylineEvaluator(wild_substitutes=bool(config.get('SLOT_WILD_SUBSTITUTES'))),
            bonus_machine=BonusStateMachine(),
            jackpot_tracker=JackpotTracker(rng=rng),
            allowed_bets=ALLOWED_BETS,
        )
        logger.info(
            f"Slot engine created (rebalanced_weights={bool(config.get('SLOT_REBALANCED_WEIGHTS'))}, "
            f"wild_substitutes={bool(config.get('SLOT_WILD_SUBSTITUTES'))}, "
            f"seeded={config.get('SLOT_RNG_SEED') is not None})"
        )
        return cls(controller, symbol_table)

    # --- Observers ---

    def add_listener(self, callback: Callable[[str, Optional[SpinOutcome]], None]):
        """callback(event, outcome) runs after every settled spin ('spin') and reset ('reset')."""
        self._listeners.append(callback)

    def _notify(self, event: str, outcome: Optional[SpinOutcome] = None):
        for callback in list(self._listeners):
            try:
                callback(event, outcome)
            except Exception as e:
                # The spin is already settled; a broken observer must not undo it
                logger.error(f"Engine listener failed on '{event}': {e}", exc_info=True)

    def snapshot(self) -> EngineSnapshot:
        with self._state_lock:
            return EngineSnapshot(
                wallet=replace(self.wallet),
                bonus=replace(self.bonus),
                jackpot=replace(self.jackpot),
                last_outcome=self.last_outcome,
            )

    @property
    def is_spinning(self) -> bool:
        return self._in_flight.locked()

    # --- Operations ---

    def request_spin(self, bet_amount: Optional[int] = None, wait: bool = False) -> SpinOutcome:
        """
        Settles one spin.

        Args:
            bet_amount: Stake; defaults to the wallet's current bet.
            wait: Queue behind an in-flight spin instead of rejecting.

        Raises:
            InvalidBetAmountException, InsufficientFundsException,
            ConcurrentSpinException
        """
        if bet_amount is not None:
            validate_bet_amount(bet_amount, self.controller.allowed_bets)
        if not self._in_flight.acquire(blocking=wait):
            logger.warning("Spin rejected: another spin is still in flight.")
            raise ConcurrentSpinException()
        try:
            with self._state_lock:
                outcome = self.controller.spin(self.wallet, self.bonus, self.jackpot, bet_amount)
                self.last_outcome = outcome
        finally:
            self._in_flight.release()
        self._notify('spin', outcome)
        return outcome

    def request_reset(self):
        """Restores the wallet defaults and clears the bonus. The jackpot pool is untouched."""
        with self._in_flight:
            with self._state_lock:
                self.wallet.reset()
                self.bonus.reset()
                self.last_outcome = None
        logger.info("Game state reset to defaults.")
        self._notify('reset')
