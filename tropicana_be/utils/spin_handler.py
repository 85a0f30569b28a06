import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from ..exceptions import InsufficientFundsException, InvalidBetAmountException
from ..models import ALLOWED_BETS, SCATTER_PAY_FACTOR, BonusState, JackpotState, SpinOutcome, WalletState
from ..services.bonus_service import BonusStateMachine
from ..services.jackpot_service import JackpotTracker
from .grid_generator import GridBuilder
from .payline_evaluator import PaylineEvaluator

logger = logging.getLogger(__name__)


# --- Helper Functions for SpinController.spin ---

def validate_bet_amount(bet_amount, allowed_bets=ALLOWED_BETS):
    """
    Checks that a bet is one of the enumerated stakes.

    Args:
        bet_amount: The requested stake.
        allowed_bets (tuple[int]): The stake menu.

    Raises:
        InvalidBetAmountException: If the stake is not on the menu.
    """
    if isinstance(bet_amount, bool) or not isinstance(bet_amount, int) or bet_amount not in allowed_bets:
        raise InvalidBetAmountException(
            f"Invalid bet amount. Allowed bets are: {list(allowed_bets)}.",
            details={'bet_amount': bet_amount, 'allowed_bets': list(allowed_bets)}
        )


def _validate_bet_and_balance(wallet, bonus_state, bet_amount):
    """
    Rejects a spin the player cannot pay for.

    Args:
        wallet (WalletState): Current wallet.
        bonus_state (BonusState): Current bonus state.
        bet_amount (int): Stake for this spin.

    Raises:
        InsufficientFundsException: If balance < bet and no free spin is left.
    """
    if wallet.balance < bet_amount and bonus_state.free_spins_remaining == 0:
        raise InsufficientFundsException(
            "Insufficient balance for this bet.",
            details={'balance': str(wallet.balance), 'bet_amount': bet_amount}
        )


def _process_bet_deduction_and_type(wallet, bonus_state, bonus_machine, bet_amount):
    """
    Consumes a free spin if one is available, otherwise debits the stake.

    Args:
        wallet (WalletState): Working copy of the wallet.
        bonus_state (BonusState): Working copy of the bonus state.
        bonus_machine (BonusStateMachine): Bonus transitions.
        bet_amount (int): Stake for this spin.

    Returns:
        tuple: (is_free_spin, current_spin_multiplier)
    """
    current_spin_multiplier = bonus_state.multiplier
    if bonus_machine.consume_free_spin(bonus_state):
        return True, current_spin_multiplier
    wallet.balance -= bet_amount
    return False, current_spin_multiplier


def _check_and_apply_bonus_trigger(bonus_state, bonus_machine, scatter_count, bet_amount):
    """
    Applies the scatter transition and computes the scatter bonus win.

    The trigger is boolean (>= 3 scatters) but the scatter win scales with
    the exact count: bet * scatter_count * SCATTER_PAY_FACTOR.

    Returns:
        tuple: (bonus_triggered, scatter_win)
    """
    if not bonus_machine.apply_scatter_trigger(bonus_state, scatter_count):
        return False, Decimal(0)
    return True, Decimal(bet_amount * scatter_count * SCATTER_PAY_FACTOR)


def _apply_bonus_spin_multiplier(base_win, current_spin_multiplier):
    if current_spin_multiplier > 1:
        return base_win * current_spin_multiplier
    return base_win


def _commit(target, working):
    for name, value in vars(working).items():
        setattr(target, name, value)


# --- Main Spin Handler ---

class SpinController:
    """
    Resolves and settles one spin against a wallet, bonus state and jackpot.

    All work happens on copies of the three state objects; they are written
    back only once the whole spin has settled, so a failure part way through
    leaves the caller's state untouched.
    """

    def __init__(self, grid_builder: GridBuilder, evaluator: PaylineEvaluator,
                 bonus_machine: Optional[BonusStateMachine] = None,
                 jackpot_tracker: Optional[JackpotTracker] = None,
                 allowed_bets=ALLOWED_BETS):
        self.grid_builder = grid_builder
        self.evaluator = evaluator
        self.bonus_machine = bonus_machine or BonusStateMachine()
        self.jackpot_tracker = jackpot_tracker or JackpotTracker()
        self.allowed_bets = tuple(allowed_bets)
        self.spins_settled = 0

    def spin(self, wallet: WalletState, bonus_state: BonusState, jackpot_state: JackpotState,
             bet_amount: Optional[int] = None) -> SpinOutcome:
        """
        Orchestrates a full spin.

        Args:
            wallet (WalletState): Player wallet; wallet.bet is used when bet_amount is None.
            bonus_state (BonusState): Free-spin bonus state.
            jackpot_state (JackpotState): Jackpot pool.
            bet_amount (int | None): Stake for this spin. Becomes wallet.bet on success.

        Returns:
            SpinOutcome: The settled result.

        Raises:
            InvalidBetAmountException: Stake not on the menu.
            InsufficientFundsException: Balance below stake and no free spin left.
        """
        bet = wallet.bet if bet_amount is None else bet_amount
        validate_bet_amount(bet, self.allowed_bets)
        _validate_bet_and_balance(wallet, bonus_state, bet)

        w = replace(wallet, bet=bet)
        b = replace(bonus_state)
        j = replace(jackpot_state)

        # 1. Free spin or debit
        is_free_spin, current_spin_multiplier = _process_bet_deduction_and_type(w, b, self.bonus_machine, bet)

        # 2-3. Build and evaluate
        grid = self.grid_builder.build()
        evaluation = self.evaluator.evaluate(grid, bet)

        # 4. Scatter bonus
        bonus_triggered, scatter_win = _check_and_apply_bonus_trigger(
            b, self.bonus_machine, evaluation.scatter_count, bet
        )

        # 5-6. Aggregate and settle
        base_win = evaluation.line_total + scatter_win
        win_amount = _apply_bonus_spin_multiplier(base_win, current_spin_multiplier)
        w.balance += win_amount
        w.last_win = win_amount
        w.total_wins += win_amount

        # 7. Jackpot, rolled on every settled spin
        jackpot_won, jackpot_amount = self.jackpot_tracker.maybe_trigger(j)
        if jackpot_won:
            w.balance += jackpot_amount

        # 8. Bonus exit
        self.bonus_machine.check_exit(b)

        _commit(wallet, w)
        _commit(bonus_state, b)
        _commit(jackpot_state, j)
        self.spins_settled += 1

        outcome = SpinOutcome(
            spin_number=self.spins_settled,
            grid=grid,
            bet=bet,
            was_free_spin=is_free_spin,
            line_wins=evaluation.line_wins,
            scatter_count=evaluation.scatter_count,
            scatter_win=scatter_win,
            bonus_triggered=bonus_triggered,
            multiplier=current_spin_multiplier,
            base_win=base_win,
            win_amount=win_amount,
            jackpot_won=jackpot_won,
            jackpot_amount=jackpot_amount,
            balance_after=wallet.balance,
            free_spins_remaining=bonus_state.free_spins_remaining,
            bonus_active=bonus_state.active,
        )
        logger.debug(f"Spin settled: {outcome!r}")
        return outcome
