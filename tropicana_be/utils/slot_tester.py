import logging
from collections import Counter
from decimal import Decimal

import numpy as np

from ..exceptions import InsufficientFundsException
from ..models import DEFAULT_BET, BonusState, JackpotState, WalletState
from ..services.bonus_service import BonusStateMachine
from ..services.jackpot_service import JackpotTracker
from .grid_generator import GridBuilder, SymbolGenerator, make_rng
from .payline_evaluator import PaylineEvaluator
from .spin_handler import SpinController
from .symbol_table import default_symbol_table, rebalanced_symbol_table

logger = logging.getLogger(__name__)


class SlotTester:
    """
    Monte Carlo simulation of the slot on an isolated controller.

    The simulated wallet, bonus state and jackpot pool are private to the
    tester, so a run never touches the live game.
    """

    def __init__(self, num_spins, bet_amount=DEFAULT_BET, seed=None,
                 rebalanced=False, wild_substitutes=False, initial_balance=None):
        self.num_spins = num_spins
        self.bet_amount = bet_amount
        self.seed = seed
        self.rebalanced = rebalanced
        self.wild_substitutes = wild_substitutes

        self.symbol_table = rebalanced_symbol_table() if rebalanced else default_symbol_table()
        rng = make_rng(seed)
        self.controller = SpinController(
            grid_builder=GridBuilder(SymbolGenerator(self.symbol_table, rng)),
            evaluator=PaylineEvaluator(wild_substitutes=wild_substitutes),
            bonus_machine=BonusStateMachine(),
            jackpot_tracker=JackpotTracker(rng=rng),
        )

        # Ample balance: the run measures the game, not bankroll survival
        if initial_balance is None:
            initial_balance = num_spins * bet_amount * 10
        self.wallet = WalletState(balance=Decimal(initial_balance), bet=bet_amount)
        self.bonus_state = BonusState()
        self.jackpot_state = JackpotState()

        # Statistics to be collected
        self.spins_played = 0
        self.total_bet = Decimal(0)
        self.total_win = Decimal(0)
        self.total_jackpot_win = Decimal(0)
        self.hit_count = 0
        self.bonus_triggers = 0
        self.free_spins_played = 0
        self.jackpot_hits = 0
        self.symbol_counts = Counter()
        self.wins_by_multiplier = {}
        self.rtp_over_time = []
        self.stopped_early = False
        self._wins_per_spin = []

    def run_simulation(self):
        logger.info(f"Starting simulation: {self.num_spins} spins at bet {self.bet_amount}")
        interval = self.num_spins // 20 or 1 # Aim for ~20 data points

        for i in range(self.num_spins):
            try:
                outcome = self.controller.spin(self.wallet, self.bonus_state, self.jackpot_state, self.bet_amount)
            except InsufficientFundsException:
                logger.warning(f"Simulated wallet ran dry after {i} spins; stopping.")
                self.stopped_early = True
                break
            self._collect_spin_statistics(outcome)

            if (i + 1) % interval == 0 or (i + 1) == self.num_spins:
                self.rtp_over_time.append({'spin_count': i + 1, 'rtp': self._rtp(self.total_win)})

        logger.info(f"Simulation finished after {self.spins_played} spins.")
        return self.report()

    def _collect_spin_statistics(self, outcome):
        self.spins_played += 1
        if not outcome.was_free_spin:
            self.total_bet += outcome.bet
        else:
            self.free_spins_played += 1

        credited = outcome.total_credited
        self.total_win += credited
        self._wins_per_spin.append(float(credited))

        if outcome.win_amount > 0:
            self.hit_count += 1
        if outcome.bonus_triggered:
            self.bonus_triggers += 1
        if outcome.jackpot_won:
            self.jackpot_hits += 1
            self.total_jackpot_win += outcome.jackpot_amount

        for reel in outcome.grid:
            self.symbol_counts.update(symbol.id for symbol in reel)

        multiplier_category = round(float(outcome.win_amount) / self.bet_amount)
        self.wins_by_multiplier[multiplier_category] = self.wins_by_multiplier.get(multiplier_category, 0) + 1

    def _rtp(self, win):
        return float(win / self.total_bet * 100) if self.total_bet > 0 else 0.0

    def report(self):
        """Derived statistics of the run as a plain dict."""
        spins = self.spins_played
        cells = sum(self.symbol_counts.values())
        if self._wins_per_spin and self.bet_amount > 0:
            volatility_index = float(np.std(self._wins_per_spin)) / self.bet_amount
        else:
            volatility_index = 0.0

        return {
            'spins': spins,
            'bet_amount': self.bet_amount,
            'seed': self.seed,
            'rebalanced_weights': self.rebalanced,
            'wild_substitutes': self.wild_substitutes,
            'stopped_early': self.stopped_early,
            'total_bet': float(self.total_bet),
            'total_win': float(self.total_win),
            'total_jackpot_win': float(self.total_jackpot_win),
            'rtp': self._rtp(self.total_win),
            'rtp_excluding_jackpot': self._rtp(self.total_win - self.total_jackpot_win),
            'hit_frequency': (self.hit_count / spins) * 100 if spins else 0.0,
            'hit_count': self.hit_count,
            'bonus_triggers': self.bonus_triggers,
            'free_spins_played': self.free_spins_played,
            'jackpot_hits': self.jackpot_hits,
            'symbol_frequencies': {
                symbol.id: (self.symbol_counts[symbol.id] / cells if cells else 0.0)
                for symbol in self.symbol_table
            },
            'wins_by_multiplier': dict(sorted(self.wins_by_multiplier.items())),
            'rtp_over_time': list(self.rtp_over_time),
            'volatility_index': volatility_index,
            'final_balance': float(self.wallet.balance),
        }

    def format_summary(self, report=None):
        report = report or self.report()
        lines = [
            "--- Simulation Summary ---",
            f"Total Spins Simulated: {report['spins']}",
            f"Bet Amount Per Spin: {report['bet_amount']}",
            f"Total Wagered: {report['total_bet']:.2f}",
            f"Total Won: {report['total_win']:.2f}",
            "",
            "--- Detailed Metrics ---",
            f"Overall RTP: {report['rtp']:.2f}% (excluding jackpot: {report['rtp_excluding_jackpot']:.2f}%)",
            f"Hit Frequency: {report['hit_frequency']:.2f}% ({report['hit_count']} wins out of {report['spins']} spins)",
            f"Bonus Triggers: {report['bonus_triggers']} ({report['free_spins_played']} free spins played)",
            f"Jackpot Hits: {report['jackpot_hits']} (paid {report['total_jackpot_win']:.2f})",
            f"Volatility Index (Win StdDev / Bet): {report['volatility_index']:.2f}",
            "",
            "Symbol Frequencies:",
        ]
        for symbol_id, frequency in report['symbol_frequencies'].items():
            lines.append(f"  {symbol_id}: {frequency * 100:.2f}%")
        lines.append("")
        lines.append("Win Distribution (by Bet Multiplier):")
        spins = report['spins'] or 1
        for mult, count in report['wins_by_multiplier'].items():
            lines.append(f"  {mult}x Bet: {count} times ({count / spins * 100:.2f}%)")
        if report['stopped_early']:
            lines.append("")
            lines.append("WARNING: simulation stopped early (insufficient simulated balance).")
        return "\n".join(lines)
