import threading
import time
import unittest
from decimal import Decimal
from unittest.mock import Mock

from tropicana_be.error_codes import ErrorCodes
from tropicana_be.exceptions import InsufficientFundsException, InvalidBetAmountException, ValidationException
from tropicana_be.models import WalletState
from tropicana_be.services.autospin_scheduler import AutoSpinScheduler
from tropicana_be.tests.test_slot_engine import make_engine


class SlowCheckScheduler(AutoSpinScheduler):
    """Pauses while reading `running` and records every worker thread it starts."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.workers = []

    @property
    def running(self):
        time.sleep(0.05)
        return super().running

    def _run_loop(self, *args):
        self.workers.append(threading.current_thread())
        super()._run_loop(*args)


class TestAutoSpinScheduler(unittest.TestCase):

    def setUp(self):
        self.engine = make_engine()
        self.scheduler = AutoSpinScheduler(self.engine, delay_seconds=0, max_count=100)

    def tearDown(self):
        self.scheduler.stop(wait=True)

    def test_runs_requested_number_of_spins(self):
        self.scheduler.start(5, 10)
        self.scheduler.join(timeout=5)
        state = self.scheduler.snapshot()
        self.assertFalse(state.active)
        self.assertEqual(state.requested, 5)
        self.assertEqual(state.spins_completed, 5)
        self.assertEqual(state.remaining, 0)
        self.assertEqual(state.stop_reason, 'completed')
        self.assertEqual(self.engine.wallet.balance, Decimal(950))
        self.assertEqual(self.engine.controller.spins_settled, 5)

    def test_single_spin_run_completes_synchronously(self):
        state = self.scheduler.start(1, 25)
        self.assertFalse(state.active)
        self.assertEqual(state.stop_reason, 'completed')
        self.assertEqual(self.engine.wallet.balance, Decimal(975))

    def test_uses_current_bet_when_none_given(self):
        self.engine.wallet.bet = 5
        self.scheduler.start(2)
        self.scheduler.join(timeout=5)
        self.assertEqual(self.engine.wallet.balance, Decimal(990))

    def test_count_bounds(self):
        for count in (0, -1, 101, True, 2.5):
            with self.assertRaises(ValidationException):
                self.scheduler.start(count, 10)
        self.assertEqual(self.engine.controller.spins_settled, 0)

    def test_first_spin_rejection_propagates(self):
        self.engine.wallet = WalletState(balance=Decimal(5))
        with self.assertRaises(InsufficientFundsException):
            self.scheduler.start(10, 10)
        state = self.scheduler.snapshot()
        self.assertFalse(state.active)
        self.assertEqual(state.stop_reason, ErrorCodes.INSUFFICIENT_FUNDS)
        self.assertEqual(state.remaining, 0)

    def test_invalid_bet_propagates(self):
        with self.assertRaises(InvalidBetAmountException):
            self.scheduler.start(3, 4)
        self.assertFalse(self.scheduler.running)

    def test_run_ends_when_balance_runs_out(self):
        self.engine.wallet = WalletState(balance=Decimal(25))
        self.scheduler.start(5, 10)
        self.scheduler.join(timeout=5)
        state = self.scheduler.snapshot()
        self.assertEqual(state.spins_completed, 2)
        self.assertEqual(state.stop_reason, ErrorCodes.INSUFFICIENT_FUNDS)
        self.assertEqual(state.remaining, 0)
        self.assertEqual(self.engine.wallet.balance, Decimal(5))

    def test_stop_between_spins(self):
        scheduler = AutoSpinScheduler(self.engine, delay_seconds=30)
        scheduler.start(5, 10)
        self.assertTrue(scheduler.running)
        scheduler.stop(wait=True)
        state = scheduler.snapshot()
        self.assertFalse(state.active)
        self.assertEqual(state.stop_reason, 'stopped')
        self.assertEqual(state.spins_completed, 1)
        self.assertEqual(state.remaining, 0)
        self.assertEqual(self.engine.wallet.balance, Decimal(990))

    def test_start_replaces_running_loop(self):
        scheduler = AutoSpinScheduler(self.engine, delay_seconds=30)
        scheduler.start(5, 10)
        scheduler.start(3, 25)
        try:
            state = scheduler.snapshot()
            self.assertTrue(state.active)
            self.assertEqual(state.requested, 3)
            self.assertEqual(state.bet, 25)
            self.assertEqual(state.spins_completed, 1)
            self.assertEqual(self.engine.wallet.balance, Decimal(1000 - 10 - 25))
        finally:
            scheduler.stop(wait=True)

    def test_listeners_see_start_and_finish(self):
        listener = Mock()
        self.scheduler.add_listener(listener)
        self.scheduler.start(3, 10)
        self.scheduler.join(timeout=5)
        events = [c.args[0] for c in listener.call_args_list]
        self.assertEqual(events, ['started', 'finished'])
        final_state = listener.call_args_list[-1].args[1]
        self.assertEqual(final_state.stop_reason, 'completed')

    def test_stop_without_run_is_harmless(self):
        self.scheduler.stop(wait=True)
        self.assertFalse(self.scheduler.running)

    def test_simultaneous_starts_leave_a_single_worker(self):
        scheduler = SlowCheckScheduler(self.engine, delay_seconds=30)
        barrier = threading.Barrier(2)
        errors = []

        def start_run():
            barrier.wait()
            try:
                scheduler.start(10, 1)
            except Exception as e:
                errors.append(e)

        callers = [threading.Thread(target=start_run) for _ in range(2)]
        for caller in callers:
            caller.start()
        for caller in callers:
            caller.join(timeout=10)

        try:
            deadline = time.monotonic() + 5
            while len(scheduler.workers) < 2 and time.monotonic() < deadline:
                time.sleep(0.01)
            self.assertEqual(errors, [])
            self.assertEqual(len(scheduler.workers), 2)
            self.assertEqual(len([w for w in scheduler.workers if w.is_alive()]), 1)

            state = scheduler.snapshot()
            self.assertTrue(state.active)
            self.assertEqual(state.requested, 10)
            self.assertEqual(state.spins_completed, 1)
            self.assertEqual(state.remaining, 9)
            # One synchronous spin per start; the replaced run never spins again
            self.assertEqual(self.engine.controller.spins_settled, 2)
            self.assertEqual(self.engine.wallet.balance, Decimal(998))
        finally:
            scheduler.stop(wait=True)

    def test_reset_stops_run_and_restores_wallet(self):
        scheduler = AutoSpinScheduler(self.engine, delay_seconds=30)
        scheduler.start(5, 10)
        self.assertEqual(self.engine.wallet.balance, Decimal(990))

        scheduler.reset()

        state = scheduler.snapshot()
        self.assertFalse(state.active)
        self.assertEqual(state.stop_reason, 'stopped')
        self.assertEqual(self.engine.wallet.balance, Decimal(1000))
        self.assertEqual(self.engine.controller.spins_settled, 1)

    def test_reset_waits_for_a_settling_spin(self):
        scheduler = AutoSpinScheduler(self.engine, delay_seconds=0)
        spin_started = threading.Event()

        def slow_listener(event, outcome=None):
            if event == 'spin' and threading.current_thread().name.startswith('autospin-'):
                spin_started.set()
                time.sleep(0.1)

        self.engine.add_listener(slow_listener)
        scheduler.start(50, 1)
        self.assertTrue(spin_started.wait(timeout=5))

        scheduler.reset()
        settled = self.engine.controller.spins_settled

        time.sleep(0.2)
        self.assertFalse(scheduler.running)
        self.assertEqual(self.engine.controller.spins_settled, settled)
        self.assertEqual(self.engine.wallet.balance, Decimal(1000))
