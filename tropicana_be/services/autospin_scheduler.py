"""
Autospin Scheduler Service
Replays spins on the SlotEngine in a background thread, one settled spin at a time
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional

from ..error_codes import ErrorCodes
from ..exceptions import AppException, ValidationException
from ..models import AutoSpinState
from .slot_engine import SlotEngine

logger = logging.getLogger(__name__)


class AutoSpinScheduler:
    """Runs a requested number of spins back to back, stoppable between spins"""

    def __init__(self, engine: SlotEngine, delay_seconds: float = 1.0, max_count: int = 100):
        self.engine = engine
        self.delay_seconds = delay_seconds
        self.max_count = max_count
        self.state = AutoSpinState()

        # _control_lock serializes start() and reset() against each other;
        # _run_lock orders "check stop flag, then spin" against stop();
        # _state_lock only guards reads and writes of self.state.
        self._control_lock = threading.Lock()
        self._run_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._run_id = 0
        self._listeners: List[Callable[[str, AutoSpinState], None]] = []

    def add_listener(self, callback: Callable[[str, AutoSpinState], None]):
        """callback(event, state) for 'started' and 'finished'."""
        self._listeners.append(callback)

    def _notify(self, event: str):
        snapshot = self.snapshot()
        for callback in list(self._listeners):
            try:
                callback(event, snapshot)
            except Exception as e:
                logger.error(f"Autospin listener failed on '{event}': {e}", exc_info=True)

    def snapshot(self) -> AutoSpinState:
        with self._state_lock:
            return replace(self.state)

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self.state.active

    def _record_spin(self):
        with self._state_lock:
            self.state.remaining -= 1
            self.state.spins_completed += 1
            return self.state.remaining

    def _finish(self, stop_reason: str):
        with self._state_lock:
            self.state.active = False
            self.state.stop_reason = stop_reason
            if stop_reason != 'completed':
                self.state.remaining = 0

    def start(self, count: int, bet_amount: Optional[int] = None) -> AutoSpinState:
        """
        Starts a new autospin run, replacing any run already in progress.

        The first spin settles before this returns; if it is rejected
        (bad bet, no funds) the error propagates and no run is started.
        """
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= self.max_count:
            raise ValidationException(
                f"Autospin count must be between 1 and {self.max_count}.",
                details={'count': count}
            )

        with self._control_lock:
            if self.running:
                logger.info("Autospin start requested while a run is active; replacing it")
            # The previous worker can no longer spin once its stop event is set
            self.stop(wait=True)

            with self._run_lock:
                self._run_id += 1
                run_id = self._run_id
                stop_event = threading.Event()
                self._stop_event = stop_event
                with self._state_lock:
                    self.state = AutoSpinState(requested=count, remaining=count, active=True, bet=bet_amount)

                try:
                    self.engine.request_spin(bet_amount, wait=True)
                except AppException as e:
                    self._finish(e.error_code)
                    logger.warning(f"Autospin of {count} not started: {e.status_message}")
                    raise

                if self._record_spin() == 0:
                    self._finish('completed')
                    logger.info(f"Autospin run {run_id} completed after its only spin")
                    finished = True
                else:
                    finished = False
                    self._thread = threading.Thread(
                        target=self._run_loop, args=(run_id, stop_event, bet_amount),
                        name=f"autospin-{run_id}", daemon=True
                    )
                    self._thread.start()
                    logger.info(f"Autospin run {run_id} started: {count} spins, bet {bet_amount}")

                # Still holding _run_lock, so the worker cannot report 'finished' first
                self._notify('finished' if finished else 'started')

        return self.snapshot()

    def stop(self, wait: bool = False, timeout: Optional[float] = 5):
        """
        Prevents any further spin of the current run from starting.
        A spin already settling is allowed to finish first.
        """
        with self._run_lock:
            self._stop_event.set()
            thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def reset(self):
        """Stops any autospin run, then restores the game defaults on the engine."""
        with self._control_lock:
            self.stop(wait=True)
            # Holding _run_lock keeps a still-settling worker from spinning after the reset
            with self._run_lock:
                self.engine.request_reset()

    def join(self, timeout: Optional[float] = None):
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)

    def _run_loop(self, run_id: int, stop_event: threading.Event, bet_amount: Optional[int]):
        stop_reason = 'completed'
        try:
            while True:
                if stop_event.wait(self.delay_seconds):
                    stop_reason = 'stopped'
                    break
                with self._run_lock:
                    if stop_event.is_set():
                        stop_reason = 'stopped'
                        break
                    try:
                        self.engine.request_spin(bet_amount, wait=True)
                    except AppException as e:
                        stop_reason = e.error_code
                        logger.warning(f"Autospin run {run_id} ended early: {e.status_message}")
                        break
                    if self._record_spin() <= 0:
                        break
        except Exception as e:
            stop_reason = ErrorCodes.AUTOSPIN_ERROR
            logger.error(f"Error in autospin run {run_id}: {e}", exc_info=True)
        finally:
            with self._run_lock:
                # A replacement run owns self.state once _run_id has moved on
                is_current = run_id == self._run_id
                if is_current:
                    self._finish(stop_reason)
                logger.info(f"Autospin run {run_id} finished ({stop_reason})")
                if is_current:
                    self._notify('finished')
