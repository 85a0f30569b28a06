import logging

from ..models import FREE_SPINS_PER_TRIGGER, SCATTER_TRIGGER_COUNT, BonusState

logger = logging.getLogger(__name__)


class BonusStateMachine:
    """
    Free-spin bonus lifecycle.

    Idle (active=False) -> BonusActive on a scatter trigger, which adds
    FREE_SPINS_PER_TRIGGER spins. Further triggers add more spins. Once a
    settled spin leaves free_spins_remaining at 0 the bonus ends and the
    multiplier drops back to 1.
    """

    def __init__(self, spins_per_trigger: int = FREE_SPINS_PER_TRIGGER,
                 trigger_count: int = SCATTER_TRIGGER_COUNT):
        self.spins_per_trigger = spins_per_trigger
        self.trigger_count = trigger_count

    def is_triggered(self, scatter_count: int) -> bool:
        return scatter_count >= self.trigger_count

    def consume_free_spin(self, state: BonusState) -> bool:
        """Uses one free spin if any is left. Returns True when a free spin was used."""
        if state.free_spins_remaining <= 0:
            return False
        state.free_spins_remaining -= 1
        return True

    def apply_scatter_trigger(self, state: BonusState, scatter_count: int) -> bool:
        """Applies the scatter transition. The multiplier is left as it is."""
        if not self.is_triggered(scatter_count):
            return False
        was_active = state.active
        state.free_spins_remaining += self.spins_per_trigger
        state.active = True
        if was_active:
            logger.info(f"Bonus re-triggered by {scatter_count} scatters. Free spins remaining: {state.free_spins_remaining}")
        else:
            logger.info(f"Bonus activated by {scatter_count} scatters. Free spins awarded: {self.spins_per_trigger}")
        return True

    def check_exit(self, state: BonusState) -> bool:
        """Runs once per settled spin. Returns True when the bonus just ended."""
        if state.active and state.free_spins_remaining == 0:
            state.active = False
            state.multiplier = 1
            logger.info("Bonus round ended.")
            return True
        return False
