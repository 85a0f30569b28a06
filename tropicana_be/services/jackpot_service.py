import logging
import random
from decimal import Decimal
from typing import Optional, Tuple

from ..models import JACKPOT_PROBABILITY, JACKPOT_SEED, JackpotState
from ..utils.grid_generator import make_rng

logger = logging.getLogger(__name__)


class JackpotTracker:
    """
    Fixed-pool jackpot. One independent Bernoulli roll per settled spin; a hit
    pays the whole pool and reseeds it. The pool does not grow with wagers.
    """

    def __init__(self, probability: float = JACKPOT_PROBABILITY, seed_amount: Decimal = JACKPOT_SEED,
                 rng: Optional[random.Random] = None):
        if not 0 <= probability <= 1:
            raise ValueError(f"Jackpot probability must be in [0, 1], got {probability}.")
        self.probability = probability
        self.seed_amount = Decimal(seed_amount)
        self.rng = rng if rng is not None else make_rng()

    def maybe_trigger(self, state: JackpotState) -> Tuple[bool, Decimal]:
        if self.rng.random() >= self.probability:
            return False, Decimal(0)
        amount = state.pool
        state.pool = self.seed_amount
        logger.info(f"Jackpot hit. Paid {amount}, pool reseeded to {self.seed_amount}.")
        return True, amount
