"""Dice rolling."""

import logging
import random

logger = logging.getLogger(__name__)

DIE_FACES = 6

_default_rng = random.Random()


def roll_die(rng: random.Random | None = None) -> int:
    """Roll a fair six-sided die."""
    value = (rng or _default_rng).randint(1, DIE_FACES)
    logger.debug("Die rolled: %d", value)
    return value
