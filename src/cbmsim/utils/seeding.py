"""Seed helpers."""

import time

from cbmsim.state.simulation_state import SEED_UPPER_BOUND


def clock_seed() -> int:
    """Wall-clock seed in ``[0, 2**31 - 1)``. Runs seeded this way are not reproducible."""
    return time.time_ns() % SEED_UPPER_BOUND
