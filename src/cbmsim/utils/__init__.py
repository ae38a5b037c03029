"""Utility helpers for CbmSim."""

from cbmsim.utils.logging import configure_logging
from cbmsim.utils.seeding import clock_seed

__all__ = ["clock_seed", "configure_logging"]
