"""
Time conversion constants.

Timesteps are counted in milliseconds; firing rates are reported in Hz.
"""

from __future__ import annotations

MS_PER_SECOND = 1000.0
"""Milliseconds per second (1000.0 ms/s)."""

SECONDS_PER_MS = 1.0 / 1000.0
"""Seconds per millisecond (0.001 s/ms)."""


def ms_to_seconds(n_timesteps: int, ms_per_timestep: float) -> float:
    """Duration in seconds of ``n_timesteps`` steps of ``ms_per_timestep``."""
    return n_timesteps * ms_per_timestep * SECONDS_PER_MS


__all__ = [
    "MS_PER_SECOND",
    "SECONDS_PER_MS",
    "ms_to_seconds",
]
