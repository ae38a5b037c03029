"""
Trial timing configuration for the conditioning paradigm.

A trial lasts ``trial_time`` timesteps split into three phases::

    [0, cs_start)                          Pre-CS
    [cs_start, cs_start + cs_length)       CS
    [cs_start + cs_length, trial_time)     Post-CS

Within the CS, the first ``cs_phasic_size`` timesteps use the phasic mossy
fiber drive and any remaining CS timesteps the tonic drive. With the
default ``cs_phasic_size == cs_length`` the tonic sub-window is empty.

Author: CbmSim Project
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from cbmsim.config.base import BaseConfig
from cbmsim.errors import ConfigurationError, validate_non_negative, validate_positive


@dataclass(frozen=True)
class TrialConfig(BaseConfig):
    """Timing, trial counts and raster window for ``TrialEngine.run_trials``."""

    trial_time: int = 5000
    """Timesteps per trial."""

    cs_start: int = 2000
    cs_length: int = 2000

    cs_phasic_size: int = 2000
    """Leading CS timesteps driven by the phasic mossy fiber profile."""

    ms_pre_cs: int = 400
    """Raster timesteps captured before CS onset."""

    ms_post_cs: int = 400
    """Raster timesteps captured after CS offset."""

    # =========================================================================
    # TRIAL COUNTS
    # =========================================================================
    homeo_tuning_trials: int = 0
    granule_act_detect_trials: int = 0
    num_training_trials: int = 10

    # =========================================================================
    # OUTPUT
    # =========================================================================
    us_magnitude: float = 0.3
    """Error drive delivered to zone 0 at the US."""

    gr_sample_size: int = 4096
    """Granule cells captured in the sampled GR raster."""

    median_cs_seconds: Optional[float] = None
    """Override for the CS duration used in firing-rate statistics.

    ``None`` derives it from ``cs_length``. Set it to 2.0 to reproduce
    outputs computed with the fixed two-second CS of older runs.
    """

    def __post_init__(self) -> None:
        validate_positive(self.trial_time, "trial_time")
        validate_positive(self.cs_length, "cs_length")
        for name in ("cs_start", "cs_phasic_size", "ms_pre_cs", "ms_post_cs",
                     "homeo_tuning_trials", "granule_act_detect_trials",
                     "num_training_trials", "gr_sample_size", "us_magnitude"):
            validate_non_negative(getattr(self, name), name)
        if self.cs_end > self.trial_time:
            raise ConfigurationError(
                f"CS window [{self.cs_start}, {self.cs_end}) extends past "
                f"trial_time={self.trial_time}"
            )
        if self.ms_pre_cs > self.cs_start:
            raise ConfigurationError(
                f"ms_pre_cs={self.ms_pre_cs} reaches before the start of the trial "
                f"(cs_start={self.cs_start})"
            )
        if self.cs_end + self.ms_post_cs > self.trial_time:
            raise ConfigurationError(
                f"ms_post_cs={self.ms_post_cs} reaches past the end of the trial"
            )
        if self.median_cs_seconds is not None:
            validate_positive(self.median_cs_seconds, "median_cs_seconds")

    @property
    def cs_end(self) -> int:
        """First timestep after the CS."""
        return self.cs_start + self.cs_length

    @property
    def pre_trial_count(self) -> int:
        """Tuning plus activity-detection trials that precede training."""
        return self.homeo_tuning_trials + self.granule_act_detect_trials

    @property
    def total_trials(self) -> int:
        return self.pre_trial_count + self.num_training_trials

    @property
    def raster_window(self) -> int:
        """Raster columns captured per training trial."""
        return self.ms_pre_cs + self.cs_length + self.ms_post_cs

    @property
    def raster_column_size(self) -> int:
        """Raster columns for a whole run."""
        return self.raster_window * self.num_training_trials
