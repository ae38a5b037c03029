"""
Trial Engine - time-stepped driver of the conditioning paradigm.

The engine owns the ``SimulationState`` and advances it one millisecond
timestep at a time through an external kernel. Each trial runs its phases
in strict order::

    Pre-CS  [0, cs_start)                   background mossy fiber drive
    CS      [cs_start, cs_start + phasic)   phasic drive
            [cs_start + phasic, cs_end)     in-CS tonic drive
    Post-CS [cs_end, trial_time)            background drive

With the default configuration ``cs_phasic_size == cs_length`` and the
in-CS tonic branch is never taken; it becomes reachable whenever the phasic
sub-window is configured shorter than the CS. Experiment trials
(``run_experiment``) have no phasic sub-window: their whole CS is on the
in-CS tonic drive.

Per timestep:
    1. deliver the US (error drive to zone 0) at its onset
    2. pick the frequency profile for the phase
    3. sample mossy fiber spikes and run one kernel step
    4. tally spikes by phase; accumulate Golgi activity during the CS
    5. fill raster columns for training trials
    6. yield to the front end

At the end of a trial the engine logs the elapsed time, computes firing
rates, hands them to the front end, waits while paused, and resets the
spike tallies. Cancellation is checked only between trials.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import torch

from cbmsim.config import SimulationConfig
from cbmsim.constants import CellType, ms_to_seconds
from cbmsim.engine.experiment import Experiment
from cbmsim.engine.frontend import FrontEnd, HeadlessFrontEnd, RunControl
from cbmsim.engine.protocols import MossyFiberFrequencies, MossyFiberGenerator, SimulationKernel
from cbmsim.errors import ConfigurationError
from cbmsim.io.raster import RasterRecorder
from cbmsim.state import SimulationState
from cbmsim.stats import CsWindowReport, CsWindowSummary, FiringRate, SpikeStatistics

logger = logging.getLogger(__name__)


class TrialKind(Enum):
    """Super-phase of a trial within ``run_trials``."""

    TUNING = "tuning"
    DETECTION = "detection"
    TRAINING = "training"


class MFDrive(Enum):
    """Mossy fiber frequency profile used for a timestep."""

    BACKGROUND = "background"
    PHASIC = "phasic"
    TONIC = "tonic"


@dataclass(frozen=True)
class CsWindow:
    """CS timing of one trial, in timesteps."""

    start: int
    length: int
    phasic_size: int

    @property
    def end(self) -> int:
        return self.start + self.length

    def contains(self, ts: int) -> bool:
        return self.start <= ts < self.end

    def drive(self, ts: int, use_cs: bool = True) -> MFDrive:
        """Stimulus profile for timestep ``ts``."""
        if not use_cs or not self.contains(ts):
            return MFDrive.BACKGROUND
        if ts < self.start + self.phasic_size:
            return MFDrive.PHASIC
        # Only reachable when phasic_size < length
        return MFDrive.TONIC


@dataclass
class TrialResult:
    trial: int
    name: str
    kind: Optional[TrialKind]
    elapsed_seconds: float
    rates: Dict[CellType, FiringRate]
    cs_report: Optional[CsWindowReport] = None


@dataclass
class RunSummary:
    trials_completed: int = 0
    cancelled: bool = False
    results: List[TrialResult] = field(default_factory=list)

    @property
    def last_rates(self) -> Optional[Dict[CellType, FiringRate]]:
        return self.results[-1].rates if self.results else None


class TrialEngine:
    """Runs trials against an external kernel.

    Args:
        state: Simulation state (owned by the engine from here on)
        kernel: Numeric kernel bound to ``state``
        mf_frequencies: Mossy fiber frequency profiles
        mf_generator: Mossy fiber spike sampler
        config: Simulation configuration
        frontend: User interface hooks (headless by default)
        run_control: Shared pause/cancel flags (created if omitted)
        raster_recorder: Raster buffers filled during training trials
    """

    def __init__(
        self,
        state: SimulationState,
        kernel: SimulationKernel,
        mf_frequencies: MossyFiberFrequencies,
        mf_generator: MossyFiberGenerator,
        config: SimulationConfig,
        frontend: Optional[FrontEnd] = None,
        run_control: Optional[RunControl] = None,
        raster_recorder: Optional[RasterRecorder] = None,
    ):
        self.state = state
        self.kernel = kernel
        self.mf_frequencies = mf_frequencies
        self.mf_generator = mf_generator
        self.config = config
        self.control = run_control if run_control is not None else RunControl()
        self.frontend = frontend if frontend is not None else HeadlessFrontEnd()
        self.frontend.bind(self.control)
        self.raster_recorder = raster_recorder

        self.statistics = SpikeStatistics()
        self.statistics.initialize(state.con_params.population_sizes(), config.device)
        self.cs_summary = CsWindowSummary(state.con_params.num_go, config.device)

        self.trial = 0
        self._raster_column = 0
        self._weights = config.activity.weight_args()

    # =========================================================================
    # TRIAL CLASSIFICATION
    # =========================================================================

    def trial_kind(self, trial: int) -> TrialKind:
        t = self.config.trials
        if trial < t.homeo_tuning_trials:
            return TrialKind.TUNING
        if trial < t.pre_trial_count:
            return TrialKind.DETECTION
        return TrialKind.TRAINING

    def default_window(self) -> CsWindow:
        t = self.config.trials
        return CsWindow(t.cs_start, t.cs_length, t.cs_phasic_size)

    def cs_seconds(self, window: CsWindow) -> float:
        override = self.config.trials.median_cs_seconds
        if override is not None:
            return override
        return ms_to_seconds(window.length, self.config.activity.ms_per_timestep)

    def pre_cs_seconds(self, window: CsWindow) -> float:
        return ms_to_seconds(window.start, self.config.activity.ms_per_timestep)

    # =========================================================================
    # TIMESTEP
    # =========================================================================

    def step(
        self,
        ts: int,
        window: CsWindow,
        use_cs: bool = True,
        us_onset: Optional[int] = None,
    ) -> Dict[CellType, torch.Tensor]:
        """Advance the network one timestep and tally its spikes.

        Args:
            ts: Timestep within the trial
            window: CS timing of the trial
            use_cs: False runs the CS window on background drive
            us_onset: Timestep of the US, or None for no US

        Returns:
            Spikes of this timestep per cell type (zone 0 for zone types)
        """
        if us_onset is not None and ts == us_onset:
            self.kernel.update_err_drive(0, self.config.trials.us_magnitude)

        frequencies = self._frequencies(window.drive(ts, use_cs))
        mf_ap = self.mf_generator.calc_poiss_activity(frequencies)
        is_true_mf = self.mf_generator.calc_true_mfs(self.mf_frequencies.background())
        self.kernel.update_true_mfs(is_true_mf)
        self.kernel.update_mf_input(mf_ap)
        self.kernel.calc_activity(**self._weights)

        spikes = self._collect_spikes(mf_ap)
        self.statistics.record_timestep(ts, window.start, window.length, spikes)

        if window.contains(ts):
            self.cs_summary.accumulate(
                spikes[CellType.GO],
                self.kernel.export_gsum(CellType.GR, CellType.GO),
                self.kernel.export_gsum(CellType.MF, CellType.GO),
            )
        return spikes

    def _frequencies(self, drive: MFDrive) -> torch.Tensor:
        if drive is MFDrive.PHASIC:
            return self.mf_frequencies.cs_phasic()
        if drive is MFDrive.TONIC:
            return self.mf_frequencies.in_cs_tonic()
        return self.mf_frequencies.background()

    def _collect_spikes(self, mf_ap: torch.Tensor) -> Dict[CellType, torch.Tensor]:
        k = self.kernel
        return {
            CellType.MF: mf_ap,
            CellType.GR: k.export_ap(CellType.GR),
            CellType.GO: k.export_ap(CellType.GO),
            CellType.BC: k.export_ap(CellType.BC, 0),
            CellType.SC: k.export_ap(CellType.SC),
            CellType.PC: k.export_ap(CellType.PC, 0),
            CellType.IO: k.export_ap(CellType.IO, 0),
            CellType.DCN: k.export_ap(CellType.DCN, 0),
        }

    # =========================================================================
    # TRIAL
    # =========================================================================

    def run_trial(
        self,
        trial: int,
        name: str,
        window: CsWindow,
        use_cs: bool = True,
        us_onset: Optional[int] = None,
        record_raster: bool = False,
        kind: Optional[TrialKind] = None,
    ) -> TrialResult:
        """Run every timestep of one trial, then the end-of-trial hooks."""
        trial_time = self.config.trials.trial_time
        if window.end > trial_time:
            raise ConfigurationError(
                f"Trial {name!r}: CS window ends at {window.end}, after trial_time={trial_time}"
            )
        raster_start = window.start - self.config.trials.ms_pre_cs
        raster_end = window.end + self.config.trials.ms_post_cs
        record_raster = record_raster and self.raster_recorder is not None

        self.cs_summary.reset()
        cs_report: Optional[CsWindowReport] = None
        timer = time.perf_counter()

        for ts in range(trial_time):
            spikes = self.step(ts, window, use_cs, us_onset)

            if ts == window.end and cs_report is None:
                cs_report = self.cs_summary.report(self.cs_seconds(window))

            if record_raster and raster_start <= ts < raster_end:
                self.raster_recorder.record(self._raster_column, spikes)
                self._raster_column += 1

            self.frontend.poll_events()

        if cs_report is None and self.cs_summary.num_timesteps:
            cs_report = self.cs_summary.report(self.cs_seconds(window))

        elapsed = time.perf_counter() - timer
        logger.info("%s took %.3fs.", name, elapsed)

        rates = self.statistics.compute_firing_rates(
            self.cs_seconds(window), self.pre_cs_seconds(window)
        )
        self.frontend.on_trial_end(trial, rates)
        self._wait_while_paused(trial)
        self.statistics.reset()

        return TrialResult(trial, name, kind, elapsed, rates, cs_report)

    def _wait_while_paused(self, trial: int) -> None:
        """Trial-end yield point: keep polling the front end while paused."""
        if not self.frontend.is_paused():
            return
        logger.info("Simulation is paused at end of trial %d.", trial + 1)
        while self.frontend.is_paused() and not self.control.cancelled:
            self.frontend.poll_events()
        logger.info("Continuing...")

    # =========================================================================
    # RUNS
    # =========================================================================

    def run_trials(self) -> RunSummary:
        """Tuning, detection and training trials with the configured timing.

        The US is delivered at CS offset on every trial. Rasters are
        recorded for training trials.
        """
        t = self.config.trials
        window = self.default_window()
        total = t.total_trials
        summary = RunSummary()

        self._start_run(total)
        try:
            self.trial = 0
            while self.trial < total and not self.control.cancelled:
                kind = self.trial_kind(self.trial)
                if kind is TrialKind.TUNING:
                    logger.info("Pre-tuning trial number: %d", self.trial + 1)
                else:
                    logger.info("Post-tuning trial number: %d", self.trial + 1)

                result = self.run_trial(
                    self.trial,
                    f"Trial {self.trial + 1}",
                    window,
                    use_cs=True,
                    us_onset=window.end,
                    record_raster=kind is TrialKind.TRAINING,
                    kind=kind,
                )
                summary.results.append(result)
                self.trial += 1
        finally:
            self._end_run()

        summary.trials_completed = self.trial
        summary.cancelled = self.control.cancelled
        return summary

    def validate_experiment(self, experiment: Experiment) -> None:
        """Check every trial's timing against ``trial_time``.

        Raises:
            ConfigurationError: If a CS window ends after the trial or a US
                onset falls outside it
        """
        trial_time = self.config.trials.trial_time
        for definition in experiment:
            if definition.cs_offset > trial_time:
                raise ConfigurationError(
                    f"Trial {definition.name!r}: CS window ends at {definition.cs_offset}, "
                    f"after trial_time={trial_time}"
                )
            if definition.use_us and definition.us_onset >= trial_time:
                raise ConfigurationError(
                    f"Trial {definition.name!r}: us_onset={definition.us_onset} is not "
                    f"within trial_time={trial_time}"
                )

    def run_experiment(self, experiment: Experiment) -> RunSummary:
        """Run an experiment's trials in order, each with its own CS/US timing.

        The whole CS of an experiment trial uses the in-CS tonic profile.
        The experiment is validated before any trial runs.
        """
        self.validate_experiment(experiment)
        summary = RunSummary()

        self._start_run(experiment.num_trials)
        try:
            self.trial = 0
            while self.trial < experiment.num_trials and not self.control.cancelled:
                definition = experiment[self.trial]
                window = CsWindow(definition.cs_onset, definition.cs_length, phasic_size=0)
                result = self.run_trial(
                    self.trial,
                    definition.name,
                    window,
                    use_cs=definition.use_cs,
                    us_onset=definition.us_onset if definition.use_us else None,
                )
                summary.results.append(result)
                self.trial += 1
        finally:
            self._end_run()

        summary.trials_completed = self.trial
        summary.cancelled = self.control.cancelled
        return summary

    def _start_run(self, total_trials: int) -> None:
        self.control.start()
        self.statistics.reset()
        self._raster_column = 0
        if self.raster_recorder is not None:
            self.raster_recorder.clear()
        self.frontend.on_run_start(total_trials)

    def _end_run(self) -> None:
        self.frontend.on_run_end()
        self.control.finish()
