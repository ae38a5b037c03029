"""
Test doubles for the trial engine's external collaborators.

- ``FakeKernel``: every cell spikes on every timestep; records calls
- ``FakeMFFrequencies``: constant profiles with a distinct value per phase
- ``FakeMFGenerator``: every mossy fiber spikes; records the profile used
- ``SilentKernel`` / ``SilentMFGenerator``: no cell ever spikes
- ``ScriptedFrontEnd``: pauses/cancels at chosen poll counts
- ``LatchedPauseFrontEnd``: keeps its own pause state at trial end
"""

from typing import List, Optional, Tuple

import torch

from cbmsim.constants import CellType
from cbmsim.engine.frontend import FrontEnd

BACKGROUND_HZ = 1.0
CS_TONIC_HZ = 2.0
CS_PHASIC_HZ = 3.0
IN_CS_TONIC_HZ = 4.0

GRGO_GSUM = 1.0
MFGO_GSUM = 0.5


class FakeKernel:
    """Constant one-spike-per-cell kernel bound to a ``SimulationState``."""

    def __init__(self, state, config=None):
        self.state = state
        self.sizes = state.con_params.population_sizes()
        self.steps = 0
        self.err_drive_calls: List[Tuple[int, float, int]] = []
        self.mf_inputs: List[torch.Tensor] = []
        self.weight_args = None

    def update_err_drive(self, zone, magnitude):
        self.err_drive_calls.append((zone, magnitude, self.steps))
        self.state.zone_activity_state(zone).err_drive.fill_(magnitude)

    def update_true_mfs(self, is_true_mf):
        self.is_true_mf = is_true_mf

    def update_mf_input(self, mf_spikes):
        self.mf_inputs.append(mf_spikes)

    def calc_activity(self, mfgo_w, gogr_w, grgo_w, gogo_w, spill_frac):
        self.weight_args = dict(
            mfgo_w=mfgo_w, gogr_w=gogr_w, grgo_w=grgo_w, gogo_w=gogo_w, spill_frac=spill_frac
        )
        self.steps += 1

    def export_ap(self, cell_type, zone=0):
        return torch.ones(self.sizes[cell_type], dtype=torch.uint8)

    def export_gsum(self, pre, post):
        value = GRGO_GSUM if pre == CellType.GR else MFGO_GSUM
        return torch.full((self.sizes[post],), value)

    def write_state(self, stream):
        return self.state.serialize(stream)


class FakeMFFrequencies:
    def __init__(self, num_mf):
        self.num_mf = num_mf

    def _constant(self, hz):
        return torch.full((self.num_mf,), hz)

    def background(self):
        return self._constant(BACKGROUND_HZ)

    def cs_tonic(self):
        return self._constant(CS_TONIC_HZ)

    def cs_phasic(self):
        return self._constant(CS_PHASIC_HZ)

    def in_cs_tonic(self):
        return self._constant(IN_CS_TONIC_HZ)


class FakeMFGenerator:
    def __init__(self, num_mf):
        self.num_mf = num_mf
        self.profiles: List[float] = []

    def calc_poiss_activity(self, frequencies):
        self.profiles.append(float(frequencies[0].item()))
        return torch.ones(self.num_mf, dtype=torch.uint8)

    def calc_true_mfs(self, frequencies):
        return torch.ones(self.num_mf, dtype=torch.bool)


class SilentKernel(FakeKernel):
    """Kernel in which no cell ever spikes."""

    def export_ap(self, cell_type, zone=0):
        return torch.zeros(self.sizes[cell_type], dtype=torch.uint8)

    def export_gsum(self, pre, post):
        return torch.zeros(self.sizes[post])


class SilentMFGenerator(FakeMFGenerator):
    def calc_poiss_activity(self, frequencies):
        super().calc_poiss_activity(frequencies)
        return torch.zeros(self.num_mf, dtype=torch.uint8)


class ScriptedFrontEnd(FrontEnd):
    """Front end that acts on the shared run control at fixed poll counts.

    Args:
        pause_at_poll: Request a pause on this poll (1-based)
        resume_after: Resume after this many polls of the trial-end pause loop
        cancel_at_poll: Request cancellation on this poll (1-based)
    """

    def __init__(
        self,
        pause_at_poll: Optional[int] = None,
        resume_after: int = 1,
        cancel_at_poll: Optional[int] = None,
    ):
        super().__init__()
        self.pause_at_poll = pause_at_poll
        self.resume_after = resume_after
        self.cancel_at_poll = cancel_at_poll
        self.polls = 0
        self.pause_polls = 0
        self.trial_ends = []
        self.run_starts = []
        self.run_ends = 0
        self._awaiting_resume = False

    def poll_events(self):
        self.polls += 1
        if self._awaiting_resume:
            self.pause_polls += 1
            if self.pause_polls >= self.resume_after:
                self.control.resume()
                self._awaiting_resume = False
            return
        if self.polls == self.pause_at_poll:
            self.control.pause()
        if self.polls == self.cancel_at_poll:
            self.control.cancel()

    def on_run_start(self, total_trials):
        self.run_starts.append(total_trials)

    def on_trial_end(self, trial, rates):
        self.trial_ends.append((trial, rates))
        if self.control.paused:
            self._awaiting_resume = True

    def on_run_end(self):
        self.run_ends += 1


class LatchedPauseFrontEnd(FrontEnd):
    """Reports paused for ``paused_polls`` polls after each trial end.

    The pause lives in the front end only; the run control is never touched.
    """

    def __init__(self, paused_polls: int):
        super().__init__()
        self.paused_polls = paused_polls
        self.polls = 0
        self._remaining = 0

    def poll_events(self):
        self.polls += 1
        if self._remaining:
            self._remaining -= 1

    def is_paused(self):
        return self._remaining > 0

    def on_trial_end(self, trial, rates):
        self._remaining = self.paused_polls


def fake_kernel_factory(state, config):
    return FakeKernel(state, config)


def fake_collaborators(config):
    """(frequencies, generator) sized for ``config``'s mossy fibers."""
    num_mf = config.connectivity.num_mf
    return FakeMFFrequencies(num_mf), FakeMFGenerator(num_mf)
