"""
Session - setup ordering and persistence around one simulation.

A session walks through the setup steps of a run and refuses to take them
out of order:

    1. parameters    Session(config) | load_params(path) | set_params(...)
    2. state         build() | init_state_from_file(path) | load_sim_file(path)
    3. collaborators attach(kernel_factory, mf_frequencies, mf_generator)
    4. run           engine().run_trials() / run_experiment(...)
    5. output        save_sim(path) | save_state(path) | save_rasters(dir)

``load_sim_file`` covers steps 1 and 2 at once. An out-of-order call logs
an error with a hint, raises ``SequencingError`` and leaves the session as
it was, so setup can be redone in the correct order.

Usage:
======
    session = Session(SimulationConfig.from_json("acquisition.json"))
    session.build(seed=1234)
    session.attach(make_kernel, mf_frequencies, mf_generator)
    summary = session.engine().run_trials()
    session.save_sim("output/acquisition.sim")
    session.save_rasters()

Author: CbmSim Project
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from cbmsim.config import ActivityParams, ConnectivityParams, SimulationConfig
from cbmsim.constants import CellType
from cbmsim.engine.frontend import FrontEnd, RunControl
from cbmsim.engine.protocols import (
    KernelFactory,
    MossyFiberFrequencies,
    MossyFiberGenerator,
    SimulationKernel,
)
from cbmsim.engine.trial_engine import TrialEngine
from cbmsim.errors import ConfigurationError, SequencingError
from cbmsim.io import sim_file
from cbmsim.io.raster import RasterRecorder
from cbmsim.state import SimulationState

logger = logging.getLogger(__name__)


class Session:
    """One simulation from setup to output files.

    Args:
        config: Run configuration. When omitted, defaults are used for the
            trial and device settings and the parameter blocks count as not
            loaded until ``load_params``, ``set_params`` or
            ``load_sim_file`` supplies them.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self._params_loaded = config is not None
        self.config = config if config is not None else SimulationConfig()
        self.state: Optional[SimulationState] = None
        self.kernel: Optional[SimulationKernel] = None
        self.mf_frequencies: Optional[MossyFiberFrequencies] = None
        self.mf_generator: Optional[MossyFiberGenerator] = None
        self.raster_recorder: Optional[RasterRecorder] = None
        self.run_control = RunControl()
        # Seed of the last build(); None for a state loaded from file
        self.seed: Optional[int] = None
        self._engine: Optional[TrialEngine] = None

    @property
    def params_loaded(self) -> bool:
        return self._params_loaded

    @property
    def attached(self) -> bool:
        return self.kernel is not None

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    def set_params(self, con_params: ConnectivityParams, act_params: ActivityParams) -> None:
        """Use the given parameter blocks for the state built next."""
        self._require_no_state("set parameters")
        self.config = self.config.with_params(con_params, act_params)
        self._params_loaded = True

    def load_params(self, path: Union[str, Path]) -> None:
        """Take the parameter blocks from the head of a simulation file."""
        self._require_no_state("load parameters")
        with open(path, "rb") as f:
            con_params, act_params = sim_file.read_params(f)
        self.config = self.config.with_params(con_params, act_params)
        self._params_loaded = True
        logger.info("Loaded parameters from %s", path)

    # =========================================================================
    # STATE
    # =========================================================================

    def build(self, seed: Optional[int] = None) -> SimulationState:
        """Generate a new network state from the configured parameters.

        Args:
            seed: Overrides ``config.seed``. One of the two must be set.
        """
        self._require_params("build a simulation")
        self._require_no_state("build a simulation")
        seed = seed if seed is not None else self.config.seed
        if seed is None:
            raise ConfigurationError(
                "No seed given: pass one to build() or set SimulationConfig.seed"
            )
        self.state = SimulationState.create(
            self.config.num_zones,
            seed,
            self.config.connectivity,
            self.config.activity,
            self.config.device,
        )
        self.seed = seed
        logger.info("Built simulation with %d zone(s) from seed %d", self.state.num_zones, seed)
        return self.state

    def load_sim_file(self, path: Union[str, Path]) -> SimulationState:
        """Load parameters and state from a simulation file."""
        self._require_no_state("load a simulation file")
        con_params, act_params, state = sim_file.load_sim_file(path, self.config.device)
        self.config = self.config.with_params(con_params, act_params)
        self._params_loaded = True
        self.state = state
        return state

    def init_state_from_file(self, path: Union[str, Path]) -> SimulationState:
        """Load a state file using the parameters already in the session."""
        self._require_params("initialize the simulation state from file")
        self._require_no_state("initialize the simulation state from file")
        self.state = sim_file.load_state_file(
            path, self.config.connectivity, self.config.activity, self.config.device
        )
        return self.state

    # =========================================================================
    # COLLABORATORS
    # =========================================================================

    def attach(
        self,
        kernel_factory: KernelFactory,
        mf_frequencies: MossyFiberFrequencies,
        mf_generator: MossyFiberGenerator,
    ) -> SimulationKernel:
        """Bind a kernel to the state and allocate the raster buffers."""
        if self.state is None:
            raise self._sequencing_error(
                "Cannot attach a kernel: the simulation state is not initialized",
                "build() or load a simulation/state file first",
            )
        if self.kernel is not None:
            raise self._sequencing_error(
                "Cannot attach a kernel: one is already attached",
                "create a new Session for a different kernel",
            )
        self.kernel = kernel_factory(self.state, self.config)
        self.mf_frequencies = mf_frequencies
        self.mf_generator = mf_generator

        trials = self.config.trials
        self.raster_recorder = RasterRecorder(
            self.state.con_params.population_sizes(),
            trials.raster_column_size,
            gr_sample_size=trials.gr_sample_size,
            gr_sample_seed=self._sample_seed(),
            device=self.config.device,
        )
        return self.kernel

    def engine(
        self,
        frontend: Optional[FrontEnd] = None,
    ) -> TrialEngine:
        """Trial engine for this session (created on first call).

        Args:
            frontend: Front end for the engine. It is fixed by the first call;
                later calls may omit it or pass the same object.
        """
        if self.kernel is None:
            raise self._sequencing_error(
                "Cannot run: no kernel attached",
                "call attach() after the state is initialized",
            )
        if (
            self._engine is not None
            and frontend is not None
            and frontend is not self._engine.frontend
        ):
            raise self._sequencing_error(
                "Cannot change the front end of an existing engine",
                "pass the front end on the first engine() call",
            )
        if self._engine is None:
            self._engine = TrialEngine(
                self.state,
                self.kernel,
                self.mf_frequencies,
                self.mf_generator,
                self.config,
                frontend=frontend,
                run_control=self.run_control,
                raster_recorder=self.raster_recorder,
            )
        return self._engine

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def save_sim(self, path: Union[str, Path]) -> None:
        """Write parameters and state as a simulation file.

        Raises:
            OutputFileError: If the file cannot be opened
        """
        self._require_state("save the simulation")
        sim_file.save_sim_file(
            path, self.config.connectivity, self.config.activity, self._state_writer()
        )

    def save_state(self, path: Union[str, Path]) -> None:
        """Write the state block alone.

        Raises:
            OutputFileError: If the file cannot be opened
        """
        self._require_state("save the simulation state")
        sim_file.save_state_file(path, self._state_writer())

    def save_rasters(self, directory: Optional[Union[str, Path]] = None) -> Dict[CellType, Path]:
        """Dump the raster buffers (default directory: ``config.output_dir``).

        Raises:
            OutputFileError: If a raster file cannot be opened
        """
        if self.raster_recorder is None:
            raise self._sequencing_error(
                "No raster buffers to save",
                "call attach() and run the training trials first",
            )
        directory = directory if directory is not None else self.config.output_dir
        return self.raster_recorder.save(directory)

    def _sample_seed(self) -> int:
        if self.seed is not None:
            return self.seed
        return self.config.seed if self.config.seed is not None else 0

    def _state_writer(self):
        if self.kernel is not None:
            return self.kernel.write_state
        return self.state.serialize

    # =========================================================================
    # SEQUENCING CHECKS
    # =========================================================================

    def _sequencing_error(self, message: str, hint: str) -> SequencingError:
        logger.error(message)
        logger.error("Hint: %s", hint)
        return SequencingError(message, hint=hint)

    def _require_params(self, action: str) -> None:
        if not self._params_loaded:
            raise self._sequencing_error(
                f"Trying to {action} without connectivity and activity parameters",
                "load the parameters (Session(config), load_params or set_params) first",
            )

    def _require_no_state(self, action: str) -> None:
        if self.state is not None:
            raise self._sequencing_error(
                f"Cannot {action}: the simulation state is already initialized",
                "create a new Session to start from a different state",
            )

    def _require_state(self, action: str) -> None:
        if self.state is None:
            raise self._sequencing_error(
                f"Trying to {action} before it is initialized",
                "build() or load a simulation/state file first",
            )
