"""
CBMSIM - Cerebellar network simulation control layer

Drives eyeblink-conditioning trials through an external numeric kernel,
owns the network state and its positional file format, and tallies spike
statistics per stimulus phase.

Quick Start:
============

    from cbmsim import Session, SimulationConfig

    session = Session(SimulationConfig(seed=1234))
    session.build()
    session.attach(kernel_factory, mf_frequencies, mf_generator)
    summary = session.engine().run_trials()
    session.save_sim("output/run.sim")

Internal code imports from the defining modules, e.g.
``from cbmsim.state.simulation_state import SimulationState``.
"""

__version__ = "0.1.0"

# ============================================================================
# PUBLIC API
# ============================================================================

from cbmsim.config import ActivityParams, ConnectivityParams, SimulationConfig, TrialConfig
from cbmsim.constants import CellType
from cbmsim.engine import (
    Experiment,
    FrontEnd,
    HeadlessFrontEnd,
    RunControl,
    RunSummary,
    Session,
    TerminalFrontEnd,
    Trial,
    TrialEngine,
)
from cbmsim.errors import (
    CbmSimError,
    ConfigurationError,
    CorruptStateError,
    OutputFileError,
    SequencingError,
)
from cbmsim.state import SimulationState
from cbmsim.stats import FiringRate, SpikeStatistics

__all__ = [
    "__version__",
    # Configuration
    "ActivityParams",
    "ConnectivityParams",
    "SimulationConfig",
    "TrialConfig",
    "CellType",
    # State
    "SimulationState",
    # Engine
    "Experiment",
    "FrontEnd",
    "HeadlessFrontEnd",
    "RunControl",
    "RunSummary",
    "Session",
    "TerminalFrontEnd",
    "Trial",
    "TrialEngine",
    # Statistics
    "FiringRate",
    "SpikeStatistics",
    # Errors
    "CbmSimError",
    "ConfigurationError",
    "CorruptStateError",
    "OutputFileError",
    "SequencingError",
]
