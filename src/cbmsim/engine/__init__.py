"""
Trial engine, its external collaborators and the session that wires them.

Usage:
    from cbmsim.engine import Session, HeadlessFrontEnd

    session = Session(config)
    session.build()
    session.attach(kernel_factory, mf_frequencies, mf_generator)
    summary = session.engine(HeadlessFrontEnd()).run_trials()
"""

from cbmsim.engine.experiment import Experiment, Trial
from cbmsim.engine.frontend import FrontEnd, HeadlessFrontEnd, RunControl, TerminalFrontEnd
from cbmsim.engine.protocols import (
    KernelFactory,
    MossyFiberFrequencies,
    MossyFiberGenerator,
    SimulationKernel,
)
from cbmsim.engine.session import Session
from cbmsim.engine.trial_engine import (
    CsWindow,
    MFDrive,
    RunSummary,
    TrialEngine,
    TrialKind,
    TrialResult,
)

__all__ = [
    "CsWindow",
    "Experiment",
    "FrontEnd",
    "HeadlessFrontEnd",
    "KernelFactory",
    "MFDrive",
    "MossyFiberFrequencies",
    "MossyFiberGenerator",
    "RunControl",
    "RunSummary",
    "Session",
    "SimulationKernel",
    "TerminalFrontEnd",
    "Trial",
    "TrialEngine",
    "TrialKind",
    "TrialResult",
]
