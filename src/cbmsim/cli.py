"""
Command-line entry point.

Commands:
    cbmsim build --config run.json --seed 1234 --output run.sim
    cbmsim info run.sim
    cbmsim run --sim run.sim --kernel mykernels:make_kernel --mf mystimuli:make_mossy_fibers

``--kernel`` names a factory ``(state, config) -> kernel`` and ``--mf`` a
factory ``(config) -> (frequencies, generator)``, both as ``module:attribute``.

Exit status is 0 on success, 1 when an output file cannot be written and
2 for configuration or sequencing errors.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from cbmsim import __version__
from cbmsim.config import SimulationConfig
from cbmsim.engine import Experiment, HeadlessFrontEnd, Session, TerminalFrontEnd
from cbmsim.errors import CbmSimError, ConfigurationError, OutputFileError
from cbmsim.io import sim_file
from cbmsim.utils import clock_seed, configure_logging

logger = logging.getLogger(__name__)


def load_object(path: str) -> Any:
    """Resolve ``"package.module:attribute"``."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Expected 'module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError(f"Module {module_name!r} has no attribute {attr!r}") from e


def _load_config(args: argparse.Namespace) -> SimulationConfig:
    if getattr(args, "config", None):
        return SimulationConfig.from_json(args.config)
    return SimulationConfig()


def _resolve_seed(args: argparse.Namespace, config: SimulationConfig) -> Optional[int]:
    if args.seed_from_clock:
        seed = clock_seed()
        logger.info("Using wall-clock seed %d", seed)
        return seed
    if args.seed is not None:
        return args.seed
    return config.seed


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_build(args: argparse.Namespace) -> int:
    """Generate a network and write it as a simulation file."""
    config = _load_config(args)
    session = Session(config)
    session.build(_resolve_seed(args, config))
    session.save_sim(args.output)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Print the parameter blocks and size of a simulation file."""
    with open(args.sim_file, "rb") as f:
        con_params, act_params = sim_file.read_params(f)
    print(f"Simulation file: {args.sim_file}")
    print(f"  zones: {con_params.num_zones}")
    print("  connectivity:")
    for key, value in con_params.to_dict().items():
        print(f"    {key:20s} {value}")
    print("  activity:")
    for key, value in act_params.to_dict().items():
        print(f"    {key:20s} {value}")
    size = Path(args.sim_file).stat().st_size
    print(f"  file size: {size} bytes")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run trials (or an experiment) and write the outputs."""
    config = _load_config(args)
    session = Session(config)
    if args.sim:
        session.load_sim_file(args.sim)
    else:
        session.build(_resolve_seed(args, config))

    kernel_factory = load_object(args.kernel)
    mf_factory = load_object(args.mf)
    mf_frequencies, mf_generator = mf_factory(session.config)
    session.attach(kernel_factory, mf_frequencies, mf_generator)

    frontend = TerminalFrontEnd() if args.frontend == "terminal" else HeadlessFrontEnd()
    engine = session.engine(frontend)
    if args.experiment:
        summary = engine.run_experiment(Experiment.from_json(args.experiment))
    else:
        summary = engine.run_trials()

    logger.info(
        "Completed %d trial(s)%s", summary.trials_completed,
        " (cancelled)" if summary.cancelled else "",
    )

    output_dir = Path(args.output_dir or session.config.output_dir)
    if not args.experiment:
        session.save_rasters(output_dir)
    if args.save_sim:
        session.save_sim(args.save_sim)
    return 0


# =============================================================================
# PARSER
# =============================================================================


def _add_seed_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--seed", type=int, help="Seed for network generation")
    group.add_argument(
        "--seed-from-clock", action="store_true",
        help="Seed network generation from the wall clock (not reproducible)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cbmsim", description="Cerebellar conditioning simulation control"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", help="Also write the log to this file")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Build
    build_parser = subparsers.add_parser("build", help="Generate a network into a simulation file")
    build_parser.add_argument("--config", help="Simulation config JSON")
    _add_seed_args(build_parser)
    build_parser.add_argument("--output", required=True, help="Output simulation file")

    # Info
    info_parser = subparsers.add_parser("info", help="Describe a simulation file")
    info_parser.add_argument("sim_file", help="Simulation file")

    # Run
    run_parser = subparsers.add_parser("run", help="Run conditioning trials")
    run_parser.add_argument("--config", help="Simulation config JSON")
    run_parser.add_argument("--sim", help="Start from this simulation file instead of building")
    _add_seed_args(run_parser)
    run_parser.add_argument(
        "--kernel", required=True, help="Kernel factory as module:attribute"
    )
    run_parser.add_argument(
        "--mf", required=True, help="Mossy fiber factory as module:attribute"
    )
    run_parser.add_argument("--experiment", help="Experiment JSON (default: configured trials)")
    run_parser.add_argument(
        "--frontend", choices=["headless", "terminal"], default="headless",
        help="User interface (default: headless)",
    )
    run_parser.add_argument("--output-dir", help="Raster output directory")
    run_parser.add_argument("--save-sim", help="Write the final simulation to this file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    commands = {
        "build": cmd_build,
        "info": cmd_info,
        "run": cmd_run,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        return command(args)
    except OutputFileError as e:
        # Already logged as critical where it was raised
        print(f"cbmsim: {e}", file=sys.stderr)
        return 1
    except CbmSimError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
