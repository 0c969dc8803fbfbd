from wifisweep.user_config import UserConfig as cfg_module
from wifisweep.sim_params import SimParams as sparams_module

from wifisweep.sweep.driver import FAILURE_POLICIES, run_sweep
from wifisweep.sweep.errors import SinkWriteError, SweepSpecError
from wifisweep.sweep.invoker import get_engine_factory
from wifisweep.sweep.sink import DiagnosticsSink, ResultSink, read_results
from wifisweep.sweep.spec_loader import SweepSpec, load_sweep_spec, parse_sweep_spec
from wifisweep.utils.plotters import SweepPlotter
from wifisweep.utils.support import validate_settings
from wifisweep.utils.event_logger import get_logger
from wifisweep.utils.messages import (
    STARTING_EXECUTION_MSG,
    EXECUTION_TERMINATED_MSG,
    STARTING_SWEEP_MSG,
    SWEEP_COMPLETED_MSG,
    SWEEP_ABORTED_MSG,
    RESULTS_MSG,
    PRESS_TO_EXIT_MSG,
    SECTION_DIVIDER_MSG,
)

from typing import Callable

import matplotlib.pyplot as plt
import argparse
import logging
import sys
import os

EXIT_SINK_ERROR = 2
EXIT_INVALID_SPEC = 3


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"{number} is not a positive integer")
    return number


def parse_args(argv: list | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wifisweep",
        description="Run a parameter sweep of wireless experiments and append aggregate throughput and delay to a results file.",
    )
    parser.add_argument(
        "--sweep",
        metavar="SPEC.json",
        help="JSON sweep specification. Defaults to UserConfig.SWEEP",
    )
    parser.add_argument(
        "--output",
        metavar="PATH",
        help="Append-only results file. Defaults to UserConfig.OUTPUT_PATH",
    )
    parser.add_argument(
        "--on-failure",
        choices=FAILURE_POLICIES,
        help="What to do when a configuration fails. Defaults to UserConfig.FAILURE_POLICY",
    )
    parser.add_argument(
        "--workers",
        type=positive_int,
        help="Number of worker processes. Defaults to UserConfig.WORKERS",
    )
    parser.add_argument(
        "--diagnostics",
        metavar="PATH",
        help="JSON-lines file for per-flow metrics and skipped configurations. Defaults to UserConfig.DIAGNOSTICS_PATH",
    )
    parser.add_argument(
        "--header",
        action="store_true",
        help="Write a '#' column header if the results file is new",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Plot throughput and delay from the results file once the sweep ends",
    )
    return parser.parse_args(argv)


def load_spec(args: argparse.Namespace, cfg: cfg_module) -> SweepSpec:
    if args.sweep:
        return load_sweep_spec(args.sweep)
    return parse_sweep_spec(cfg.SWEEP)


def plot_results(
    spec: SweepSpec,
    sink: ResultSink,
    cfg: cfg_module,
    sparams: sparams_module,
    logger: logging.Logger,
):
    if not os.path.exists(sink.path):
        logger.warning(f"Nothing to plot, '{sink.path}' does not exist.")
        return

    if not cfg.ENABLE_FIGS_SAVING and not cfg.ENABLE_FIGS_DISPLAY:
        logger.warning(
            "Figures are neither saved nor displayed. Enable ENABLE_FIGS_SAVING or ENABLE_FIGS_DISPLAY."
        )
        return

    # The most densely swept parameter goes on the x axis
    x = max(spec.parameters, key=lambda name: len(spec.parameters[name]))

    results = read_results(sink.path, columns=sink.header)
    SweepPlotter(cfg, sparams).plot_results(results, x)

    if cfg.ENABLE_FIGS_DISPLAY and len(plt.get_fignums()) > 0:
        input(PRESS_TO_EXIT_MSG)


def main(
    argv: list | None = None,
    cfg: cfg_module = cfg_module,
    sparams: sparams_module = sparams_module,
    engine_factory: Callable | None = None,
) -> int:
    """
    Command line entry point.

    Returns:
        int: 0 when the sweep completed, 1 when it was aborted, 2 when the results
            file could not be written and 3 when the sweep specification is invalid.
    """
    args = parse_args(argv)

    print(STARTING_EXECUTION_MSG)

    logger = get_logger("MAIN", cfg, sparams)

    # The sweep, from --sweep or UserConfig.SWEEP, is checked by load_spec below
    validate_settings(cfg, sparams, logger, validate_sweep=False)

    try:
        spec = load_spec(args, cfg)
        grid = spec.make_grid()
    except SweepSpecError as e:
        logger.error(f"Invalid sweep specification: {e}")
        print(EXECUTION_TERMINATED_MSG)
        return EXIT_INVALID_SPEC

    output_path = args.output or cfg.OUTPUT_PATH
    diagnostics_path = args.diagnostics or cfg.DIAGNOSTICS_PATH
    failure_policy = args.on_failure or cfg.FAILURE_POLICY
    workers = args.workers or cfg.WORKERS

    sink = ResultSink(output_path, tuple(spec.parameters), cfg, sparams)
    diagnostics = DiagnosticsSink(diagnostics_path, cfg, sparams)
    engine_factory = engine_factory or get_engine_factory(cfg, sparams)

    print(STARTING_SWEEP_MSG)

    try:
        if args.header or cfg.WRITE_HEADER:
            sink.write_header()

        report = run_sweep(
            grid,
            sink,
            engine_factory,
            scenario=spec.scenario,
            fixed=spec.fixed,
            failure_policy=failure_policy,
            workers=workers,
            diagnostics=diagnostics,
            cfg=cfg,
            sparams=sparams,
        )
    except SinkWriteError as e:
        logger.error(f"{e}. Stopping the sweep.")
        print(EXECUTION_TERMINATED_MSG)
        return EXIT_SINK_ERROR

    print(SWEEP_ABORTED_MSG if report.aborted else SWEEP_COMPLETED_MSG)

    print(RESULTS_MSG)
    logger.info(
        f"Completed: {report.completed}/{report.total}, Skipped: {len(report.skipped)}, Results: '{output_path}'"
    )
    if report.skipped:
        print(SECTION_DIVIDER_MSG)
        for configuration, error in report.skipped:
            logger.info(f"Skipped [{configuration}] -> {error.__class__.__name__}: {error}")

    if args.plot:
        plot_results(spec, sink, cfg, sparams, logger)

    print(EXECUTION_TERMINATED_MSG)

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
