from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.sweep.aggregator import AggregateResult, aggregate
from wifisweep.sweep.builder import build_experiment
from wifisweep.sweep.errors import (
    ConfigurationError,
    ConfigurationFailed,
    FlowMappingError,
)
from wifisweep.sweep.grid import Configuration, ConfigurationGrid
from wifisweep.sweep.invoker import SimulationInvoker
from wifisweep.sweep.sink import DiagnosticsSink, ResultSink
from wifisweep.utils.event_logger import get_logger

from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

FAILURE_POLICIES = ("skip", "abort")

# Errors that only concern the configuration that raised them
CONFIGURATION_ERRORS = (ConfigurationError, ConfigurationFailed, FlowMappingError)


@dataclass
class SweepReport:
    total: int = 0
    completed: int = 0
    skipped: list = field(default_factory=list)  # (configuration, error) pairs
    aborted: bool = False

    @property
    def exit_code(self) -> int:
        return 1 if self.aborted else 0


def run_configuration(
    configuration: Configuration,
    scenario: str,
    fixed: dict,
    engine_factory: Callable,
    cfg: cfg_module = cfg_module,
    sparams: sparams_module = sparams_module,
) -> AggregateResult:
    """Build, run and aggregate a single configuration."""
    description = build_experiment(
        configuration, sparams, cfg, scenario=scenario, fixed=fixed
    )
    records = SimulationInvoker(engine_factory, cfg, sparams).run(
        description, configuration
    )
    return aggregate(records, description, configuration, cfg, sparams)


def _run_job(
    configuration: Configuration,
    scenario: str,
    fixed: dict,
    engine_factory: Callable,
    cfg: cfg_module,
    sparams: sparams_module,
) -> tuple:
    """Worker entry point. Configuration errors come back as values so the parent decides."""
    try:
        return "ok", run_configuration(
            configuration, scenario, fixed, engine_factory, cfg, sparams
        )
    except CONFIGURATION_ERRORS as e:
        return "error", e


def run_sweep(
    grid: ConfigurationGrid,
    sink: ResultSink,
    engine_factory: Callable,
    scenario: str = "hidden-terminal",
    fixed: dict | None = None,
    failure_policy: str = "skip",
    workers: int = 1,
    diagnostics: DiagnosticsSink | None = None,
    cfg: cfg_module = cfg_module,
    sparams: sparams_module = sparams_module,
) -> SweepReport:
    """
    Run every admissible configuration of the grid and append the results to the sink.

    A ConfigurationError skips its configuration. A ConfigurationFailed or FlowMappingError
    skips it too under the "skip" policy, and stops the sweep under "abort". A
    SinkWriteError is not caught. Results are appended in grid order, also with several
    workers.

    Args:
        grid (ConfigurationGrid): The configurations to run.
        sink (ResultSink): Where results are appended.
        engine_factory (Callable): Called with a fresh EngineConfig, returns an Engine.
        scenario (str, optional): The scenario name. Defaults to "hidden-terminal".
        fixed (dict | None, optional): Parameters held constant across the sweep. Defaults to None.
        failure_policy (str, optional): "skip" or "abort". Defaults to "skip".
        workers (int, optional): Number of worker processes. Defaults to 1.
        diagnostics (DiagnosticsSink | None, optional): Where skipped configurations are recorded. Defaults to None.
        cfg (cfg_module, optional): The UserConfig object. Defaults to UserConfig.
        sparams (sparams_module, optional): The SimParams object. Defaults to SimParams.

    Returns:
        SweepReport: What happened to each configuration.
    """
    if failure_policy not in FAILURE_POLICIES:
        raise ValueError(
            f"Invalid failure policy: '{failure_policy}'. It must be one of {FAILURE_POLICIES}"
        )
    if workers < 1:
        raise ValueError(f"Invalid workers: {workers}. It must be a positive integer.")

    logger = get_logger("SWEEP", cfg, sparams)
    fixed = fixed or {}
    diagnostics = diagnostics or DiagnosticsSink(None, cfg, sparams)

    report = SweepReport(total=grid.count())
    logger.header(
        f"Sweeping {report.total} configurations of '{scenario}' ({grid}, {workers} worker{'s' if workers > 1 else ''})"
    )

    def handle(index: int, configuration: Configuration, outcome: tuple) -> bool:
        status, value = outcome
        prefix = f"[{index}/{report.total}] {configuration}"

        if status == "ok":
            sink.append(value)
            diagnostics.record_result(value)
            report.completed += 1
            logger.info(
                f"{prefix} -> {value.total_throughput_mbps:.4f} Mbps, {value.avg_delay_us:.1f} us"
            )
            return True

        report.skipped.append((configuration, value))
        diagnostics.record(configuration, value)

        if isinstance(value, ConfigurationError):
            logger.warning(f"{prefix} -> Skipped: {value}")
            return True

        if failure_policy == "abort":
            logger.error(f"{prefix} -> {value.__class__.__name__}: {value}. Aborting sweep.")
            report.aborted = True
            return False

        logger.error(f"{prefix} -> {value.__class__.__name__}: {value}. Skipped.")
        return True

    if workers == 1:
        for index, configuration in enumerate(grid, start=1):
            outcome = _run_job(
                configuration, scenario, fixed, engine_factory, cfg, sparams
            )
            if not handle(index, configuration, outcome):
                break
        return report

    executor = ProcessPoolExecutor(max_workers=workers)
    try:
        jobs = [
            (
                configuration,
                executor.submit(
                    _run_job,
                    configuration,
                    scenario,
                    fixed,
                    engine_factory,
                    cfg,
                    sparams,
                ),
            )
            for configuration in grid
        ]
        for index, (configuration, future) in enumerate(jobs, start=1):
            if not handle(index, configuration, future.result()):
                break
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return report
