from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.base import EngineConfig, EngineError, FlowRecord
from wifisweep.engine.simpy_engine import SimpyEngine
from wifisweep.sweep.builder import ExperimentDescription
from wifisweep.sweep.errors import ConfigurationFailed
from wifisweep.sweep.grid import Configuration
from wifisweep.utils.event_logger import get_logger, set_log_context

from typing import Callable

import functools

ENGINES = {
    "simpy": SimpyEngine,
}


def get_engine_factory(
    cfg: cfg_module = cfg_module, sparams: sparams_module = sparams_module
) -> Callable:
    """
    Engine factory for the engine selected in UserConfig.ENGINE.

    The factory takes the EngineConfig of a run and returns a new engine. It can be
    sent to worker processes.
    """
    if cfg.ENGINE not in ENGINES:
        raise ValueError(
            f"Invalid ENGINE: '{cfg.ENGINE}'. It must be one of {sorted(ENGINES)}"
        )
    return functools.partial(ENGINES[cfg.ENGINE], cfg=cfg, sparams=sparams)


class SimulationInvoker:
    def __init__(
        self,
        engine_factory: Callable,
        cfg: cfg_module = cfg_module,
        sparams: sparams_module = sparams_module,
    ):
        """
        The only component that talks to an engine.

        Args:
            engine_factory (Callable): Called with a fresh EngineConfig, returns an Engine.
            cfg (cfg_module, optional): The UserConfig object. Defaults to UserConfig.
            sparams (sparams_module, optional): The SimParams object. Defaults to SimParams.
        """
        self.engine_factory = engine_factory

        self.name = "INVOKER"
        self.logger = get_logger(self.name, cfg, sparams)

    def run(
        self, description: ExperimentDescription, configuration: Configuration
    ) -> dict[int, FlowRecord]:
        """
        Run one experiment and return the per-flow records.

        The statistics are read before the engine is torn down, and the engine is
        destroyed whatever happens.

        Raises:
            ConfigurationFailed: If the engine rejects the experiment or fails while running it.
        """
        engine_config = EngineConfig()
        for key, value in description.defaults.items():
            engine_config.set_default(key, value)

        engine = None
        set_log_context(configuration)
        try:
            engine = self.engine_factory(engine_config)

            nodes = engine.create_nodes(description.node_count)
            engine.install_mobility(nodes, description.positions)
            engine.install_radio_and_network(nodes, description.radio)

            for flow in description.flows:
                flow_id = engine.install_flow(flow)
                self.logger.debug(
                    f"Installed flow {flow_id}: {flow.kind} {flow.source} -> {flow.destination} "
                    f"({'measurement' if flow.is_measurement_flow else 'bookkeeping'})"
                )

            engine.run(description.duration_s)
            records = engine.get_flow_statistics()
        except EngineError as e:
            self.logger.debug(f"Engine error for [{configuration}]: {e}")
            raise ConfigurationFailed(configuration, str(e)) from e
        finally:
            if engine is not None:
                engine.destroy()
            set_log_context(None)

        return records


def with_retries(invoker: SimulationInvoker, attempts: int) -> Callable:
    """
    Wrap invoker.run so that a ConfigurationFailed is retried up to attempts times in total.

    Nothing in the sweep retries on its own. This is for callers that want it explicitly.
    """
    if attempts < 1:
        raise ValueError(f"Invalid attempts: {attempts}. It must be at least 1.")

    @functools.wraps(invoker.run)
    def run(description: ExperimentDescription, configuration: Configuration):
        for attempt in range(1, attempts + 1):
            try:
                return invoker.run(description, configuration)
            except ConfigurationFailed as e:
                if attempt == attempts:
                    raise
                invoker.logger.warning(
                    f"Attempt {attempt}/{attempts} failed for [{configuration}]: {e.reason}. Retrying..."
                )

    return run
