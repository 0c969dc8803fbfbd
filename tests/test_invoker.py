from tests._user_config_tests import UserConfig as cfg_module
from tests._sim_params_tests import SimParams as sparams_module
from tests._fake_engine import FakeEngine

from wifisweep.engine.base import EngineConfig, EngineError
from wifisweep.engine.simpy_engine import SimpyEngine
from wifisweep.sweep.builder import build_experiment
from wifisweep.sweep.errors import ConfigurationFailed
from wifisweep.sweep.grid import Configuration
from wifisweep.sweep.invoker import SimulationInvoker, get_engine_factory, with_retries

import pytest

CONFIGURATION = Configuration(("distance1", "distance2", "rts_cts_enabled"), (120, 1000, True))
DESCRIPTION = build_experiment(CONFIGURATION, sparams_module, cfg_module)


class RecordingFactory:
    """Creates FakeEngines and keeps them for inspection."""

    def __init__(self, **engine_kwargs):
        self.engine_kwargs = engine_kwargs
        self.engines = []

    def __call__(self, config: EngineConfig):
        engine = FakeEngine(config, **self.engine_kwargs)
        self.engines.append(engine)
        return engine


def test_calls_are_made_in_order():
    factory = RecordingFactory()

    records = SimulationInvoker(factory, cfg_module, sparams_module).run(
        DESCRIPTION, CONFIGURATION
    )

    (engine,) = factory.engines
    assert engine.calls == [
        "create_nodes",
        "install_mobility",
        "install_radio_and_network",
        "install_flow",
        "install_flow",
        "install_flow",
        "install_flow",
        "run",
        "get_flow_statistics",
        "destroy",
    ]
    assert engine.flows == list(DESCRIPTION.flows)
    assert sorted(records) == [1, 2, 3, 4]


def test_fresh_engine_config_per_run():
    factory = RecordingFactory()
    invoker = SimulationInvoker(factory, cfg_module, sparams_module)

    invoker.run(DESCRIPTION, CONFIGURATION)
    invoker.run(DESCRIPTION, CONFIGURATION)

    first, second = (engine.config for engine in factory.engines)
    assert first is not second
    assert first.get("rts_cts_threshold_bytes") == 100
    assert first.get("fragmentation_threshold_bytes") == 2200
    assert first.defaults == second.defaults


def test_engine_error_becomes_configuration_failed():
    factory = RecordingFactory(fail_on_run=True)

    with pytest.raises(ConfigurationFailed) as error:
        SimulationInvoker(factory, cfg_module, sparams_module).run(
            DESCRIPTION, CONFIGURATION
        )

    (engine,) = factory.engines
    assert engine.calls[-2:] == ["run", "destroy"]
    assert engine.destroyed
    assert error.value.configuration is CONFIGURATION
    assert error.value.reason == "Simulated crash"
    assert isinstance(error.value.__cause__, EngineError)


def test_factory_error():
    def failing_factory(config):
        raise EngineError("No engine available")

    with pytest.raises(ConfigurationFailed):
        SimulationInvoker(failing_factory, cfg_module, sparams_module).run(
            DESCRIPTION, CONFIGURATION
        )


class FlakyFactory(RecordingFactory):
    """The first failures engines crash while running."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    def __call__(self, config: EngineConfig):
        engine = FakeEngine(config, fail_on_run=len(self.engines) < self.failures)
        self.engines.append(engine)
        return engine


def test_with_retries():
    factory = FlakyFactory(failures=1)
    run = with_retries(SimulationInvoker(factory, cfg_module, sparams_module), 2)

    records = run(DESCRIPTION, CONFIGURATION)

    assert sorted(records) == [1, 2, 3, 4]
    assert len(factory.engines) == 2
    assert all(engine.destroyed for engine in factory.engines)


def test_with_retries_gives_up():
    factory = FlakyFactory(failures=3)
    run = with_retries(SimulationInvoker(factory, cfg_module, sparams_module), 2)

    with pytest.raises(ConfigurationFailed):
        run(DESCRIPTION, CONFIGURATION)

    assert len(factory.engines) == 2

    with pytest.raises(ValueError):
        with_retries(SimulationInvoker(factory, cfg_module, sparams_module), 0)


def test_engine_factory():
    engine = get_engine_factory(cfg_module, sparams_module)(EngineConfig())

    assert isinstance(engine, SimpyEngine)
    assert engine.sparams is sparams_module
    engine.destroy()


def test_unknown_engine():
    class NoEngineConfig(cfg_module):
        ENGINE = "ns3"

    with pytest.raises(ValueError):
        get_engine_factory(NoEngineConfig, sparams_module)
