from tests._user_config_tests import UserConfig as cfg_module
from tests._sim_params_tests import SimParams as sparams_module

from wifisweep.engine.base import EngineConfig, EngineError
from wifisweep.engine.network import build_radio_graph, get_sense_graph
from wifisweep.engine.simpy_engine import SimpyEngine
from wifisweep.sweep.aggregator import aggregate
from wifisweep.sweep.builder import FlowSpec, build_experiment
from wifisweep.sweep.grid import Configuration
from wifisweep.sweep.invoker import SimulationInvoker, get_engine_factory

import pytest


def make_configuration(**values) -> Configuration:
    return Configuration(tuple(values), tuple(values.values()))


def simulate(configuration, scenario="hidden-terminal"):
    description = build_experiment(configuration, sparams_module, cfg_module, scenario=scenario)
    invoker = SimulationInvoker(get_engine_factory(cfg_module, sparams_module), cfg_module, sparams_module)
    records = invoker.run(description, configuration)
    return records, aggregate(records, description, configuration, cfg_module, sparams_module)


def make_engine(positions, rts_cts_threshold_bytes=2200) -> SimpyEngine:
    engine = SimpyEngine(
        EngineConfig(
            {
                "rts_cts_threshold_bytes": rts_cts_threshold_bytes,
                "fragmentation_threshold_bytes": 2200,
            }
        ),
        cfg_module,
        sparams_module,
    )
    description = build_experiment(
        make_configuration(distance1=120, distance2=1000), sparams_module, cfg_module
    )
    nodes = engine.create_nodes(len(positions))
    engine.install_mobility(nodes, positions)
    engine.install_radio_and_network(nodes, description.radio)
    return engine


def cbr_flow(source=0, destination=1, packet_size_bytes=1000, **kwargs) -> FlowSpec:
    return FlowSpec(
        source,
        destination,
        packet_size_bytes,
        kwargs.pop("start_s", 1.0),
        kwargs.pop("stop_s", 1.2),
        data_rate_bps=kwargs.pop("data_rate_bps", 1e6),
        **kwargs,
    )


def test_radio_graph():
    engine = make_engine(((0, 0, 0), (120, 0, 0), (1000, 0, 0), (1120, 0, 0)))

    graph = engine.graph
    assert graph[0][1]["link"] and graph[0][1]["sense"]
    assert not graph[1][2]["sense"]  # Hidden from each other
    assert not graph[0][2]["link"]
    assert sorted(get_sense_graph(graph).edges) == [(0, 1), (2, 3)]
    assert engine.devices.get_addresses() == ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"]
    engine.destroy()


def test_flow_ids_follow_install_order():
    engine = make_engine(((0, 0, 0), (5, 0, 0)))

    flow_ids = [engine.install_flow(cbr_flow()) for _ in range(3)]
    flow_ids.append(engine.install_flow(cbr_flow(1, 0)))

    assert flow_ids == [1, 2, 3, 4]
    engine.destroy()


def test_near_link_delivers():
    records, result = simulate(make_configuration(data_rate_mbps=54), scenario="adhoc-link")

    (record,) = records.values()
    assert record.flow_id == 1
    assert record.rx_packets > 0
    assert record.rx_bytes == record.rx_packets * 1028
    assert record.tx_packets > record.rx_packets
    assert record.lost_packets > 0  # The client saturates the transmission queue
    assert 10 < result.total_throughput_mbps < 54
    assert result.avg_delay_us > 0


def test_far_link_delivers_nothing():
    records, result = simulate(
        make_configuration(distance1=2000, data_rate_mbps=54), scenario="adhoc-link"
    )

    assert records[1].tx_packets > 0
    assert records[1].rx_packets == 0
    assert result.total_throughput_mbps == 0
    assert result.avg_delay_us == 0


def test_lower_rate_gives_lower_throughput():
    _, fast = simulate(make_configuration(data_rate_mbps=54), scenario="adhoc-link")
    _, slow = simulate(make_configuration(data_rate_mbps=6), scenario="adhoc-link")

    assert 0 < slow.total_throughput_mbps < fast.total_throughput_mbps


def test_runs_are_reproducible():
    configuration = make_configuration(data_rate_mbps=54)

    assert simulate(configuration, "adhoc-link")[0] == simulate(configuration, "adhoc-link")[0]


def test_hidden_terminals_collide():
    records, close = simulate(make_configuration(distance1=120, distance2=1000))
    _, apart = simulate(make_configuration(distance1=120, distance2=2000))

    assert sorted(records) == [1, 2, 3, 4]
    assert records[1].rx_packets == records[2].rx_packets == 1  # Echo probes
    assert close.flow_count == apart.flow_count == 2
    assert apart.total_throughput_mbps > close.total_throughput_mbps


def test_rts_cts_protects_hidden_terminals():
    _, basic = simulate(
        make_configuration(distance1=120, distance2=1000, rts_cts_enabled=False)
    )
    _, protected = simulate(
        make_configuration(distance1=120, distance2=1000, rts_cts_enabled=True)
    )

    assert protected.total_throughput_mbps > basic.total_throughput_mbps


# Node counts the engine must reject
NODE_COUNT_TEST_CASES = [0, -1, 255, 2.5, True]


@pytest.mark.parametrize("count", NODE_COUNT_TEST_CASES)
def test_invalid_node_count(count):
    engine = SimpyEngine(EngineConfig(), cfg_module, sparams_module)

    with pytest.raises(EngineError):
        engine.create_nodes(count)


def test_invalid_positions():
    engine = SimpyEngine(EngineConfig(), cfg_module, sparams_module)
    nodes = engine.create_nodes(2)

    with pytest.raises(EngineError):
        engine.install_mobility(nodes, ((0, 0, 0),))
    with pytest.raises(EngineError):
        engine.install_mobility(nodes, ((0, 0, 0), (5, 0)))
    with pytest.raises(EngineError):
        engine.install_mobility(nodes, ((0, 0, 0), (5, "0", 0)))


def test_calls_out_of_order():
    engine = SimpyEngine(EngineConfig(), cfg_module, sparams_module)
    nodes = engine.create_nodes(2)

    with pytest.raises(EngineError):
        engine.install_flow(cbr_flow())
    with pytest.raises(EngineError):
        engine.run(1.0)
    with pytest.raises(EngineError):
        engine.create_nodes(2)

    engine.install_mobility(nodes, ((0, 0, 0), (5, 0, 0)))


# Each test case is a tuple: (flow, reason)
INVALID_FLOW_TEST_CASES = [
    (cbr_flow(0, 2), "missing destination"),
    (cbr_flow(1, 1), "same node"),
    (cbr_flow(kind="ftp"), "unknown generator"),
    (cbr_flow(start_s=1.2, stop_s=1.0), "stops before it starts"),
    (cbr_flow(packet_size_bytes=2200), "larger than the fragmentation threshold"),
]


@pytest.mark.parametrize("flow, reason", INVALID_FLOW_TEST_CASES)
def test_invalid_flows(flow, reason):
    engine = make_engine(((0, 0, 0), (5, 0, 0)))

    with pytest.raises(EngineError):
        engine.install_flow(flow)


def test_destroyed_engine():
    engine = make_engine(((0, 0, 0), (5, 0, 0)))
    engine.install_flow(cbr_flow())

    engine.destroy()
    engine.destroy()

    with pytest.raises(EngineError):
        engine.get_flow_statistics()
    with pytest.raises(EngineError):
        engine.run(1.2)


def test_set_default_writes_to_the_run_config():
    config = EngineConfig()
    engine = SimpyEngine(config, cfg_module, sparams_module)

    engine.set_default("rts_cts_threshold_bytes", 100)

    assert config.get("rts_cts_threshold_bytes") == 100
    assert EngineConfig().get("rts_cts_threshold_bytes") is None


def test_medium_counts_control_frames():
    engine = make_engine(((0, 0, 0), (5, 0, 0)), rts_cts_threshold_bytes=100)
    engine.install_flow(cbr_flow())
    engine.run(1.2)

    stats = engine.medium.stats
    assert stats.rts_tx > 0
    assert stats.rts_tx - 1 <= stats.cts_tx <= stats.rts_tx
    assert stats.ppdus_fail == 0
    assert 0 < stats.ppdus_success <= stats.ppdus_tx
    assert f"{stats.rts_tx} RTS" in stats.summary()

    (record,) = engine.get_flow_statistics().values()
    assert record.first_tx_time_us == 1_000_000
    assert record.first_rx_time_us > record.first_tx_time_us
    assert record.last_rx_time_us <= 1_200_000
    engine.destroy()
