from tests._user_config_tests import UserConfig as cfg_module
from tests._sim_params_tests import FullRunSimParams as sparams_module
from tests._fake_engine import FakeEngine

from wifisweep.sweep.driver import run_sweep
from wifisweep.sweep.errors import (
    ConfigurationError,
    ConfigurationFailed,
    FlowMappingError,
    SinkWriteError,
)
from wifisweep.sweep.grid import ConfigurationGrid
from wifisweep.sweep.sink import DiagnosticsSink, ResultSink

import functools
import pytest
import json

DISTANCE2_m = list(range(1000, 2001, 10))


def make_grid(distance1=(120,), distance2=DISTANCE2_m, policy="pair-ordered"):
    return ConfigurationGrid(
        {"distance1": list(distance1), "distance2": list(distance2)}, policy
    )


def make_sink(path) -> ResultSink:
    return ResultSink(str(path), ("distance1", "distance2"), cfg_module, sparams_module)


def sweep(grid, path, engine_factory=FakeEngine, **kwargs):
    return run_sweep(
        grid,
        make_sink(path),
        engine_factory,
        fixed={"rts_cts_enabled": False, "data_rate_mbps": 54},
        cfg=cfg_module,
        sparams=sparams_module,
        **kwargs,
    )


def test_end_to_end(tmp_path):
    path = tmp_path / "tp.txt"

    report = sweep(make_grid(distance2=[1000]), path)

    (line,) = path.read_text().splitlines()
    distance1, distance2, throughput_mbps, delay_us = line.split()
    assert (distance1, distance2) == ("120", "1000")
    assert float(throughput_mbps) == pytest.approx(0.6466, abs=1e-4)
    assert throughput_mbps.startswith("0.6465")
    assert float(delay_us) == 500.0  # Flow 3: 1000 us, flow 4: nothing received
    assert (report.total, report.completed, report.exit_code) == (1, 1, 0)


def test_full_sweep_in_grid_order(tmp_path):
    path = tmp_path / "tp.txt"

    report = sweep(make_grid(), path)

    lines = path.read_text().splitlines()
    assert len(lines) == 101
    assert [int(line.split()[1]) for line in lines] == DISTANCE2_m
    assert report.completed == 101
    assert report.skipped == []


def test_failed_configuration_is_skipped(tmp_path):
    path = tmp_path / "tp.txt"
    diagnostics_path = tmp_path / "diagnostics.jsonl"
    factory = functools.partial(FakeEngine, failing_positions_m=(1010,))

    report = sweep(
        make_grid(),
        path,
        factory,
        failure_policy="skip",
        diagnostics=DiagnosticsSink(str(diagnostics_path), cfg_module, sparams_module),
    )

    lines = path.read_text().splitlines()
    assert len(lines) == 100
    assert "120 1010" not in [" ".join(line.split()[:2]) for line in lines]
    assert report.exit_code == 0
    ((configuration, error),) = report.skipped
    assert configuration.as_dict() == {"distance1": 120, "distance2": 1010}
    assert isinstance(error, ConfigurationFailed)

    entries = [json.loads(line) for line in diagnostics_path.read_text().splitlines()]
    assert len(entries) == 101
    (entry,) = [entry for entry in entries if entry["status"] == "skipped"]
    assert entry["error"] == "ConfigurationFailed"
    assert entry["configuration"] == {"distance1": 120, "distance2": 1010}


def test_failed_configuration_aborts(tmp_path):
    path = tmp_path / "tp.txt"
    factory = functools.partial(FakeEngine, failing_positions_m=(1010,))

    report = sweep(make_grid(), path, factory, failure_policy="abort")

    assert len(path.read_text().splitlines()) == 1
    assert report.aborted
    assert report.exit_code == 1


def test_configuration_error_never_aborts(tmp_path):
    path = tmp_path / "tp.txt"

    report = sweep(
        make_grid(distance1=(1500, 120), distance2=(1000,), policy="all"),
        path,
        failure_policy="abort",
    )

    assert path.read_text().split()[:2] == ["120", "1000"]
    assert not report.aborted
    ((_, error),) = report.skipped
    assert isinstance(error, ConfigurationError)


def test_unknown_flow_id_is_a_configuration_failure(tmp_path):
    factory = functools.partial(FakeEngine, extra_flow_ids=(9,))

    report = sweep(make_grid(distance2=[1000, 1010]), tmp_path / "tp.txt", factory, failure_policy="abort")

    assert report.aborted
    assert isinstance(report.skipped[0][1], FlowMappingError)


def test_sink_write_error_stops_the_sweep(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    with pytest.raises(SinkWriteError):
        sweep(make_grid(distance2=[1000, 1010]), blocker / "tp.txt")


def test_parallel_workers_keep_grid_order(tmp_path):
    sequential_path = tmp_path / "sequential.txt"
    parallel_path = tmp_path / "parallel.txt"
    grid = make_grid(distance2=range(1000, 1100, 10))
    factory = functools.partial(FakeEngine, failing_positions_m=(1030,))

    sweep(grid, sequential_path, factory)
    report = sweep(grid, parallel_path, factory, workers=2)

    assert parallel_path.read_text() == sequential_path.read_text()
    assert report.completed == 9
    assert len(report.skipped) == 1


def test_invalid_arguments(tmp_path):
    with pytest.raises(ValueError):
        sweep(make_grid(), tmp_path / "tp.txt", failure_policy="retry")
    with pytest.raises(ValueError):
        sweep(make_grid(), tmp_path / "tp.txt", workers=0)


def test_per_flow_metrics_are_recorded(tmp_path):
    diagnostics_path = tmp_path / "diagnostics.jsonl"

    sweep(
        make_grid(distance1=(1500, 120), distance2=(1000,), policy="all"),
        tmp_path / "tp.txt",
        diagnostics=DiagnosticsSink(str(diagnostics_path), cfg_module, sparams_module),
    )

    skipped, completed = [
        json.loads(line) for line in diagnostics_path.read_text().splitlines()
    ]
    assert skipped["status"] == "skipped"
    assert skipped["error"] == "ConfigurationError"
    assert "per_flow" not in skipped

    assert completed["status"] == "completed"
    assert completed["configuration"] == {"distance1": 120, "distance2": 1000}
    flow_3, flow_4 = completed["per_flow"]
    assert (flow_3["flow_id"], flow_4["flow_id"]) == (3, 4)
    assert flow_3["rx_bytes"] == 5_000_000
    assert flow_3["rx_packets"] == 4000
    assert flow_3["delay_us"] == 1000.0
    assert flow_3["throughput_mbps"] == pytest.approx(completed["total_throughput_mbps"])
    assert (flow_4["rx_packets"], flow_4["throughput_mbps"]) == (0, 0.0)
