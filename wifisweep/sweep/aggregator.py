from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.base import FlowRecord
from wifisweep.sweep.builder import ExperimentDescription
from wifisweep.sweep.errors import FlowMappingError
from wifisweep.sweep.grid import Configuration
from wifisweep.utils.event_logger import get_logger

from dataclasses import dataclass

import numpy as np

BITS_PER_BYTE = 8
MEGA = 1024 * 1024  # Throughput is reported in binary megabits per second


@dataclass(frozen=True)
class FlowMetrics:
    flow_id: int
    throughput_mbps: float
    delay_us: float
    tx_packets: int
    rx_packets: int
    lost_packets: int
    tx_bytes: int = 0
    rx_bytes: int = 0
    jitter_us: float = 0.0  # Mean delay variation between consecutive deliveries
    first_tx_time_s: float | None = None
    last_tx_time_s: float | None = None
    first_rx_time_s: float | None = None
    last_rx_time_s: float | None = None


@dataclass(frozen=True)
class AggregateResult:
    configuration: Configuration
    total_throughput_mbps: float
    avg_throughput_mbps: float
    avg_delay_us: float
    flow_count: int
    per_flow: tuple = ()


def get_flow_metrics(record: FlowRecord, window_s: float) -> FlowMetrics:
    """
    Throughput over the measurement window and mean delay of one flow.

    A flow that delivered nothing has a delay of 0, and one that delivered fewer than
    two packets has a jitter of 0.
    """

    def to_s(time_us):
        return None if time_us is None else time_us / 1e6

    return FlowMetrics(
        flow_id=record.flow_id,
        throughput_mbps=record.rx_bytes * BITS_PER_BYTE / window_s / MEGA,
        delay_us=(
            record.delay_sum_us / record.rx_packets if record.rx_packets > 0 else 0.0
        ),
        tx_packets=record.tx_packets,
        rx_packets=record.rx_packets,
        lost_packets=record.lost_packets,
        tx_bytes=record.tx_bytes,
        rx_bytes=record.rx_bytes,
        jitter_us=(
            record.jitter_sum_us / (record.rx_packets - 1)
            if record.rx_packets > 1
            else 0.0
        ),
        first_tx_time_s=to_s(record.first_tx_time_us),
        last_tx_time_s=to_s(record.last_tx_time_us),
        first_rx_time_s=to_s(record.first_rx_time_us),
        last_rx_time_s=to_s(record.last_rx_time_us),
    )


def aggregate(
    records: dict[int, FlowRecord],
    description: ExperimentDescription,
    configuration: Configuration,
    cfg: cfg_module = cfg_module,
    sparams: sparams_module = sparams_module,
) -> AggregateResult:
    """
    Reduce the measurement flows of one experiment to aggregate throughput and delay.

    Bookkeeping flows are excluded by id. Measurement flows the engine did not report
    (they never sent a packet) count as flows that delivered nothing.

    Args:
        records (dict[int, FlowRecord]): The engine records, keyed by flow id.
        description (ExperimentDescription): The experiment that produced the records.
        configuration (Configuration): The configuration of the experiment.
        cfg (cfg_module, optional): The UserConfig object. Defaults to UserConfig.
        sparams (sparams_module, optional): The SimParams object. Defaults to SimParams.

    Returns:
        AggregateResult: The aggregate result.

    Raises:
        FlowMappingError: If a record carries a flow id that was never installed.
    """
    logger = get_logger("AGG", cfg, sparams)

    installed_ids = range(1, len(description.flows) + 1)
    for flow_id in records:
        if flow_id not in installed_ids:
            raise FlowMappingError(flow_id, installed_ids)

    window_s = description.measurement_window_s
    per_flow = []
    for flow_id in description.measurement_flow_ids:
        record = records.get(flow_id)
        if record is None:
            logger.warning(
                f"[{configuration}] Measurement flow {flow_id} has no record, counted as 0 Mbps"
            )
            record = FlowRecord(flow_id, 0, 0, 0, 0, 0, 0)
        per_flow.append(get_flow_metrics(record, window_s))

    throughputs = np.array([metrics.throughput_mbps for metrics in per_flow], dtype=float)
    delays = np.array([metrics.delay_us for metrics in per_flow], dtype=float)

    result = AggregateResult(
        configuration=configuration,
        total_throughput_mbps=float(np.sum(throughputs)),
        avg_throughput_mbps=float(np.mean(throughputs)) if len(per_flow) else 0.0,
        avg_delay_us=float(np.mean(delays)) if len(per_flow) else 0.0,
        flow_count=len(per_flow),
        per_flow=tuple(per_flow),
    )

    logger.debug(
        f"[{configuration}] {result.flow_count} flows: {result.total_throughput_mbps:.4f} Mbps, "
        f"{result.avg_delay_us:.1f} us"
    )
    return result
