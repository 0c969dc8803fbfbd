from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.sweep.errors import ConfigurationError
from wifisweep.sweep.grid import Configuration
from wifisweep.utils.event_logger import get_logger
from wifisweep.utils.rate_table import get_phy_mode_name, validate_rate_mbps

from dataclasses import dataclass
from typing import Callable

import math

SCENARIOS: dict[str, Callable] = {}


@dataclass(frozen=True)
class RadioParams:
    standard: str
    data_rate_mbps: int
    control_rate_mbps: int
    frequency_ghz: float
    channel_width_mhz: int
    tx_power_dbm: float
    tx_gain_db: float
    rx_gain_db: float
    rx_noise_figure_db: float
    propagation_loss_model: str
    path_loss_exponent: float
    cca_threshold_dbm: float

    @property
    def data_mode(self) -> str:
        return get_phy_mode_name(self.data_rate_mbps)

    @property
    def control_mode(self) -> str:
        return get_phy_mode_name(self.control_rate_mbps)


@dataclass(frozen=True)
class EngineDefaults:
    """Per-run engine defaults, applied to a fresh EngineConfig before each run."""

    rts_cts_threshold_bytes: int
    fragmentation_threshold_bytes: int

    def items(self) -> tuple:
        return (
            ("rts_cts_threshold_bytes", self.rts_cts_threshold_bytes),
            ("fragmentation_threshold_bytes", self.fragmentation_threshold_bytes),
        )


@dataclass(frozen=True)
class FlowSpec:
    """
    One traffic generator.

    A flow either sends at a constant bit rate (data_rate_bps) or every interval_s seconds.
    slot is the 1-based position the flow is installed at, which is also the flow id
    the engine assigns to it.
    """

    source: int
    destination: int
    packet_size_bytes: int
    start_s: float
    stop_s: float
    kind: str = "cbr"  # "cbr" or "echo"
    data_rate_bps: float | None = None
    interval_s: float | None = None
    max_packets: int | None = None  # None for unbounded
    is_measurement_flow: bool = True
    slot: int = 0

    @property
    def packet_interval_s(self) -> float:
        if self.interval_s is not None:
            return self.interval_s
        return self.packet_size_bytes * 8 / self.data_rate_bps

    @property
    def finish_s(self) -> float:
        """Latest time the flow can still be sending."""
        if self.max_packets is None:
            return self.stop_s
        return min(self.stop_s, self.start_s + self.packet_interval_s * self.max_packets)


@dataclass(frozen=True)
class ExperimentDescription:
    scenario: str
    node_count: int
    positions: tuple
    radio: RadioParams
    defaults: EngineDefaults
    flows: tuple
    duration_s: float
    measurement_start_s: float

    @property
    def flow_tags(self) -> tuple:
        """Measurement flag of each flow, in install order."""
        return tuple(flow.is_measurement_flow for flow in self.flows)

    @property
    def bookkeeping_flow_ids(self) -> frozenset:
        """Ids of the non-measurement flows, given ids 1..N in install order."""
        return frozenset(
            flow_id
            for flow_id, is_measurement in enumerate(self.flow_tags, start=1)
            if not is_measurement
        )

    @property
    def measurement_flow_ids(self) -> tuple:
        return tuple(
            flow_id
            for flow_id, is_measurement in enumerate(self.flow_tags, start=1)
            if is_measurement
        )

    @property
    def measurement_window_s(self) -> float:
        return self.duration_s - self.measurement_start_s


def register_scenario(name: str):
    def decorator(build_fn: Callable) -> Callable:
        SCENARIOS[name] = build_fn
        return build_fn

    return decorator


def _lookup(configuration: Configuration, fixed: dict, name: str, default=None):
    if name in configuration:
        return configuration[name]
    return fixed.get(name, default)


def _require_number(name: str, value, non_negative: bool = True) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Invalid {name}: {value}. It must be a number.")
    if non_negative and value < 0:
        raise ConfigurationError(f"Invalid {name}: {value}. It must be non-negative.")
    return value


def _require_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"Invalid {name}: {value}. It must be a positive integer.")
    return value


def _build_radio(configuration: Configuration, fixed: dict, sparams) -> RadioParams:
    rate = _lookup(configuration, fixed, "data_rate_mbps", sparams.DATA_RATE_Mbps)
    try:
        data_rate_mbps = validate_rate_mbps(rate)
        control_rate_mbps = validate_rate_mbps(sparams.CONTROL_RATE_Mbps)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    return RadioParams(
        standard=sparams.STANDARD,
        data_rate_mbps=data_rate_mbps,
        control_rate_mbps=control_rate_mbps,
        frequency_ghz=sparams.FREQUENCY_GHz,
        channel_width_mhz=sparams.CHANNEL_WIDTH_MHz,
        tx_power_dbm=sparams.TX_POWER_dBm,
        tx_gain_db=sparams.TX_GAIN_dB,
        rx_gain_db=sparams.RX_GAIN_dB,
        rx_noise_figure_db=sparams.RX_NOISE_FIGURE_dB,
        propagation_loss_model=sparams.PROPAGATION_LOSS_MODEL,
        path_loss_exponent=sparams.PATH_LOSS_EXPONENT,
        cca_threshold_dbm=sparams.CCA_THRESHOLD_dBm,
    )


def _build_defaults(configuration: Configuration, fixed: dict, sparams) -> EngineDefaults:
    rts_cts_enabled = _lookup(configuration, fixed, "rts_cts_enabled", False)
    if not isinstance(rts_cts_enabled, bool):
        raise ConfigurationError(
            f"Invalid rts_cts_enabled: {rts_cts_enabled}. It must be a boolean."
        )

    return EngineDefaults(
        rts_cts_threshold_bytes=(
            sparams.RTS_CTS_THRESHOLD_ENABLED_bytes
            if rts_cts_enabled
            else sparams.RTS_CTS_THRESHOLD_DISABLED_bytes
        ),
        fragmentation_threshold_bytes=sparams.FRAGMENTATION_THRESHOLD_bytes,
    )


@register_scenario("hidden-terminal")
def build_hidden_terminal(configuration: Configuration, fixed: dict, sparams) -> dict:
    """
    Four nodes on a line: 0 -> 1 and 2 -> 3, with nodes 1 and 2 distance2 - distance1 apart.

    One echo probe per pair runs before the warm-up margin. Both CBR flows then start
    at the margin and saturate the channel until the end of the run.
    """
    d1 = _lookup(configuration, fixed, "distance1")
    d2 = _lookup(configuration, fixed, "distance2")
    if d1 is None or d2 is None:
        raise ConfigurationError("The hidden-terminal scenario needs distance1 and distance2")

    d1 = _require_number("distance1", d1)
    d2 = _require_number("distance2", d2)
    if d1 > d2:
        raise ConfigurationError(f"distance1 ({d1}) is greater than distance2 ({d2})")

    packet_size = _require_positive_int(
        "packet_size_bytes",
        _lookup(configuration, fixed, "packet_size_bytes", sparams.PACKET_SIZE_bytes),
    )

    gaps = (d1, d2 - d1, d1)
    x = 0
    positions = [(0.0, 0.0, 0.0)]
    for gap in gaps:
        x += gap
        positions.append((float(x), 0.0, 0.0))

    pairs = ((0, 1), (2, 3))
    probes = [
        FlowSpec(
            source=src,
            destination=dst,
            packet_size_bytes=sparams.PROBE_PACKET_SIZE_bytes,
            start_s=start_s,
            stop_s=start_s + sparams.PROBE_INTERVAL_s,
            kind="echo",
            interval_s=sparams.PROBE_INTERVAL_s,
            max_packets=1,
            is_measurement_flow=False,
            slot=slot,
        )
        for slot, ((src, dst), start_s) in enumerate(
            zip(pairs, sparams.PROBE_START_TIMES_s), start=1
        )
    ]
    cbr_flows = [
        FlowSpec(
            source=src,
            destination=dst,
            packet_size_bytes=packet_size,
            start_s=sparams.WARMUP_s,
            stop_s=sparams.HIDDEN_TERMINAL_DURATION_s,
            kind="cbr",
            data_rate_bps=rate_bps,
            slot=slot,
        )
        for slot, ((src, dst), rate_bps) in enumerate(
            zip(pairs, sparams.CBR_RATES_bps), start=len(probes) + 1
        )
    ]

    return {
        "node_count": 4,
        "positions": tuple(positions),
        "flows": probes + cbr_flows,
        "duration_s": sparams.HIDDEN_TERMINAL_DURATION_s,
    }


@register_scenario("adhoc-link")
def build_adhoc_link(configuration: Configuration, fixed: dict, sparams) -> dict:
    """Two nodes distance1 apart, one UDP client stream at the configured PHY rate."""
    distance = _require_number(
        "distance1",
        _lookup(configuration, fixed, "distance1", sparams.ADHOC_LINK_DISTANCE_m),
    )
    packet_size = _require_positive_int(
        "packet_size_bytes",
        _lookup(configuration, fixed, "packet_size_bytes", sparams.PACKET_SIZE_bytes),
    )

    client = FlowSpec(
        source=0,
        destination=1,
        packet_size_bytes=packet_size,
        start_s=sparams.WARMUP_s,
        stop_s=sparams.ADHOC_LINK_DURATION_s,
        kind="cbr",
        interval_s=packet_size * 8 / sparams.ADHOC_LINK_RATE_bps,
        max_packets=sparams.MAX_CLIENT_PACKETS,
        slot=1,
    )

    return {
        "node_count": 2,
        "positions": ((0.0, 0.0, 0.0), (float(distance), 0.0, 0.0)),
        "flows": [client],
        "duration_s": sparams.ADHOC_LINK_DURATION_s,
    }


def _order_flows(flows: list) -> tuple:
    slots = [flow.slot for flow in flows]
    if len(set(slots)) != len(slots):
        raise ConfigurationError(f"Two flows share an install slot: {sorted(slots)}")
    ordered = sorted(flows, key=lambda flow: flow.slot)
    if [flow.slot for flow in ordered] != list(range(1, len(ordered) + 1)):
        raise ConfigurationError(
            f"Install slots must be 1..{len(ordered)}, got {sorted(slots)}"
        )
    return tuple(ordered)


def _validate(description: ExperimentDescription, sparams) -> None:
    for position in description.positions:
        if any(coordinate < 0 for coordinate in position):
            raise ConfigurationError(f"Negative position: {position}")

    if description.duration_s <= description.measurement_start_s:
        raise ConfigurationError(
            f"Run duration ({description.duration_s} s) does not exceed the measurement start ({description.measurement_start_s} s)"
        )

    for flow in description.flows:
        for node in (flow.source, flow.destination):
            if not 0 <= node < description.node_count:
                raise ConfigurationError(
                    f"Flow {flow.slot} references node {node}, but only {description.node_count} nodes exist"
                )
        if flow.start_s < 0 or flow.stop_s < 0:
            raise ConfigurationError(
                f"Flow {flow.slot} has a negative time: start={flow.start_s}, stop={flow.stop_s}"
            )
        if flow.stop_s < flow.start_s:
            raise ConfigurationError(
                f"Flow {flow.slot} stops ({flow.stop_s} s) before it starts ({flow.start_s} s)"
            )
        if (flow.data_rate_bps is None) == (flow.interval_s is None):
            raise ConfigurationError(
                f"Flow {flow.slot} must set exactly one of data_rate_bps and interval_s"
            )
        if flow.packet_interval_s <= 0:
            raise ConfigurationError(f"Flow {flow.slot} has a non-positive packet interval")

        if flow.is_measurement_flow:
            if not math.isclose(flow.start_s, sparams.WARMUP_s):
                raise ConfigurationError(
                    f"Measurement flow {flow.slot} starts at {flow.start_s} s instead of the warm-up margin ({sparams.WARMUP_s} s)"
                )
        elif flow.finish_s >= description.measurement_start_s:
            raise ConfigurationError(
                f"Bookkeeping flow {flow.slot} runs until {flow.finish_s} s, past the measurement start ({description.measurement_start_s} s)"
            )


def build_experiment(
    configuration: Configuration,
    sparams: sparams_module = sparams_module,
    cfg: cfg_module = cfg_module,
    scenario: str = "hidden-terminal",
    fixed: dict | None = None,
) -> ExperimentDescription:
    """
    Build the description of one experiment.

    Swept parameters take precedence over the fixed ones, and anything left unset falls
    back to the SimParams defaults. Identical inputs give identical descriptions.

    Args:
        configuration (Configuration): The swept parameter values.
        sparams (sparams_module, optional): The SimParams object. Defaults to SimParams.
        cfg (cfg_module, optional): The UserConfig object. Defaults to UserConfig.
        scenario (str, optional): The scenario name. Defaults to "hidden-terminal".
        fixed (dict | None, optional): Parameters held constant across the sweep. Defaults to None.

    Returns:
        ExperimentDescription: The experiment to run.

    Raises:
        ConfigurationError: If the configuration cannot describe a valid experiment.
    """
    logger = get_logger("BUILDER", cfg, sparams)
    fixed = fixed or {}

    if scenario not in SCENARIOS:
        raise ConfigurationError(
            f"Unknown scenario: '{scenario}'. Available scenarios: {sorted(SCENARIOS)}"
        )

    layout = SCENARIOS[scenario](configuration, fixed, sparams)

    description = ExperimentDescription(
        scenario=scenario,
        node_count=layout["node_count"],
        positions=layout["positions"],
        radio=_build_radio(configuration, fixed, sparams),
        defaults=_build_defaults(configuration, fixed, sparams),
        flows=_order_flows(layout["flows"]),
        duration_s=layout["duration_s"],
        measurement_start_s=sparams.WARMUP_s,
    )
    _validate(description, sparams)

    logger.debug(
        f"{scenario} [{configuration}] -> {description.node_count} nodes at x = {[p[0] for p in description.positions]}, "
        f"{len(description.flows)} flows (bookkeeping ids {sorted(description.bookkeeping_flow_ids)})"
    )
    return description
