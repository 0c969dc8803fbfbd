from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.base import Engine, EngineConfig, EngineError, FlowRecord
from wifisweep.engine.flow_monitor import FlowMonitor
from wifisweep.engine.medium import DcfMac, Medium
from wifisweep.engine.network import (
    Device,
    DeviceSet,
    Node,
    NodeSet,
    build_radio_graph,
    get_sense_graph,
)
from wifisweep.engine.traffic import TRAFFIC_GENERATORS
from wifisweep.utils.event_logger import get_logger, update_loggers_environment
from wifisweep.utils.rate_table import describe_rate, get_highest_rate_mbps

import networkx as nx
import random
import simpy

MAX_NODES = 254  # One /24 subnet


class SimpyEngine(Engine):
    """Reference engine: a small 802.11a DCF model on the simpy discrete-event kernel."""

    def __init__(
        self,
        config: EngineConfig,
        cfg: cfg_module = cfg_module,
        sparams: sparams_module = sparams_module,
    ):
        super().__init__(config)
        self.cfg = cfg
        self.sparams = sparams

        self.env = simpy.Environment()
        self.rng = random.Random(cfg.SEED)

        self.nodes: NodeSet | None = None
        self.devices: DeviceSet | None = None
        self.graph: nx.Graph | None = None
        self.medium: Medium | None = None
        self.monitor = FlowMonitor(cfg, sparams, self.env)
        self.generators = {}

        self.mobility_installed = False
        self.destroyed = False

        update_loggers_environment(self.env)

        self.name = "ENGINE"
        self.logger = get_logger(self.name, cfg, sparams, self.env)

    def _check_alive(self):
        if self.destroyed:
            raise EngineError("The engine has been destroyed")

    def create_nodes(self, count: int) -> NodeSet:
        self._check_alive()
        if self.nodes is not None:
            raise EngineError("Nodes have already been created")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise EngineError(f"Invalid node count: {count}. It must be a positive integer.")
        if count > MAX_NODES:
            raise EngineError(f"Invalid node count: {count}. At most {MAX_NODES} nodes are supported.")

        self.nodes = NodeSet([Node(node_id) for node_id in range(count)])
        self.logger.debug(f"Created {count} nodes")
        return self.nodes

    def install_mobility(self, nodes: NodeSet, positions) -> None:
        self._check_alive()
        if nodes is not self.nodes:
            raise EngineError("Mobility must be installed on the nodes created by this engine")
        if len(positions) != len(nodes):
            raise EngineError(
                f"Got {len(positions)} positions for {len(nodes)} nodes"
            )

        for node, position in zip(nodes, positions):
            if len(position) != 3 or not all(
                isinstance(coordinate, (int, float)) and not isinstance(coordinate, bool)
                for coordinate in position
            ):
                raise EngineError(f"Invalid position for node {node.id}: {position}")
            node.position = tuple(float(coordinate) for coordinate in position)

        self.mobility_installed = True
        self.logger.debug(f"Positions: {[node.position for node in nodes]}")

    def install_radio_and_network(self, nodes: NodeSet, radio) -> DeviceSet:
        self._check_alive()
        if not self.mobility_installed:
            raise EngineError("Mobility must be installed before the radio devices")
        if self.devices is not None:
            raise EngineError("Radio devices have already been installed")

        self.graph = build_radio_graph(nodes, radio)
        self.medium = Medium(self.cfg, self.sparams, self.env, self.graph, radio)

        devices = []
        for node in nodes:
            device = Device(node, f"10.0.0.{node.id + 1}")
            device.mac = DcfMac(
                self.cfg,
                self.sparams,
                self.env,
                device,
                self.medium,
                self.monitor,
                self.config,
                self.rng,
            )
            devices.append(device)
        self.devices = DeviceSet(devices)

        sense_graph = get_sense_graph(self.graph)
        self.logger.debug(
            f"{radio.standard}, data mode {radio.data_mode}, control mode {radio.control_mode}. "
            f"Carrier sensing pairs: {sorted(sense_graph.edges)}"
        )
        return self.devices

    def install_flow(self, flow) -> int:
        self._check_alive()
        if self.devices is None:
            raise EngineError("Radio devices must be installed before any flow")

        for node_id in (flow.source, flow.destination):
            if not 0 <= node_id < len(self.devices):
                raise EngineError(f"Flow references node {node_id}, which does not exist")
        if flow.source == flow.destination:
            raise EngineError(f"Flow source and destination are the same node ({flow.source})")
        if flow.kind not in TRAFFIC_GENERATORS:
            raise EngineError(f"Invalid traffic generator: {flow.kind}")
        if flow.stop_s < flow.start_s:
            raise EngineError(f"Flow stops ({flow.stop_s} s) before it starts ({flow.start_s} s)")

        frame_bytes = (
            flow.packet_size_bytes
            + self.sparams.IP_UDP_HEADER_SIZE_bytes
            + self.sparams.MAC_HEADER_SIZE_bytes
            + self.sparams.LLC_HEADER_SIZE_bytes
            + self.sparams.FCS_SIZE_bytes
        )
        fragmentation_threshold = self.config.get(
            "fragmentation_threshold_bytes", self.sparams.FRAGMENTATION_THRESHOLD_bytes
        )
        if frame_bytes > fragmentation_threshold:
            raise EngineError(
                f"Frames of {frame_bytes} bytes exceed the fragmentation threshold ({fragmentation_threshold} bytes), fragmentation is not supported"
            )

        flow_id = len(self.generators) + 1
        src_device = self.devices[flow.source]
        dst_device = self.devices[flow.destination]

        link = self.graph[flow.source][flow.destination]
        if not link["link"]:
            self.logger.warning(
                f"Flow {flow_id}: {src_device.address} -> {dst_device.address} is out of range at "
                f"{describe_rate(self.medium.radio.data_rate_mbps)} ({link['distance_m']:.1f} m, SNR {link['snr_db']:.1f} dB, "
                f"highest usable rate {get_highest_rate_mbps(link['snr_db'])} Mbps)"
            )

        self.monitor.add_flow(flow_id, src_device.address, dst_device.address)
        self.generators[flow_id] = TRAFFIC_GENERATORS[flow.kind](
            self.cfg,
            self.sparams,
            self.env,
            flow_id,
            flow,
            src_device,
            dst_device,
            self.monitor,
        )
        return flow_id

    def run(self, duration_s: float) -> None:
        self._check_alive()
        if self.devices is None:
            raise EngineError("Nothing to run: radio devices are not installed")
        if duration_s <= 0:
            raise EngineError(f"Invalid run duration: {duration_s} s")

        self.env.run(until=duration_s * 1e6)

        self.logger.debug(
            f"Run finished: {self.medium.stats.summary()}"
        )

    def get_flow_statistics(self) -> dict[int, FlowRecord]:
        self._check_alive()
        return self.monitor.snapshot()

    def destroy(self) -> None:
        if self.destroyed:
            return
        for generator in self.generators.values():
            generator.active_processes.clear()
        self.generators.clear()
        self.nodes = self.devices = self.graph = self.medium = None
        self.destroyed = True
        update_loggers_environment(None)
