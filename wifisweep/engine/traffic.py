from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.flow_monitor import FlowMonitor
from wifisweep.engine.network import Device
from wifisweep.utils.data_units import Packet
from wifisweep.utils.event_logger import get_logger

import simpy


class TrafficGenerator:
    def __init__(
        self,
        cfg: cfg_module,
        sparams: sparams_module,
        env: simpy.Environment,
        flow_id: int,
        flow,
        src_device: Device,
        dst_device: Device,
        monitor: FlowMonitor,
    ):
        """
        Send fixed-size packets from one device to another between the flow start and stop times.

        Args:
            cfg (cfg_module): The UserConfig object.
            sparams (sparams_module): The SimParams object.
            env (simpy.Environment): The engine environment.
            flow_id (int): The id assigned to the flow.
            flow (FlowSpec): What to send, and when.
            src_device (Device): The sending device.
            dst_device (Device): The receiving device.
            monitor (FlowMonitor): The flow monitor of the engine.
        """
        self.cfg = cfg
        self.sparams = sparams
        self.env = env

        self.flow_id = flow_id
        self.src_device = src_device
        self.dst_device = dst_device
        self.monitor = monitor

        self.payload_bytes = flow.packet_size_bytes
        self.interval_us = flow.packet_interval_s * 1e6
        self.max_packets = flow.max_packets
        self.start_time_us = flow.start_s * 1e6
        self.end_time_us = flow.stop_s * 1e6

        self.packet_id = 0

        self.name = "GEN"
        self.logger = get_logger(self.name, cfg, sparams, self.env)

        self.active_processes = []

        self.env.process(self._delayed_run())

    def _delayed_run(self):
        yield self.env.timeout(self.start_time_us)

        if self.end_time_us <= self.start_time_us:
            return

        self.run()

        yield self.env.timeout(self.end_time_us - self.start_time_us)
        self.stop()

    def stop(self):
        """Stop all running traffic generation processes."""
        for process in self.active_processes:
            if process.is_alive:
                process.interrupt()

        self.logger.debug(
            f"Flow {self.flow_id} ({self.src_device.address} -> {self.dst_device.address}) stopped after {self.packet_id} packets"
        )
        self.active_processes.clear()

    def run(self):
        self.logger.debug(
            f"Flow {self.flow_id} ({self.src_device.address} -> {self.dst_device.address}) started: "
            f"{self.payload_bytes} bytes every {self.interval_us:.2f} us"
        )
        self.active_processes.append(self.env.process(self.generate()))

    def generate(self):
        try:
            while self.max_packets is None or self.packet_id < self.max_packets:
                self._create_and_send_packet()
                yield self.env.timeout(self.interval_us)
        except simpy.Interrupt:
            pass

    def _create_and_send_packet(self):
        """Creates a packet and hands it to the MAC layer of the source device."""
        self.packet_id += 1
        packet = Packet(
            id=self.packet_id,
            flow_id=self.flow_id,
            payload_bytes=self.payload_bytes,
            src_id=self.src_device.id,
            dst_id=self.dst_device.id,
            creation_time_us=self.env.now,
        )
        self.monitor.record_tx(packet)
        self.src_device.mac.enqueue(packet)


class OnOffGenerator(TrafficGenerator):
    """Constant bit rate source, always in the On state."""


class EchoClient(TrafficGenerator):
    """Sends up to max_packets probes, one every interval. Nothing is echoed back."""

    def run(self):
        self.logger.debug(
            f"Echo probe {self.flow_id} ({self.src_device.address} -> {self.dst_device.address}): "
            f"{self.max_packets} x {self.payload_bytes} bytes"
        )
        self.active_processes.append(self.env.process(self.generate()))


TRAFFIC_GENERATORS = {
    "cbr": OnOffGenerator,
    "echo": EchoClient,
}
