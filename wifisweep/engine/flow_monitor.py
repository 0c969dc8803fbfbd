from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.base import FlowRecord
from wifisweep.utils.data_units import Packet
from wifisweep.utils.event_logger import get_logger
from wifisweep.utils.statistics import FlowStats

import simpy


class FlowMonitor:
    """
    Per-flow counters at the IP level.

    A packet is in flight from the moment its generator sends it until it is delivered
    or dropped. Flows that never sent a packet are not reported.
    """

    def __init__(self, cfg: cfg_module, sparams: sparams_module, env: simpy.Environment):
        self.cfg = cfg
        self.sparams = sparams
        self.env = env

        self.flows: dict[int, FlowStats] = {}
        self.in_flight: dict[tuple[int, int], Packet] = {}

        self.name = "MONITOR"
        self.logger = get_logger(self.name, cfg, sparams, env)

    def add_flow(self, flow_id: int, src_address: str, dst_address: str):
        self.flows[flow_id] = FlowStats(flow_id, src_address, dst_address)
        self.logger.debug(f"Flow {flow_id} ({src_address} -> {dst_address}) added")

    def record_tx(self, packet: Packet):
        self.flows[packet.flow_id].add_tx(packet, self.env.now)
        self.in_flight[(packet.flow_id, packet.id)] = packet

    def record_rx(self, packet: Packet) -> bool:
        """
        Record the delivery of a packet at its destination.

        Returns:
            bool: False if the packet had already been delivered (duplicate reception).
        """
        if self.in_flight.pop((packet.flow_id, packet.id), None) is None:
            self.logger.debug(f"Duplicate reception of {packet}, ignored")
            return False

        self.flows[packet.flow_id].add_rx(packet, self.env.now)
        return True

    def record_drop(self, packet: Packet, reason: str):
        if self.in_flight.pop((packet.flow_id, packet.id), None) is None:
            return

        stats = self.flows[packet.flow_id]
        match reason:
            case "queue":
                stats.pkts_dropped_queue_lim += 1
            case "retry":
                stats.pkts_dropped_retry_lim += 1
            case _:
                raise ValueError(f"Invalid drop reason: {reason}")

        self.logger.debug(f"{packet} dropped ({reason} limit)")

    def check_for_lost_packets(self):
        """Declare lost every packet in flight for longer than the maximum per-hop delay."""
        max_delay_us = self.sparams.MAX_PER_HOP_DELAY_s * 1e6
        for key, packet in list(self.in_flight.items()):
            if self.env.now - packet.creation_time_us > max_delay_us:
                self.flows[packet.flow_id].pkts_timed_out += 1
                del self.in_flight[key]

    def snapshot(self) -> dict[int, FlowRecord]:
        self.check_for_lost_packets()
        return {
            flow_id: FlowRecord(
                flow_id=flow_id,
                tx_bytes=stats.tx_bytes,
                rx_bytes=stats.rx_bytes,
                tx_packets=stats.tx_packets,
                rx_packets=stats.rx_packets,
                delay_sum_us=stats.delay_sum_us,
                lost_packets=stats.lost_packets,
                jitter_sum_us=stats.jitter_sum_us,
                first_tx_time_us=stats.first_tx_time_us,
                last_tx_time_us=stats.last_tx_time_us,
                first_rx_time_us=stats.first_rx_time_us,
                last_rx_time_us=stats.last_rx_time_us,
            )
            for flow_id, stats in sorted(self.flows.items())
            if stats.tx_packets > 0
        }
