from wifisweep.utils.data_units import Packet


class FlowStats:
    """Per-flow counters kept by the flow monitor."""

    def __init__(self, flow_id: int, src_address: str, dst_address: str):
        self.flow_id = flow_id
        self.src_address = src_address
        self.dst_address = dst_address

        self.first_tx_time_us = None
        self.last_tx_time_us = None
        self.first_rx_time_us = None
        self.last_rx_time_us = None

        self.tx_packets = 0  # Packets handed to the MAC layer
        self.tx_bytes = 0  # IP-level bytes handed to the MAC layer

        self.rx_packets = 0  # Packets delivered to the destination node
        self.rx_bytes = 0

        self.delay_sum_us = 0  # Sum of end-to-end delays of the delivered packets
        self.jitter_sum_us = 0
        self.last_delay_us = None

        self.pkts_dropped_queue_lim = 0
        self.pkts_dropped_retry_lim = 0
        self.pkts_timed_out = 0  # Declared lost after exceeding the maximum per-hop delay

    @property
    def lost_packets(self) -> int:
        return (
            self.pkts_dropped_queue_lim
            + self.pkts_dropped_retry_lim
            + self.pkts_timed_out
        )

    def add_tx(self, packet: Packet, now_us: float):
        if self.first_tx_time_us is None:
            self.first_tx_time_us = now_us
        self.last_tx_time_us = now_us

        self.tx_packets += 1
        self.tx_bytes += packet.size_bytes

    def add_rx(self, packet: Packet, now_us: float):
        if self.first_rx_time_us is None:
            self.first_rx_time_us = now_us
        self.last_rx_time_us = now_us

        delay_us = now_us - packet.creation_time_us
        if self.last_delay_us is not None:
            self.jitter_sum_us += abs(delay_us - self.last_delay_us)
        self.last_delay_us = delay_us

        self.rx_packets += 1
        self.rx_bytes += packet.size_bytes
        self.delay_sum_us += delay_us

    def __repr__(self):
        return (
            f"{self.__class__.__name__}({self.flow_id}, {self.src_address} -> {self.dst_address}, "
            f"tx={self.tx_packets}, rx={self.rx_packets}, lost={self.lost_packets})"
        )


class MediumStats:
    def __init__(self):
        self.ppdus_tx = 0

        self.ppdus_success = 0
        self.ppdus_fail = 0  # Lost to collisions or insufficient SNR

        self.rts_tx = 0
        self.cts_tx = 0

        self.airtime_us = 0  # Time the medium is actively used for transmission

    def summary(self) -> str:
        return (
            f"{self.ppdus_tx} PPDUs ({self.ppdus_success} decoded, {self.ppdus_fail} failed, "
            f"{self.rts_tx} RTS, {self.cts_tx} CTS), airtime {self.airtime_us / 1e6:.3f} s"
        )
