from wifisweep.sim_params import SimParams as sparams


class DataUnit:
    """Anything put on the medium or in a queue. Sizes in bytes, times in microseconds."""

    type: str = ""

    def __init__(
        self, creation_time_us: float, size_bytes: int, src_id: int, dst_id: int
    ):
        self.creation_time_us = creation_time_us
        self.size_bytes = size_bytes
        self.src_id = src_id
        self.dst_id = dst_id
        self.retries = 0

    def __repr__(self):
        return f"{self.type}({self.src_id}->{self.dst_id}, {self.size_bytes} B)"


class Packet(DataUnit):
    """
    UDP datagram produced by a traffic source.

    size_bytes is the IP-level size, payload plus UDP and IPv4 headers, which is what
    the flow monitor counts as transmitted and received bytes.
    """

    type = "DATA"

    def __init__(
        self,
        id: int,
        flow_id: int,
        payload_bytes: int,
        src_id: int,
        dst_id: int,
        creation_time_us: float,
    ):
        size_bytes = payload_bytes + sparams.IP_UDP_HEADER_SIZE_bytes
        super().__init__(creation_time_us, size_bytes, src_id, dst_id)
        self.id = id
        self.flow_id = flow_id
        self.payload_bytes = payload_bytes

    def __repr__(self):
        return f"DATA[{self.flow_id}:{self.id}]({self.src_id}->{self.dst_id}, {self.size_bytes} B)"


class MPDU(DataUnit):
    type = "MPDU"

    def __init__(self, packet: Packet, creation_time_us: float):
        # MAC header + LLC/SNAP + IP packet + FCS
        overhead_bytes = (
            sparams.MAC_HEADER_SIZE_bytes
            + sparams.LLC_HEADER_SIZE_bytes
            + sparams.FCS_SIZE_bytes
        )
        super().__init__(
            creation_time_us,
            packet.size_bytes + overhead_bytes,
            packet.src_id,
            packet.dst_id,
        )
        self.packet = packet

    def __repr__(self):
        return f"MPDU[{self.packet.flow_id}:{self.packet.id}]({self.src_id}->{self.dst_id}, retries={self.retries})"


class ControlFrame(DataUnit):
    """Fixed-size control frame. Subclasses name the SimParams attribute holding the size."""

    size_param: str = ""

    def __init__(self, src_id: int, dst_id: int, creation_time_us: float):
        super().__init__(
            creation_time_us, getattr(sparams, self.size_param), src_id, dst_id
        )


class RTS(ControlFrame):
    type = "RTS"
    size_param = "RTS_SIZE_bytes"


class CTS(ControlFrame):
    type = "CTS"
    size_param = "CTS_SIZE_bytes"


class ACK(ControlFrame):
    type = "ACK"
    size_param = "ACK_SIZE_bytes"
