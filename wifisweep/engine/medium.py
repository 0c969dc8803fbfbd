from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.engine.base import EngineConfig
from wifisweep.engine.flow_monitor import FlowMonitor
from wifisweep.engine.network import Device
from wifisweep.utils.data_units import ACK, CTS, MPDU, RTS, DataUnit, Packet
from wifisweep.utils.event_logger import get_logger
from wifisweep.utils.rate_table import get_min_snr_dB, get_noise_floor_dBm
from wifisweep.utils.statistics import MediumStats
from wifisweep.utils.transmission import dbm_to_mw, get_tx_duration_us

import networkx as nx
import math
import random
import simpy


class Transmission:
    def __init__(
        self,
        src_id: int,
        data_unit: DataUnit,
        rate_mbps: int,
        start_time_us: float,
        duration_us: int,
        protected: bool = False,
    ):
        self.src_id = src_id
        self.dst_id = data_unit.dst_id
        self.data_unit = data_unit
        self.rate_mbps = rate_mbps

        self.start_time_us = start_time_us
        self.end_time_us = start_time_us + duration_us

        # Devices that transmitted at some point while this transmission was on the air
        self.interferers: set[int] = set()

        # Part of an exchange reserved by a successful RTS/CTS handshake
        self.protected = protected

    def __repr__(self):
        return f"{self.__class__.__name__}({self.data_unit}, {self.rate_mbps} Mbps, [{self.start_time_us}, {self.end_time_us}])"


class Medium:
    def __init__(
        self,
        cfg: cfg_module,
        sparams: sparams_module,
        env: simpy.Environment,
        graph: nx.Graph,
        radio,
    ):
        """
        Shared wireless medium.

        Keeps the transmissions on the air, the carrier sensing state of every device
        (busy while it senses a transmission or its NAV is set) and decides which
        receptions succeed from their SINR.

        Args:
            cfg (cfg_module): The UserConfig object.
            sparams (sparams_module): The SimParams object.
            env (simpy.Environment): The engine environment.
            graph (nx.Graph): The radio graph of the nodes.
            radio (RadioParams): The radio settings of the experiment.
        """
        self.cfg = cfg
        self.sparams = sparams
        self.env = env

        self.graph = graph
        self.radio = radio

        self.noise_floor_mw = dbm_to_mw(
            get_noise_floor_dBm(radio.channel_width_mhz, radio.rx_noise_figure_db)
        )
        self.rx_power_mw = {}
        for u, v, rssi_dbm in graph.edges(data="rssi_dbm"):
            self.rx_power_mw[(u, v)] = self.rx_power_mw[(v, u)] = dbm_to_mw(rssi_dbm)

        self.active_transmissions: list[Transmission] = []

        self.busy = {node_id: False for node_id in graph.nodes}
        self.nav_until_us = {node_id: 0 for node_id in graph.nodes}
        self.idle_events = {node_id: env.event() for node_id in graph.nodes}
        self.busy_events = {node_id: env.event() for node_id in graph.nodes}

        self.stats = MediumStats()

        self.name = "MEDIUM"
        self.logger = get_logger(self.name, cfg, sparams, env)

    def senses(self, listener_id: int, src_id: int) -> bool:
        return self.graph[src_id][listener_id]["sense"]

    def is_idle(self, device_id: int) -> bool:
        return not self.busy[device_id]

    def get_idle_event(self, device_id: int) -> simpy.Event:
        """Event triggered the next time the device senses the medium going idle."""
        return self.idle_events[device_id]

    def get_busy_event(self, device_id: int) -> simpy.Event:
        """Event triggered the next time the device senses the medium going busy."""
        return self.busy_events[device_id]

    def _is_busy(self, device_id: int) -> bool:
        if self.env.now < self.nav_until_us[device_id]:
            return True
        return any(
            tx.src_id != device_id and self.senses(device_id, tx.src_id)
            for tx in self.active_transmissions
        )

    def _update_channel_state(self, device_id: int):
        busy = self._is_busy(device_id)
        if busy == self.busy[device_id]:
            return

        self.busy[device_id] = busy
        if busy:
            event, self.busy_events[device_id] = (
                self.busy_events[device_id],
                self.env.event(),
            )
        else:
            event, self.idle_events[device_id] = (
                self.idle_events[device_id],
                self.env.event(),
            )
        event.succeed()

    def _extend_nav(self, device_id: int, until_us: float):
        if until_us <= self.nav_until_us[device_id]:
            return
        self.nav_until_us[device_id] = until_us
        self.env.process(self._expire_nav(device_id, until_us))

    def _expire_nav(self, device_id: int, until_us: float):
        yield self.env.timeout(until_us - self.env.now)
        self._update_channel_state(device_id)

    def _decodes(self, tx: Transmission, device_id: int) -> bool:
        """Whether the device decodes the transmission, given the interference it suffered."""
        if device_id == tx.src_id or device_id in tx.interferers:
            return False  # half-duplex

        signal_mw = self.rx_power_mw[(tx.src_id, device_id)]
        interference_mw = (
            0
            if tx.protected
            else sum(
                self.rx_power_mw[(interferer_id, device_id)]
                for interferer_id in tx.interferers
                if interferer_id != tx.src_id
            )
        )
        sinr_db = 10 * math.log10(signal_mw / (self.noise_floor_mw + interference_mw))
        return sinr_db >= get_min_snr_dB(tx.rate_mbps)

    def transmit(
        self,
        src_id: int,
        data_unit: DataUnit,
        rate_mbps: int,
        nav_us: float = 0,
        protected: bool = False,
    ):
        """
        Put a frame on the air.

        Devices other than the destination that decode the frame set their NAV to
        nav_us past its end.

        Args:
            src_id (int): The transmitting device.
            data_unit (DataUnit): The frame.
            rate_mbps (int): The PHY rate of the frame.
            nav_us (float, optional): Duration announced in the frame. Defaults to 0.
            protected (bool, optional): Whether the frame belongs to an exchange reserved by RTS/CTS. Defaults to False.

        Returns:
            bool: Whether the destination decoded the frame (returned as the process value).
        """
        duration_us = get_tx_duration_us(rate_mbps, data_unit.size_bytes)
        tx = Transmission(
            src_id, data_unit, rate_mbps, self.env.now, duration_us, protected
        )

        for other in self.active_transmissions:
            other.interferers.add(src_id)
            tx.interferers.add(other.src_id)

        self.active_transmissions.append(tx)
        self.stats.ppdus_tx += 1
        self.stats.airtime_us += duration_us
        if isinstance(data_unit, RTS):
            self.stats.rts_tx += 1
        elif isinstance(data_unit, CTS):
            self.stats.cts_tx += 1

        self.logger.debug(f"Device {src_id} -> Transmitting {tx}")

        for device_id in self.busy:
            self._update_channel_state(device_id)

        yield self.env.timeout(duration_us)

        self.active_transmissions.remove(tx)

        if nav_us > 0:
            for device_id in self.busy:
                if device_id != tx.dst_id and self._decodes(tx, device_id):
                    self._extend_nav(device_id, self.env.now + nav_us)

        for device_id in self.busy:
            self._update_channel_state(device_id)

        success = self._decodes(tx, tx.dst_id)
        if success:
            self.stats.ppdus_success += 1
        else:
            self.stats.ppdus_fail += 1
            self.logger.debug(
                f"Device {tx.dst_id} -> Failed to decode {data_unit} (interferers: {sorted(tx.interferers)})"
            )

        return success


class DcfMac:
    def __init__(
        self,
        cfg: cfg_module,
        sparams: sparams_module,
        env: simpy.Environment,
        device: Device,
        medium: Medium,
        monitor: FlowMonitor,
        engine_config: EngineConfig,
        rng: random.Random,
    ):
        """
        Distributed coordination function of one device.

        Packets are served one at a time: the device waits for DIFS of idle medium, counts
        down its backoff (frozen while the medium is busy) and runs the frame exchange,
        with an RTS/CTS handshake for frames larger than the RTS/CTS threshold. A failed
        exchange doubles the contention window and the packet is dropped after the
        retry limit.
        """
        self.cfg = cfg
        self.sparams = sparams
        self.env = env

        self.device = device
        self.medium = medium
        self.monitor = monitor
        self.engine_config = engine_config
        self.rng = rng

        self.data_rate_mbps = medium.radio.data_rate_mbps
        self.control_rate_mbps = medium.radio.control_rate_mbps

        self.tx_queue = simpy.Store(env, capacity=sparams.MAX_TX_QUEUE_SIZE_pkts)

        self.retries = 0
        self.backoff_slots = None

        self.name = "MEDIUM"
        self.logger = get_logger(self.name, cfg, sparams, env)

        self.env.process(self.run())

    @property
    def id(self) -> int:
        return self.device.id

    def enqueue(self, packet: Packet):
        if len(self.tx_queue.items) >= self.tx_queue.capacity:
            self.monitor.record_drop(packet, "queue")
            return
        self.tx_queue.put(packet)

    def _wait_until_idle(self, duration_us: float):
        """Wait until the medium has been sensed idle for duration_us without interruption."""
        while True:
            while not self.medium.is_idle(self.id):
                yield self.medium.get_idle_event(self.id)

            busy_event = self.medium.get_busy_event(self.id)
            yield self.env.timeout(duration_us) | busy_event

            if not busy_event.triggered:
                return

    def _initialize_backoff_slots(self):
        if self.backoff_slots is not None:
            return

        cw = min((self.sparams.CW_MIN + 1) * 2**self.retries - 1, self.sparams.CW_MAX)
        self.backoff_slots = self.rng.randint(0, cw)
        self.logger.debug(
            f"Device {self.id} -> Backoff slots: {self.backoff_slots} (retries: {self.retries})"
        )

    def _access_medium(self):
        self._initialize_backoff_slots()

        while True:
            yield from self._wait_until_idle(self.sparams.DIFS_us)

            while self.backoff_slots > 0 and self.medium.is_idle(self.id):
                busy_event = self.medium.get_busy_event(self.id)
                yield self.env.timeout(self.sparams.SLOT_TIME_us) | busy_event
                if busy_event.triggered:
                    break
                self.backoff_slots -= 1

            if self.backoff_slots == 0:
                self.backoff_slots = None
                return

    def _frame_exchange(self, mpdu: MPDU):
        dst_id = mpdu.dst_id
        sifs_us = self.sparams.SIFS_us

        data_us = get_tx_duration_us(self.data_rate_mbps, mpdu.size_bytes)
        ack_us = get_tx_duration_us(self.control_rate_mbps, self.sparams.ACK_SIZE_bytes)

        protected = False
        if mpdu.size_bytes > self.engine_config.get(
            "rts_cts_threshold_bytes", self.sparams.RTS_CTS_THRESHOLD_DISABLED_bytes
        ):
            cts_us = get_tx_duration_us(
                self.control_rate_mbps, self.sparams.CTS_SIZE_bytes
            )
            rts_ok = yield self.env.process(
                self.medium.transmit(
                    self.id,
                    RTS(self.id, dst_id, self.env.now),
                    self.control_rate_mbps,
                    nav_us=3 * sifs_us + cts_us + data_us + ack_us,
                )
            )
            if not rts_ok:
                yield self.env.timeout(sifs_us + cts_us + self.sparams.SLOT_TIME_us)
                return False

            yield self.env.timeout(sifs_us)
            cts_ok = yield self.env.process(
                self.medium.transmit(
                    dst_id,
                    CTS(dst_id, self.id, self.env.now),
                    self.control_rate_mbps,
                    nav_us=2 * sifs_us + data_us + ack_us,
                )
            )
            if not cts_ok:
                return False

            yield self.env.timeout(sifs_us)
            protected = True

        data_ok = yield self.env.process(
            self.medium.transmit(
                self.id,
                mpdu,
                self.data_rate_mbps,
                nav_us=sifs_us + ack_us,
                protected=protected,
            )
        )
        if not data_ok:
            yield self.env.timeout(sifs_us + ack_us + self.sparams.SLOT_TIME_us)
            return False

        self.monitor.record_rx(mpdu.packet)

        yield self.env.timeout(sifs_us)
        ack_ok = yield self.env.process(
            self.medium.transmit(
                dst_id,
                ACK(dst_id, self.id, self.env.now),
                self.control_rate_mbps,
                protected=protected,
            )
        )
        return ack_ok

    def run(self):
        """Serve the transmission queue forever."""
        while True:
            packet = yield self.tx_queue.get()
            mpdu = MPDU(packet, self.env.now)

            while True:
                yield from self._access_medium()
                success = yield from self._frame_exchange(mpdu)

                if success:
                    self.retries = 0
                    break

                self.retries += 1
                mpdu.retries += 1
                if self.retries > self.sparams.COMMON_RETRY_LIMIT:
                    self.logger.debug(
                        f"Device {self.id} -> Retry limit reached, dropping {mpdu}"
                    )
                    self.monitor.record_drop(packet, "retry")
                    self.retries = 0
                    break
