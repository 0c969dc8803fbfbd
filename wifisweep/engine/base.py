from abc import ABC, abstractmethod
from dataclasses import dataclass


class EngineError(Exception):
    """The engine rejected a call or could not complete a run."""


@dataclass(frozen=True)
class FlowRecord:
    """Read-only snapshot of the counters of one flow."""

    flow_id: int
    tx_bytes: int
    rx_bytes: int
    tx_packets: int
    rx_packets: int
    delay_sum_us: float
    lost_packets: int
    jitter_sum_us: float = 0.0
    first_tx_time_us: float | None = None
    last_tx_time_us: float | None = None
    first_rx_time_us: float | None = None
    last_rx_time_us: float | None = None


class EngineConfig:
    """Defaults table of a single run. A fresh one is created for every experiment."""

    def __init__(self, defaults: dict | None = None):
        self.defaults = dict(defaults or {})

    def set_default(self, key: str, value) -> None:
        self.defaults[key] = value

    def get(self, key: str, default=None):
        return self.defaults.get(key, default)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.defaults})"


class Engine(ABC):
    """
    Interface of a discrete-event network engine.

    Calls are made in order: create_nodes, install_mobility, install_radio_and_network,
    install_flow (once per flow), run, get_flow_statistics and finally destroy.
    Flow ids are assigned 1..N in install_flow call order.
    """

    def __init__(self, config: EngineConfig):
        self.config = config

    def set_default(self, key: str, value) -> None:
        self.config.set_default(key, value)

    @abstractmethod
    def create_nodes(self, count: int):
        """Create count nodes and return the NodeSet."""

    @abstractmethod
    def install_mobility(self, nodes, positions) -> None:
        """Place each node at a constant (x, y, z) position."""

    @abstractmethod
    def install_radio_and_network(self, nodes, radio):
        """Install one radio device per node and assign addresses. Returns the DeviceSet."""

    @abstractmethod
    def install_flow(self, flow) -> int:
        """Install a traffic generator. Returns the flow id."""

    @abstractmethod
    def run(self, duration_s: float) -> None:
        """Run the simulation until duration_s seconds of simulated time."""

    @abstractmethod
    def get_flow_statistics(self) -> dict[int, FlowRecord]:
        """Snapshot of the per-flow counters, keyed by flow id."""

    @abstractmethod
    def destroy(self) -> None:
        """Release every resource of the run. The engine cannot be used afterwards."""
