from wifisweep.utils.rate_table import get_min_snr_dB, get_noise_floor_dBm
from wifisweep.utils.transmission import get_distance_m, get_rssi_dbm

import networkx as nx
import itertools


class Node:
    def __init__(self, id: int):
        self.id = id
        self.position: tuple[float, float, float] | None = None  # x, y, z
        self.device: Device | None = None

    def __repr__(self):
        return f"{self.__class__.__name__}({self.id}, pos={self.position})"


class Device:
    """Radio interface of a node. The MAC entity is attached by the engine."""

    def __init__(self, node: Node, address: str):
        self.node = node
        self.address = address
        self.mac = None

        node.device = self

    @property
    def id(self) -> int:
        return self.node.id

    def __repr__(self):
        return f"{self.__class__.__name__}({self.id}, {self.address})"


class NodeSet:
    def __init__(self, nodes: list[Node]):
        self.nodes = tuple(nodes)

    def __len__(self):
        return len(self.nodes)

    def __iter__(self):
        return iter(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self.nodes)})"


class DeviceSet:
    def __init__(self, devices: list[Device]):
        self.devices = tuple(devices)

    def __len__(self):
        return len(self.devices)

    def __iter__(self):
        return iter(self.devices)

    def __getitem__(self, index: int) -> Device:
        return self.devices[index]

    def get_addresses(self) -> list[str]:
        return [device.address for device in self.devices]

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self.devices)})"


def build_radio_graph(nodes: NodeSet, radio) -> nx.Graph:
    """
    Build the pairwise radio graph of the nodes.

    Every pair of nodes gets an edge carrying the distance, the received power and the
    SNR over the noise floor, plus two flags:
    - "sense": the received power reaches the CCA threshold, so each node defers to the other.
    - "link": the SNR is enough to decode frames sent at the data rate.

    Args:
        nodes (NodeSet): The placed nodes.
        radio (RadioParams): The radio settings of the experiment.

    Returns:
        nx.Graph: The radio graph.
    """
    graph = nx.Graph()

    noise_floor_dbm = get_noise_floor_dBm(
        radio.channel_width_mhz, radio.rx_noise_figure_db
    )
    min_snr_db = get_min_snr_dB(radio.data_rate_mbps)

    for node in nodes:
        graph.add_node(node.id, pos=node.position)

    for node_1, node_2 in itertools.combinations(nodes, 2):
        distance_m = get_distance_m(node_1.position, node_2.position)
        rssi_dbm = get_rssi_dbm(radio, distance_m)
        snr_db = rssi_dbm - noise_floor_dbm
        graph.add_edge(
            node_1.id,
            node_2.id,
            distance_m=distance_m,
            rssi_dbm=rssi_dbm,
            snr_db=snr_db,
            sense=rssi_dbm >= radio.cca_threshold_dbm,
            link=snr_db >= min_snr_db,
        )

    return graph


def get_sense_graph(graph: nx.Graph) -> nx.Graph:
    """Subgraph with only the pairs of nodes that sense each other."""
    return graph.edge_subgraph(
        [(u, v) for u, v, sense in graph.edges(data="sense") if sense]
    )
