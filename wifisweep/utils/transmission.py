from wifisweep.utils.rate_table import (
    PREAMBLE_us,
    SIGNAL_us,
    SYMBOL_us,
    SERVICE_bits,
    TAIL_bits,
    get_data_bits_per_symbol,
)


import math

SPEED_OF_LIGHT_m_s = 3.0e8


def get_distance_m(
    position_1: tuple[float, float, float], position_2: tuple[float, float, float]
) -> float:
    """Returns the Euclidean distance between two 3D points."""
    x1, y1, z1 = position_1
    x2, y2, z2 = position_2
    return math.sqrt((x2 - x1) ** 2 + (y2 - y1) ** 2 + (z2 - z1) ** 2)


def get_path_loss_dB(radio, distance_m: float) -> float:
    """
    Calculate the path loss (in dB) given the distance (in meters).

    "friis" is the free-space model with wavelength c / f. "log-distance" takes the
    free-space loss at 1 m as reference and applies radio.path_loss_exponent beyond it.

    Args:
        radio (RadioParams): The radio settings of the experiment.
        distance_m (float): The distance in meters.

    Returns:
        float: The path loss in dB.
    """
    wavelength_m = SPEED_OF_LIGHT_m_s / (radio.frequency_ghz * 1e9)
    distance_m = max(distance_m, 0.1)

    if radio.propagation_loss_model == "friis":
        return 20 * math.log10(4 * math.pi * distance_m / wavelength_m)

    if radio.propagation_loss_model == "log-distance":
        path_loss_1m_dB = 20 * math.log10(4 * math.pi / wavelength_m)
        return path_loss_1m_dB + 10 * radio.path_loss_exponent * math.log10(
            distance_m
        )

    raise ValueError(f"Invalid propagation loss model: {radio.propagation_loss_model}")


def get_rssi_dbm(radio, distance_m: float) -> float:
    """
    Calculates the RSSI in dBm for a given distance in meters.

    Args:
        radio (RadioParams): The radio settings of the experiment.
        distance_m (float): The distance in meters.

    Returns:
        float: The RSSI in dBm.
    """
    return (
        radio.tx_power_dbm
        + radio.tx_gain_db
        + radio.rx_gain_db
        - get_path_loss_dB(radio, distance_m)
    )


def get_tx_duration_us(rate_mbps: int, size_bytes: int) -> int:
    """
    Calculates the OFDM PPDU duration (in microseconds) of a frame.

    Preamble and SIGNAL field, then ceil((SERVICE + 8 * size + TAIL) / N_DBPS) symbols.

    Args:
        rate_mbps (int): The data rate in Mbps.
        size_bytes (int): The size of the MAC frame (PSDU) in bytes.

    Returns:
        int: The transmission duration in microseconds.
    """
    n_symbols = math.ceil(
        (SERVICE_bits + 8 * size_bytes + TAIL_bits)
        / get_data_bits_per_symbol(rate_mbps)
    )
    return PREAMBLE_us + SIGNAL_us + SYMBOL_us * n_symbols


def dbm_to_mw(power_dbm: float) -> float:
    return 10 ** (power_dbm / 10)
