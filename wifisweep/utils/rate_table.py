"""
802.11a OFDM Rate Table - Modulation and SNR thresholds
Reference: IEEE Std 802.11-2016, Clause 17 (OFDM PHY), Table 17-4
"""

import math
import re

# Mapping of data rate (Mbps) to modulation and coding rate
OFDM_RATES = {
    6: ("BPSK", "1/2"),
    9: ("BPSK", "3/4"),
    12: ("QPSK", "1/2"),
    18: ("QPSK", "3/4"),
    24: ("16-QAM", "1/2"),
    36: ("16-QAM", "3/4"),
    48: ("64-QAM", "2/3"),
    54: ("64-QAM", "3/4"),
}

# Minimum SNR (dB) for a 1000-byte frame to be decoded at each data rate
OFDM_MIN_SNR_dB = {
    6: 3.0,
    9: 5.0,
    12: 6.0,
    18: 8.0,
    24: 11.0,
    36: 14.0,
    48: 18.0,
    54: 19.0,
}

# OFDM timing (20 MHz)
PREAMBLE_us = 16
SIGNAL_us = 4
SYMBOL_us = 4
SERVICE_bits = 16
TAIL_bits = 6

THERMAL_NOISE_dBm_per_Hz = -174

PHY_MODE_PATTERN = re.compile(r"^OfdmRate(\d+)Mbps$")


def validate_rate_mbps(rate_mbps) -> int:
    """
    Check that the rate is one of the 802.11a OFDM rates.

    Args:
        rate_mbps (int | str): The data rate in Mbps, or a mode name such as "OfdmRate54Mbps".

    Returns:
        int: The data rate in Mbps.

    Raises:
        ValueError: If the rate is not an OFDM rate.
    """
    if isinstance(rate_mbps, str):
        match = PHY_MODE_PATTERN.match(rate_mbps)
        if not match:
            raise ValueError(f"Invalid PHY mode: {rate_mbps}")
        rate_mbps = int(match.group(1))

    if isinstance(rate_mbps, bool) or rate_mbps not in OFDM_RATES:
        raise ValueError(
            f"Invalid OFDM data rate: {rate_mbps} Mbps. It must be one of {sorted(OFDM_RATES)}"
        )
    return int(rate_mbps)


def get_phy_mode_name(rate_mbps: int) -> str:
    return f"OfdmRate{validate_rate_mbps(rate_mbps)}Mbps"


def describe_rate(rate_mbps: int) -> str:
    modulation, coding_rate = OFDM_RATES[validate_rate_mbps(rate_mbps)]
    return f"{rate_mbps} Mbps ({modulation} {coding_rate})"


def get_data_bits_per_symbol(rate_mbps: int) -> int:
    """Data bits carried by one 4 us OFDM symbol (N_DBPS)."""
    return validate_rate_mbps(rate_mbps) * SYMBOL_us


def get_min_snr_dB(rate_mbps: int) -> float:
    return OFDM_MIN_SNR_dB[validate_rate_mbps(rate_mbps)]


def get_noise_floor_dBm(channel_width_mhz: int, noise_figure_dB: float) -> float:
    """
    Thermal noise power over the channel bandwidth plus the receiver noise figure.

    Args:
        channel_width_mhz (int): The channel width in MHz.
        noise_figure_dB (float): The receiver noise figure in dB.

    Returns:
        float: The noise floor in dBm.
    """
    return (
        THERMAL_NOISE_dBm_per_Hz
        + 10 * math.log10(channel_width_mhz * 1e6)
        + noise_figure_dB
    )


def get_highest_rate_mbps(snr_dB: float) -> int:
    """
    Retrieve the highest OFDM rate that can be decoded at the given SNR.

    Args:
        snr_dB (float): The signal to noise ratio in dB.

    Returns:
        int: The highest supported rate in Mbps. If no rate can be supported, returns -1.
    """
    if snr_dB < OFDM_MIN_SNR_dB[6]:
        return -1

    highest_rate = 6
    for rate_mbps, min_snr_dB in OFDM_MIN_SNR_dB.items():
        if min_snr_dB <= snr_dB:
            highest_rate = rate_mbps
        else:
            break

    return highest_rate
