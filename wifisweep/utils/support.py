from wifisweep.user_config import UserConfig as cfg
from wifisweep.sim_params import SimParams as sparams

from wifisweep.sweep.driver import FAILURE_POLICIES
from wifisweep.sweep.errors import SweepSpecError
from wifisweep.sweep.invoker import ENGINES
from wifisweep.sweep.spec_loader import SweepSpec, parse_sweep_spec
from wifisweep.utils.rate_table import OFDM_RATES

import os
import random
import logging


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# (requirement, check) pairs
POSITIVE_INT = ("a positive integer", lambda v: _is_int(v) and v > 0)
NON_NEGATIVE_INT = ("a non-negative integer", lambda v: _is_int(v) and v >= 0)
POSITIVE_NUMBER = ("a positive number", lambda v: _is_number(v) and v > 0)
NUMBER = ("an integer or float", _is_number)
BOOL = ("a boolean", lambda v: isinstance(v, bool))
STRING = ("a string", lambda v: isinstance(v, str))
OPTIONAL_STRING = ("a string or None", lambda v: v is None or isinstance(v, str))


def one_of(*choices) -> tuple:
    return (f"one of {list(choices)}", lambda v: v in choices)


SIM_PARAMS_RULES = {
    "SLOT_TIME_us": POSITIVE_INT,
    "SIFS_us": POSITIVE_INT,
    "DIFS_us": POSITIVE_INT,
    "CW_MIN": NON_NEGATIVE_INT,
    "CW_MAX": NON_NEGATIVE_INT,
    "COMMON_RETRY_LIMIT": NON_NEGATIVE_INT,
    "MAX_TX_QUEUE_SIZE_pkts": POSITIVE_INT,
    "MAX_CLIENT_PACKETS": POSITIVE_INT,
    "PACKET_SIZE_bytes": POSITIVE_INT,
    "PROBE_PACKET_SIZE_bytes": POSITIVE_INT,
    "IP_UDP_HEADER_SIZE_bytes": POSITIVE_INT,
    "MAC_HEADER_SIZE_bytes": POSITIVE_INT,
    "LLC_HEADER_SIZE_bytes": POSITIVE_INT,
    "FCS_SIZE_bytes": POSITIVE_INT,
    "ACK_SIZE_bytes": POSITIVE_INT,
    "RTS_SIZE_bytes": POSITIVE_INT,
    "CTS_SIZE_bytes": POSITIVE_INT,
    "RTS_CTS_THRESHOLD_ENABLED_bytes": POSITIVE_INT,
    "RTS_CTS_THRESHOLD_DISABLED_bytes": POSITIVE_INT,
    "FRAGMENTATION_THRESHOLD_bytes": POSITIVE_INT,
    "WARMUP_s": POSITIVE_NUMBER,
    "HIDDEN_TERMINAL_DURATION_s": POSITIVE_NUMBER,
    "ADHOC_LINK_DURATION_s": POSITIVE_NUMBER,
    "PROBE_INTERVAL_s": POSITIVE_NUMBER,
    "ADHOC_LINK_RATE_bps": POSITIVE_NUMBER,
    "FREQUENCY_GHz": POSITIVE_NUMBER,
    "MAX_PER_HOP_DELAY_s": POSITIVE_NUMBER,
    "TX_POWER_dBm": NUMBER,
    "TX_GAIN_dB": NUMBER,
    "RX_GAIN_dB": NUMBER,
    "RX_NOISE_FIGURE_dB": NUMBER,
    "PATH_LOSS_EXPONENT": NUMBER,
    "CCA_THRESHOLD_dBm": NUMBER,
    "ADHOC_LINK_DISTANCE_m": NUMBER,
    "STANDARD": one_of("80211a"),
    "CHANNEL_WIDTH_MHz": one_of(20),
    "PROPAGATION_LOSS_MODEL": one_of("friis", "log-distance"),
    "DATA_RATE_Mbps": one_of(*OFDM_RATES),
    "CONTROL_RATE_Mbps": one_of(*OFDM_RATES),
}

CONFIG_RULES = {
    "ENGINE": one_of(*ENGINES),
    "FAILURE_POLICY": one_of(*FAILURE_POLICIES),
    "WORKERS": POSITIVE_INT,
    "OUTPUT_PATH": STRING,
    "WRITE_HEADER": BOOL,
    "DIAGNOSTICS_PATH": OPTIONAL_STRING,
    "ENABLE_CONSOLE_LOGGING": BOOL,
    "USE_COLORS_IN_LOGS": BOOL,
    "ENABLE_LOGS_RECORDING": BOOL,
    "LOGS_RECORDING_PATH": STRING,
    "ENABLE_FIGS_DISPLAY": BOOL,
    "ENABLE_FIGS_SAVING": BOOL,
    "FIGS_SAVE_PATH": STRING,
}

LOGGED_MODULES = (
    "SWEEP",
    "BUILDER",
    "INVOKER",
    "AGG",
    "SINK",
    "ENGINE",
    "MEDIUM",
    "GEN",
    "MONITOR",
    "PLOTTER",
)
EXCLUDABLE_LEVELS = ("HEADER", "DEBUG", "DEFAULT", "INFO", "SUCCESS", "WARNING", "ALL")


def check_rules(settings, rules: dict, logger: logging.Logger):
    """Log a CRITICAL record, which ends the execution, for the first setting breaking its rule."""
    for name, (requirement, is_valid) in rules.items():
        value = getattr(settings, name)
        if not is_valid(value):
            logger.critical(f"Invalid {name}: {value!r}. It must be {requirement}.")


def validate_params(sparams: sparams, logger: logging.Logger):
    check_rules(sparams, SIM_PARAMS_RULES, logger)

    if sparams.CW_MAX < sparams.CW_MIN:
        logger.critical(
            f"Invalid CW_MAX: {sparams.CW_MAX}. It must not be below CW_MIN ({sparams.CW_MIN})."
        )

    # One probe and one CBR rate per flow pair of the hidden terminal scenario
    if len(sparams.PROBE_START_TIMES_s) != 2 or len(sparams.CBR_RATES_bps) != 2:
        logger.critical("PROBE_START_TIMES_s and CBR_RATES_bps must hold 2 values each.")

    late_probes = [s for s in sparams.PROBE_START_TIMES_s if s >= sparams.WARMUP_s]
    if late_probes:
        logger.critical(
            f"Invalid PROBE_START_TIMES_s: {late_probes} start after the warm-up ({sparams.WARMUP_s} s)."
        )

    for name in ("HIDDEN_TERMINAL_DURATION_s", "ADHOC_LINK_DURATION_s"):
        if getattr(sparams, name) <= sparams.WARMUP_s:
            logger.critical(
                f"Invalid {name}: {getattr(sparams, name)}. The run must outlast the warm-up ({sparams.WARMUP_s} s)."
            )

    logger.success("Simulation parameters validated.")


def validate_config(
    cfg: cfg, sparams: sparams, logger: logging.Logger, validate_sweep: bool = True
) -> None:
    if cfg.SEED is not None:
        if not _is_int(cfg.SEED):
            logger.critical(f"Invalid SEED: {cfg.SEED!r}. It must be an integer or None.")
        random.seed(cfg.SEED)

    check_rules(cfg, CONFIG_RULES, logger)

    for module, levels in cfg.EXCLUDED_LOGS.items():
        if module not in LOGGED_MODULES:
            logger.warning(f"Unknown module '{module}' in EXCLUDED_LOGS.")
        unknown_levels = [level for level in levels if level not in EXCLUDABLE_LEVELS]
        if unknown_levels:
            logger.warning(
                f"Unknown log levels {unknown_levels} for '{module}' in EXCLUDED_LOGS."
            )

    if cfg.ENABLE_LOGS_RECORDING:
        os.makedirs(cfg.LOGS_RECORDING_PATH, exist_ok=True)
    if cfg.ENABLE_FIGS_SAVING:
        os.makedirs(cfg.FIGS_SAVE_PATH, exist_ok=True)

    if validate_sweep:
        validate_sweep_spec(cfg.SWEEP, logger)

    logger.success("User configuration validated.")


def validate_sweep_spec(data: dict, logger: logging.Logger) -> SweepSpec:
    try:
        spec = parse_sweep_spec(data)
    except SweepSpecError as e:
        logger.critical(f"Invalid SWEEP: {e}")
        raise

    logger.debug(
        f"Sweep '{spec.scenario}' over {list(spec.parameters)} ({spec.make_grid().count()} configurations)"
    )
    return spec


def validate_settings(
    cfg: cfg, sparams: sparams, logger: logging.Logger, validate_sweep: bool = True
):
    """
    Validate SimParams and UserConfig. With validate_sweep=False, UserConfig.SWEEP is left
    to the caller, which may not use it at all.
    """
    validate_params(sparams, logger)
    validate_config(cfg, sparams, logger, validate_sweep)
