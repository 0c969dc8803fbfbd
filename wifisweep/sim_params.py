class SimParams:
    # --- Experiment Timing --- #
    WARMUP_s = 1.0  # Measurement flows start after this margin to let addressing settle

    HIDDEN_TERMINAL_DURATION_s = 60.0
    ADHOC_LINK_DURATION_s = 5.0

    # Bookkeeping probes (single packet warm-up), one per measurement pair
    PROBE_START_TIMES_s = (0.001, 0.006)
    PROBE_INTERVAL_s = 0.1
    PROBE_PACKET_SIZE_bytes = 10

    # --- Traffic --- #
    PACKET_SIZE_bytes = 1000
    # Saturating CBR rates for the hidden-terminal flows. The slight offset keeps the two
    # generators from staying in lock-step.
    CBR_RATES_bps = (54_000_000, 54_001_100)
    ADHOC_LINK_RATE_bps = 54_000_000
    ADHOC_LINK_DISTANCE_m = 5.0
    MAX_CLIENT_PACKETS = 30000

    IP_UDP_HEADER_SIZE_bytes = 28

    # --- Radio --- #
    STANDARD = "80211a"

    DATA_RATE_Mbps = 54  # Used when the configuration does not set data_rate_mbps
    CONTROL_RATE_Mbps = 6

    FREQUENCY_GHz = 5
    CHANNEL_WIDTH_MHz = 20

    TX_POWER_dBm = 15  # 32 mW
    TX_GAIN_dB = 0
    RX_GAIN_dB = 0
    RX_NOISE_FIGURE_dB = 7

    PROPAGATION_LOSS_MODEL = "friis"  # "friis" or "log-distance"
    PATH_LOSS_EXPONENT = 3  # only for "log-distance"

    CCA_THRESHOLD_dBm = -82  # Preamble detection threshold used for carrier sensing

    # --- Engine Defaults (applied per run) --- #
    RTS_CTS_THRESHOLD_ENABLED_bytes = 100
    RTS_CTS_THRESHOLD_DISABLED_bytes = 2200
    FRAGMENTATION_THRESHOLD_bytes = 2200

    # --- MAC Layer Parameters --- #
    SLOT_TIME_us = 9
    SIFS_us = 16
    DIFS_us = SIFS_us + 2 * SLOT_TIME_us  # equals 34

    CW_MIN = 15
    CW_MAX = 1023

    COMMON_RETRY_LIMIT = 7

    MAX_TX_QUEUE_SIZE_pkts = 100

    MAC_HEADER_SIZE_bytes = 24
    LLC_HEADER_SIZE_bytes = 8
    FCS_SIZE_bytes = 4

    ACK_SIZE_bytes = 14
    RTS_SIZE_bytes = 20
    CTS_SIZE_bytes = 14

    # --- Flow Monitor --- #
    MAX_PER_HOP_DELAY_s = 10.0  # Packets in flight for longer than this are counted as lost
